# ============================================================================
# src/mediguide/config/thresholds_config.py
# ============================================================================
"""
Confidence Thresholds
- OCR quality bands
- Per-field trust thresholds
- Clarification question rules
- Confidence levels
"""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ThresholdSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore", frozen=True)

    # OCR quality bands
    OCR_MINIMUM: float = Field(
        default=0.50,
        ge=0.0, le=1.0,
        description="Below this OCR confidence the whole input is rejected with an image quality question"
    )
    OCR_WARNING: float = Field(
        default=0.65,
        ge=0.0, le=1.0,
        description="Below this OCR confidence processing continues with a non-blocking warning"
    )
    OCR_GOOD: float = Field(
        default=0.80,
        ge=0.0, le=1.0,
        description="OCR confidence considered good quality"
    )
    OCR_MIN_TOKENS: int = Field(
        default=5,
        ge=0,
        description="Minimum recognized tokens for an image to be worth parsing"
    )

    # Field-level thresholds
    DRUG_NAME_THRESHOLD: float = Field(
        default=0.70,
        ge=0.0, le=1.0,
        description="Drug name must be at least this confident"
    )
    STRENGTH_THRESHOLD: float = Field(
        default=0.75,
        ge=0.0, le=1.0,
        description="Strength must be at least this confident"
    )
    FREQUENCY_THRESHOLD: float = Field(
        default=0.65,
        ge=0.0, le=1.0,
        description="Frequency must be at least this confident"
    )
    DURATION_THRESHOLD: float = Field(
        default=0.60,
        ge=0.0, le=1.0,
        description="Duration must be at least this confident"
    )
    FOOD_INSTRUCTION_THRESHOLD: float = Field(
        default=0.55,
        ge=0.0, le=1.0,
        description="Food instruction must be at least this confident"
    )

    NEEDS_CONFIRMATION_THRESHOLD: float = Field(
        default=0.65,
        ge=0.0, le=1.0,
        description="Fields without a dedicated rule ask for confirmation below this"
    )
    MISSING_FIELD_THRESHOLD: float = Field(
        default=0.30,
        ge=0.0, le=1.0,
        description="Below this a field is treated as missing"
    )

    # Clarification rules
    ASK_DRUG_NAME_UNCERTAIN: bool = Field(
        default=True,
        description="Ask when the drug name is uncertain or missing"
    )
    ASK_STRENGTH_UNCERTAIN: bool = Field(
        default=True,
        description="Ask when the strength is uncertain or missing"
    )
    ASK_FREQUENCY_MISSING: bool = Field(
        default=True,
        description="Ask when the frequency is missing"
    )
    ASK_DURATION_MISSING: bool = Field(
        default=False,
        description="Ask when the duration is missing (defaults to 'As directed' otherwise)"
    )

    # Confidence levels
    LEVEL_HIGH: float = Field(default=0.80, ge=0.0, le=1.0)
    LEVEL_MEDIUM: float = Field(default=0.65, ge=0.0, le=1.0)
    LEVEL_LOW: float = Field(default=0.50, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def check_ocr_bands(self):
        if not (self.OCR_MINIMUM <= self.OCR_WARNING <= self.OCR_GOOD):
            raise ValueError(
                "OCR bands must satisfy OCR_MINIMUM <= OCR_WARNING <= OCR_GOOD"
            )
        return self

    def field_threshold(self, field: str) -> float:
        """Threshold for a named field, NEEDS_CONFIRMATION_THRESHOLD otherwise."""
        return {
            "drug_name": self.DRUG_NAME_THRESHOLD,
            "strength": self.STRENGTH_THRESHOLD,
            "frequency": self.FREQUENCY_THRESHOLD,
            "duration": self.DURATION_THRESHOLD,
            "food_instruction": self.FOOD_INSTRUCTION_THRESHOLD,
        }.get(field, self.NEEDS_CONFIRMATION_THRESHOLD)


threshold_settings = ThresholdSettings()
