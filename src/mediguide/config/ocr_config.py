# ============================================================================
# src/mediguide/config/ocr_config.py
# ============================================================================
"""
Image-to-Text Oracle Settings
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class OCRSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore", frozen=True)

    OCR_LANG: str = Field(
        default="en",
        description="Default PaddleOCR recognition language"
    )
    OCR_TIMEOUT: float = Field(
        default=120.0,
        gt=0,
        description="Seconds allowed for one recognition call"
    )
    OCR_USE_GPU: bool = Field(
        default=False,
        description="GPU hint (PaddlePaddle auto-detects from its installation)"
    )
    OCR_MAX_DIMENSION: int = Field(
        default=2500,
        gt=0,
        description="Images larger than this on either side are downscaled"
    )
    OCR_MIN_DIMENSION: int = Field(
        default=1000,
        gt=0,
        description="Images smaller than this on the long side are upscaled"
    )


ocr_settings = OCRSettings()
