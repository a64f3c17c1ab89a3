# ============================================================================
# src/mediguide/config/pipeline_config.py
# ============================================================================
"""
Pipeline Settings
- Parser selection (rules vs LLM)
- Extractor base confidence
- Nudge cap
- Drug information sources
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class PipelineSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore", frozen=True)

    PARSER_MODE: Literal["rules", "llm"] = Field(
        default="rules",
        description="Default text parser when a request does not choose one"
    )
    EXTRACTOR_BASE_CONFIDENCE: float = Field(
        default=0.3,
        ge=0.0, le=1.0,
        description="Starting confidence of every rule-extracted medication"
    )
    NUDGE_LIMIT: int = Field(
        default=5,
        ge=1,
        description="Maximum nudges returned per request"
    )
    USE_OPENFDA: bool = Field(
        default=True,
        description="Fall back to the OpenFDA label API when the local knowledge base misses"
    )
    OPENFDA_URL: str = Field(
        default="https://api.fda.gov/drug/label.json",
        description="OpenFDA drug label endpoint"
    )
    OPENFDA_TIMEOUT: float = Field(
        default=10.0,
        gt=0,
        description="Seconds allowed for one OpenFDA request"
    )


pipeline_settings = PipelineSettings()
