# ============================================================================
# src/mediguide/config/llm_config.py
# ============================================================================
"""
Text-Completion Oracle Settings
- Ollama server and model
- Sampling temperature
- Timeouts (parse, warm-up)
- Chat response cache
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LLMSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore", frozen=True)

    OLLAMA_HOST: str = Field(
        default="http://localhost:11434",
        description="Ollama server URL"
    )
    OLLAMA_MODEL: str = Field(
        default="mistral",
        description="Model used for prescription parsing and medicine chat"
    )
    LLM_TEMPERATURE: float = Field(
        default=0.1,
        ge=0.0, le=2.0,
        description="Sampling temperature for structured parsing"
    )
    CHAT_TEMPERATURE: float = Field(
        default=0.2,
        ge=0.0, le=2.0,
        description="Sampling temperature for the medicine chat"
    )
    LLM_MAX_TOKENS: int = Field(
        default=2000,
        gt=0,
        description="Maximum tokens generated per call"
    )
    LLM_PARSE_TIMEOUT: float = Field(
        default=60.0,
        gt=0,
        description="Seconds allowed for a JSON parse call"
    )
    LLM_WARMUP_TIMEOUT: float = Field(
        default=180.0,
        gt=0,
        description="Seconds allowed for the first call while the model loads"
    )
    CHAT_CACHE_TTL: int = Field(
        default=600,
        gt=0,
        description="Seconds a medicine chat answer stays cached"
    )
    CHAT_CACHE_MAX_ENTRIES: int = Field(
        default=256,
        gt=0,
        description="Maximum cached medicine chat answers"
    )


llm_settings = LLMSettings()
