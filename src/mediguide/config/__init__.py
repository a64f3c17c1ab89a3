# ============================================================================
# src/mediguide/config/__init__.py
# ============================================================================
"""
Convenient imports for all settings
"""

from .thresholds_config import ThresholdSettings, threshold_settings
from .llm_config import LLMSettings, llm_settings
from .ocr_config import OCRSettings, ocr_settings
from .pipeline_config import PipelineSettings, pipeline_settings
from .logging_config import LoggingSettings, logging_settings
