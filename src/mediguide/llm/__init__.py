# ============================================================================
# src/mediguide/llm/__init__.py
# ============================================================================
"""
LLM module - text-completion oracle and prescription parsing
"""

from .base import BackendType, TextCompletionOracle
from .ollama_client import OllamaTextOracle
from .prescription_parser import PrescriptionLLMParser

__all__ = [
    "BackendType",
    "TextCompletionOracle",
    "OllamaTextOracle",
    "PrescriptionLLMParser",
]
