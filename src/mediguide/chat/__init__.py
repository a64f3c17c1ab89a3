# ============================================================================
# src/mediguide/chat/__init__.py
# ============================================================================
"""
Ask-about-a-medicine chat with safety screen and TTL cache.
"""

from .cache import ResponseCache
from .safety import ChatValidation, validate_chat_request
from .medicine_chat import MedicineChatService, generate_suggested_questions

__all__ = [
    "ResponseCache",
    "ChatValidation",
    "validate_chat_request",
    "MedicineChatService",
    "generate_suggested_questions",
]
