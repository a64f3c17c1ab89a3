# ============================================================================
# src/mediguide/utils/exceptions.py
# ============================================================================
"""
Custom exceptions for the MediGuide prescription core.

Every error carries a stable `code`, a human-readable `user_message` and the
raw `cause` string so the pipeline can report both to callers.
"""

from typing import Optional


class MediGuideError(Exception):
    """Base exception for all MediGuide errors."""

    code = "processing_error"
    default_user_message = "We could not process this prescription. Please try again."

    def __init__(self, message: str, user_message: Optional[str] = None):
        super().__init__(message)
        self.user_message = user_message or self.default_user_message

    @property
    def cause(self) -> str:
        return str(self)


class InputValidationError(MediGuideError):
    """Request carries nothing usable (no text, no image, unreadable image)."""

    code = "input_validation"
    default_user_message = "Please provide prescription text or an image."


class ImageQualityError(MediGuideError):
    """OCR output is too weak to extract medications from."""

    code = "image_quality"
    default_user_message = (
        "The image quality is too low for accurate text extraction. "
        "Please upload a clearer image."
    )

    def __init__(
        self,
        message: str,
        confidence: float = 0.0,
        reason: Optional[str] = None,
        user_message: Optional[str] = None,
    ):
        super().__init__(message, user_message)
        self.confidence = confidence
        self.reason = reason


class OracleError(MediGuideError):
    """Failure of an external oracle (LLM or OCR)."""

    code = "oracle_error"

    def __init__(self, message: str, oracle: str = "unknown", user_message: Optional[str] = None):
        super().__init__(message, user_message)
        self.oracle = oracle


class OracleTimeoutError(OracleError):
    """Oracle call exceeded its time bound. Retryable by the user."""

    code = "oracle_timeout"
    default_user_message = (
        "The request took too long to process. Please try again in a moment."
    )

    def __init__(
        self,
        message: str,
        oracle: str = "unknown",
        timeout_seconds: float = 0.0,
        user_message: Optional[str] = None,
    ):
        super().__init__(message, oracle, user_message)
        self.timeout_seconds = timeout_seconds


class OracleOutputError(OracleError):
    """Text oracle returned malformed JSON or the wrong shape."""

    code = "invalid_llm_output"
    default_user_message = (
        "We could not read the prescription details. Please try again or type the prescription."
    )

    def __init__(
        self,
        message: str,
        oracle: str = "llm",
        raw_output: Optional[str] = None,
        user_message: Optional[str] = None,
    ):
        super().__init__(message, oracle, user_message)
        self.raw_output = raw_output


class OracleUnavailableError(OracleError):
    """Oracle backend unreachable or not installed."""

    code = "oracle_unavailable"
    default_user_message = "The text recognition service is currently unavailable."


class NotFoundError(MediGuideError):
    """Drug information lookup miss."""

    code = "not_found"
    default_user_message = "Information not available"

    def __init__(self, message: str, drug_name: str = "", user_message: Optional[str] = None):
        super().__init__(message, user_message)
        self.drug_name = drug_name


class ConfigurationError(MediGuideError):
    """Invalid configuration."""

    code = "configuration_error"
