# ============================================================================
# src/mediguide/utils/__init__.py
# ============================================================================
"""
Utility modules for the MediGuide core.
"""

from .exceptions import (
    MediGuideError,
    InputValidationError,
    ImageQualityError,
    OracleError,
    OracleTimeoutError,
    OracleOutputError,
    OracleUnavailableError,
    NotFoundError,
    ConfigurationError,
)

from .logging import (
    setup_logging,
    JsonFormatter,
    LogAdapter,
    log_performance,
)

__all__ = [
    # Exceptions
    'MediGuideError',
    'InputValidationError',
    'ImageQualityError',
    'OracleError',
    'OracleTimeoutError',
    'OracleOutputError',
    'OracleUnavailableError',
    'NotFoundError',
    'ConfigurationError',
    # Logging
    'setup_logging',
    'JsonFormatter',
    'LogAdapter',
    'log_performance',
]
