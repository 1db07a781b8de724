"""
Data Quality Module
"""
from .validators import (
    DataValidator,
    ValidationResult,
    ValidationStatus,
    model_passed,
    validate_model,
)

__all__ = [
    "DataValidator",
    "ValidationResult",
    "ValidationStatus",
    "model_passed",
    "validate_model",
]
