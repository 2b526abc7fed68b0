"""
Data Quality Module
"""
from .validators import DataValidator, ValidationResult, create_entity_validator

__all__ = [
    "DataValidator",
    "ValidationResult",
    "create_entity_validator",
]
