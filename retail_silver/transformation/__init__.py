"""
Data Transformation Module
"""
from .normalizers import FieldRule, FieldType, RuleKind, normalize_value
from .rules import ENTITY_ORDER, ENTITY_SCHEMAS, EntitySchema, get_entity_schema
from .transformers import EntityTransform, transform_records

__all__ = [
    "FieldRule",
    "FieldType",
    "RuleKind",
    "normalize_value",
    "ENTITY_ORDER",
    "ENTITY_SCHEMAS",
    "EntitySchema",
    "get_entity_schema",
    "EntityTransform",
    "transform_records",
]
