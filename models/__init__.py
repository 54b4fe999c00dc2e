"""
Models for validation and serialization.
"""

from models.base import BaseSchema, FrozenSchema
from models.entity import (
    AliasTable,
    ColumnMapping,
    CanonicalRecord,
    EntitySchema,
    ParentReference,
    CompanionTable,
)
from models.imports import (
    RowRejection,
    ImportProgress,
    ImportResult,
    EntitySchemaResponse,
)

__all__ = [
    # Base
    "BaseSchema",
    "FrozenSchema",

    # Entity schemas
    "AliasTable",
    "ColumnMapping",
    "CanonicalRecord",
    "EntitySchema",
    "ParentReference",
    "CompanionTable",

    # Import results
    "RowRejection",
    "ImportProgress",
    "ImportResult",
    "EntitySchemaResponse",
]
