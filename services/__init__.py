"""
Import engine services.

The engine is shared by every entity; services.entity_catalog holds the
per-entity configuration.
"""

from services.import_service import ImportService, get_import_service
from services.batch_upload_service import (
    BatchUploadOrchestrator,
    BatchUploadOutcome,
    chunk_records,
)
from services.duplicate_resolver import resolve_duplicates
from services.row_transformer import ColumnPrecedence, transform_row
from services.entity_catalog import (
    ENTITY_SCHEMAS,
    get_entity_schema,
    list_entity_schemas,
)
from services.supabase_committer import SupabaseParentLookup, SupabaseUpsertCommitter

__all__ = [
    "ImportService",
    "get_import_service",
    "BatchUploadOrchestrator",
    "BatchUploadOutcome",
    "chunk_records",
    "resolve_duplicates",
    "ColumnPrecedence",
    "transform_row",
    "ENTITY_SCHEMAS",
    "get_entity_schema",
    "list_entity_schemas",
    "SupabaseParentLookup",
    "SupabaseUpsertCommitter",
]
