"""
Row transformer.

Turns one source row into a canonical record using the column mapping
and the entity's field-type manifest.
"""

from enum import Enum
from typing import Any, Mapping, Optional

from models.entity import CanonicalRecord, ColumnMapping, EntitySchema
from parsers.value_coercer import coerce_value
from utils.text_utils import clean_key_value


class ColumnPrecedence(str, Enum):
    """
    Which column supplies a field when several headers map to it.

    LAST: the right-most matching column wins, even when its cell is empty.
    FIRST: the left-most matching column wins.
    """
    LAST = "last"
    FIRST = "first"


def _apply_defaults(record: CanonicalRecord, schema: EntitySchema) -> None:
    for field, default in schema.defaults.items():
        if record.get(field) is not None:
            continue
        record[field] = default(record) if callable(default) else default


def missing_key_fields(record: Mapping[str, Any], schema: EntitySchema) -> list[str]:
    """Natural-key fields that are absent, None or blank in the record."""
    return [
        key_field for key_field in schema.natural_key
        if clean_key_value(record.get(key_field)) is None
    ]


def build_record(
    source_row: Mapping[str, Any],
    mapping: ColumnMapping,
    schema: EntitySchema,
    precedence: ColumnPrecedence = ColumnPrecedence.LAST,
) -> CanonicalRecord:
    """
    Coerce every mapped cell and inject defaults, without rejecting.

    Transient fields are still present in the returned record.
    """
    record: CanonicalRecord = {}

    for source_header, canonical_field in mapping.items():
        if precedence == ColumnPrecedence.FIRST and canonical_field in record:
            continue
        record[canonical_field] = coerce_value(
            source_row.get(source_header),
            canonical_field,
            schema.date_fields,
            schema.numeric_fields,
            schema.additive_fields,
        )

    _apply_defaults(record, schema)

    return record


def transform_row(
    source_row: Mapping[str, Any],
    mapping: ColumnMapping,
    schema: EntitySchema,
    precedence: ColumnPrecedence = ColumnPrecedence.LAST,
) -> Optional[CanonicalRecord]:
    """
    Transform one source row.

    Args:
        source_row: Header → raw cell value
        mapping: Header → canonical field, in column order
        schema: Entity manifest (types, defaults, natural key)
        precedence: Tie-break for headers mapped to the same field

    Returns:
        The canonical record, or None when a natural-key field is
        missing after coercion and defaults (row rejected).
    """
    record = build_record(source_row, mapping, schema, precedence)

    if missing_key_fields(record, schema):
        return None

    for key_field in schema.natural_key:
        value = record[key_field]
        if isinstance(value, str):
            record[key_field] = value.strip()

    for transient in schema.transient_fields:
        record.pop(transient, None)

    return record


def rejection_reason(
    source_row: Mapping[str, Any],
    mapping: ColumnMapping,
    schema: EntitySchema,
    precedence: ColumnPrecedence = ColumnPrecedence.LAST,
) -> str:
    """Human-readable reason a row was rejected by transform_row."""
    record = build_record(source_row, mapping, schema, precedence)
    missing = missing_key_fields(record, schema)
    if not missing:
        return "Row accepted"
    labels = ", ".join(f.replace("_", " ").title() for f in missing)
    return f"Missing {labels}"
