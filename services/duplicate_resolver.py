"""
Duplicate resolver.

Collapses records sharing a natural key. The last occurrence in row order
survives, placed where it was last seen. Rows are replaced whole; fields
are never merged across duplicates.
"""

from typing import Iterable, Sequence, Union
import structlog

from models.entity import CanonicalRecord
from utils.text_utils import clean_key_value

logger = structlog.get_logger(__name__)

NaturalKey = Union[str, Sequence[str]]


def _key_fields(natural_key: NaturalKey) -> tuple[str, ...]:
    if isinstance(natural_key, str):
        return (natural_key,)
    return tuple(natural_key)


def _key_part(value):
    # 1500.0 and 1500 are the same key
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return clean_key_value(value)


def record_key(record: CanonicalRecord, natural_key: NaturalKey) -> tuple:
    """Trimmed string value(s) of the natural key, for comparison."""
    return tuple(_key_part(record.get(f)) for f in _key_fields(natural_key))


def resolve_duplicates(
    records: Iterable[CanonicalRecord],
    natural_key: NaturalKey,
) -> list[CanonicalRecord]:
    """
    Keep the last record for each natural-key value.

    Args:
        records: Canonical records in source row order
        natural_key: Key field name, or several for a composite key

    Returns:
        Records with unique keys. Single-occurrence keys keep their
        relative order; a repeated key moves to its last position.
    """
    resolved: dict[tuple, CanonicalRecord] = {}
    seen = 0

    for record in records:
        seen += 1
        key = record_key(record, natural_key)
        # Re-inserting moves the key to the end of the ordered dict
        resolved.pop(key, None)
        resolved[key] = record

    collapsed = seen - len(resolved)
    if collapsed:
        logger.info(
            "duplicates_collapsed",
            natural_key=_key_fields(natural_key),
            records_in=seen,
            records_out=len(resolved),
            collapsed=collapsed
        )

    return list(resolved.values())
