"""
Column matcher.

Maps the headers of an arbitrary spreadsheet onto the canonical fields of
an entity using its alias table.

Matching runs in two passes:
    1. Exact: normalized header equals a normalized alias.
    2. Affix: normalized header starts or ends with a normalized alias.
       Only headers left unmatched by pass 1 take part.

Within a pass, the first field in alias-table order wins. Two headers may
resolve to the same field; which one supplies the value is decided when
rows are transformed (see services.row_transformer.ColumnPrecedence).
"""

from typing import Iterable, Optional
import structlog

from models.entity import AliasTable, ColumnMapping
from utils.text_utils import normalize_header

logger = structlog.get_logger(__name__)


def _normalized_aliases(aliases: AliasTable) -> list[tuple[str, list[str]]]:
    """Normalize every alias once, keeping declaration order."""
    normalized = []
    for canonical_field, spellings in aliases.items():
        cleaned = [normalize_header(s) for s in spellings]
        normalized.append((canonical_field, [s for s in cleaned if s]))
    return normalized


def _exact_match(header: str, table: list[tuple[str, list[str]]]) -> Optional[str]:
    for canonical_field, spellings in table:
        if header in spellings:
            return canonical_field
    return None


def _affix_match(header: str, table: list[tuple[str, list[str]]]) -> Optional[str]:
    for canonical_field, spellings in table:
        for spelling in spellings:
            if header.startswith(spelling) or header.endswith(spelling):
                return canonical_field
    return None


def match_columns(source_headers: Iterable, aliases: AliasTable) -> ColumnMapping:
    """
    Build the column mapping for one import run.

    Args:
        source_headers: Headers in sheet column order
        aliases: Canonical field → acceptable header spellings

    Returns:
        Source header → canonical field. Headers that match nothing are
        left out; their columns are ignored.
    """
    headers = list(source_headers)
    table = _normalized_aliases(aliases)

    exact: dict[str, str] = {}
    for header in headers:
        normalized = normalize_header(header)
        if not normalized:
            continue
        canonical_field = _exact_match(normalized, table)
        if canonical_field:
            exact[header] = canonical_field

    mapping: ColumnMapping = {}
    for header in headers:
        if header in exact:
            mapping[header] = exact[header]
            continue
        normalized = normalize_header(header)
        if not normalized:
            continue
        canonical_field = _affix_match(normalized, table)
        if canonical_field:
            mapping[header] = canonical_field

    logger.debug(
        "columns_matched",
        mapped=mapping,
        exact_count=len(exact),
        affix_count=len(mapping) - len(exact),
        unmatched=unmatched_headers(headers, mapping)
    )

    return mapping


def unmatched_headers(source_headers: Iterable, mapping: ColumnMapping) -> list:
    """Headers that resolved to no field, in column order."""
    return [h for h in source_headers if h not in mapping]


def missing_fields(mapping: ColumnMapping, required: Iterable[str]) -> list[str]:
    """Required fields that no source header resolved to."""
    covered = set(mapping.values())
    return [f for f in required if f not in covered]
