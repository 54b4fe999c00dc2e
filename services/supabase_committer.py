"""
Supabase collaborators for the import engine.

SupabaseUpsertCommitter is the commit callback handed to the batch
orchestrator. SupabaseParentLookup answers which parent keys exist.
"""

from datetime import datetime, timezone
from typing import Iterable, Optional
import structlog

from supabase import Client

from config import get_supabase_client
from exceptions import DatabaseError
from models.entity import CanonicalRecord

logger = structlog.get_logger(__name__)

# Keeps .in_() filters well inside URL length limits
LOOKUP_CHUNK_SIZE = 100


def _store_message(error: Exception) -> str:
    """Message from a postgrest APIError, or the exception text."""
    return getattr(error, "message", None) or str(error)


class SupabaseUpsertCommitter:
    """
    Upserts chunks of canonical records into one table.

    Insert-or-replace on the natural key: a conflicting row is replaced by
    the incoming one, so committing the same chunk twice is harmless.
    """

    def __init__(
        self,
        table: str,
        stamp_updated_at: bool = False,
        client: Optional[Client] = None,
    ):
        self.table = table
        self.stamp_updated_at = stamp_updated_at
        self.db = client or get_supabase_client()

    def _prepare(self, chunk: list[CanonicalRecord]) -> list[dict]:
        if not self.stamp_updated_at:
            return [dict(record) for record in chunk]
        now = datetime.now(timezone.utc).isoformat()
        return [{**record, "updated_at": now} for record in chunk]

    def __call__(self, chunk: list[CanonicalRecord], natural_key: tuple[str, ...]) -> None:
        rows = self._prepare(chunk)
        on_conflict = ",".join(natural_key)

        try:
            self.db.table(self.table).upsert(rows, on_conflict=on_conflict).execute()
        except Exception as e:
            message = _store_message(e)
            logger.error(
                "upsert_failed",
                table=self.table,
                on_conflict=on_conflict,
                row_count=len(rows),
                error=message
            )
            raise DatabaseError(
                "upsert",
                message,
                details={"table": self.table, "row_count": len(rows), "store_message": message}
            ) from e

        logger.debug("upsert_complete", table=self.table, row_count=len(rows))


class SupabaseParentLookup:
    """Checks which parent key values exist in a table."""

    def __init__(self, client: Optional[Client] = None):
        self.db = client or get_supabase_client()

    def existing_values(self, table: str, column: str, values: Iterable[str]) -> set[str]:
        """
        Return the subset of values present in table.column.

        Raises:
            DatabaseError: If a lookup query fails
        """
        unique = sorted({str(v) for v in values if v is not None})
        found: set[str] = set()

        for start in range(0, len(unique), LOOKUP_CHUNK_SIZE):
            batch = unique[start:start + LOOKUP_CHUNK_SIZE]
            try:
                result = (
                    self.db.table(table)
                    .select(column)
                    .in_(column, batch)
                    .execute()
                )
            except Exception as e:
                logger.error(
                    "parent_lookup_failed",
                    table=table,
                    column=column,
                    error=_store_message(e)
                )
                raise DatabaseError("select", _store_message(e), details={"table": table}) from e

            found.update(str(row[column]) for row in (result.data or []) if row.get(column) is not None)

        logger.debug(
            "parent_lookup_complete",
            table=table,
            column=column,
            requested=len(unique),
            found=len(found)
        )

        return found
