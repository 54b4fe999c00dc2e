"""
Import pipeline result and progress models.
"""

from typing import Optional
from pydantic import Field, computed_field

from models.base import BaseSchema, FrozenSchema


class RowRejection(FrozenSchema):
    """A source row that was discarded during transformation."""

    row: int = Field(description="Spreadsheet row number (header is row 1)")
    reason: str


class ImportProgress(FrozenSchema):
    """Emitted after each committed chunk."""

    entity: str
    records_committed: int = Field(ge=0)
    total_records: int = Field(ge=0)
    chunks_committed: int = Field(ge=0)
    total_chunks: int = Field(ge=0)

    @property
    def fraction(self) -> float:
        """Share of records committed so far (1.0 for an empty run)."""
        if self.total_records == 0:
            return 1.0
        return self.records_committed / self.total_records


class ImportResult(FrozenSchema):
    """
    Summary of one import run.

    The only value a run returns. Produced once, never mutated.
    """

    entity: str
    total_rows_read: int = Field(ge=0)
    records_accepted: int = Field(ge=0, description="Records committed to the store")
    records_rejected: int = Field(ge=0, description="Rows without a natural key")
    records_skipped: int = Field(default=0, ge=0, description="Rows referencing a missing parent")
    duplicates_collapsed: int = Field(default=0, ge=0)
    batches_committed: int = Field(ge=0)
    batches_failed: int = Field(ge=0)
    first_error: Optional[str] = None
    cancelled: bool = False
    next_chunk: int = Field(default=0, ge=0, description="First chunk not committed; resume from here")
    rejections: list[RowRejection] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @computed_field
    @property
    def success(self) -> bool:
        """True if every chunk was committed."""
        return self.batches_failed == 0 and not self.cancelled

    @computed_field
    @property
    def message(self) -> str:
        """Summary for display, with the literal error on failure."""
        skipped = self.records_rejected + self.records_skipped
        summary = f"{self.records_accepted} imported, {skipped} skipped"
        if self.first_error:
            return f"{summary}. Import failed: {self.first_error}"
        if self.cancelled:
            return f"{summary}. Import cancelled"
        return summary


class EntitySchemaResponse(BaseSchema):
    """Describes one importable entity for API clients."""

    name: str
    table: str
    natural_key: list[str]
    required_fields: list[str]
    date_fields: list[str]
    numeric_fields: list[str]
    aliases: dict[str, list[str]]
