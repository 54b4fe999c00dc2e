"""
Spreadsheet import service.

Runs the full import pipeline for one entity:

    rows → column mapping → per-row transform → duplicate resolution
         → parent filtering → batched upserts → ImportResult

Preconditions (an empty file, missing required columns, no row with an
existing parent) raise before anything touches the store. Everything after
that is reported through the returned ImportResult.
"""

from threading import Event
from typing import Any, BinaryIO, Callable, Mapping, Optional, Protocol, Sequence, Union
from io import BytesIO
from pathlib import Path
import structlog

from config import settings
from exceptions import (
    EmptySpreadsheetError,
    MissingRequiredColumnsError,
    NoMatchingParentRecordsError,
)
from models.entity import CanonicalRecord, ColumnMapping, EntitySchema
from models.imports import ImportResult, RowRejection
from parsers.column_matcher import match_columns, missing_fields, unmatched_headers
from parsers.excel_parser import read_spreadsheet
from services.batch_upload_service import (
    BatchUploadOrchestrator,
    CommitCallback,
    ProgressCallback,
)
from services.duplicate_resolver import resolve_duplicates
from services.entity_catalog import get_entity_schema
from services.row_transformer import ColumnPrecedence, rejection_reason, transform_row
from services.supabase_committer import SupabaseParentLookup, SupabaseUpsertCommitter

logger = structlog.get_logger(__name__)

# Builds the commit callback for a table: (table, stamp_updated_at) → callback
CommitterFactory = Callable[[str, bool], CommitCallback]


class ParentLookup(Protocol):
    def existing_values(self, table: str, column: str, values: Sequence[str]) -> set[str]:
        ...


def _supabase_committer(table: str, stamp_updated_at: bool) -> CommitCallback:
    return SupabaseUpsertCommitter(table, stamp_updated_at=stamp_updated_at)


class ImportService:
    """
    Generic spreadsheet import engine.

    Collaborators are injectable so the pipeline can run against any
    store; by default commits and parent lookups go to Supabase.
    """

    def __init__(
        self,
        committer_factory: Optional[CommitterFactory] = None,
        parent_lookup: Optional[ParentLookup] = None,
        chunk_size: Optional[int] = None,
        precedence: ColumnPrecedence = ColumnPrecedence.LAST,
    ):
        self.committer_factory = committer_factory or _supabase_committer
        self._parent_lookup = parent_lookup
        self.chunk_size = chunk_size if chunk_size is not None else settings.import_chunk_size
        self.precedence = precedence

    @property
    def parent_lookup(self) -> ParentLookup:
        if self._parent_lookup is None:
            self._parent_lookup = SupabaseParentLookup()
        return self._parent_lookup

    # ===================
    # PIPELINE
    # ===================

    def import_file(
        self,
        entity: str,
        file: Union[str, Path, BytesIO, BinaryIO],
        filename: Optional[str] = None,
        **kwargs,
    ) -> ImportResult:
        """
        Read a workbook and import its first sheet.

        Raises:
            UnknownEntityError: If entity is not registered
            ExcelParseError: If the workbook cannot be read
            ImportPreconditionError: See import_rows
        """
        schema = get_entity_schema(entity)
        rows = read_spreadsheet(file, filename=filename)
        return self.import_rows(schema, rows, **kwargs)

    def build_mapping(self, schema: EntitySchema, headers: list) -> ColumnMapping:
        """
        Match headers and check every required field is covered.

        Raises:
            MissingRequiredColumnsError: If a required field has no column
        """
        mapping = match_columns(headers, schema.aliases)
        missing = missing_fields(mapping, schema.all_required_fields)

        logger.info(
            "column_mapping_built",
            entity=schema.name,
            mapped=mapping,
            unmatched=unmatched_headers(headers, mapping),
            missing=missing
        )

        if missing:
            raise MissingRequiredColumnsError(
                schema.name,
                missing,
                [str(h) for h in headers]
            )
        return mapping

    def import_rows(
        self,
        schema: EntitySchema,
        rows: Sequence[Mapping[str, Any]],
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[Event] = None,
        start_chunk: int = 0,
    ) -> ImportResult:
        """
        Import already-read spreadsheet rows.

        Args:
            schema: Entity manifest
            rows: Header → raw value, one per sheet row; the first row's
                  keys are the header list
            on_progress: Receives progress after each committed chunk
            cancel_event: Set to stop between chunks
            start_chunk: Skip chunks committed by an earlier run

        Returns:
            ImportResult for the run

        Raises:
            EmptySpreadsheetError: If rows is empty
            MissingRequiredColumnsError: If a required field has no column
            NoMatchingParentRecordsError: If no row references an existing parent
        """
        logger.info("import_started", entity=schema.name, row_count=len(rows))

        if not rows:
            raise EmptySpreadsheetError(schema.name)

        headers = list(rows[0].keys())
        mapping = self.build_mapping(schema, headers)

        records, rejections = self._transform_rows(schema, rows, mapping)
        resolved = resolve_duplicates(records, schema.natural_key)
        duplicates = len(records) - len(resolved)

        resolved, skipped = self._filter_orphans(schema, resolved)

        main_records, companion_records = self._split_companion(schema, resolved)

        orchestrator = BatchUploadOrchestrator(self.chunk_size, entity=schema.name)
        outcome = orchestrator.run(
            main_records,
            schema.natural_key,
            self.committer_factory(schema.table, schema.stamp_updated_at),
            on_progress=on_progress,
            cancel_event=cancel_event,
            start_chunk=start_chunk,
        )

        warnings = []
        if outcome.completed and companion_records:
            warning = self._commit_companion(schema, companion_records)
            if warning:
                warnings.append(warning)

        max_listed = settings.import_max_rejections_reported
        result = ImportResult(
            entity=schema.name,
            total_rows_read=len(rows),
            records_accepted=outcome.records_committed,
            records_rejected=len(rejections),
            records_skipped=skipped,
            duplicates_collapsed=duplicates,
            batches_committed=outcome.batches_committed,
            batches_failed=outcome.batches_failed,
            first_error=outcome.first_error,
            cancelled=outcome.cancelled,
            next_chunk=outcome.next_chunk,
            rejections=rejections[:max_listed],
            warnings=warnings,
        )

        logger.info(
            "import_completed",
            entity=schema.name,
            success=result.success,
            rows_read=result.total_rows_read,
            accepted=result.records_accepted,
            rejected=result.records_rejected,
            skipped=result.records_skipped,
            duplicates=result.duplicates_collapsed,
            batches_committed=result.batches_committed,
            batches_failed=result.batches_failed
        )

        return result

    # ===================
    # STAGES
    # ===================

    def _transform_rows(
        self,
        schema: EntitySchema,
        rows: Sequence[Mapping[str, Any]],
        mapping: ColumnMapping,
    ) -> tuple[list[CanonicalRecord], list[RowRejection]]:
        records: list[CanonicalRecord] = []
        rejections: list[RowRejection] = []

        for index, row in enumerate(rows):
            record = transform_row(row, mapping, schema, self.precedence)
            if record is None:
                rejections.append(RowRejection(
                    row=index + 2,  # Sheet row (1-indexed + header)
                    reason=rejection_reason(row, mapping, schema, self.precedence),
                ))
                continue
            records.append(record)

        if rejections:
            logger.info(
                "rows_rejected",
                entity=schema.name,
                rejected=len(rejections),
                first_rows=[r.row for r in rejections[:10]]
            )

        return records, rejections

    def _filter_orphans(
        self,
        schema: EntitySchema,
        records: list[CanonicalRecord],
    ) -> tuple[list[CanonicalRecord], int]:
        """Drop records whose parent key does not exist in the parent table."""
        parent = schema.parent
        if parent is None or not records:
            return records, 0

        values = [str(r[parent.field]) for r in records if r.get(parent.field) is not None]
        existing = self.parent_lookup.existing_values(parent.table, parent.column, values)

        valid = [r for r in records if str(r.get(parent.field)) in existing]
        skipped = len(records) - len(valid)

        if not valid:
            logger.warning(
                "no_matching_parent_records",
                entity=schema.name,
                parent_table=parent.table,
                row_count=len(records)
            )
            raise NoMatchingParentRecordsError(
                schema.name, parent.table, parent.column, len(records)
            )

        if skipped:
            logger.info(
                "orphan_records_skipped",
                entity=schema.name,
                parent_table=parent.table,
                skipped=skipped
            )

        return valid, skipped

    def _split_companion(
        self,
        schema: EntitySchema,
        records: list[CanonicalRecord],
    ) -> tuple[list[CanonicalRecord], list[CanonicalRecord]]:
        """Separate companion-table fields from the main records."""
        companion = schema.companion
        if companion is None:
            return records, []

        main_records = []
        companion_records = []
        for record in records:
            main_records.append({
                k: v for k, v in record.items() if k not in companion.fields
            })
            companion_record = {k: record[k] for k in schema.natural_key}
            for field in companion.fields:
                companion_record[field] = record.get(field)
            companion_records.append(companion_record)

        return main_records, companion_records

    def _commit_companion(
        self,
        schema: EntitySchema,
        records: list[CanonicalRecord],
    ) -> Optional[str]:
        """
        Commit companion records after the main table succeeded.

        Returns a warning instead of failing the import.
        """
        companion = schema.companion
        orchestrator = BatchUploadOrchestrator(self.chunk_size, entity=companion.table)
        outcome = orchestrator.run(
            records,
            schema.natural_key,
            self.committer_factory(companion.table, schema.stamp_updated_at),
        )
        if outcome.first_error:
            logger.warning(
                "companion_upload_failed",
                entity=schema.name,
                table=companion.table,
                error=outcome.first_error
            )
            return f"{companion.table} not fully updated: {outcome.first_error}"
        return None


_import_service: Optional[ImportService] = None


def get_import_service() -> ImportService:
    """Get or create the Supabase-backed ImportService."""
    global _import_service
    if _import_service is None:
        _import_service = ImportService()
    return _import_service
