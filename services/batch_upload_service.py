"""
Batch upload orchestrator.

Commits a reconciled record set to the store in fixed-size chunks.

Consistency model:
    - Chunks are committed strictly in order, one round trip at a time.
    - Each commit is an idempotent upsert keyed on the natural key.
    - The first failing chunk stops the run. Earlier chunks stay committed;
      nothing is rolled back and nothing is retried.

A run can be cancelled between chunks through a threading.Event and
resumed later from BatchUploadOutcome.next_chunk.
"""

from dataclasses import dataclass
from threading import Event
from typing import Callable, Iterator, Optional, Sequence
import structlog

from config import settings
from exceptions import AppError
from models.entity import CanonicalRecord
from models.imports import ImportProgress

logger = structlog.get_logger(__name__)

# Upserts one chunk keyed on the given natural key; raises on failure
CommitCallback = Callable[[list[CanonicalRecord], tuple[str, ...]], None]

ProgressCallback = Callable[[ImportProgress], None]


@dataclass(frozen=True)
class BatchUploadOutcome:
    """What happened to the chunks of one run."""
    records_committed: int
    batches_committed: int
    batches_failed: int
    total_chunks: int
    next_chunk: int
    first_error: Optional[str] = None
    cancelled: bool = False

    @property
    def completed(self) -> bool:
        return self.batches_failed == 0 and not self.cancelled


def chunk_records(
    records: Sequence[CanonicalRecord],
    chunk_size: int,
) -> Iterator[list[CanonicalRecord]]:
    """Consecutive chunks of at most chunk_size records."""
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be at least 1, got {chunk_size}")
    for start in range(0, len(records), chunk_size):
        yield list(records[start:start + chunk_size])


def _error_message(error: Exception) -> str:
    """The store's own message where the committer kept it."""
    if isinstance(error, AppError):
        return error.details.get("store_message") or error.message
    return str(error) or type(error).__name__


class BatchUploadOrchestrator:
    """
    Sequential chunked committer.

    Usage:
        orchestrator = BatchUploadOrchestrator(chunk_size=100)
        outcome = orchestrator.run(records, ("serial_number",), commit)
    """

    def __init__(self, chunk_size: Optional[int] = None, entity: str = "records"):
        self.chunk_size = chunk_size if chunk_size is not None else settings.import_chunk_size
        if self.chunk_size < 1:
            raise ValueError(f"chunk_size must be at least 1, got {self.chunk_size}")
        self.entity = entity

    def total_chunks(self, record_count: int) -> int:
        return -(-record_count // self.chunk_size)

    def run(
        self,
        records: Sequence[CanonicalRecord],
        natural_key: tuple[str, ...],
        commit: CommitCallback,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[Event] = None,
        start_chunk: int = 0,
    ) -> BatchUploadOutcome:
        """
        Commit records chunk by chunk.

        Args:
            records: Deduplicated canonical records
            natural_key: Conflict target passed to every commit
            commit: Upserts one chunk; raises on failure
            on_progress: Receives an ImportProgress after every committed chunk
            cancel_event: Checked before each chunk; set it to stop the run
            start_chunk: Chunks before this index are skipped (resume)

        Returns:
            BatchUploadOutcome with the counts and the first error, if any
        """
        total_chunks = self.total_chunks(len(records))
        start_chunk = max(0, min(start_chunk, total_chunks))

        logger.info(
            "batch_upload_started",
            entity=self.entity,
            record_count=len(records),
            chunk_size=self.chunk_size,
            total_chunks=total_chunks,
            start_chunk=start_chunk
        )

        records_committed = 0
        batches_committed = 0

        for index, chunk in enumerate(chunk_records(records, self.chunk_size)):
            if index < start_chunk:
                continue

            if cancel_event is not None and cancel_event.is_set():
                logger.warning(
                    "batch_upload_cancelled",
                    entity=self.entity,
                    next_chunk=index,
                    records_committed=records_committed
                )
                return BatchUploadOutcome(
                    records_committed=records_committed,
                    batches_committed=batches_committed,
                    batches_failed=0,
                    total_chunks=total_chunks,
                    next_chunk=index,
                    cancelled=True,
                )

            try:
                commit(chunk, natural_key)
            except Exception as e:
                message = _error_message(e)
                logger.error(
                    "batch_commit_failed",
                    entity=self.entity,
                    chunk=index,
                    chunk_records=len(chunk),
                    records_committed=records_committed,
                    error=message,
                    error_type=type(e).__name__
                )
                return BatchUploadOutcome(
                    records_committed=records_committed,
                    batches_committed=batches_committed,
                    batches_failed=1,
                    total_chunks=total_chunks,
                    next_chunk=index,
                    first_error=message,
                )

            records_committed += len(chunk)
            batches_committed += 1

            logger.debug(
                "batch_committed",
                entity=self.entity,
                chunk=index,
                chunk_records=len(chunk),
                records_committed=records_committed
            )

            if on_progress is not None:
                on_progress(ImportProgress(
                    entity=self.entity,
                    records_committed=min(len(records), index * self.chunk_size + len(chunk)),
                    total_records=len(records),
                    chunks_committed=index + 1,
                    total_chunks=total_chunks,
                ))

        logger.info(
            "batch_upload_completed",
            entity=self.entity,
            records_committed=records_committed,
            batches_committed=batches_committed
        )

        return BatchUploadOutcome(
            records_committed=records_committed,
            batches_committed=batches_committed,
            batches_failed=0,
            total_chunks=total_chunks,
            next_chunk=total_chunks,
        )
