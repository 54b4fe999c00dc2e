"""
Unit tests for the batch upload orchestrator.

Tests cover chunking, stop-on-first-failure, cancellation, resume and
progress reporting.
"""

from threading import Event
from unittest.mock import MagicMock

import pytest

from exceptions import DatabaseError
from services.batch_upload_service import (
    BatchUploadOrchestrator,
    chunk_records,
)


KEY = ("serial_number",)


# ===================
# FIXTURES
# ===================

@pytest.fixture
def records():
    return [{"serial_number": f"SN{i:04d}"} for i in range(250)]


@pytest.fixture
def orchestrator():
    return BatchUploadOrchestrator(chunk_size=100, entity="inventory")


# ===================
# CHUNKING
# ===================

class TestChunkRecords:
    """Tests for chunk_records."""

    def test_sizes(self, records):
        assert [len(c) for c in chunk_records(records, 100)] == [100, 100, 50]

    def test_empty(self):
        assert list(chunk_records([], 100)) == []

    def test_invalid_size(self, records):
        with pytest.raises(ValueError):
            list(chunk_records(records, 0))

    def test_orchestrator_rejects_invalid_size(self):
        with pytest.raises(ValueError):
            BatchUploadOrchestrator(chunk_size=0)


# ===================
# RUN
# ===================

class TestRun:
    """Tests for BatchUploadOrchestrator.run."""

    def test_commits_every_chunk_in_order(self, orchestrator, records):
        commit = MagicMock()

        outcome = orchestrator.run(records, KEY, commit)

        assert [len(call.args[0]) for call in commit.call_args_list] == [100, 100, 50]
        assert commit.call_args_list[0].args[0][0] == {"serial_number": "SN0000"}
        assert commit.call_args_list[2].args[0][-1] == {"serial_number": "SN0249"}
        assert all(call.args[1] == KEY for call in commit.call_args_list)
        assert outcome.records_committed == 250
        assert outcome.batches_committed == 3
        assert outcome.batches_failed == 0
        assert outcome.next_chunk == 3
        assert outcome.completed

    def test_stops_on_first_failure(self, orchestrator, records):
        failure = DatabaseError(
            "upsert",
            "duplicate key value",
            details={"store_message": "duplicate key value"},
        )
        commit = MagicMock(side_effect=[None, failure, None])

        outcome = orchestrator.run(records, KEY, commit)

        assert commit.call_count == 2
        assert outcome.records_committed == 100
        assert outcome.batches_committed == 1
        assert outcome.batches_failed == 1
        assert outcome.next_chunk == 1
        assert outcome.first_error == "duplicate key value"
        assert not outcome.completed

    def test_app_error_without_store_message(self, orchestrator, records):
        commit = MagicMock(side_effect=DatabaseError("upsert", "timeout"))

        outcome = orchestrator.run(records, KEY, commit)

        assert outcome.first_error == "Database upsert failed: timeout"

    def test_plain_exception_message_kept(self, orchestrator, records):
        commit = MagicMock(side_effect=RuntimeError("connection reset"))

        outcome = orchestrator.run(records, KEY, commit)

        assert outcome.first_error == "connection reset"
        assert outcome.records_committed == 0

    def test_empty_records_commit_nothing(self, orchestrator):
        commit = MagicMock()

        outcome = orchestrator.run([], KEY, commit)

        commit.assert_not_called()
        assert outcome.completed
        assert outcome.total_chunks == 0

    def test_cancel_between_chunks(self, orchestrator, records):
        cancel = Event()

        def commit(chunk, natural_key):
            cancel.set()

        outcome = orchestrator.run(records, KEY, commit, cancel_event=cancel)

        assert outcome.cancelled
        assert outcome.batches_committed == 1
        assert outcome.next_chunk == 1
        assert not outcome.completed

    def test_resume_from_chunk(self, orchestrator, records):
        commit = MagicMock()

        outcome = orchestrator.run(records, KEY, commit, start_chunk=1)

        assert commit.call_count == 2
        assert commit.call_args_list[0].args[0][0] == {"serial_number": "SN0100"}
        assert outcome.records_committed == 150
        assert outcome.next_chunk == 3

    def test_progress_after_each_chunk(self, orchestrator, records):
        events = []

        orchestrator.run(records, KEY, MagicMock(), on_progress=events.append)

        assert [e.records_committed for e in events] == [100, 200, 250]
        assert [e.chunks_committed for e in events] == [1, 2, 3]
        assert events[-1].total_chunks == 3
        assert events[-1].fraction == 1.0

    def test_progress_stops_at_failure(self, orchestrator, records):
        events = []
        commit = MagicMock(side_effect=[None, RuntimeError("boom")])

        orchestrator.run(records, KEY, commit, on_progress=events.append)

        assert len(events) == 1


class TestTotalChunks:
    """Tests for total_chunks."""

    @pytest.mark.parametrize("count,expected", [(0, 0), (1, 1), (100, 1), (101, 2), (250, 3)])
    def test_ceiling(self, orchestrator, count, expected):
        assert orchestrator.total_chunks(count) == expected
