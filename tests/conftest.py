"""
Shared test fixtures.
"""

import os
import sys
from pathlib import Path

# Settings are loaded at import time and need the Supabase credentials
os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")

# Add project root to Python path
project_dir = Path(__file__).parent.parent
sys.path.insert(0, str(project_dir))

import pytest
from io import BytesIO
from unittest.mock import patch
from typing import Optional

import pandas as pd

# ===================
# MOCK SUPABASE CLIENT
# ===================

class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data: list = None, count: int = None):
        self.data = data or []
        self.count = count if count is not None else len(self.data)


class MockSupabaseQuery:
    """Chainable query against one in-memory table."""

    def __init__(self, table: "MockSupabaseTable"):
        self._table = table
        self._pending_upsert: Optional[tuple[list, list]] = None
        self._columns: Optional[list] = None
        self._in_filter: Optional[tuple[str, set]] = None

    def select(self, columns: str = "*", **kwargs):
        if columns != "*":
            self._columns = [c.strip() for c in columns.split(",")]
        return self

    def in_(self, column, values):
        self._in_filter = (column, {str(v) for v in values})
        return self

    def limit(self, count):
        return self

    def upsert(self, rows, on_conflict: str = ""):
        key_fields = [f for f in on_conflict.split(",") if f]
        self._pending_upsert = (list(rows), key_fields)
        return self

    def execute(self) -> MockSupabaseResponse:
        if self._table.fail_with is not None:
            raise self._table.fail_with

        if self._pending_upsert is not None:
            rows, key_fields = self._pending_upsert
            self._table.upsert_calls.append((rows, key_fields))
            for row in rows:
                key = tuple(row.get(f) for f in key_fields)
                self._table.rows[key] = dict(row)
            return MockSupabaseResponse(data=rows)

        data = list(self._table.rows.values())
        if self._in_filter is not None:
            column, values = self._in_filter
            data = [r for r in data if str(r.get(column)) in values]
        if self._columns is not None:
            data = [{c: r.get(c) for c in self._columns} for r in data]
        return MockSupabaseResponse(data=data)


class MockSupabaseTable:
    """In-memory table keyed on the upsert conflict target."""

    def __init__(self):
        self.rows: dict[tuple, dict] = {}
        self.upsert_calls: list[tuple[list, list]] = []
        self.fail_with: Optional[Exception] = None

    def select(self, *args, **kwargs):
        return MockSupabaseQuery(self).select(*args, **kwargs)

    def upsert(self, rows, on_conflict: str = ""):
        return MockSupabaseQuery(self).upsert(rows, on_conflict=on_conflict)


class MockSupabaseClient:
    """Mock Supabase client holding one MockSupabaseTable per name."""

    def __init__(self):
        self._tables: dict[str, MockSupabaseTable] = {}

    def table(self, name: str) -> MockSupabaseTable:
        if name not in self._tables:
            self._tables[name] = MockSupabaseTable()
        return self._tables[name]

    def set_table_data(self, table_name: str, data: list, key: str = "id"):
        """Seed a table with existing rows."""
        table = self.table(table_name)
        for row in data:
            table.rows[(row.get(key),)] = dict(row)

    def stored(self, table_name: str) -> list[dict]:
        """Rows currently held by a table, in insertion order."""
        return list(self.table(table_name).rows.values())


# ===================
# FIXTURES
# ===================

@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create a mock Supabase client.

    Usage:
        def test_something(mock_supabase):
            mock_supabase.set_table_data("sales", [{"order_id": "ORD-1"}], key="order_id")
    """
    return MockSupabaseClient()


@pytest.fixture
def mock_db(mock_supabase):
    """
    Patch the Supabase client used by the import collaborators.

    Usage:
        def test_something(mock_db):
            ImportService().import_rows(...)  # writes land in mock_db
    """
    with patch("services.supabase_committer.get_supabase_client", return_value=mock_supabase):
        yield mock_supabase


# ===================
# SPREADSHEET HELPERS
# ===================

def create_excel_file(rows: list[list], columns: list[str]) -> BytesIO:
    """Helper to create a single-sheet .xlsx in memory."""
    output = BytesIO()

    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        df = pd.DataFrame(rows, columns=columns)
        df.to_excel(writer, sheet_name="Sheet1", index=False)

    output.seek(0)
    return output


@pytest.fixture
def excel_file():
    """The create_excel_file helper, as a fixture."""
    return create_excel_file


@pytest.fixture
def inventory_workbook() -> BytesIO:
    """Ten inventory rows; the fifth has no serial number."""
    rows = [
        [f"SN{i:03d}" if i != 5 else None, "DVR 4CH", "05/01/2024", "Pending"]
        for i in range(1, 11)
    ]
    return create_excel_file(rows, ["Serial No", "Model Name", "In Date", "QC Status"])


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client():
    """
    Create FastAPI test client.

    Not used as a context manager, so the startup database check is skipped.
    """
    from fastapi.testclient import TestClient
    from main import app

    return TestClient(app)
