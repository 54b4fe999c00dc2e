"""
API tests for the import routes.

The import service is patched; these tests cover request handling and
error responses only.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from exceptions import MissingRequiredColumnsError
from models.imports import ImportResult


# ===================
# FIXTURES
# ===================

@pytest.fixture
def mock_service():
    with patch("routes.imports.get_import_service") as mock:
        service = MagicMock()
        mock.return_value = service
        yield service


@pytest.fixture
def xlsx_upload(inventory_workbook):
    return {
        "file": (
            "stock.xlsx",
            inventory_workbook.getvalue(),
            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        )
    }


# ===================
# DESCRIBE ENTITIES
# ===================

class TestListEntities:
    """GET /api/imports"""

    def test_lists_all_entities(self, test_client):
        response = test_client.get("/api/imports")

        assert response.status_code == 200
        names = [e["name"] for e in response.json()]
        assert "inventory" in names
        assert "payments" in names

    def test_describe_one(self, test_client):
        response = test_client.get("/api/imports/payments")

        assert response.status_code == 200
        data = response.json()
        assert data["table"] == "payment_history"
        assert data["natural_key"] == ["order_id", "payment_date", "amount"]
        assert "payment date" in data["aliases"]["payment_date"]

    def test_describe_unknown(self, test_client):
        response = test_client.get("/api/imports/invoices")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "UNKNOWN_IMPORT_ENTITY"


# ===================
# UPLOAD
# ===================

class TestUpload:
    """POST /api/imports/{entity}"""

    def test_returns_import_result(self, test_client, mock_service, xlsx_upload):
        mock_service.import_file.return_value = ImportResult(
            entity="inventory",
            total_rows_read=10,
            records_accepted=9,
            records_rejected=1,
            batches_committed=1,
            batches_failed=0,
        )

        response = test_client.post("/api/imports/inventory", files=xlsx_upload)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["message"] == "9 imported, 1 skipped"
        args, kwargs = mock_service.import_file.call_args
        assert args[0] == "inventory"
        assert kwargs["filename"] == "stock.xlsx"
        assert kwargs["start_chunk"] == 0

    def test_start_chunk_forwarded(self, test_client, mock_service, xlsx_upload):
        mock_service.import_file.return_value = ImportResult(
            entity="inventory",
            total_rows_read=10,
            records_accepted=9,
            records_rejected=1,
            batches_committed=1,
            batches_failed=0,
        )

        test_client.post("/api/imports/inventory?start_chunk=2", files=xlsx_upload)

        assert mock_service.import_file.call_args.kwargs["start_chunk"] == 2

    def test_import_runs_in_worker_thread(self, test_client, mock_service, xlsx_upload):
        result = ImportResult(
            entity="inventory",
            total_rows_read=1,
            records_accepted=1,
            records_rejected=0,
            batches_committed=1,
            batches_failed=0,
        )

        with patch("routes.imports.run_in_threadpool", new_callable=AsyncMock) as mock_pool:
            mock_pool.return_value = result
            response = test_client.post("/api/imports/inventory", files=xlsx_upload)

        assert response.status_code == 200
        args, kwargs = mock_pool.await_args
        assert args[0] is mock_service.import_file
        assert args[1] == "inventory"
        assert kwargs["start_chunk"] == 0
        mock_service.import_file.assert_not_called()

    def test_rejects_non_excel(self, test_client, mock_service):
        files = {"file": ("stock.csv", b"serial,model\nSN1,DVR\n", "text/csv")}

        response = test_client.post("/api/imports/inventory", files=files)

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "INVALID_FILE_TYPE"
        mock_service.import_file.assert_not_called()

    def test_unknown_entity(self, test_client, mock_service, xlsx_upload):
        response = test_client.post("/api/imports/invoices", files=xlsx_upload)

        assert response.status_code == 404
        mock_service.import_file.assert_not_called()

    def test_precondition_failure(self, test_client, mock_service, xlsx_upload):
        mock_service.import_file.side_effect = MissingRequiredColumnsError(
            "inventory", ["serial_number"], ["Model Name"]
        )

        response = test_client.post("/api/imports/inventory", files=xlsx_upload)

        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "MISSING_REQUIRED_COLUMNS"
        assert error["message"] == "Could not find required column(s): Serial Number"

    def test_unexpected_error(self, test_client, mock_service, xlsx_upload):
        mock_service.import_file.side_effect = RuntimeError("boom")

        response = test_client.post("/api/imports/inventory", files=xlsx_upload)

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "INTERNAL_ERROR"
