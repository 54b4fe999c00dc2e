"""
Unit tests for the row transformer.

Tests cover coercion by field type, default injection, natural-key
rejection and column precedence.
"""

import pytest

from models.entity import EntitySchema
from services.entity_catalog import SALES
from services.row_transformer import (
    ColumnPrecedence,
    build_record,
    rejection_reason,
    transform_row,
)


# ===================
# FIXTURES
# ===================

@pytest.fixture
def schema():
    """Small inventory-like schema."""
    return EntitySchema(
        name="devices",
        table="devices",
        natural_key=("serial_number",),
        aliases={
            "serial_number": ("serial number",),
            "product_name": ("model",),
            "status": ("status",),
            "in_date": ("in date",),
        },
        date_fields=frozenset({"in_date"}),
        defaults={"status": "In Stock"},
    )


@pytest.fixture
def mapping():
    return {
        "Serial Number": "serial_number",
        "Model": "product_name",
        "Status": "status",
        "In Date": "in_date",
    }


# ===================
# TRANSFORM
# ===================

class TestTransformRow:
    """Tests for transform_row."""

    def test_coerces_each_field(self, schema, mapping):
        row = {"Serial Number": " SN001 ", "Model": "DVR", "Status": "Sold", "In Date": 45296}

        record = transform_row(row, mapping, schema)

        assert record == {
            "serial_number": "SN001",
            "product_name": "DVR",
            "status": "Sold",
            "in_date": "2024-01-05",
        }

    def test_default_fills_blank_cell(self, schema, mapping):
        row = {"Serial Number": "SN001", "Model": "DVR", "Status": None, "In Date": None}

        record = transform_row(row, mapping, schema)

        assert record["status"] == "In Stock"
        assert record["in_date"] is None

    def test_default_fills_unmapped_field(self, schema):
        record = transform_row({"Serial Number": "SN001"}, {"Serial Number": "serial_number"}, schema)

        assert record == {"serial_number": "SN001", "status": "In Stock"}

    def test_default_never_overwrites_value(self, schema, mapping):
        row = {"Serial Number": "SN001", "Model": "DVR", "Status": "Dispatched", "In Date": None}

        assert transform_row(row, mapping, schema)["status"] == "Dispatched"

    @pytest.mark.parametrize("serial", [None, "", "   "])
    def test_missing_key_rejects_row(self, schema, mapping, serial):
        row = {"Serial Number": serial, "Model": "DVR", "Status": None, "In Date": None}

        assert transform_row(row, mapping, schema) is None
        assert rejection_reason(row, mapping, schema) == "Missing Serial Number"

    def test_numeric_key_kept_as_string(self, schema, mapping):
        row = {"Serial Number": 1001.0, "Model": "DVR", "Status": None, "In Date": None}

        assert transform_row(row, mapping, schema)["serial_number"] == "1001"


# ===================
# COLUMN PRECEDENCE
# ===================

class TestColumnPrecedence:
    """Two headers mapped to the same field."""

    @pytest.fixture
    def two_models(self):
        mapping = {"Serial Number": "serial_number", "Model": "product_name", "Model.1": "product_name"}
        row = {"Serial Number": "SN001", "Model": "DVR 4CH", "Model.1": "DVR 8CH"}
        return mapping, row

    def test_last_column_wins_by_default(self, schema, two_models):
        mapping, row = two_models

        assert transform_row(row, mapping, schema)["product_name"] == "DVR 8CH"

    def test_last_column_wins_even_when_blank(self, schema, two_models):
        mapping, row = two_models
        row["Model.1"] = None

        assert transform_row(row, mapping, schema)["product_name"] is None

    def test_first_column_wins(self, schema, two_models):
        mapping, row = two_models

        record = transform_row(row, mapping, schema, ColumnPrecedence.FIRST)

        assert record["product_name"] == "DVR 4CH"


# ===================
# DERIVED DEFAULTS
# ===================

class TestSalesDefaults:
    """Sales amounts derived from each other, then transient fields dropped."""

    @pytest.fixture
    def sales_mapping(self):
        return {
            "Order ID": "order_id",
            "Total Amount": "total_amount",
            "Final Amount": "final_amount",
            "City": "location",
        }

    def test_total_copied_to_subtotal_and_balance(self, sales_mapping):
        row = {"Order ID": "ORD-1", "Total Amount": "₹1,500", "Final Amount": None, "City": "Pune"}

        record = transform_row(row, sales_mapping, SALES)

        assert record["total_amount"] == 1500
        assert record["subtotal"] == 1500
        assert record["balance_amount"] == 1500
        assert record["amount_received"] == 0
        assert record["remarks"] == "Location: Pune"
        assert "final_amount" not in record
        assert "location" not in record

    def test_final_amount_used_when_total_blank(self, sales_mapping):
        row = {"Order ID": "ORD-2", "Total Amount": None, "Final Amount": "900", "City": None}

        record = transform_row(row, sales_mapping, SALES)

        assert record["total_amount"] == 900
        assert record["balance_amount"] == 900
        assert record["remarks"] is None

    def test_build_record_keeps_transient_fields(self, sales_mapping):
        row = {"Order ID": "ORD-3", "Total Amount": "100", "Final Amount": "90", "City": "Goa"}

        record = build_record(row, sales_mapping, SALES)

        assert record["final_amount"] == 90
        assert record["location"] == "Goa"
