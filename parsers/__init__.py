"""
Spreadsheet reading, header matching and cell coercion.
"""

from parsers.excel_parser import (
    read_spreadsheet,
    is_valid_excel_file,
)
from parsers.column_matcher import (
    match_columns,
    missing_fields,
    unmatched_headers,
)
from parsers.value_coercer import (
    coerce_value,
    parse_date,
    parse_number,
    excel_serial_to_date,
)

__all__ = [
    "read_spreadsheet",
    "is_valid_excel_file",
    "match_columns",
    "missing_fields",
    "unmatched_headers",
    "coerce_value",
    "parse_date",
    "parse_number",
    "excel_serial_to_date",
]
