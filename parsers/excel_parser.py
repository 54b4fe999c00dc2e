"""
Spreadsheet reader for import uploads.

Reads the first sheet of an uploaded workbook into rows keyed by the
literal header text. No interpretation happens here: headers are matched
and cells coerced later by the import engine.
"""

from io import BytesIO
from pathlib import Path
from typing import Any, Optional, Union
import re
import structlog

import pandas as pd

from exceptions import ExcelParseError

logger = structlog.get_logger(__name__)

EXCEL_EXTENSIONS = re.compile(r"\.(xlsx|xls)$", re.IGNORECASE)

SpreadsheetRow = dict[str, Any]


def is_valid_excel_file(filename: Optional[str]) -> bool:
    """True if the filename carries an .xlsx or .xls extension."""
    if not filename:
        return False
    return EXCEL_EXTENSIONS.search(filename.strip()) is not None


def _engine_for(file: Union[str, Path, BytesIO], filename: Optional[str]) -> str:
    """Legacy .xls needs xlrd; everything else goes through openpyxl."""
    name = filename or (str(file) if isinstance(file, (str, Path)) else "")
    if name.lower().endswith(".xls"):
        return "xlrd"
    return "openpyxl"


def read_spreadsheet(
    file: Union[str, Path, BytesIO],
    filename: Optional[str] = None,
) -> list[SpreadsheetRow]:
    """
    Read the first sheet of a workbook.

    Args:
        file: File path (str/Path) or file-like object (BytesIO)
        filename: Original upload name, used to pick the reader engine

    Returns:
        One dict per non-blank row, header → raw cell value. Empty
        cells are None. Every row has the same keys, in column order.

    Raises:
        ExcelParseError: If the file cannot be read as a workbook
    """
    engine = _engine_for(file, filename)
    logger.info("reading_spreadsheet", filename=filename, engine=engine)

    try:
        df = pd.read_excel(file, sheet_name=0, dtype=object, engine=engine)
    except Exception as e:
        logger.error("spreadsheet_read_failed", filename=filename, error=str(e))
        raise ExcelParseError(
            message="Failed to read Excel file",
            details={"filename": filename, "original_error": str(e)}
        )

    df.columns = [str(col).strip() for col in df.columns]
    df = df.dropna(how="all")
    df = df.astype(object).where(pd.notna(df), None)

    rows = df.to_dict(orient="records")

    logger.info(
        "spreadsheet_read",
        filename=filename,
        row_count=len(rows),
        column_count=len(df.columns)
    )

    return rows
