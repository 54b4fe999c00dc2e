"""
Custom exception classes for the application.

Every error raised to an API caller derives from AppError and renders
through AppError.to_dict().
"""

from typing import Optional, Any
from datetime import datetime, timezone


class AppError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        code: Error code (e.g., "MISSING_REQUIRED_COLUMNS")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# SPREADSHEET ERRORS
# ===================

class ExcelParseError(ValidationError):
    """Excel file could not be read."""

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="EXCEL_PARSE_ERROR",
            message=message,
            details=details
        )


class InvalidFileTypeError(ValidationError):
    """Uploaded file is not an Excel workbook."""

    def __init__(self, filename: Optional[str]):
        super().__init__(
            code="INVALID_FILE_TYPE",
            message="Please upload an Excel file (.xlsx or .xls)",
            details={"filename": filename, "accepted": [".xlsx", ".xls"]}
        )


# ===================
# IMPORT ERRORS
# ===================

class UnknownEntityError(NotFoundError):
    """No import schema is registered under this name."""

    def __init__(self, entity: str):
        super().__init__(
            resource="Import entity",
            identifier=entity,
            code="UNKNOWN_IMPORT_ENTITY"
        )


class ImportPreconditionError(ValidationError):
    """
    Fatal import failure detected before anything was committed.

    Subclasses cover an empty file, missing required columns and
    a file whose rows reference no existing parent record.
    """

    def __init__(
        self,
        message: str,
        code: str = "IMPORT_PRECONDITION_FAILED",
        details: Optional[dict] = None
    ):
        super().__init__(message=message, code=code, details=details)


class EmptySpreadsheetError(ImportPreconditionError):
    """Spreadsheet has no data rows."""

    def __init__(self, entity: str):
        super().__init__(
            code="EMPTY_SPREADSHEET",
            message="No data found in the Excel file",
            details={"entity": entity}
        )


class MissingRequiredColumnsError(ImportPreconditionError):
    """No source column resolved to one or more required fields."""

    def __init__(self, entity: str, missing: list[str], headers: list[str]):
        labels = ", ".join(field.replace("_", " ").title() for field in missing)
        super().__init__(
            code="MISSING_REQUIRED_COLUMNS",
            message=f"Could not find required column(s): {labels}",
            details={
                "entity": entity,
                "missing_fields": missing,
                "headers_found": headers,
            }
        )


class NoMatchingParentRecordsError(ImportPreconditionError):
    """Every row references a parent record that does not exist."""

    def __init__(self, entity: str, parent_table: str, parent_column: str, row_count: int):
        super().__init__(
            code="NO_MATCHING_PARENT_RECORDS",
            message=(
                f"None of the {row_count} {parent_column} values in the file "
                f"exist in the {parent_table} table"
            ),
            details={
                "entity": entity,
                "parent_table": parent_table,
                "parent_column": parent_column,
                "row_count": row_count,
            }
        )
