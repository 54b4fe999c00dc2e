"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    DatabaseError,

    # Spreadsheet
    ExcelParseError,
    InvalidFileTypeError,

    # Import pipeline
    UnknownEntityError,
    ImportPreconditionError,
    EmptySpreadsheetError,
    MissingRequiredColumnsError,
    NoMatchingParentRecordsError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "DatabaseError",

    # Spreadsheet
    "ExcelParseError",
    "InvalidFileTypeError",

    # Import pipeline
    "UnknownEntityError",
    "ImportPreconditionError",
    "EmptySpreadsheetError",
    "MissingRequiredColumnsError",
    "NoMatchingParentRecordsError",
]
