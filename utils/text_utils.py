"""
Text utilities for comparing spreadsheet headers and key values.
"""

import re
from typing import Any, Optional

# Space, underscore, hyphen and dot all act as word separators in headers
_SEPARATOR_RUN = re.compile(r"[\s_\-.]+")


def normalize_header(header: Any) -> str:
    """
    Normalize a column header for comparison.

    - "Customer_Code"   → "customer code"
    - "CUSTOMER-CODE"   → "customer code"
    - " Sr.No "         → "sr no"
    - "In  __ Date"     → "in date"

    Args:
        header: Raw header as read from the sheet (any type)

    Returns:
        Lower-case header with separator runs collapsed to one space.
        Blank or missing headers give "".
    """
    if header is None:
        return ""

    text = str(header).lower().strip()
    return _SEPARATOR_RUN.sub(" ", text).strip()


def clean_key_value(value: Any) -> Optional[str]:
    """
    Render a natural-key value as the trimmed string used for comparison.

    Returns None for missing or whitespace-only values.
    """
    if value is None:
        return None

    text = str(value).strip()
    return text or None
