"""
Value coercion for imported spreadsheet cells.

Converts a raw cell into the type its target field needs:

    - date fields   → "YYYY-MM-DD" or None
    - numeric fields → float/int, 0 or None when unparsable
    - everything else → trimmed string or None

An unparsable date never rejects a row; the field is stored as None and
can be fixed later.
"""

from datetime import date, datetime, timedelta
from numbers import Integral, Number
from typing import Any, Collection, Optional, Union
import math
import re

import pandas as pd

# Spreadsheet serial dates (1900 date system) count days from this epoch.
# Starting at 1899-12-30 absorbs the fictitious 1900-02-29.
EXCEL_EPOCH = date(1899, 12, 30)
EXCEL_MAX_SERIAL = 2958465  # 9999-12-31

_ISO_DATE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})(?:[T ].*)?$")
_DMY_SLASH = re.compile(r"^(\d{2})/(\d{2})/(\d{4})$")
_DMY_DASH = re.compile(r"^(\d{2})-(\d{2})-(\d{4})$")
_DMY_SHORT = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{2}|\d{4})$")
# "today", "now" and month names on their own are not dates
_WORDS_ONLY = re.compile(r"^[A-Za-z\s]+$")

_CURRENCY = re.compile(r"(?i)rs\.?|inr|[₹$€£¥]")
_NUMBER = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")

CoercedValue = Union[str, int, float, None]


def is_blank(value: Any) -> bool:
    """True for None, "", NaN and NaT."""
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, float) and math.isnan(value):
        return True
    return value is pd.NaT


def _is_numeric(value: Any) -> bool:
    return isinstance(value, Number) and not isinstance(value, bool)


# ===================
# DATES
# ===================

def excel_serial_to_date(serial: float) -> Optional[date]:
    """
    Decode a spreadsheet date serial.

    45296 → 2024-01-05. Fractions (time of day) are ignored.
    """
    if not _is_numeric(serial) or math.isnan(serial) or math.isinf(serial):
        return None
    if serial < 1 or serial > EXCEL_MAX_SERIAL:
        return None
    return EXCEL_EPOCH + timedelta(days=int(serial))


def _build_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _expand_year(year: str) -> int:
    if len(year) == 2:
        short = int(year)
        return 1900 + short if short > 50 else 2000 + short
    return int(year)


def _parse_date_pattern(text: str) -> Optional[date]:
    """Anchored regional patterns, tried in order."""
    match = _ISO_DATE.match(text)
    if match:
        parsed = _build_date(int(match[1]), int(match[2]), int(match[3]))
        if parsed:
            return parsed

    for pattern in (_DMY_SLASH, _DMY_DASH, _DMY_SHORT):
        match = pattern.match(text)
        if match:
            parsed = _build_date(_expand_year(match[3]), int(match[2]), int(match[1]))
            if parsed:
                return parsed

    return None


def _parse_date_generic(text: str) -> Optional[date]:
    """Last resort: let pandas read whatever calendar text this is."""
    if _WORDS_ONLY.match(text):
        return None
    try:
        parsed = pd.to_datetime(text, dayfirst=True)
    except (ValueError, TypeError, OverflowError):
        return None
    if pd.isna(parsed) or parsed.year <= 1900:
        return None
    return parsed.date()


def parse_date(value: Any) -> Optional[str]:
    """
    Parse a date cell to "YYYY-MM-DD".

    Tries, in order:
        1. Spreadsheet serial numbers (and native date cells)
        2. YYYY-MM-DD, DD/MM/YYYY, DD-MM-YYYY, D/M/YY(YY)
        3. Generic calendar parsing

    Returns:
        ISO date string, or None when nothing matched
    """
    if is_blank(value):
        return None

    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()

    if _is_numeric(value):
        parsed = excel_serial_to_date(value)
        return parsed.isoformat() if parsed else None

    text = str(value).strip()
    if not text:
        return None

    parsed = _parse_date_pattern(text) or _parse_date_generic(text)
    return parsed.isoformat() if parsed else None


# ===================
# NUMBERS
# ===================

def _canonical_number(number: float) -> Union[int, float]:
    """Whole numbers come back as int, so 1500 and "1,500" compare and key alike."""
    return int(number) if number.is_integer() else number


def parse_number(value: Any) -> Optional[Union[int, float]]:
    """
    Parse a locale-tolerant number.

    "₹ 1,25,000.50" → 125000.5, "$1,200" → 1200, "abc" → None
    """
    if is_blank(value):
        return None

    if isinstance(value, Integral) and not isinstance(value, bool):
        return int(value)
    if _is_numeric(value):
        number = float(value)
        if math.isnan(number) or math.isinf(number):
            return None
        return _canonical_number(number)

    text = _CURRENCY.sub("", str(value))
    text = text.replace(",", "").replace(" ", "").replace("\u00a0", "").strip()
    if not _NUMBER.match(text):
        return None

    number = float(text)
    if math.isinf(number):
        return None
    return _canonical_number(number)


# ===================
# TEXT
# ===================

def _clean_text(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        # Numeric codes read from a column with blanks arrive as floats
        return str(int(value))
    return str(value).strip() or None


def coerce_value(
    raw_value: Any,
    target_field: str,
    date_fields: Collection[str],
    numeric_fields: Collection[str] = (),
    additive_fields: Collection[str] = (),
) -> CoercedValue:
    """
    Coerce one raw cell for its target field.

    Args:
        raw_value: Cell value as read from the sheet
        target_field: Canonical field the value is stored under
        date_fields: Fields holding dates
        numeric_fields: Fields holding numbers
        additive_fields: Numeric fields that take part in sums; never None

    Returns:
        Coerced value, or None
    """
    additive = target_field in additive_fields

    if is_blank(raw_value):
        return 0 if additive else None

    if target_field in date_fields:
        return parse_date(raw_value)

    if additive or target_field in numeric_fields:
        number = parse_number(raw_value)
        if number is None and additive:
            return 0
        return number

    return _clean_text(raw_value)
