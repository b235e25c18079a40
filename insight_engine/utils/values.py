# insight_engine/utils/values.py
"""Explicit coercion of raw cell values.

Rows arrive as loosely typed mappings: a cell may be ``None``, a number, a
string, or a date-like object. Every stage coerces cells through these
helpers, which return ``None`` for "not this type" instead of raising.
"""
import math
import numbers
import warnings
from datetime import date, datetime
from typing import Any, Optional

import numpy as np
import pandas as pd

# Words pandas resolves against the current clock rather than the cell
RELATIVE_DATE_WORDS = frozenset(["now", "today", "tomorrow", "yesterday"])


def is_missing(value: Any) -> bool:
    """True for null, NaN/NaT and blank strings"""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (float, np.floating)):
        return math.isnan(value)
    return value is pd.NaT or value is pd.NA


def parse_number(value: Any) -> Optional[float]:
    """Parse a cell as a finite float, or return None"""
    if value is None or isinstance(value, (bool, np.bool_)):
        return None

    if isinstance(value, numbers.Real):
        try:
            number = float(value)
        except (OverflowError, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        # float() also takes Python digit separators such as "1_000"
        if not text or "_" in text:
            return None
        try:
            number = float(text)
        except (OverflowError, ValueError):
            return None
    else:
        return None

    return number if math.isfinite(number) else None


def parse_date(value: Any) -> Optional[pd.Timestamp]:
    """Parse a cell as a UTC timestamp, or return None.

    Numbers are never treated as dates; only strings and date/datetime
    objects are considered.
    """
    if is_missing(value) or isinstance(value, (bool, np.bool_, numbers.Number)):
        return None

    if isinstance(value, (pd.Timestamp, datetime, date, np.datetime64)):
        try:
            ts = pd.Timestamp(value)
        except (ValueError, OverflowError):
            return None
        if ts is pd.NaT:
            return None
        return ts.tz_localize("UTC") if ts.tzinfo is None else ts.tz_convert("UTC")

    if not isinstance(value, str):
        return None

    text = value.strip()
    if text.lower() in RELATIVE_DATE_WORDS:
        return None

    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        try:
            ts = pd.to_datetime(text, errors="coerce", utc=True)
        except (ValueError, TypeError, OverflowError):
            return None

    if ts is None or ts is pd.NaT:
        return None
    return ts


def to_label(value: Any) -> str:
    """Stringify a cell for frequency tables"""
    if isinstance(value, (float, np.floating)) and float(value).is_integer():
        return str(int(value))
    if isinstance(value, (pd.Timestamp, datetime, date)):
        return value.isoformat()
    return str(value)


def format_instant(ts: pd.Timestamp) -> str:
    """Format a timestamp as an ISO-8601 UTC instant with millisecond precision"""
    ts = ts.tz_localize("UTC") if ts.tzinfo is None else ts.tz_convert("UTC")
    return ts.strftime("%Y-%m-%dT%H:%M:%S") + f".{ts.microsecond // 1000:03d}Z"


def to_jsonable(value: Any) -> Any:
    """Convert a raw cell into something ``json.dumps`` accepts"""
    if is_missing(value):
        return None
    if isinstance(value, (bool, np.bool_)):
        return bool(value)
    if isinstance(value, np.integer):
        return int(value)
    if isinstance(value, np.floating):
        number = float(value)
        return number if math.isfinite(number) else None
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, (pd.Timestamp, datetime, date)):
        return value.isoformat()
    if isinstance(value, (str, int)):
        return value
    return str(value)
