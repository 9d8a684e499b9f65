import json
import math
import re
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Optional

from dateutil import parser as date_parser


class _Dropped:
    """Marker for a cell whose column was dropped by a cleaning step."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "DROPPED"

    def __bool__(self):
        return False


DROPPED = _Dropped()

_EPOCH = datetime(1970, 1, 1)
_NUMBER_LIKE = re.compile(r"[^0-9+\-.eE]")
_HAS_DIGIT = re.compile(r"\d")


# ----------------------
# Missing / numbers
# ----------------------

def is_missing(v: Any) -> bool:
    return v is None or (isinstance(v, str) and v == "") or (
        isinstance(v, float) and math.isnan(v)
    )


def is_finite_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool) and math.isfinite(v)


def to_number(v: Any) -> float:
    """
    Strict numeric parse used by type inference and the profiler.
    Returns NaN when the value is not a plain finite number or numeric text.
    """
    if isinstance(v, bool) or v is None:
        return math.nan
    if isinstance(v, (int, float)):
        return float(v) if math.isfinite(v) else math.nan
    if isinstance(v, str):
        s = v.strip()
        if not s or "_" in s:
            return math.nan
        try:
            n = float(s)
        except ValueError:
            return math.nan
        return n if math.isfinite(n) else math.nan
    return math.nan


def parse_number_like(v: Any) -> float:
    """
    Lenient parse for cleaning steps: "1,234.56" and "$1,234" read as numbers.
    Text with no numeric characters at all reads as NaN.
    """
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return float(v) if math.isfinite(v) else math.nan
    if not isinstance(v, str):
        return math.nan
    cleaned = _NUMBER_LIKE.sub("", v)
    if not cleaned:
        return math.nan
    try:
        n = float(cleaned)
    except ValueError:
        return math.nan
    return n if math.isfinite(n) else math.nan


def auto_parse(v: Any) -> Any:
    """Turn numeric-looking text into a number, leave anything else alone."""
    if not isinstance(v, str):
        return v
    trimmed = v.strip()
    if trimmed == "":
        return v
    try:
        return int(trimmed)
    except ValueError:
        pass
    n = to_number(trimmed)
    return v if math.isnan(n) else n


def round_half_up(v: float, places: int = 0) -> float:
    try:
        factor = 10 ** places
        scaled = v * factor + 0.5
        if not math.isfinite(scaled):
            return v
        return math.floor(scaled) / factor
    except OverflowError:
        return v


# ----------------------
# Dates
# ----------------------

def _naive(d: datetime) -> datetime:
    if d.tzinfo is not None:
        return d.astimezone(timezone.utc).replace(tzinfo=None)
    return d


def to_date_or_none(v: Any) -> Optional[datetime]:
    """
    Generic date parsing. Numbers are epoch milliseconds; text must carry at
    least one digit so bare words such as "May" or "Mon" stay text.
    """
    if isinstance(v, datetime):
        return _naive(v)
    if isinstance(v, date):
        return datetime(v.year, v.month, v.day)
    if isinstance(v, bool) or v is None:
        return None
    if isinstance(v, (int, float)):
        if not math.isfinite(v):
            return None
        try:
            return _EPOCH + timedelta(milliseconds=v)
        except OverflowError:
            return None
    if isinstance(v, str):
        s = v.strip()
        if not s or not _HAS_DIGIT.search(s):
            return None
        try:
            return _naive(date_parser.parse(s))
        except (ValueError, OverflowError):
            return None
    return None


# ----------------------
# Text / equality / keys
# ----------------------

def to_text(v: Any) -> str:
    if v is None or v is DROPPED:
        return ""
    if isinstance(v, bool):
        return "true" if v else "false"
    if isinstance(v, float):
        if math.isnan(v):
            return "NaN"
        if v.is_integer():
            return str(int(v))
        return repr(v)
    if isinstance(v, datetime):
        return v.isoformat()
    return str(v)


def values_equal(a: Any, b: Any) -> bool:
    """Strict equality: no bool/int coercion, NaN never equal, dates by instant."""
    if a is b:
        return not (isinstance(a, float) and math.isnan(a))
    if isinstance(a, bool) or isinstance(b, bool):
        return type(a) is type(b) and a == b
    if isinstance(a, datetime) and isinstance(b, datetime):
        return _naive(a) == _naive(b)
    if isinstance(a, (int, float)) and isinstance(b, (int, float)):
        return a == b
    if type(a) is not type(b):
        return False
    return a == b


def _key_value(v: Any) -> Any:
    if isinstance(v, datetime):
        return v.isoformat()
    if isinstance(v, float):
        if not math.isfinite(v):
            return None
        if v.is_integer():
            return int(v)
    if isinstance(v, (str, int, float, bool)) or v is None:
        return v
    return to_text(v)


def stable_key(row: Dict[str, Any]) -> str:
    """Canonical serialization of a row (keys sorted, dropped cells omitted)."""
    ordered = {k: _key_value(v) for k, v in row.items() if v is not DROPPED}
    return json.dumps(ordered, sort_keys=True, ensure_ascii=False)


def json_safe(v: Any) -> Any:
    """Value as something json.dumps / pydantic can emit."""
    if v is DROPPED:
        return None
    if isinstance(v, float) and not math.isfinite(v):
        return None
    if isinstance(v, (datetime, date)):
        return v.isoformat()
    if isinstance(v, (str, int, float, bool)) or v is None:
        return v
    return to_text(v)
