import logging
import math
import re
from typing import Any, Callable, List, Optional

from workbench.engine.changes import PreviewRow, flatten_row, set_cell
from workbench.models import (
    ActionKind,
    CapitalizeWords,
    ChangeType,
    DatePart,
    DropColumn,
    ExtractDatePart,
    FillMissing,
    FillStrategy,
    Lowercase,
    RemoveDuplicates,
    RemoveNonAlphanumeric,
    ReplaceSubstring,
    RoundNumbers,
    ScaleNumbers,
    TargetType,
    TrimWhitespace,
    Uppercase,
)
from workbench.profiling import stats
from workbench.registry import register
from workbench.values import (
    DROPPED,
    is_missing,
    parse_number_like,
    round_half_up,
    stable_key,
    to_date_or_none,
    to_text,
)

logger = logging.getLogger(__name__)

TRUTHY = {"true", "1", "yes", "y"}
WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

_NON_ALPHANUM = re.compile(r"[^\w\s]|_")
_WORD_START = re.compile(r"\b\w", re.ASCII)


# ----------------------
# Helpers
# ----------------------

def _current(row: PreviewRow, col: str) -> Any:
    cell = row.get(col)
    return None if cell is None else cell.value


def _live(row: PreviewRow, col: str) -> bool:
    # a missing key or a dropped column is never touched again
    cell = row.get(col)
    return cell is not None and cell.value is not DROPPED


def _finite_numbers(rows: List[PreviewRow], col: str) -> List[float]:
    out = []
    for row in rows:
        if not _live(row, col):
            continue
        n = parse_number_like(row[col].value)
        if not math.isnan(n):
            out.append(n)
    return out


def _map_text(rows: List[PreviewRow], col: str, fn: Callable[[str], str]) -> List[PreviewRow]:
    """
    Apply a string transform to the text form of every non-null cell of `col`.
    Null cells, and cells for which the transform is a fixed point of their
    text form, are passed through untouched so they keep their changed flag.
    """
    out = []
    for row in rows:
        v = _current(row, col)
        if not _live(row, col) or v is None or (isinstance(v, float) and math.isnan(v)):
            out.append(row)
            continue
        text = v if isinstance(v, str) else to_text(v)
        nv = fn(text)
        out.append(row if nv == text else set_cell(row, col, nv))
    return out


def coerce(value: Any, target: TargetType) -> Any:
    if target == TargetType.INTEGER:
        n = parse_number_like(value)
        return None if math.isnan(n) else int(n)
    if target == TargetType.FLOAT:
        n = parse_number_like(value)
        return None if math.isnan(n) else n
    if target == TargetType.TEXT:
        return "" if is_missing(value) else to_text(value)
    if target == TargetType.BOOLEAN:
        return to_text(value).strip().lower() in TRUTHY
    if target == TargetType.DATE:
        return to_date_or_none(value)
    return value


def date_part(value: Any, part: DatePart) -> Optional[Any]:
    d = to_date_or_none(value)
    if d is None:
        return None
    if part == DatePart.YEAR:
        return d.year
    if part == DatePart.MONTH:
        return d.month
    if part == DatePart.DAY:
        return d.day
    return WEEKDAYS[d.weekday()]


# ----------------------
# Handlers, one per action kind
# ----------------------

@register(ActionKind.REMOVE_DUPLICATES)
def remove_duplicates(rows: List[PreviewRow], action: RemoveDuplicates) -> List[PreviewRow]:
    """Keep the first row for every stable key of current values."""
    seen = set()
    out = []
    for row in rows:
        key = stable_key(flatten_row(row))
        if key in seen:
            continue
        seen.add(key)
        out.append(row)
    return out


@register(ActionKind.FILL_MISSING)
def fill_missing(rows: List[PreviewRow], action: FillMissing) -> List[PreviewRow]:
    """
    Write a replacement into the missing cells of one column. Mean and median
    are taken once, from the column as it stands when this step runs.
    """
    col = action.column_name
    if action.strategy == FillStrategy.CUSTOM:
        replacement = action.custom_value
    elif action.strategy == FillStrategy.MEAN:
        nums = _finite_numbers(rows, col)
        replacement = stats.mean(nums) if nums else 0
    elif action.strategy == FillStrategy.MEDIAN:
        nums = _finite_numbers(rows, col)
        replacement = stats.median(nums) if nums else 0
    else:
        replacement = 0

    out = []
    for row in rows:
        if _live(row, col) and is_missing(row[col].value):
            out.append(set_cell(row, col, replacement))
        else:
            out.append(row)
    return out


@register(ActionKind.CHANGE_TYPE)
def change_type(rows: List[PreviewRow], action: ChangeType) -> List[PreviewRow]:
    col = action.column_name
    out = []
    for row in rows:
        if not _live(row, col):
            out.append(row)
            continue
        out.append(set_cell(row, col, coerce(row[col].value, action.new_type)))
    return out


@register(ActionKind.DROP_COLUMN)
def drop_column(rows: List[PreviewRow], action: DropColumn) -> List[PreviewRow]:
    col = action.column_name
    out = []
    for row in rows:
        if col in row:
            row = set_cell(row, col, DROPPED)
        out.append(row)
    return out


@register(ActionKind.TRIM_WHITESPACE)
def trim_whitespace(rows: List[PreviewRow], action: TrimWhitespace) -> List[PreviewRow]:
    return _map_text(rows, action.column_name, str.strip)


@register(ActionKind.LOWERCASE)
def lowercase(rows: List[PreviewRow], action: Lowercase) -> List[PreviewRow]:
    return _map_text(rows, action.column_name, str.lower)


@register(ActionKind.UPPERCASE)
def uppercase(rows: List[PreviewRow], action: Uppercase) -> List[PreviewRow]:
    return _map_text(rows, action.column_name, str.upper)


@register(ActionKind.REMOVE_NON_ALPHANUM)
def remove_non_alphanum(rows: List[PreviewRow], action: RemoveNonAlphanumeric) -> List[PreviewRow]:
    # keeps letters and digits of any script, plus whitespace
    return _map_text(rows, action.column_name, lambda s: _NON_ALPHANUM.sub("", s))


@register(ActionKind.CAPITALIZE_WORDS)
def capitalize_words(rows: List[PreviewRow], action: CapitalizeWords) -> List[PreviewRow]:
    return _map_text(
        rows, action.column_name, lambda s: _WORD_START.sub(lambda m: m.group(0).upper(), s)
    )


@register(ActionKind.REPLACE_SUBSTRING)
def replace_substring(rows: List[PreviewRow], action: ReplaceSubstring) -> List[PreviewRow]:
    if action.find == "":
        return rows
    return _map_text(rows, action.column_name, lambda s: s.replace(action.find, action.replace_with))


@register(ActionKind.EXTRACT_DATE_PART)
def extract_date_part(rows: List[PreviewRow], action: ExtractDatePart) -> List[PreviewRow]:
    col = action.column_name
    out = []
    for row in rows:
        nv = date_part(row[col].value, action.part) if _live(row, col) else None
        out.append(row if nv is None else set_cell(row, col, nv))
    return out


@register(ActionKind.NUMBER_ROUND)
def number_round(rows: List[PreviewRow], action: RoundNumbers) -> List[PreviewRow]:
    col = action.column_name
    out = []
    for row in rows:
        v = parse_number_like(row[col].value) if _live(row, col) else math.nan
        if math.isnan(v):
            out.append(row)
            continue
        out.append(set_cell(row, col, round_half_up(v, action.places)))
    return out


@register(ActionKind.NUMBER_SCALE)
def number_scale(rows: List[PreviewRow], action: ScaleNumbers) -> List[PreviewRow]:
    """
    Min-max normalise one column into [scale_min, scale_max]. The input range
    comes from the column's current values across the whole preview, so a
    second scale on the same column would normalise an already normalised
    range; the queue refuses that combination.
    """
    col = action.column_name
    nums = _finite_numbers(rows, col)
    if not nums:
        return rows
    lo, hi = stats.min_max(nums)
    span = action.scale_max - action.scale_min

    out = []
    for row in rows:
        v = parse_number_like(row[col].value) if _live(row, col) else math.nan
        if math.isnan(v):
            out.append(row)
            continue
        t = 0.0 if hi == lo else (v - lo) / (hi - lo)
        out.append(set_cell(row, col, action.scale_min + t * span))
    return out
