"""
Change tracking for the cleaning preview.

Each cell of the preview remembers whether its value differs from the value
at the same position in the original dataset. The flag is sticky: once a step
changes a cell it stays marked for the rest of the pipeline.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List

from workbench.models import PreviewCellOut, PreviewStats
from workbench.values import DROPPED, json_safe, values_equal


@dataclass(frozen=True)
class PreviewCell:
    value: Any
    is_changed: bool = False


PreviewRow = Dict[str, PreviewCell]


@dataclass
class PreviewDataset:
    rows: List[PreviewRow]
    columns: List[str]
    stats: PreviewStats = field(default_factory=PreviewStats)

    def records(self) -> List[Dict[str, Any]]:
        return [flatten_row(r) for r in self.rows]

    def change_mask(self) -> List[Dict[str, bool]]:
        return [{k: r[k].is_changed for k in self.columns if k in r} for r in self.rows]


def wrap_rows(data: Iterable[Dict[str, Any]]) -> List[PreviewRow]:
    return [{k: PreviewCell(v) for k, v in row.items()} for row in data]


def set_cell(row: PreviewRow, key: str, value: Any) -> PreviewRow:
    """Copy of `row` with `key` set to `value`; the original row is left alone."""
    prev = row.get(key)
    changed = prev is None or not values_equal(prev.value, value)
    out = dict(row)
    out[key] = PreviewCell(value, (prev is not None and prev.is_changed) or changed)
    return out


def flatten_row(row: PreviewRow) -> Dict[str, Any]:
    """Plain values of a preview row, without dropped cells."""
    return {k: c.value for k, c in row.items() if c.value is not DROPPED}


def dropped_columns(rows: Iterable[PreviewRow]) -> set:
    out = set()
    for row in rows:
        for k, c in row.items():
            if c.value is DROPPED:
                out.add(k)
    return out


def final_columns(column_names: List[str], rows: List[PreviewRow], also_dropped: Iterable[str] = ()) -> List[str]:
    """
    Column order after the pipeline: every original column minus those with a
    dropped marker. `also_dropped` covers drops that left no marker because
    the preview has no rows.
    """
    dropped = dropped_columns(rows) | set(also_dropped)
    return [c for c in column_names if c not in dropped]


def changed_cell_count(rows: Iterable[PreviewRow]) -> int:
    return sum(1 for row in rows for c in row.values() if c.is_changed and c.value is not DROPPED)


def to_cell_out(cell: PreviewCell) -> PreviewCellOut:
    return PreviewCellOut(value=json_safe(cell.value), is_changed=cell.is_changed)
