import logging
import time
from typing import Any, Dict, Iterable, Iterator, List, NamedTuple, Optional

from workbench.engine.changes import (
    PreviewDataset,
    PreviewRow,
    changed_cell_count,
    final_columns,
    flatten_row,
    wrap_rows,
)
from workbench.errors import UnhandledActionError
from workbench.models import ActionKind, CleaningAction, Dataset, PreviewStats
from workbench.registry import get_handler
from workbench.values import is_missing, stable_key
from workbench.workflows import cleaning  # noqa: F401  registers the handlers

logger = logging.getLogger(__name__)

_missing_handlers = [k.value for k in ActionKind if get_handler(k) is None]
if _missing_handlers:
    raise UnhandledActionError(f"no handler registered for: {', '.join(_missing_handlers)}")


class StepEvent(NamedTuple):
    action: CleaningAction
    rows: List[PreviewRow]
    changed_cells: int
    duration: float


def iter_steps(dataset: Dataset, actions: Iterable[CleaningAction]) -> Iterator[StepEvent]:
    """
    Fold the actions over the dataset's rows, yielding after every step.
    The dataset itself is never modified; each step returns new row dicts.
    `changed_cells` counts every cell flagged so far, not only this step's.
    """
    rows = wrap_rows(dataset.data)
    for action in actions:
        handler = get_handler(action.kind)
        start_ts = time.time()
        rows = handler(rows, action)
        duration = time.time() - start_ts
        logger.debug("step %s (%s) -> %d rows in %.4fs", action.kind, action.id, len(rows), duration)
        yield StepEvent(action, rows, changed_cell_count(rows), duration)


def preview_stats(rows: List[PreviewRow], columns: List[str]) -> PreviewStats:
    flattened = [flatten_row(r) for r in rows]
    missing = sum(1 for r in flattened for v in r.values() if is_missing(v))
    dups = len(flattened) - len({stable_key(r) for r in flattened})
    return PreviewStats(
        row_count=len(rows),
        column_count=len(columns),
        missing=missing,
        duplicates=dups,
        changed_cells=changed_cell_count(rows),
    )


def _finish(dataset: Dataset, actions: List[CleaningAction], rows: List[PreviewRow]) -> PreviewDataset:
    dropped = [a.column_name for a in actions if a.kind == ActionKind.DROP_COLUMN]
    columns = final_columns(dataset.column_names, rows, dropped)
    return PreviewDataset(rows=rows, columns=columns, stats=preview_stats(rows, columns))


def execute(dataset: Dataset, actions: Iterable[CleaningAction]) -> PreviewDataset:
    """
    Recompute the whole preview from the original dataset and the queue.
    Same inputs always give the same preview; nothing is cached between calls.
    """
    actions = list(actions)
    rows = wrap_rows(dataset.data)
    for step in iter_steps(dataset, actions):
        rows = step.rows
    return _finish(dataset, actions, rows)


def stream_execution(dataset: Dataset, actions: Iterable[CleaningAction], run_id: Optional[str] = None) -> Iterator[Dict[str, Any]]:
    """
    Generator of execution events for a live view of the recipe.
    Yields dicts that can be sent directly over a WebSocket.
    """
    actions = list(actions)
    yield {
        "type": "start",
        "run_id": run_id,
        "steps": len(actions),
        "row_count": len(dataset.data),
    }

    rows = wrap_rows(dataset.data)
    for index, step in enumerate(iter_steps(dataset, actions)):
        rows = step.rows
        yield {
            "type": "step",
            "index": index,
            "action_id": step.action.id,
            "kind": step.action.kind,
            "description": step.action.description,
            "duration": step.duration,
            "row_count": len(rows),
            "changed_cells": step.changed_cells,
        }

    preview = _finish(dataset, actions, rows)
    yield {"type": "complete", "columns": preview.columns, "stats": preview.stats.model_dump()}
