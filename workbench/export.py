import csv
import time
from datetime import date, datetime
from typing import Any, List, Optional

import pandas as pd

from workbench.config import get_settings
from workbench.engine.changes import PreviewDataset, flatten_row
from workbench.values import is_missing, to_text


def format_cell(value: Any, date_format: Optional[str] = None) -> str:
    """Text for one exported cell; dates use the short display format."""
    if is_missing(value):
        return ""
    if isinstance(value, (datetime, date)):
        fmt = date_format or get_settings().export_date_format
        return fmt.format(day=value.day, month=value.month, year=value.year)
    return to_text(value)


def serialize(preview: PreviewDataset, columns: Optional[List[str]] = None, date_format: Optional[str] = None) -> str:
    """
    Render the preview as comma separated text: a header of the final columns
    followed by one line per row. Fields holding a comma, quote or newline are
    quoted, with embedded quotes doubled.
    """
    columns = list(preview.columns if columns is None else columns)
    if not columns:
        return ""
    records = []
    for row in preview.rows:
        flat = flatten_row(row)
        records.append([format_cell(flat.get(c), date_format) for c in columns])
    frame = pd.DataFrame(records, columns=columns, dtype=object)
    text = frame.to_csv(index=False, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
    # no trailing line break after the last row
    return text[:-1] if text.endswith("\n") else text


def export_filename(prefix: str = "cleaned_dataset") -> str:
    return f"{prefix}_{int(time.time() * 1000)}.csv"
