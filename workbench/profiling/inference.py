import logging
import math
from typing import Any, Dict, Iterable, List, Optional

from workbench.config import Settings, get_settings
from workbench.models import ColumnType, Dataset
from workbench.values import is_missing, to_date_or_none, to_number, to_text

logger = logging.getLogger(__name__)


def sample_values(values: Iterable[Any], size: int) -> List[Any]:
    """First `size` non-missing values, in order."""
    out: List[Any] = []
    for v in values:
        if is_missing(v):
            continue
        out.append(v)
        if len(out) >= size:
            break
    return out


def _distinct_key(v: Any):
    # keep 1 and True apart, and 1 and 1.0 together
    return (type(v) is bool, to_text(v))


def infer_column_type(values: Iterable[Any], settings: Optional[Settings] = None) -> ColumnType:
    """
    Classify a column from its values.

    numeric      more than `numeric_threshold` of the sample parses as a finite number
    categorical  at most `categorical_max_distinct` distinct values, or a
                 distinct/total ratio under `categorical_unique_ratio`
    date         any sampled value parses as a calendar date
    text         everything else

    The checks run in that order; the numeric parse rate is the strongest
    signal, so an edge case always lands on the earlier type.
    """
    settings = settings or get_settings()
    sample = sample_values(values, settings.inference_sample_size)
    total = len(sample)

    if total:
        numeric = sum(1 for v in sample if not math.isnan(to_number(v)))
        if numeric / total > settings.numeric_threshold:
            return ColumnType.NUMERIC

    distinct = len({_distinct_key(v) for v in sample})
    if distinct <= settings.categorical_max_distinct or (
        total and distinct / total < settings.categorical_unique_ratio
    ):
        return ColumnType.CATEGORICAL

    if any(to_date_or_none(v) is not None for v in sample if not isinstance(v, (int, float))):
        return ColumnType.DATE

    return ColumnType.TEXT


def infer_column_types(dataset: Dataset, settings: Optional[Settings] = None) -> Dict[str, ColumnType]:
    settings = settings or get_settings()
    types: Dict[str, ColumnType] = {}
    for name in dataset.column_names:
        types[name] = infer_column_type((row.get(name) for row in dataset.data), settings)
    logger.debug("inferred column types: %s", {k: v.value for k, v in types.items()})
    return types


def with_inferred_types(dataset: Dataset, settings: Optional[Settings] = None) -> Dataset:
    """Copy of `dataset` whose columns carry their inferred type."""
    types = infer_column_types(dataset, settings)
    columns = [c.model_copy(update={"type": types[c.name]}) for c in dataset.columns]
    return dataset.model_copy(update={"columns": columns})
