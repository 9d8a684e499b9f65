"""
Profiling report over a Dataset: data health, per-type descriptive
statistics, relationships, outliers, text statistics and plain-language
insights. Also builds the compact summaries handed to downstream consumers
(column overview, data summary, question-answering context).
"""
import json
import logging
import math
import re
from collections import Counter
from datetime import datetime
from typing import Any, Dict, List, Optional

from workbench.config import Settings, get_settings
from workbench.models import (
    AssociationEntry,
    CategoricalStats,
    CategoryCount,
    ColumnInfo,
    ColumnType,
    CorrelationEntry,
    DataSummary,
    Dataset,
    DatetimeStats,
    HealthReport,
    MissingEntry,
    MixedTypesEntry,
    NumericStats,
    OutlierSummary,
    ProfileReport,
    QAContext,
    TextStats,
    TokenCount,
)
from workbench.profiling import stats
from workbench.profiling.inference import infer_column_types
from workbench.values import is_missing, json_safe, stable_key, to_date_or_none, to_number, to_text

logger = logging.getLogger(__name__)

MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
WEEKDAYS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
STOPWORDS = {"the", "a", "an", "and", "or", "of", "to", "in", "is", "are", "on", "for", "with", "as", "at", "by"}

_TOKEN_SPLIT = re.compile(r"[^a-z0-9\s]")


# ----------------------
# Helpers
# ----------------------

def _column(dataset: Dataset, name: str) -> List[Any]:
    return [row.get(name) for row in dataset.data]


def _numbers(values: List[Any]) -> List[float]:
    return [n for n in (to_number(v) for v in values) if not math.isnan(n)]


def _type_label(v: Any) -> str:
    if isinstance(v, bool):
        return "boolean"
    if isinstance(v, (int, float)):
        return "number"
    if isinstance(v, datetime):
        return "date"
    if isinstance(v, (list, tuple)):
        return "array"
    if isinstance(v, dict):
        return "object"
    return "string"


def count_duplicates(rows: List[Dict[str, Any]]) -> int:
    seen = set()
    dups = 0
    for row in rows:
        key = stable_key(row)
        if key in seen:
            dups += 1
        else:
            seen.add(key)
    return dups


def count_missing(rows: List[Dict[str, Any]]) -> int:
    return sum(1 for row in rows for v in row.values() if is_missing(v))


def _unique_count(values: List[Any]) -> int:
    return len({(type(v) is bool, to_text(v)) for v in values if not is_missing(v)})


# ----------------------
# Per-type statistics
# ----------------------

def numeric_stats(column: str, values: List[Any]) -> NumericStats:
    nums = _numbers(values)
    lo, hi = stats.min_max(nums)
    return NumericStats(
        column=column,
        count=len(nums),
        mean=stats.mean(nums),
        median=stats.median(nums),
        mode=stats.mode(nums),
        std=stats.std_dev(nums),
        variance=stats.variance(nums),
        min=lo,
        max=hi,
        range=hi - lo,
        skewness=stats.skewness(nums),
        kurtosis=stats.kurtosis_excess(nums),
    )


def categorical_stats(column: str, values: List[Any], top_k: int = 5) -> CategoricalStats:
    present = [v for v in values if not is_missing(v)]
    freq = Counter(to_text(v) for v in present)
    # most_common is stable, so equal counts keep first-seen order
    pairs = freq.most_common()
    return CategoricalStats(
        column=column,
        unique=len(freq),
        top=[CategoryCount(value=k, count=c) for k, c in pairs[:top_k]],
        most_frequent=pairs[0][0] if pairs else None,
        least_frequent=pairs[-1][0] if pairs else None,
        entropy=stats.entropy(present),
    )


def datetime_stats(column: str, values: List[Any]) -> DatetimeStats:
    dates = sorted(d for d in (to_date_or_none(v) for v in values if not is_missing(v)) if d is not None)
    if not dates:
        return DatetimeStats(column=column)
    lo, hi = dates[0], dates[-1]
    month = stats.mode([d.month for d in dates])
    weekday = stats.mode([d.weekday() for d in dates])
    return DatetimeStats(
        column=column,
        count=len(dates),
        min=lo,
        max=hi,
        span_days=max(0, round((hi - lo).total_seconds() / 86400)),
        common_month=MONTHS[month - 1],
        common_weekday=WEEKDAYS[weekday],
    )


def text_stats(column: str, values: List[Any], top_n: int = 10) -> Optional[TextStats]:
    docs = 0
    total_words = 0
    freq: Counter = Counter()
    for v in values:
        if not isinstance(v, str) or not v.strip():
            continue
        docs += 1
        tokens = [t for t in _TOKEN_SPLIT.sub(" ", v.lower()).split() if t not in STOPWORDS]
        total_words += len(tokens)
        freq.update(tokens)
    if not docs:
        return None
    return TextStats(
        column=column,
        avg_words=total_words / docs,
        top_words=[TokenCount(token=t, count=c) for t, c in freq.most_common(top_n)],
    )


# ----------------------
# Relationships
# ----------------------

def correlations(dataset: Dataset, columns: List[str]) -> List[CorrelationEntry]:
    parsed = {c: [to_number(v) for v in _column(dataset, c)] for c in columns}
    out = []
    for i, x in enumerate(columns):
        for y in columns[i + 1:]:
            xs = parsed[x]
            ys = parsed[y]
            pairs = sum(1 for a, b in zip(xs, ys) if not (math.isnan(a) or math.isnan(b)))
            if pairs < 2:
                continue
            out.append(CorrelationEntry(x=x, y=y, r=stats.pearson(xs, ys)))
    out.sort(key=lambda e: abs(e.r), reverse=True)
    return out


def associations(dataset: Dataset, columns: List[str], max_levels: int = 12, limit: int = 10) -> List[AssociationEntry]:
    out = []
    for i, x in enumerate(columns):
        for y in columns[i + 1:]:
            table = stats.contingency_table(_column(dataset, x), _column(dataset, y), max_levels)
            if not table or not table[0]:
                continue
            result = stats.chi_square_stat(table)
            out.append(AssociationEntry(x=x, y=y, chi2=result.chi2, df=result.df))
    out.sort(key=lambda e: e.chi2, reverse=True)
    return out[:limit]


def outlier_summary(column: str, values: List[Any], z_threshold: float) -> OutlierSummary:
    nums = _numbers(values)
    iqr = stats.iqr_outliers(nums)
    return OutlierSummary(
        column=column,
        z_count=len(stats.z_score_outliers(nums, z_threshold)),
        iqr_count=len(iqr.indices),
        iqr_fences=(iqr.lower, iqr.upper),
    )


# ----------------------
# Health
# ----------------------

def health_report(dataset: Dataset, types: Dict[str, ColumnType]) -> HealthReport:
    rows = dataset.data
    total = len(rows)
    missing = []
    uniques = {}
    mixed = []
    for name in dataset.column_names:
        values = _column(dataset, name)
        miss = sum(1 for v in values if is_missing(v))
        missing.append(MissingEntry(column=name, missing=miss, percent=(miss / total * 100) if total else 0.0))
        uniques[name] = _unique_count(values)
        labels = sorted({_type_label(v) for v in values if not is_missing(v)})
        if len(labels) > 1:
            mixed.append(MixedTypesEntry(column=name, types=labels))

    low_variance = [
        c for c, t in types.items()
        if t == ColumnType.NUMERIC and stats.variance(_numbers(_column(dataset, c))) == 0
    ]
    high_cardinality = [c for c, u in uniques.items() if u > max(50, total * 0.5)]
    primary_keys = [c for c, u in uniques.items() if total > 0 and u == total]

    return HealthReport(
        missing_by_column=missing,
        duplicates=count_duplicates(rows),
        low_variance_columns=low_variance,
        high_cardinality_columns=high_cardinality,
        mixed_types=mixed,
        primary_key_candidates=primary_keys,
    )


# ----------------------
# Insights
# ----------------------

def insights(report: ProfileReport) -> List[str]:
    lines: List[str] = []
    if not report.total_rows or not report.total_columns:
        lines.append("No data available. Upload a dataset to generate insights.")
        return lines

    bad_missing = sorted(
        (m for m in report.health.missing_by_column if m.percent > 20), key=lambda m: m.percent, reverse=True
    )
    if bad_missing:
        cols = ", ".join(f"{m.column} ({m.percent:.1f}%)" for m in bad_missing[:5])
        lines.append(f"High missingness in: {cols}. Consider imputing or dropping.")

    if report.health.duplicates > 0:
        lines.append(f"{report.health.duplicates} duplicate row(s) detected. Consider deduplication.")

    if report.health.primary_key_candidates:
        lines.append(f"Possible primary key(s): {', '.join(report.health.primary_key_candidates)}.")

    for s in report.numeric:
        if abs(s.skewness) > 1:
            lines.append(f'Column "{s.column}" is highly skewed ({s.skewness:.2f}). Consider transformation.')
    for o in report.outliers:
        if o.z_count > 0 or o.iqr_count > 0:
            lines.append(f'Outliers in "{o.column}": z-score={o.z_count}, IQR={o.iqr_count}.')

    if report.correlations:
        top = ", ".join(f"{c.x} <-> {c.y} ({c.r:+.2f})" for c in report.correlations[:3])
        lines.append(f"Top correlations: {top}.")

    for c in report.categorical:
        if c.top and report.total_rows:
            pct = c.top[0].count / report.total_rows * 100
            if pct > 70:
                lines.append(f'Column "{c.column}" is heavily dominated by "{c.top[0].value}" ({pct:.1f}%).')

    for d in report.datetimes:
        if d.min and d.max:
            lines.append(
                f'Column "{d.column}" covers {d.span_days} day(s) from {d.min.date().isoformat()} to {d.max.date().isoformat()}.'
            )
    return lines


# ----------------------
# Entry points
# ----------------------

def profile_dataset(dataset: Dataset, settings: Optional[Settings] = None) -> ProfileReport:
    """Full analytics report for a dataset. Never raises on degenerate data."""
    settings = settings or get_settings()
    types = infer_column_types(dataset, settings)
    by_type = {t: [c for c, ct in types.items() if ct == t] for t in ColumnType}

    report = ProfileReport(
        total_rows=len(dataset.data),
        total_columns=len(dataset.columns),
        column_types=types,
        health=health_report(dataset, types),
    )
    report.numeric = [numeric_stats(c, _column(dataset, c)) for c in by_type[ColumnType.NUMERIC]]
    report.outliers = [
        outlier_summary(c, _column(dataset, c), settings.report_zscore_threshold)
        for c in by_type[ColumnType.NUMERIC]
    ]
    report.categorical = [
        categorical_stats(c, _column(dataset, c), settings.top_k) for c in by_type[ColumnType.CATEGORICAL]
    ]
    report.datetimes = [datetime_stats(c, _column(dataset, c)) for c in by_type[ColumnType.DATE]]
    report.text = [
        ts for ts in (text_stats(c, _column(dataset, c)) for c in by_type[ColumnType.TEXT]) if ts is not None
    ]
    report.correlations = correlations(dataset, by_type[ColumnType.NUMERIC])
    report.associations = associations(
        dataset, by_type[ColumnType.CATEGORICAL], settings.chi_square_max_levels
    )
    report.insights = insights(report)
    logger.info(
        "profiled %d rows x %d columns (%d insights)", report.total_rows, report.total_columns, len(report.insights)
    )
    return report


def analyze_columns(dataset: Dataset, settings: Optional[Settings] = None) -> List[ColumnInfo]:
    """Compact per-column overview: type, missing and unique counts, numeric summary."""
    types = infer_column_types(dataset, settings)
    out = []
    for name in dataset.column_names:
        values = _column(dataset, name)
        info = ColumnInfo(
            name=name,
            type=types[name],
            missing_count=sum(1 for v in values if is_missing(v)),
            unique_count=_unique_count(values),
        )
        nums = _numbers(values)
        if info.type == ColumnType.NUMERIC and nums:
            lo, hi = stats.min_max(nums)
            info.min = lo
            info.max = hi
            info.mean = stats.mean(nums)
            info.median = stats.median(nums)
            info.std = stats.std_dev(nums)
        out.append(info)
    return out


def summarize(rows: List[Dict[str, Any]]) -> DataSummary:
    total_columns = len(rows[0]) if rows else 0
    encoded = json.dumps([{k: json_safe(v) for k, v in r.items()} for r in rows], separators=(",", ":"))
    return DataSummary(
        total_rows=len(rows),
        total_columns=total_columns,
        missing_values=count_missing(rows),
        duplicates=count_duplicates(rows),
        memory_usage=f"{len(encoded) / 1024:.2f} KB",
    )


def build_qa_context(dataset: Dataset, max_columns: int = 50, max_rows: int = 5) -> QAContext:
    """Serializable dataset context for the question-answering collaborator."""
    summary = summarize(dataset.data)
    text = (
        f"{summary.total_rows} rows, {summary.total_columns} columns, "
        f"{summary.missing_values} missing values, {summary.duplicates} duplicate rows"
    )
    return QAContext(
        summary=text,
        columns=dataset.column_names[:max_columns],
        sample_rows=[{k: json_safe(v) for k, v in row.items()} for row in dataset.data[:max_rows]],
    )
