from datetime import date, timedelta

import pytest

from workbench.models import ColumnType, Dataset
from workbench.profiling.report import (
    analyze_columns,
    build_qa_context,
    categorical_stats,
    datetime_stats,
    profile_dataset,
    summarize,
    text_stats,
)


def test_profile_small_dataset(people):
    report = profile_dataset(people)
    assert report.total_rows == 4
    assert report.total_columns == 5
    assert report.health.duplicates == 1

    missing = {m.column: m.missing for m in report.health.missing_by_column}
    assert missing["age"] == 1
    assert missing["joined"] == 2

    numeric = {s.column: s for s in report.numeric}
    assert numeric["age"].count == 3
    assert numeric["age"].mean == pytest.approx(130 / 3)
    assert report.column_types["city"] == ColumnType.CATEGORICAL

    assert any("duplicate row" in line for line in report.insights)
    assert any("High missingness" in line for line in report.insights)


def test_profile_empty_dataset():
    report = profile_dataset(Dataset())
    assert report.total_rows == 0
    assert report.insights == ["No data available. Upload a dataset to generate insights."]


def test_correlations_and_primary_keys():
    ds = Dataset(data=[{"id": i, "x": i * 2, "y": 10 - i} for i in range(1, 8)])
    report = profile_dataset(ds)
    assert report.health.primary_key_candidates == ["id", "x", "y"]
    assert len(report.correlations) == 3
    assert all(abs(c.r) == pytest.approx(1.0) for c in report.correlations)


def test_low_variance_and_mixed_types():
    ds = Dataset(data=[{"k": 1, "m": "a"}, {"k": 1, "m": 2}, {"k": 1, "m": True}])
    report = profile_dataset(ds)
    assert report.health.low_variance_columns == ["k"]
    mixed = {m.column: m.types for m in report.health.mixed_types}
    assert mixed == {"m": ["boolean", "number", "string"]}


def test_categorical_stats_ordering():
    result = categorical_stats("c", ["b", "a", "a", "b", "c", None], top_k=2)
    assert result.unique == 3
    assert [t.value for t in result.top] == ["b", "a"]
    assert result.most_frequent == "b"
    assert result.least_frequent == "c"


def test_datetime_stats():
    days = [(date(2024, 1, 1) + timedelta(days=i)).isoformat() for i in range(10)]
    result = datetime_stats("d", days + ["", None])
    assert result.count == 10
    assert result.span_days == 9
    assert result.common_month == "Jan"
    # 2024-01-01 is a Monday
    assert result.common_weekday == "Mon"
    assert datetime_stats("d", []).count == 0


def test_text_stats_drop_stopwords():
    result = text_stats("t", ["The quick fox", "a quick dog!", 5])
    assert result.avg_words == 2.0
    assert result.top_words[0].token == "quick"
    assert result.top_words[0].count == 2
    assert text_stats("t", [None, ""]) is None


def test_analyze_columns(people):
    info = {c.name: c for c in analyze_columns(people)}
    assert info["age"].min == 30.0
    assert info["age"].max == 50.0
    assert info["age"].missing_count == 1
    assert info["city"].unique_count == 2
    assert info["city"].mean is None


def test_summarize_and_context(people):
    summary = summarize(people.data)
    assert summary.total_rows == 4
    assert summary.total_columns == 5
    assert summary.missing_values == 3
    assert summary.duplicates == 1
    assert summary.memory_usage.endswith(" KB")
    assert summarize([]).total_rows == 0

    context = build_qa_context(people, max_rows=2)
    assert context.columns == people.column_names
    assert len(context.sample_rows) == 2
    assert context.summary.startswith("4 rows, 5 columns")
