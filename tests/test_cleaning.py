from datetime import datetime

import pytest
from pydantic import ValidationError

from workbench.engine.executor import execute, iter_steps, stream_execution
from workbench.models import (
    CapitalizeWords,
    ChangeType,
    Dataset,
    DropColumn,
    ExtractDatePart,
    FillMissing,
    Lowercase,
    RemoveDuplicates,
    RemoveNonAlphanumeric,
    ReplaceSubstring,
    RoundNumbers,
    ScaleNumbers,
    TrimWhitespace,
    Uppercase,
)
from workbench.registry import list_handlers
from workbench.values import DROPPED


def _column(preview, name):
    return [r[name] for r in preview.records()]


def test_every_action_kind_has_a_handler():
    from workbench.models import ActionKind

    assert set(list_handlers()) == {k.value for k in ActionKind}


def test_empty_queue_is_identity(people):
    preview = execute(people, [])
    assert preview.records() == people.data
    assert preview.columns == people.column_names
    assert preview.stats.changed_cells == 0


def test_remove_duplicates_keeps_first():
    ds = Dataset(data=[{"x": 1, "y": 2}, {"x": 1, "y": 2}, {"x": 3, "y": 4}])
    preview = execute(ds, [RemoveDuplicates()])
    assert preview.records() == [{"x": 1, "y": 2}, {"x": 3, "y": 4}]
    assert preview.stats.row_count == 2
    assert preview.stats.duplicates == 0


def test_fill_missing_mean_marks_only_filled_cells():
    ds = Dataset(data=[{"v": 10}, {"v": None}, {"v": 30}])
    preview = execute(ds, [FillMissing(column_name="v", strategy="mean")])
    assert _column(preview, "v") == [10, 20.0, 30]
    assert [m["v"] for m in preview.change_mask()] == [False, True, False]


def test_fill_missing_strategies():
    ds = Dataset(data=[{"v": 1}, {"v": ""}, {"v": 5}, {"v": 100}])
    assert _column(execute(ds, [FillMissing(column_name="v", strategy="median")]), "v")[1] == 5.0
    assert _column(execute(ds, [FillMissing(column_name="v")]), "v")[1] == 0
    custom = FillMissing(column_name="v", strategy="custom", custom_value="7")
    assert _column(execute(ds, [custom]), "v")[1] == 7


def test_fill_mean_without_numbers_uses_zero():
    ds = Dataset(data=[{"v": None}, {"v": "n/a"}])
    assert _column(execute(ds, [FillMissing(column_name="v", strategy="mean")]), "v") == [0, "n/a"]


def test_scale_numbers():
    ds = Dataset(data=[{"v": 0}, {"v": 5}, {"v": 10}, {"v": None}])
    preview = execute(ds, [ScaleNumbers(column_name="v")])
    assert _column(preview, "v") == [0.0, 0.5, 1.0, None]


def test_scale_constant_column_goes_to_lower_bound():
    ds = Dataset(data=[{"v": 4}, {"v": 4}])
    preview = execute(ds, [ScaleNumbers(column_name="v", scale_min=-1, scale_max=1)])
    assert _column(preview, "v") == [-1.0, -1.0]


def test_round_numbers():
    ds = Dataset(data=[{"v": 2.25}, {"v": "1,234.6"}, {"v": "abc"}])
    preview = execute(ds, [RoundNumbers(column_name="v", places=1)])
    assert _column(preview, "v") == [2.3, 1234.6, "abc"]
    preview = execute(ds, [RoundNumbers(column_name="v")])
    assert _column(preview, "v")[:2] == [2.0, 1235.0]


def test_replace_without_match_changes_nothing():
    ds = Dataset(data=[{"s": "hello"}, {"s": 5}])
    preview = execute(ds, [ReplaceSubstring(column_name="s", find="zzz", replace_with="y")])
    assert preview.records() == ds.data
    assert preview.stats.changed_cells == 0


def test_replace_substring_every_occurrence():
    ds = Dataset(data=[{"s": "a-b-c"}])
    preview = execute(ds, [ReplaceSubstring(column_name="s", find="-", replace_with="")])
    assert _column(preview, "s") == ["abc"]


def test_trim_is_idempotent(people):
    once = execute(people, [TrimWhitespace(column_name="name")])
    twice = execute(people, [TrimWhitespace(column_name="name"), TrimWhitespace(column_name="name")])
    assert once.records() == twice.records()
    assert once.change_mask() == twice.change_mask()
    assert _column(once, "name")[0] == "Alice"


def test_text_transforms_skip_nulls_and_fixed_points():
    ds = Dataset(data=[{"s": "Hello World"}, {"s": 5}, {"s": None}, {"s": True}])
    preview = execute(ds, [Uppercase(column_name="s")])
    assert _column(preview, "s") == ["HELLO WORLD", 5, None, "TRUE"]
    assert [m["s"] for m in preview.change_mask()] == [True, False, False, True]


def test_text_transforms_work_on_numbers_as_text():
    ds = Dataset(data=[{"phone": 5551234}, {"phone": "555-9999"}, {"phone": -3.5}])
    preview = execute(ds, [ReplaceSubstring(column_name="phone", find="555", replace_with="")])
    assert _column(preview, "phone") == ["1234", "-9999", -3.5]
    assert [m["phone"] for m in preview.change_mask()] == [True, True, False]

    preview = execute(ds, [RemoveNonAlphanumeric(column_name="phone")])
    assert _column(preview, "phone") == [5551234, "5559999", "35"]


def test_replace_with_empty_find_is_a_no_op():
    ds = Dataset(data=[{"s": "hello"}, {"s": 12}, {"s": None}])
    preview = execute(ds, [ReplaceSubstring(column_name="s", find="", replace_with="x")])
    assert preview.records() == ds.data
    assert preview.change_mask() == [{"s": False}, {"s": False}, {"s": False}]


def test_capitalize_and_strip_symbols():
    ds = Dataset(data=[{"s": "hello big_world!"}])
    preview = execute(ds, [RemoveNonAlphanumeric(column_name="s"), CapitalizeWords(column_name="s")])
    assert _column(preview, "s") == ["Hello Bigworld"]


def test_changed_flag_is_sticky():
    ds = Dataset(data=[{"s": "abc"}])
    preview = execute(ds, [Uppercase(column_name="s"), Lowercase(column_name="s")])
    assert _column(preview, "s") == ["abc"]
    assert preview.change_mask() == [{"s": True}]


def test_change_type():
    ds = Dataset(data=[{"v": "12.7"}, {"v": "abc"}, {"v": " Yes "}, {"v": None}])
    assert _column(execute(ds, [ChangeType(column_name="v", new_type="integer")]), "v") == [12, None, None, None]
    assert _column(execute(ds, [ChangeType(column_name="v", new_type="float")]), "v")[0] == 12.7
    assert _column(execute(ds, [ChangeType(column_name="v", new_type="boolean")]), "v") == [False, False, True, False]
    assert _column(execute(ds, [ChangeType(column_name="v", new_type="text")]), "v")[3] == ""


def test_change_type_to_date():
    ds = Dataset(data=[{"d": "2024-01-05"}, {"d": "soon"}])
    preview = execute(ds, [ChangeType(column_name="d", new_type="date")])
    assert _column(preview, "d") == [datetime(2024, 1, 5), None]


def test_extract_date_part():
    ds = Dataset(data=[{"d": "2024-01-05"}, {"d": "unknown"}])
    assert _column(execute(ds, [ExtractDatePart(column_name="d", part="weekday")]), "d") == ["Friday", "unknown"]
    assert _column(execute(ds, [ExtractDatePart(column_name="d", part="month")]), "d")[0] == 1
    assert _column(execute(ds, [ExtractDatePart(column_name="d", part="year")]), "d")[0] == 2024


def test_drop_column_is_terminal(people):
    actions = [DropColumn(column_name="age"), FillMissing(column_name="age", strategy="custom", custom_value=1)]
    preview = execute(people, actions)
    assert "age" not in preview.columns
    assert all("age" not in r for r in preview.records())
    assert all(r["age"].value is DROPPED for r in preview.rows)
    assert preview.stats.column_count == len(people.columns) - 1


def test_drop_column_on_empty_dataset():
    ds = Dataset(columns=[{"name": "a"}, {"name": "b"}], data=[])
    preview = execute(ds, [DropColumn(column_name="a")])
    assert preview.columns == ["b"]


def test_execution_is_deterministic_and_pure(people):
    before = [dict(r) for r in people.data]
    actions = [
        TrimWhitespace(column_name="name"),
        FillMissing(column_name="age", strategy="mean"),
        RemoveDuplicates(),
    ]
    first = execute(people, actions)
    second = execute(people, actions)
    assert first.records() == second.records()
    assert first.change_mask() == second.change_mask()
    assert first.stats == second.stats
    assert people.data == before


def test_stream_execution_events(people):
    actions = [TrimWhitespace(column_name="name"), RemoveDuplicates()]
    events = list(stream_execution(people, actions, run_id="r1"))
    assert [e["type"] for e in events] == ["start", "step", "step", "complete"]
    assert events[0]["run_id"] == "r1"
    assert events[1]["action_id"] == actions[0].id
    assert events[2]["row_count"] == 3
    assert events[-1]["stats"]["row_count"] == 3


@pytest.mark.parametrize("places", [0, 2])
def test_round_leaves_integers(places):
    ds = Dataset(data=[{"v": 3}])
    assert _column(execute(ds, [RoundNumbers(column_name="v", places=places)]), "v") == [3]


def test_iter_steps_reports_running_change_count():
    ds = Dataset(data=[{"s": "a"}, {"s": "b"}])
    steps = list(iter_steps(ds, [Uppercase(column_name="s"), DropColumn(column_name="s")]))
    assert [s.changed_cells for s in steps] == [2, 0]
    assert [s.rows[0]["s"].value for s in steps] == ["A", DROPPED]


def test_round_places_are_bounded():
    with pytest.raises(ValidationError):
        RoundNumbers(column_name="v", places=400)
    ds = Dataset(data=[{"v": 1e300}, {"v": 2.5}])
    preview = execute(ds, [RoundNumbers(column_name="v", places=15)])
    assert _column(preview, "v") == [1e300, 2.5]
    assert preview.change_mask() == [{"v": False}, {"v": False}]
