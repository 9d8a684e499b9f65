from datetime import datetime

from workbench.engine.executor import execute
from workbench.export import export_filename, format_cell, serialize
from workbench.models import Dataset, DropColumn


def test_format_cell():
    assert format_cell(None) == ""
    assert format_cell(float("nan")) == ""
    assert format_cell(datetime(2024, 1, 5)) == "5/1/2024"
    assert format_cell(datetime(2024, 1, 5), "{year}-{month}-{day}") == "2024-1-5"
    assert format_cell(3.0) == "3"
    assert format_cell(False) == "false"


def test_serialize_quotes_only_when_needed():
    ds = Dataset(
        data=[
            {"name": "a,b", "n": 1.0, "d": datetime(2024, 1, 5)},
            {"name": 'say "hi"', "n": None, "d": None},
            {"name": "plain", "n": 2.5, "d": None},
        ]
    )
    text = serialize(execute(ds, []))
    assert text == 'name,n,d\n"a,b",1,5/1/2024\n"say ""hi""",,\nplain,2.5,'


def test_serialize_skips_dropped_columns():
    ds = Dataset(data=[{"a": 1, "b": 2}])
    assert serialize(execute(ds, [DropColumn(column_name="a")])) == "b\n2"


def test_serialize_empty_preview_has_header_only():
    ds = Dataset(columns=[{"name": "a"}, {"name": "b"}], data=[])
    assert serialize(execute(ds, [])) == "a,b"


def test_export_filename():
    name = export_filename()
    assert name.startswith("cleaned_dataset_")
    assert name.endswith(".csv")
    assert name[len("cleaned_dataset_"):-4].isdigit()


def test_serialize_with_every_column_dropped_is_empty():
    ds = Dataset(data=[{"a": 1}, {"a": 2}])
    assert serialize(execute(ds, [DropColumn(column_name="a")])) == ""
