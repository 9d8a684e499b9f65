# tests/conftest.py
import os
import sys

import pytest

# Ensure the project root (one level up from tests/) is on sys.path
ROOT = os.path.dirname(os.path.dirname(__file__))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)


@pytest.fixture
def people():
    from workbench.models import Dataset

    return Dataset(
        data=[
            {"id": 1, "name": "  Alice ", "age": 30, "city": "Pune", "joined": "2024-01-05"},
            {"id": 2, "name": "bob", "age": None, "city": "Delhi", "joined": "2024-02-10"},
            {"id": 3, "name": "Carol", "age": 50, "city": "Pune", "joined": ""},
            {"id": 3, "name": "Carol", "age": 50, "city": "Pune", "joined": ""},
        ]
    )
