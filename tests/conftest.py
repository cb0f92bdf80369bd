"""Shared pytest fixtures: sample CSV files, settings and loaded contexts."""

from pathlib import Path
from typing import Callable, Iterator

import pandas as pd
import pytest
from starlette.testclient import TestClient

from csv_query.app import AppContext, build_context
from csv_query.config import Settings
from csv_query.interfaces.http.server import create_app


PEOPLE = {
    "Name": ["Alice", "Bob", "Smith, Jr.", "Dana"],
    "Age": [30, 25, 40, 25],
    "City": ["Paris", "Berlin", "Paris", "Rome"],
    "Salary": ["1,234", "2,000.50", "n/a", "-7"],
}


@pytest.fixture
def write_csv(tmp_path: Path) -> Callable[..., Path]:
    """Return a factory writing raw text to a CSV file under tmp_path."""

    def _write(text: str, name: str = "data.csv", encoding: str = "utf-8") -> Path:
        path = tmp_path / name
        path.write_text(text, encoding=encoding)
        return path

    return _write


@pytest.fixture
def people_csv(tmp_path: Path) -> Path:
    """CSV file with a header and four well-formed rows."""
    path = tmp_path / "people.csv"
    pd.DataFrame(PEOPLE).to_csv(path, index=False)
    return path


@pytest.fixture
def people_context(people_csv: Path) -> Iterator[AppContext]:
    """AppContext with people.csv loaded and an index on city."""
    context = build_context(Settings(file=people_csv, indices="city"))
    yield context
    context.close()


@pytest.fixture
def client(people_context: AppContext) -> TestClient:
    return TestClient(create_app(people_context))
