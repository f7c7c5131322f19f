"""Shared test fixtures for merkle-sync."""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from merkle_sync.models import Record


def make_collection(*pairs: tuple) -> list[Record]:
    """Build a collection from (key, content) pairs."""
    return [Record(key=key, content=content) for key, content in pairs]


def write_collection(path: Path, records: list[Record]) -> Path:
    """Write records to a collection file and return its path."""
    path.write_text(
        json.dumps({"version": 1, "records": [r.to_dict() for r in records]})
    )
    return path


@pytest.fixture
def cli_runner():
    """Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def base_records() -> list[Record]:
    """The four-record collection used by the reconciliation scenarios."""
    return make_collection(
        (1, "alice"),
        (2, "bob"),
        (3, "charlie"),
        (4, "diana"),
    )


@pytest.fixture
def changed_records(base_records: list[Record]) -> list[Record]:
    """Base records with key 3 modified and key 5 appended."""
    records = list(base_records)
    records[2] = records[2].with_content("charlie-updated")
    records.append(Record(key=5, content="eve"))
    return records


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    """Keep env overrides and a real project config out of every test."""
    for name in ("MSYNC_CANONICAL_ORDER", "MSYNC_LABEL_LENGTH", "MSYNC_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
