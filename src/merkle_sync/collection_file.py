"""Reading and writing collections as JSON files for the CLI."""

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from .errors import CollectionFileError
from .models import Record


class RecordEntry(BaseModel):
    """A record as written in a collection file.

    Both fields are optional here so that the tree builder can report
    a missing key or content together with the record's index.
    """

    key: int | str | None = None
    content: str | None = None


class CollectionDocument(BaseModel):
    """Top-level collection file layout."""

    version: int = 1
    records: list[RecordEntry] = Field(default_factory=list)


def load_collection(path: Path) -> tuple[Record, ...]:
    """Load records from a collection file.

    Accepts either ``{"version": 1, "records": [...]}`` or a bare list.
    """
    try:
        with open(path) as f:
            data: Any = json.load(f)
    except OSError as e:
        raise CollectionFileError(f"Cannot read {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise CollectionFileError(f"Invalid JSON in {path}: {e}") from e

    if isinstance(data, list):
        data = {"records": data}

    try:
        document = CollectionDocument.model_validate(data)
    except ValidationError as e:
        raise CollectionFileError(f"Invalid collection file {path}: {e}") from e

    return tuple(
        Record(key=entry.key, content=entry.content) for entry in document.records
    )


def save_collection(records: tuple[Record, ...] | list[Record], path: Path) -> None:
    """Write records to a collection file."""
    document = CollectionDocument(
        records=[RecordEntry(key=r.key, content=r.content) for r in records]
    )
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w") as f:
        json.dump(document.model_dump(mode="json"), f, indent=2)
