"""Exception hierarchy for merkle-sync."""

from typing import Any


class MerkleSyncError(Exception):
    """Base exception for merkle-sync errors."""

    pass


class BuildError(MerkleSyncError):
    """A collection could not be turned into a tree."""

    pass


class MissingFieldError(BuildError):
    """A record is missing its key or its content."""

    def __init__(self, field: str, index: int | None = None, key: Any = None):
        self.field = field
        self.index = index
        self.key = key
        location = f"record at index {index}" if index is not None else "record"
        if key is not None:
            location += f" (key={key!r})"
        super().__init__(f"{location} is missing its {field}")


class MissingContentError(MissingFieldError):
    """Content handed to the hasher was None."""

    def __init__(self, index: int | None = None, key: Any = None):
        super().__init__("content", index=index, key=key)


class DuplicateKeyError(BuildError):
    """Two records in one collection share a key."""

    def __init__(self, key: Any, first_index: int, index: int):
        self.key = key
        self.first_index = first_index
        self.index = index
        super().__init__(
            f"Duplicate key {key!r} at index {index} (first seen at index {first_index})"
        )


class StaleEditScriptError(MerkleSyncError):
    """An edit script no longer matches the collections it was computed from."""

    pass


class SessionError(MerkleSyncError):
    """A sync session step was called out of order."""

    pass


class UnknownKeyError(MerkleSyncError, KeyError):
    """A store operation referenced a key that is not in the collection."""

    def __init__(self, side: str, key: Any):
        self.side = side
        self.key = key
        super().__init__(f"No record with key {key!r} in {side}")

    def __str__(self) -> str:
        return self.args[0]


class CollectionFileError(MerkleSyncError):
    """A collection file could not be read or parsed."""

    pass
