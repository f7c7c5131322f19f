"""Core data types: records, tree nodes, edit scripts."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Union

from .hasher import SENTINEL_FINGERPRINT

Key = int | str


@dataclass(frozen=True)
class Record:
    """A keyed piece of content. Identity is the key."""

    key: Key
    content: str

    def with_content(self, content: str) -> Record:
        return replace(self, content=content)

    def to_dict(self) -> dict[str, Any]:
        return {"key": self.key, "content": self.content}


# Ordered records; snapshots handed out by the store are tuples
Collection = Sequence[Record]


@dataclass(frozen=True)
class LeafNode:
    """A node representing exactly one record."""

    fingerprint: str
    record: Record

    @property
    def level(self) -> int:
        return 0

    @property
    def is_leaf(self) -> bool:
        return True

    @property
    def is_sentinel(self) -> bool:
        return False

    @property
    def children(self) -> tuple[MerkleNode, ...]:
        return ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": "leaf",
            "fingerprint": self.fingerprint,
            "level": 0,
            "record": self.record.to_dict(),
        }


@dataclass(frozen=True)
class InternalNode:
    """A node combining exactly two children."""

    fingerprint: str
    level: int
    left: MerkleNode
    right: MerkleNode

    @property
    def is_leaf(self) -> bool:
        return False

    @property
    def is_sentinel(self) -> bool:
        return False

    @property
    def record(self) -> None:
        return None

    @property
    def children(self) -> tuple[MerkleNode, MerkleNode]:
        return (self.left, self.right)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": "internal",
            "fingerprint": self.fingerprint,
            "level": self.level,
            "children": [self.left.to_dict(), self.right.to_dict()],
        }


@dataclass(frozen=True)
class SentinelNode:
    """Padding partner for the unmatched last node of an odd-sized level.

    Takes the level of the node it is paired with.
    """

    level: int = 0

    @property
    def fingerprint(self) -> str:
        return SENTINEL_FINGERPRINT

    @property
    def is_leaf(self) -> bool:
        return False

    @property
    def is_sentinel(self) -> bool:
        return True

    @property
    def record(self) -> None:
        return None

    @property
    def children(self) -> tuple[MerkleNode, ...]:
        return ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": "sentinel",
            "fingerprint": self.fingerprint,
            "level": self.level,
        }


MerkleNode = Union[LeafNode, InternalNode, SentinelNode]


class EditKind(str, Enum):
    """Kind of change needed to bring a replica in line with its source."""

    MODIFIED = "modified"
    ADDED = "added"
    DELETED = "deleted"


@dataclass(frozen=True)
class Edit:
    """One step of an edit script."""

    kind: EditKind
    key: Key
    new_content: str | None = None  # Set for ADDED and MODIFIED
    old_content: str | None = None  # Set for MODIFIED and DELETED

    def describe(self) -> str:
        """Human-readable one-line description."""
        if self.kind is EditKind.MODIFIED:
            return f'ID {self.key}: "{self.old_content}" → "{self.new_content}"'
        if self.kind is EditKind.ADDED:
            return f"Added: ID {self.key} ({self.new_content})"
        return f"Deleted: ID {self.key} ({self.old_content})"

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "key": self.key,
            "new_content": self.new_content,
            "old_content": self.old_content,
        }


@dataclass(frozen=True)
class EditScript:
    """Ordered, immutable list of edits.

    ``basis`` is the (source_version, replica_version) pair of the store
    snapshots the script was computed from, when it came through a store.
    """

    edits: tuple[Edit, ...] = ()
    basis: tuple[int, int] | None = None

    def __len__(self) -> int:
        return len(self.edits)

    def __iter__(self) -> Iterator[Edit]:
        return iter(self.edits)

    def of_kind(self, kind: EditKind) -> tuple[Edit, ...]:
        return tuple(edit for edit in self.edits if edit.kind is kind)

    def keys(self, kind: EditKind) -> list[Key]:
        return [edit.key for edit in self.of_kind(kind)]

    @property
    def modified(self) -> tuple[Edit, ...]:
        return self.of_kind(EditKind.MODIFIED)

    @property
    def added(self) -> tuple[Edit, ...]:
        return self.of_kind(EditKind.ADDED)

    @property
    def deleted(self) -> tuple[Edit, ...]:
        return self.of_kind(EditKind.DELETED)

    @property
    def is_empty(self) -> bool:
        return not self.edits

    @property
    def has_changes(self) -> bool:
        """Check if there are any changes."""
        return bool(self.edits)

    def to_dict(self) -> dict[str, Any]:
        return {
            "edits": [edit.to_dict() for edit in self.edits],
            "summary": {
                "modified": len(self.modified),
                "added": len(self.added),
                "deleted": len(self.deleted),
            },
        }


@dataclass(frozen=True)
class Divergence:
    """A pair of corresponding nodes whose fingerprints differ."""

    node_a: MerkleNode
    node_b: MerkleNode
    path: str  # "L"/"R" steps from the root, "" for the root itself

    @property
    def level(self) -> int:
        return self.node_a.level


class WarningKind(str, Enum):
    """Non-fatal problems met while applying an edit script."""

    MISSING_KEY = "missing_key"
    KEY_CONFLICT = "key_conflict"


@dataclass(frozen=True)
class ReconcileWarning:
    kind: WarningKind
    edit: Edit
    message: str

    @property
    def key(self) -> Key:
        return self.edit.key


@dataclass(frozen=True)
class ReconcileResult:
    """Outcome of applying an edit script to a collection."""

    collection: tuple[Record, ...]
    warnings: tuple[ReconcileWarning, ...] = field(default_factory=tuple)
    applied: int = 0

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)
