"""Binary Merkle tree construction over ordered record collections."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from typing import Any

from .errors import DuplicateKeyError, MissingFieldError
from .hasher import DEFAULT_LABEL_LENGTH, combine, fingerprint, short_label
from .models import InternalNode, Key, LeafNode, MerkleNode, Record, SentinelNode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TreeStats:
    """Derived figures for statistics panels."""

    node_count: int = 0
    height: int = 0
    leaf_count: int = 0
    root_fingerprint: str | None = None
    root_label: str = "-"

    def to_dict(self) -> dict[str, Any]:
        return {
            "node_count": self.node_count,
            "height": self.height,
            "leaf_count": self.leaf_count,
            "root_fingerprint": self.root_fingerprint,
        }


class MerkleTree:
    """Hash tree over a snapshot of a collection. Never mutated after build."""

    def __init__(self, root: MerkleNode, records: Sequence[Record]):
        self.root = root
        self.records: tuple[Record, ...] = tuple(records)

    @classmethod
    def build(
        cls,
        collection: Sequence[Record],
        canonical_order: bool = False,
    ) -> MerkleTree | None:
        """
        Build a tree bottom-up from an ordered collection.

        Args:
            collection: Records in insertion order
            canonical_order: Sort leaves by key before building

        Returns:
            A MerkleTree, or None for an empty collection

        Raises:
            MissingFieldError: A record has no key or no content
            DuplicateKeyError: Two records share a key
        """
        records = tuple(collection)
        validate_collection(records)

        if not records:
            return None

        if canonical_order:
            records = tuple(sorted(records, key=lambda r: key_sort_order(r.key)))

        level: list[MerkleNode] = [
            LeafNode(fingerprint=fingerprint(record.content), record=record)
            for record in records
        ]

        while len(level) > 1:
            level = _build_parent_level(level)

        logger.debug(
            "Built tree over %d records, root %s",
            len(records),
            short_label(level[0].fingerprint),
        )
        return cls(root=level[0], records=records)

    @property
    def root_fingerprint(self) -> str:
        return self.root.fingerprint

    @property
    def height(self) -> int:
        """Number of levels above the leaves (0 for a single record)."""
        return self.root.level

    @property
    def node_count(self) -> int:
        """Total nodes, sentinels included."""
        return sum(1 for _ in self.iter_nodes())

    @property
    def leaf_count(self) -> int:
        return len(self.records)

    def iter_nodes(self) -> Iterator[MerkleNode]:
        """Yield every node in pre-order (node, left subtree, right subtree)."""
        stack: list[MerkleNode] = [self.root]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def leaves(self) -> list[LeafNode]:
        """Leaves in left-to-right order."""
        return [node for node in self.iter_nodes() if isinstance(node, LeafNode)]

    def stats(self, label_length: int = DEFAULT_LABEL_LENGTH) -> TreeStats:
        return TreeStats(
            node_count=self.node_count,
            height=self.height,
            leaf_count=self.leaf_count,
            root_fingerprint=self.root_fingerprint,
            root_label=short_label(self.root_fingerprint, label_length),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize the node structure for presentation layers."""
        return self.root.to_dict()


def build_tree(
    collection: Sequence[Record], canonical_order: bool = False
) -> MerkleTree | None:
    """Convenience wrapper around MerkleTree.build()."""
    return MerkleTree.build(collection, canonical_order=canonical_order)


def validate_collection(records: Sequence[Record]) -> None:
    """Check every record for a key and content, and keys for uniqueness.

    Runs before any hashing so that no partial tree is ever produced.
    """
    seen: dict[Key, int] = {}
    for index, record in enumerate(records):
        key = getattr(record, "key", None)
        if key is None:
            raise MissingFieldError("key", index=index)
        if getattr(record, "content", None) is None:
            raise MissingFieldError("content", index=index, key=key)
        if key in seen:
            raise DuplicateKeyError(key, first_index=seen[key], index=index)
        seen[key] = index


def key_sort_order(key: Key) -> tuple[int, Any]:
    """Sort key for mixed int/str record keys: ints first, then strings."""
    if isinstance(key, str):
        return (1, key)
    return (0, key)


def node_count(tree: MerkleTree | None) -> int:
    return tree.node_count if tree is not None else 0


def tree_height(tree: MerkleTree | None) -> int:
    return tree.height if tree is not None else 0


def root_fingerprint(tree: MerkleTree | None) -> str | None:
    return tree.root_fingerprint if tree is not None else None


def tree_stats(
    tree: MerkleTree | None, label_length: int = DEFAULT_LABEL_LENGTH
) -> TreeStats:
    """Stats for a tree that may be absent."""
    if tree is None:
        return TreeStats()
    return tree.stats(label_length)


def _build_parent_level(nodes: list[MerkleNode]) -> list[MerkleNode]:
    """Pair adjacent nodes left to right, padding an odd last node with a sentinel."""
    parents: list[MerkleNode] = []
    for i in range(0, len(nodes), 2):
        left = nodes[i]
        if i + 1 < len(nodes):
            right = nodes[i + 1]
        else:
            right = SentinelNode(level=left.level)
        parents.append(
            InternalNode(
                fingerprint=combine(left.fingerprint, right.fingerprint),
                level=max(left.level, right.level) + 1,
                left=left,
                right=right,
            )
        )
    return parents
