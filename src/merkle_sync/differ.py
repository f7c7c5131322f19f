"""Key-based leaf diff: the authoritative comparison of two trees."""

from __future__ import annotations

from .merkle import MerkleTree
from .models import Edit, EditKind, EditScript, Key, LeafNode


def diff_leaves(tree_a: MerkleTree | None, tree_b: MerkleTree | None) -> EditScript:
    """
    Compute the edit script that turns B's collection into A's.

    Works for trees of any shape. An absent tree counts as having no leaves.

    Ordering: modifications, then additions (both in A's leaf order),
    then deletions (in B's leaf order).

    Args:
        tree_a: The tree to agree with (source)
        tree_b: The tree to be changed (replica)

    Returns:
        EditScript with modified, added and deleted edits
    """
    leaves_a = _leaves_by_key(tree_a)
    leaves_b = _leaves_by_key(tree_b)

    modified: list[Edit] = []
    added: list[Edit] = []
    deleted: list[Edit] = []

    for key, leaf_a in leaves_a.items():
        leaf_b = leaves_b.get(key)
        if leaf_b is None:
            added.append(
                Edit(kind=EditKind.ADDED, key=key, new_content=leaf_a.record.content)
            )
        elif leaf_a.fingerprint != leaf_b.fingerprint:
            modified.append(
                Edit(
                    kind=EditKind.MODIFIED,
                    key=key,
                    new_content=leaf_a.record.content,
                    old_content=leaf_b.record.content,
                )
            )

    for key, leaf_b in leaves_b.items():
        if key not in leaves_a:
            deleted.append(
                Edit(kind=EditKind.DELETED, key=key, old_content=leaf_b.record.content)
            )

    return EditScript(edits=tuple(modified + added + deleted))


# Public name used by presentation layers
diff = diff_leaves


def _leaves_by_key(tree: MerkleTree | None) -> dict[Key, LeafNode]:
    """Map record key -> leaf, preserving leaf order."""
    if tree is None:
        return {}
    return {leaf.record.key: leaf for leaf in tree.leaves()}
