"""Apply edit scripts to collections."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from .models import (
    Edit,
    EditKind,
    EditScript,
    Key,
    Record,
    ReconcileResult,
    ReconcileWarning,
    WarningKind,
)

logger = logging.getLogger(__name__)


def apply_edit_script(target: Sequence[Record], script: EditScript) -> ReconcileResult:
    """
    Apply an edit script to a collection without mutating it.

    Edits that cannot be applied are skipped with a warning; the rest of
    the script still applies.

    Args:
        target: Collection to bring into agreement (usually the replica)
        script: Edits computed against the current target

    Returns:
        ReconcileResult with the new collection and any warnings
    """
    records: list[Record] = list(target)
    positions: dict[Key, int] = {record.key: i for i, record in enumerate(records)}
    warnings: list[ReconcileWarning] = []
    applied = 0

    for edit in script:
        index = positions.get(edit.key)

        if edit.kind is EditKind.MODIFIED:
            if index is None:
                warnings.append(_warn(WarningKind.MISSING_KEY, edit, "cannot modify"))
                continue
            records[index] = records[index].with_content(edit.new_content)

        elif edit.kind is EditKind.ADDED:
            if index is not None:
                warnings.append(_warn(WarningKind.KEY_CONFLICT, edit, "cannot add"))
                continue
            records.append(Record(key=edit.key, content=edit.new_content))
            positions[edit.key] = len(records) - 1

        elif edit.kind is EditKind.DELETED:
            if index is None:
                warnings.append(_warn(WarningKind.MISSING_KEY, edit, "cannot delete"))
                continue
            del records[index]
            positions = {record.key: i for i, record in enumerate(records)}

        applied += 1

    logger.debug("Applied %d of %d edits", applied, len(script))
    return ReconcileResult(
        collection=tuple(records),
        warnings=tuple(warnings),
        applied=applied,
    )


def reconcile(
    target: Sequence[Record], script: EditScript
) -> tuple[tuple[Record, ...], list[ReconcileWarning]]:
    """Tuple form of apply_edit_script: (new collection, warnings)."""
    result = apply_edit_script(target, script)
    return result.collection, list(result.warnings)


def _warn(kind: WarningKind, edit: Edit, action: str) -> ReconcileWarning:
    if kind is WarningKind.KEY_CONFLICT:
        message = f"Key {edit.key!r} already exists in target, {action}"
    else:
        message = f"Key {edit.key!r} not found in target, {action}"
    logger.warning(message)
    return ReconcileWarning(kind=kind, edit=edit, message=message)
