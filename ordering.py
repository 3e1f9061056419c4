"""Dense ordering of setlist items.

Every setlist keeps its items' ``order`` values at exactly ``0..n-1``.
These helpers only rewrite the ``order`` attribute of the rows handed to
them, so both storage backends share them: the memory store passes its
plain rows, the SQL store passes ORM rows and commits afterwards.
"""
from errors import ValidationError


def sort_by_order(items):
    return sorted(items, key=lambda it: (it.order, it.id or 0))


def next_order(items) -> int:
    """Order for an item appended at the end of the setlist."""
    return len(items)


def reindex(items):
    """Re-number items 0..n-1, keeping their relative order."""
    rows = sort_by_order(items)
    for idx, row in enumerate(rows):
        row.order = idx
    return rows


def move(items, target, new_order: int):
    """Move ``target`` to ``new_order``, shifting the items in between by one.

    ``items`` must be every item of one setlist (``target`` included).
    Raises ValidationError when ``new_order`` is outside ``0..n-1``.
    """
    n = len(items)
    if not 0 <= new_order < n:
        raise ValidationError(f"Order must be between 0 and {n - 1}")

    old_order = target.order
    if old_order == new_order:
        return sort_by_order(items)

    for row in items:
        if row is target:
            continue
        if old_order < new_order and old_order < row.order <= new_order:
            row.order -= 1
        elif new_order < old_order and new_order <= row.order < old_order:
            row.order += 1
    target.order = new_order
    return sort_by_order(items)


def is_dense(items) -> bool:
    return sorted(it.order for it in items) == list(range(len(items)))
