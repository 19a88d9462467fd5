"""Pivot arithmetic shared by the formula adjuster and the shift engine."""

from enum import Enum


class Direction(str, Enum):
    """Axis along which rows or columns are inserted or deleted."""

    ROWS = "rows"
    COLUMNS = "columns"


def shift_point(p: int, num: int, offset: int) -> int:
    """Move a coordinate at or after the pivot by ``offset``."""
    if p >= num:
        return p + offset
    return p


def shift_boundaries(p1: int, p2: int, num: int, offset: int) -> tuple[int, int]:
    """Move the two boundaries of a span around the pivot ``num``.

    Inserting at or before the first boundary moves the whole span; inserting
    inside it (up to the last line) grows the span. Deleting before the span
    moves it, deleting inside it shrinks it. A span lying entirely on the
    deleted line moves with the offset; callers drop it first when needed.
    """
    if p2 < p1:
        p1, p2 = p2, p1

    if offset >= 0:
        if num <= p1:
            p1 += offset
            p2 += offset
        elif num <= p2:
            p2 += offset
        return p1, p2

    if num < p1 or (num == p1 and num == p2):
        p1 += offset
        p2 += offset
    elif num <= p2:
        p2 += offset
    return p1, p2


def shift_rect(
    coordinates: list[int], direction: Direction, num: int, offset: int
) -> list[int]:
    """Apply ``shift_boundaries`` to the matching axis of ``[x1, y1, x2, y2]``."""
    x1, y1, x2, y2 = coordinates
    if direction == Direction.ROWS:
        y1, y2 = shift_boundaries(y1, y2, num, offset)
    else:
        x1, x2 = shift_boundaries(x1, x2, num, offset)
    return [x1, y1, x2, y2]
