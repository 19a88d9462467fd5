"""Formula adjustment and structural shift engine."""

from .adjust import ShiftContext, ShiftEngine
from .formula import (
    adjust_formula,
    adjust_formula_text,
    adjust_range_ref,
    adjust_reference,
)
from .shift import Direction, shift_boundaries, shift_point, shift_rect

__all__ = [
    "ShiftContext",
    "ShiftEngine",
    "adjust_formula",
    "adjust_formula_text",
    "adjust_range_ref",
    "adjust_reference",
    "Direction",
    "shift_boundaries",
    "shift_point",
    "shift_rect",
]
