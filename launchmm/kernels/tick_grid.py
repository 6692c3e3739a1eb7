"""
Alignment of arbitrary ticks onto the fixed tick-spacing grid.
"""

from __future__ import annotations


TICK_SPACING = 60

# Extremes of the tick range that are themselves multiples of TICK_SPACING.
MIN_TICK = -887220
MAX_TICK = 887220


def align_tick(tick: int, round_down: bool, *, spacing: int = TICK_SPACING) -> int:
    """
    Clamp `tick` into [MIN_TICK, MAX_TICK] and snap it onto the grid.

    A tick already on the grid is returned unchanged. Otherwise the nearest
    lower multiple is taken, plus one spacing when `round_down` is False.
    """
    if spacing <= 0:
        raise ValueError(f"spacing must be positive: {spacing}")
    lo = -((-MIN_TICK) // spacing) * spacing
    hi = (MAX_TICK // spacing) * spacing

    if tick < lo:
        tick = lo
    elif tick > hi:
        tick = hi

    if tick % spacing == 0:
        return tick

    aligned = (tick // spacing) * spacing
    if not round_down:
        aligned += spacing
    return aligned
