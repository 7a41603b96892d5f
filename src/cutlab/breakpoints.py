"""
Breakpoint bookkeeping and chunk derivation.

Breakpoints are kept as sorted tuples of unique floats (seconds). Every
function here is pure: it returns a new tuple instead of mutating its input,
so a track's breakpoint set is always replaced in a single assignment.
"""

import logging
from collections.abc import Iterable

from .errors import ValidationError
from .models import Chunk

logger = logging.getLogger("cutlab")


def _check_duration(duration: float) -> None:
    if duration <= 0:
        raise ValidationError(f"Duration must be positive, got {duration}")


def _check_in_range(t: float, duration: float) -> None:
    """Breakpoints must fall strictly inside (0, duration)."""
    if not 0 < t < duration:
        raise ValidationError(f"Breakpoint {t:.3f}s is outside (0, {duration:.3f}s)")


def derive_boundaries(duration: float, breakpoints: Iterable[float]) -> list[float]:
    """Return sorted unique boundaries: 0, every breakpoint, and the duration."""
    _check_duration(duration)
    return sorted({0.0, *breakpoints, float(duration)})


def derive_chunks(
    duration: float, breakpoints: Iterable[float], track_id: str | None = None
) -> list[Chunk]:
    """
    Split [0, duration] at the given breakpoints.

    Chunks are contiguous and cover the whole duration, so there is always
    one more chunk than there are (distinct, in-range) breakpoints.
    """
    bounds = derive_boundaries(duration, breakpoints)
    prefix = f"chunk-{track_id}" if track_id else "chunk"
    return [
        Chunk(id=f"{prefix}-{i}", start=bounds[i], end=bounds[i + 1])
        for i in range(len(bounds) - 1)
    ]


def add_breakpoint(
    breakpoints: tuple[float, ...], t: float, duration: float | None = None
) -> tuple[float, ...]:
    """Insert `t` keeping order. Adding a time that is already present is a no-op."""
    if duration is not None:
        _check_in_range(t, duration)
    if t in breakpoints:
        return breakpoints
    return tuple(sorted((*breakpoints, t)))


def remove_breakpoint(breakpoints: tuple[float, ...], t: float) -> tuple[float, ...]:
    """Drop `t` by exact value. Removing an absent time is a no-op."""
    if t not in breakpoints:
        return breakpoints
    return tuple(bp for bp in breakpoints if bp != t)


def even_split(duration: float, count: int) -> tuple[float, ...]:
    """
    Return `count` breakpoints at duration/(count+1) * k for k = 1..count.

    The result replaces the whole previous set; it is never merged into it.
    A count of 0 yields no breakpoints.
    """
    _check_duration(duration)
    if count < 0:
        raise ValidationError(f"Split count must not be negative: {count}")
    interval = duration / (count + 1)
    return tuple(interval * k for k in range(1, count + 1))
