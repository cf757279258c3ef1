"""Rational time arithmetic for timelines.

All timeline times are fractions.Fraction seconds. Values parsed from
user input are quantized to a 600 ticks-per-second timescale, which
divides evenly into 24, 25, 30, 50 and 60 fps frame boundaries.
"""

import math
from dataclasses import dataclass
from fractions import Fraction

from .errors import ParameterError
from .settings import TIMESCALE


ZERO = Fraction(0)


def seconds_to_time(seconds, timescale: int = TIMESCALE) -> Fraction:
    """Convert seconds (float, int, str or Fraction) to rational time.

    Floats and strings are rounded to the nearest tick of *timescale*.
    Fractions pass through untouched.
    """
    if isinstance(seconds, Fraction):
        return seconds
    if isinstance(seconds, str):
        try:
            seconds = float(seconds)
        except ValueError:
            raise ParameterError(f"Invalid seconds value: '{seconds}'") from None
    if not math.isfinite(seconds):
        raise ParameterError(f"Invalid seconds value: {seconds}")
    return Fraction(round(seconds * timescale), timescale)


@dataclass(frozen=True)
class TimeRange:
    """A start time plus a non-negative duration."""

    start: Fraction
    duration: Fraction

    def __post_init__(self):
        object.__setattr__(self, "start", Fraction(self.start))
        object.__setattr__(self, "duration", Fraction(self.duration))
        if self.duration < 0:
            raise ParameterError(
                f"TimeRange duration must be >= 0, got {float(self.duration)}"
            )

    @classmethod
    def from_bounds(cls, start, end) -> "TimeRange":
        return cls(Fraction(start), Fraction(end) - Fraction(start))

    @property
    def end(self) -> Fraction:
        return self.start + self.duration

    @property
    def is_empty(self) -> bool:
        return self.duration == 0

    def contains(self, t) -> bool:
        """Half-open membership: start <= t < end."""
        return self.start <= t < self.end

    def overlaps(self, other: "TimeRange") -> bool:
        return self.start < other.end and other.start < self.end

    def shifted(self, offset) -> "TimeRange":
        return TimeRange(self.start + offset, self.duration)

    def split_by_mid_time(self) -> tuple["TimeRange", "TimeRange"]:
        """Split into two contiguous halves meeting at the midpoint."""
        half = self.duration / 2
        first = TimeRange(self.start, half)
        return first, TimeRange(first.end, self.duration - half)

    def __str__(self):
        return f"[{float(self.start):.3f}s, {float(self.end):.3f}s)"


def stride(time_range: TimeRange, by) -> list[TimeRange]:
    """Partition *time_range* into consecutive sub-ranges of length *by*.

    The last sub-range is shorter when the duration is not a multiple
    of the step. An empty range yields no sub-ranges.
    """
    step = Fraction(by)
    if step <= 0:
        raise ParameterError(f"Stride must be > 0, got {float(step)}")

    ranges = []
    cursor = time_range.start
    while cursor < time_range.end:
        length = min(step, time_range.end - cursor)
        ranges.append(TimeRange(cursor, length))
        cursor += length
    return ranges


def stride_times(duration, step) -> list[Fraction]:
    """Time points 0, step, 2*step, ... strictly before *duration*."""
    step = Fraction(step)
    if step <= 0:
        raise ParameterError(f"Stride must be > 0, got {float(step)}")

    times = []
    t = ZERO
    while t < duration:
        times.append(t)
        t += step
    return times
