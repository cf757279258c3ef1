"""Tests for rational time and time ranges."""

import math
from fractions import Fraction

import pytest

from clipedit.errors import ParameterError
from clipedit.timebase import (
    TimeRange,
    seconds_to_time,
    stride,
    stride_times,
)


class TestSecondsToTime:
    def test_float_rounds_to_timescale(self):
        assert seconds_to_time(1.5) == Fraction(3, 2)
        assert seconds_to_time(0.0001) == 0

    def test_string(self):
        assert seconds_to_time("2.25") == Fraction(9, 4)

    def test_fraction_passes_through(self):
        assert seconds_to_time(Fraction(1, 7)) == Fraction(1, 7)

    def test_invalid_string_raises(self):
        with pytest.raises(ParameterError):
            seconds_to_time("soon")

    def test_nan_raises(self):
        with pytest.raises(ParameterError):
            seconds_to_time(float("nan"))


class TestTimeRange:
    def test_end(self):
        assert TimeRange(1, 2).end == 3

    def test_negative_duration_raises(self):
        with pytest.raises(ParameterError, match=">= 0"):
            TimeRange(0, -1)

    def test_contains_is_half_open(self):
        r = TimeRange(1, 2)
        assert r.contains(1)
        assert r.contains(2.999)
        assert not r.contains(3)
        assert not r.contains(0.5)

    def test_overlaps(self):
        assert TimeRange(0, 2).overlaps(TimeRange(1, 2))
        assert not TimeRange(0, 2).overlaps(TimeRange(2, 2))

    def test_from_bounds(self):
        r = TimeRange.from_bounds(Fraction(1, 2), 3)
        assert r.start == Fraction(1, 2)
        assert r.duration == Fraction(5, 2)

    def test_shifted_keeps_duration(self):
        r = TimeRange(0, Fraction(3, 2)).shifted(5)
        assert r == TimeRange(5, Fraction(3, 2))
        assert r.end == Fraction(13, 2)

    def test_split_by_mid_time_is_contiguous(self):
        r = TimeRange(1, Fraction(7, 3))
        first, second = r.split_by_mid_time()
        assert first.start == r.start
        assert first.end == second.start
        assert second.end == r.end
        assert first.duration + second.duration == r.duration


class TestStride:
    def test_uneven_last_range(self):
        ranges = stride(TimeRange(0, Fraction(5, 2)), 1)
        assert [r.duration for r in ranges] == [1, 1, Fraction(1, 2)]
        assert [r.start for r in ranges] == [0, 1, 2]

    @pytest.mark.parametrize("duration,step", [(10, 3), (9, 3), (Fraction(1, 3), 1), (7, Fraction(1, 2))])
    def test_count_and_coverage(self, duration, step):
        r = TimeRange(2, duration)
        ranges = stride(r, step)
        assert len(ranges) == math.ceil(Fraction(duration) / Fraction(step))
        assert ranges[0].start == r.start
        assert ranges[-1].end == r.end
        for prev, nxt in zip(ranges, ranges[1:]):
            assert prev.end == nxt.start
            assert prev.duration == step

    def test_empty_range(self):
        assert stride(TimeRange(0, 0), 1) == []

    def test_non_positive_step_raises(self):
        with pytest.raises(ParameterError):
            stride(TimeRange(0, 5), 0)


class TestStrideTimes:
    def test_points_before_duration(self):
        assert stride_times(Fraction(5, 2), 1) == [0, 1, 2]

    def test_exact_multiple_excludes_end(self):
        assert stride_times(3, 1) == [0, 1, 2]

    def test_non_positive_step_raises(self):
        with pytest.raises(ParameterError):
            stride_times(3, -1)
