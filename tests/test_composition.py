"""Tests for the composition model and timeline builder."""

from fractions import Fraction

import pytest

from clipedit.composition import Composition
from clipedit.errors import CompositionError
from clipedit.media import MediaType
from clipedit.timebase import TimeRange
from clipedit.timeline import (
    copy_source_tracks,
    insert_source_track,
    scale_track,
    speed_scaled_duration,
)


class TestCompositionTrack:
    def test_track_ids_start_at_one(self):
        composition = Composition()
        first = composition.add_track(MediaType.VIDEO)
        second = composition.add_track(MediaType.AUDIO)
        assert (first.track_id, second.track_id) == (1, 2)
        assert composition.track_by_id(2) is second

    def test_no_audio_is_none(self, make_source):
        composition = Composition()
        copy_source_tracks(composition, make_source(audio=False))
        assert composition.track(MediaType.AUDIO) is None
        assert not composition.has_track(MediaType.AUDIO)

    def test_insert_and_duration(self, make_source):
        source = make_source(duration=4)
        composition = Composition()
        track = insert_source_track(composition, source, MediaType.VIDEO, at=2)
        assert track.time_range == TimeRange(0, 6)
        assert composition.duration == 6
        assert track.segment_at(1) is None
        assert track.segment_at(2).source_time(3) == 1

    def test_overlap_raises(self, make_source):
        source = make_source(duration=4)
        composition = Composition()
        track = insert_source_track(composition, source, MediaType.VIDEO)
        with pytest.raises(CompositionError, match="overlaps"):
            track.insert_time_range(source.first_track(MediaType.VIDEO), TimeRange(0, 1), 3)

    def test_adjacent_segments_allowed(self, make_source):
        source = make_source(duration=4)
        composition = Composition()
        track = insert_source_track(composition, source, MediaType.VIDEO)
        track.insert_time_range(source.first_track(MediaType.VIDEO), TimeRange(0, 1), 4)
        assert composition.duration == 5

    def test_range_outside_source_raises(self, make_source):
        source = make_source(duration=4)
        composition = Composition()
        with pytest.raises(CompositionError, match="outside"):
            insert_source_track(
                composition, source, MediaType.VIDEO, time_range=TimeRange(3, 2),
            )

    def test_media_type_mismatch_raises(self, make_source):
        source = make_source()
        track = Composition().add_track(MediaType.VIDEO)
        with pytest.raises(CompositionError, match="cannot insert audio"):
            track.insert_time_range(source.first_track(MediaType.AUDIO), TimeRange(0, 1), 0)

    def test_negative_offset_raises(self, make_source):
        source = make_source()
        track = Composition().add_track(MediaType.VIDEO)
        with pytest.raises(CompositionError, match="negative"):
            track.insert_time_range(source.first_track(MediaType.VIDEO), TimeRange(0, 1), -1)


class TestScaleTimeRange:
    def test_speed_up_halves_duration(self, make_source):
        source = make_source(duration=10)
        composition = Composition()
        tracks = copy_source_tracks(composition, source)
        for track in tracks.values():
            scale_track(track, source.full_range, speed_scaled_duration(source.duration, 2.0))
        assert composition.duration == 5
        segment = tracks[MediaType.VIDEO].segments[0]
        assert segment.time_scale == 2
        assert segment.source_time(1) == 2

    def test_speed_one_is_noop(self, make_source):
        source = make_source(duration=Fraction(37, 3))
        composition = Composition()
        track = insert_source_track(composition, source, MediaType.VIDEO)
        scale_track(track, source.full_range, speed_scaled_duration(source.duration, 1.0))
        assert composition.duration == source.duration

    def test_later_segments_shift(self, make_source):
        source = make_source(duration=4)
        composition = Composition()
        track = insert_source_track(composition, source, MediaType.VIDEO)
        track.insert_time_range(source.first_track(MediaType.VIDEO), TimeRange(0, 2), 4)
        track.scale_time_range(TimeRange(0, 4), 8)
        assert [s.offset for s in track.segments] == [0, 8]
        assert track.time_range.end == 10

    def test_straddling_segment_raises(self, make_source):
        source = make_source(duration=4)
        composition = Composition()
        track = insert_source_track(composition, source, MediaType.VIDEO)
        with pytest.raises(CompositionError, match="straddles"):
            track.scale_time_range(TimeRange(0, 2), 1)
        # Validation happens before any segment moves.
        assert track.segments[0].target_duration == 4

    def test_scale_none_track_is_noop(self):
        scale_track(None, TimeRange(0, 1), 2)

    def test_speed_scaled_duration(self):
        assert speed_scaled_duration(10, 4) == Fraction(5, 2)
        assert speed_scaled_duration(3, 0.5) == 6
