"""In-memory multi-track timeline.

A Composition holds an ordered set of tracks, each tagged video or audio.
A track is an ordered list of segments; each segment maps a range of a
source track onto a span of destination (composition) time. Segments
within one track never overlap in destination time.

Compositions are mutable while an operation builds them and are treated
as read-only once wrapped in a ComposeResult.
"""

from dataclasses import dataclass, field
from fractions import Fraction

from .errors import CompositionError
from .media import MediaType, SourceTrack
from .timebase import ZERO, TimeRange


@dataclass
class Segment:
    """A source range placed at *offset*, playing for *target_duration*.

    target_duration differs from the source range's duration only when
    the segment has been time-scaled (speed change).
    """

    source_track: SourceTrack
    source_range: TimeRange
    offset: Fraction
    target_duration: Fraction

    @property
    def target_range(self) -> TimeRange:
        return TimeRange(self.offset, self.target_duration)

    @property
    def time_scale(self) -> Fraction:
        """Source seconds consumed per destination second."""
        if self.target_duration == 0:
            return Fraction(1)
        return self.source_range.duration / self.target_duration

    def source_time(self, t) -> Fraction:
        """Map destination time *t* to the matching source time."""
        return self.source_range.start + (Fraction(t) - self.offset) * self.time_scale


@dataclass
class CompositionTrack:
    track_id: int
    media_type: MediaType
    segments: list[Segment] = field(default_factory=list)

    @property
    def time_range(self) -> TimeRange:
        """Destination span from 0 to the end of the last segment."""
        if not self.segments:
            return TimeRange(ZERO, ZERO)
        return TimeRange(ZERO, max(s.target_range.end for s in self.segments))

    def segment_at(self, t) -> Segment | None:
        for segment in self.segments:
            if segment.target_range.contains(t):
                return segment
        return None

    def insert_time_range(
        self, source_track: SourceTrack, source_range: TimeRange, at,
    ) -> Segment:
        """Splice *source_range* of *source_track* in at destination time *at*.

        Raises:
            CompositionError: Media type mismatch, a range outside the
                source track, a negative offset, or overlap with an
                existing segment.
        """
        at = Fraction(at)
        if source_track.media_type is not self.media_type:
            raise CompositionError(
                f"Track {self.track_id}: cannot insert {source_track.media_type.value} "
                f"into a {self.media_type.value} track"
            )
        if at < 0:
            raise CompositionError(f"Track {self.track_id}: negative insertion offset {float(at)}")
        available = source_track.time_range
        if source_range.start < available.start or source_range.end > available.end:
            raise CompositionError(
                f"Track {self.track_id}: range {source_range} lies outside "
                f"source {source_track.source_path} {available}"
            )

        segment = Segment(source_track, source_range, at, source_range.duration)
        if not segment.target_range.is_empty:
            for existing in self.segments:
                if existing.target_range.overlaps(segment.target_range):
                    raise CompositionError(
                        f"Track {self.track_id}: segment at {segment.target_range} "
                        f"overlaps existing segment at {existing.target_range}"
                    )
        self.segments.append(segment)
        self.segments.sort(key=lambda s: s.offset)
        return segment

    def scale_time_range(self, time_range: TimeRange, to_duration) -> None:
        """Stretch or squeeze the destination span *time_range* to *to_duration*.

        Segments inside the range scale proportionally; segments after it
        shift by the change in length.

        Raises:
            CompositionError: A segment straddles a range boundary, or the
                range is empty.
        """
        to_duration = Fraction(to_duration)
        if time_range.is_empty:
            raise CompositionError(f"Track {self.track_id}: cannot scale an empty range")
        if to_duration <= 0:
            raise CompositionError(
                f"Track {self.track_id}: scaled duration must be > 0, got {float(to_duration)}"
            )

        for segment in self.segments:
            span = segment.target_range
            inside = span.start >= time_range.start and span.end <= time_range.end
            if not inside and span.overlaps(time_range):
                raise CompositionError(
                    f"Track {self.track_id}: segment {span} straddles scale range {time_range}"
                )

        factor = to_duration / time_range.duration
        delta = to_duration - time_range.duration
        for segment in self.segments:
            span = segment.target_range
            if span.start >= time_range.start and span.end <= time_range.end:
                segment.offset = time_range.start + (span.start - time_range.start) * factor
                segment.target_duration = span.duration * factor
            elif span.start >= time_range.end:
                segment.offset += delta


class Composition:
    """Ordered tracks built up by the timeline builder."""

    def __init__(self):
        self.tracks: list[CompositionTrack] = []
        self._next_id = 1

    def __repr__(self):
        kinds = ", ".join(f"{t.track_id}:{t.media_type.value}" for t in self.tracks)
        return f"Composition([{kinds}], duration={float(self.duration):.3f}s)"

    def add_track(self, media_type: MediaType) -> CompositionTrack:
        track = CompositionTrack(self._next_id, media_type)
        self._next_id += 1
        self.tracks.append(track)
        return track

    def tracks_of(self, media_type: MediaType) -> list[CompositionTrack]:
        return [t for t in self.tracks if t.media_type is media_type]

    def track(self, media_type: MediaType) -> CompositionTrack | None:
        """First track of *media_type*, or None if the composition has none."""
        tracks = self.tracks_of(media_type)
        return tracks[0] if tracks else None

    def track_by_id(self, track_id: int) -> CompositionTrack:
        for track in self.tracks:
            if track.track_id == track_id:
                return track
        raise KeyError(f"No track with id {track_id}")

    def has_track(self, media_type: MediaType) -> bool:
        return self.track(media_type) is not None

    @property
    def is_empty(self) -> bool:
        return not any(t.segments for t in self.tracks)

    @property
    def duration(self) -> Fraction:
        return max((t.time_range.end for t in self.tracks), default=ZERO)
