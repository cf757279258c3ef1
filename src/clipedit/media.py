"""Media sources — probed metadata and track handles for an input file.

A MediaSource wraps one file on disk. Nothing is known about it until
load() runs the probe (ffmpeg via moviepy's info parser); afterwards the
duration, natural frame size, display transform and per-type track list
are fixed for the source's lifetime.
"""

from dataclasses import dataclass, field
from enum import Enum
from fractions import Fraction
from pathlib import Path

from moviepy.video.io.ffmpeg_reader import ffmpeg_parse_infos

from .errors import LoadError
from .geometry import (
    AffineTransform,
    OrientationInfo,
    Size,
    orientation_from_transform,
    rotation_transform,
)
from .timebase import ZERO, TimeRange, seconds_to_time


class MediaType(Enum):
    VIDEO = "video"
    AUDIO = "audio"


@dataclass(frozen=True)
class SourceTrack:
    """One stream of a source file.

    ``rotation`` is the display rotation in degrees (0/90/180/270) that
    decoders apply when presenting frames; ``preferred_transform`` is the
    same information as an affine transform over the natural frame.
    """

    source_path: str
    media_type: MediaType
    stream_index: int
    time_range: TimeRange
    natural_size: Size = Size(0, 0)
    preferred_transform: AffineTransform = field(default_factory=AffineTransform)
    rotation: int = 0
    rate: float | None = None


def _normalize_rotation(value) -> int:
    """Fold a probed rotation (possibly negative or fractional) to 0/90/180/270."""
    try:
        degrees = int(round(float(value)))
    except (TypeError, ValueError):
        return 0
    degrees %= 360
    return degrees if degrees in (90, 180, 270) else 0


class MediaSource:
    """A source asset and its lazily loaded metadata."""

    def __init__(self, path: str | Path, probe=None):
        self.path = str(path)
        self._probe = probe or ffmpeg_parse_infos
        self.duration: Fraction = ZERO
        self.natural_size = Size(0, 0)
        self.preferred_transform = AffineTransform.identity()
        self._tracks: dict[MediaType, tuple[SourceTrack, ...]] = {}
        self._loaded = False

    def __repr__(self):
        return f"MediaSource({self.path!r}, duration={float(self.duration):.3f}s)"

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def full_range(self) -> TimeRange:
        return TimeRange(ZERO, self.duration)

    @property
    def orientation_info(self) -> OrientationInfo:
        return orientation_from_transform(self.preferred_transform)

    # ── Loading ──────────────────────────────────────────────────

    def load(self) -> "MediaSource":
        """Probe the file and populate duration, size, transform and tracks.

        Loading twice is a no-op. Returns self so callers can chain.

        Raises:
            LoadError: The file is missing or unreadable, or reports no
                duration.
        """
        if self._loaded:
            return self

        try:
            infos = self._probe(self.path)
        except (OSError, ValueError) as exc:
            raise LoadError(f"Cannot read media metadata from {self.path}: {exc}") from exc

        seconds = infos.get("duration")
        if seconds is None:
            raise LoadError(f"No duration reported for {self.path}")
        duration = seconds_to_time(seconds)
        rotation = _normalize_rotation(infos.get("video_rotation", 0))

        tracks = {MediaType.VIDEO: [], MediaType.AUDIO: []}
        for stream_input in infos.get("inputs", []):
            for stream in stream_input.get("streams", []):
                if not stream:
                    continue
                try:
                    media_type = MediaType(stream.get("stream_type"))
                except ValueError:
                    continue  # data / subtitle streams
                tracks[media_type].append(
                    self._make_track(stream, media_type, duration, rotation)
                )

        self.duration = duration
        self._tracks = {k: tuple(v) for k, v in tracks.items()}

        video_tracks = self._tracks[MediaType.VIDEO]
        if video_tracks:
            first = video_tracks[0]
            self.natural_size = first.natural_size
            self.preferred_transform = first.preferred_transform

        self._loaded = True
        return self

    def _make_track(self, stream, media_type, duration, rotation) -> SourceTrack:
        time_range = TimeRange(ZERO, duration)
        index = int(stream.get("stream_number", 0))
        rate = stream.get("fps")
        if not isinstance(rate, (int, float)):
            rate = None

        if media_type is MediaType.AUDIO:
            return SourceTrack(self.path, media_type, index, time_range, rate=rate)

        width, height = stream.get("size") or (0, 0)
        size = Size(width, height)
        transform, _ = rotation_transform(rotation, size)
        return SourceTrack(
            self.path, media_type, index, time_range,
            natural_size=size,
            preferred_transform=transform,
            rotation=rotation,
            rate=rate,
        )

    # ── Track access ─────────────────────────────────────────────

    def tracks_of(self, media_type: MediaType) -> tuple[SourceTrack, ...]:
        """All tracks of *media_type*, in stream order. Empty before load."""
        return self._tracks.get(media_type, ())

    def first_track(self, media_type: MediaType) -> SourceTrack | None:
        tracks = self.tracks_of(media_type)
        return tracks[0] if tracks else None


def load_source(path: str | Path, probe=None) -> MediaSource:
    """Create and load a MediaSource in one step."""
    return MediaSource(path, probe=probe).load()
