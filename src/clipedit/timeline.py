"""Timeline builder — splice MediaSource tracks into a Composition.

Operations never touch composition tracks directly; they call these
helpers, which copy a source's first track of each media type in full
(or a given range) at a target offset. A source without a track of the
requested type is skipped: the composition simply has no such track.
"""

from fractions import Fraction

from .composition import Composition, CompositionTrack
from .media import MediaSource, MediaType
from .timebase import TimeRange


def insert_source_track(
    composition: Composition,
    source: MediaSource,
    media_type: MediaType,
    at=0,
    time_range: TimeRange | None = None,
) -> CompositionTrack | None:
    """Add a new composition track holding *source*'s first *media_type* track.

    Args:
        composition: Composition to extend.
        source: Loaded media source.
        media_type: Which kind of track to copy.
        at: Destination offset in seconds (rational).
        time_range: Source range to insert; defaults to the whole source.

    Returns:
        The new CompositionTrack, or None if the source has no track of
        that type.

    Raises:
        CompositionError: The backend range checks reject the insertion.
    """
    source_track = source.first_track(media_type)
    if source_track is None:
        return None

    if time_range is None:
        time_range = source.full_range
    track = composition.add_track(media_type)
    track.insert_time_range(source_track, time_range, Fraction(at))
    return track


def copy_source_tracks(
    composition: Composition,
    source: MediaSource,
    media_types=(MediaType.VIDEO, MediaType.AUDIO),
    at=0,
    time_range: TimeRange | None = None,
) -> dict[MediaType, CompositionTrack | None]:
    """Insert the first track of each of *media_types*; see insert_source_track.

    Returns a dict with an entry for every requested type, None where the
    source lacks that type.
    """
    return {
        media_type: insert_source_track(
            composition, source, media_type, at=at, time_range=time_range,
        )
        for media_type in media_types
    }


def scale_track(
    track: CompositionTrack | None, time_range: TimeRange, to_duration,
) -> None:
    """Time-scale *time_range* of *track* to *to_duration*. None is a no-op."""
    if track is None:
        return
    track.scale_time_range(time_range, to_duration)


def speed_scaled_duration(duration, speed: float) -> Fraction:
    """Destination duration for playing *duration* at *speed*x.

    speed > 1 shortens, speed < 1 lengthens.
    """
    return Fraction(duration) * (1 / Fraction(speed))
