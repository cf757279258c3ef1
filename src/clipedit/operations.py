"""The thirteen editing operations.

Composition operations take a MediaSource (loaded on demand) plus their
own parameters and return a ComposeResult for export(). The segmenting
and sampling operations (trim, split, generate_images, images_to_video)
write their files directly and return what they wrote.

Every video-bearing composition gets the same base layer: a portrait
source is turned upright, anything else is drawn as-is, rendered at a
fixed frame rate.
"""

from dataclasses import dataclass
from pathlib import Path

from .audio_mix import AudioMix, fade_in_out_mix
from .common import WHITE
from .composition import Composition
from .errors import FilesystemError, ParameterError
from .export import (
    SplitReport,
    export_image_sequence,
    export_segments,
    export_time_range,
)
from .geometry import Rect
from .instructions import (
    RenderInstruction,
    build_crop_instruction,
    build_merge_instruction,
    build_oriented_instruction,
    build_rotation_instruction,
    image_overlay_layer,
    text_overlay_layer,
    with_overlay,
)
from .media import MediaSource, MediaType, load_source
from .sampler import FrameSampler, SampleResult
from .settings import FADE_DURATION, FRAME_RATE, IMAGE_EXTENSIONS, TEXT_BASE_FONT_SIZE
from .timebase import ZERO, TimeRange, seconds_to_time, stride, stride_times
from .timeline import copy_source_tracks, insert_source_track, scale_track, speed_scaled_duration


@dataclass(frozen=True)
class ComposeResult:
    composition: Composition
    render_instruction: RenderInstruction | None = None
    audio_mix: AudioMix | None = None


# ── Helpers ──────────────────────────────────────────────────────


def _frame_rate(settings: dict | None) -> float:
    return (settings or {}).get("frame_rate", FRAME_RATE)


def _fade_duration(settings: dict | None) -> float:
    return (settings or {}).get("fade_duration", FADE_DURATION)


def _loaded(source: MediaSource) -> MediaSource:
    return source.load()


def _oriented_copy(source: MediaSource, settings: dict | None) -> ComposeResult:
    """Video and audio copied in full, with the orientation-corrected layer."""
    composition = Composition()
    tracks = copy_source_tracks(composition, source)
    video = tracks[MediaType.VIDEO]
    instruction = None
    if video is not None:
        instruction = build_oriented_instruction(
            video, source, source.full_range, _frame_rate(settings),
        )
    return ComposeResult(composition, instruction)


def _check_overlay_window(start, duration) -> None:
    """Validate an overlay shown from *start* for *duration* seconds (None: to the end).

    Raises:
        ParameterError: Negative start or duration.
    """
    start = seconds_to_time(start)
    if start < 0:
        raise ParameterError(f"Overlay start must be >= 0, got {float(start)}")
    if duration is not None:
        duration = seconds_to_time(duration)
        if duration < 0:
            raise ParameterError(f"Overlay duration must be >= 0, got {float(duration)}")


def _list_directory(directory: str | Path) -> list[Path]:
    """Non-hidden regular files in *directory*, sorted by name.

    Raises:
        FilesystemError: Missing, not a directory, or unreadable.
    """
    directory = Path(directory)
    try:
        entries = list(directory.iterdir())
    except OSError as exc:
        raise FilesystemError(f"Cannot read directory {directory}: {exc}") from exc
    files = [p for p in entries if p.is_file() and not p.name.startswith(".")]
    return sorted(files, key=lambda p: p.name)


# ── Geometry operations ──────────────────────────────────────────


def rotate(source: MediaSource, angle: float, settings: dict | None = None) -> ComposeResult:
    """Rotate the video by *angle* degrees; only right angles have an effect."""
    source = _loaded(source)
    composition = Composition()
    tracks = copy_source_tracks(composition, source)
    video = tracks[MediaType.VIDEO]
    instruction = None
    if video is not None:
        instruction = build_rotation_instruction(video, source, angle, _frame_rate(settings))
    return ComposeResult(composition, instruction)


def crop(source: MediaSource, rect: Rect, settings: dict | None = None) -> ComposeResult:
    """Crop to *rect* (bottom-left origin) of the upright frame.

    An odd width or height is padded with one black column or row at
    export, since the output pixel format needs even dimensions.

    Raises:
        ParameterError: The rectangle has no area.
    """
    if rect.is_empty:
        raise ParameterError(f"Crop rectangle must have a positive size, got {rect}")
    source = _loaded(source)
    composition = Composition()
    tracks = copy_source_tracks(composition, source)
    video = tracks[MediaType.VIDEO]
    instruction = None
    if video is not None:
        instruction = build_crop_instruction(video, source, rect, _frame_rate(settings))
    return ComposeResult(composition, instruction)


# ── Timing operations ────────────────────────────────────────────


def speed(source: MediaSource, factor: float, settings: dict | None = None) -> ComposeResult:
    """Play the whole source at *factor*x; 2.0 halves the duration.

    Raises:
        ParameterError: factor <= 0.
    """
    if factor <= 0:
        raise ParameterError(f"Speed must be > 0, got {factor}")
    source = _loaded(source)
    composition = Composition()
    tracks = copy_source_tracks(composition, source)

    if not source.full_range.is_empty:
        scaled = speed_scaled_duration(source.duration, factor)
        for track in tracks.values():
            scale_track(track, source.full_range, scaled)

    video = tracks[MediaType.VIDEO]
    instruction = None
    if video is not None:
        instruction = build_oriented_instruction(
            video, source, video.time_range, _frame_rate(settings),
        )
    return ComposeResult(composition, instruction)


def trim(
    source: MediaSource,
    start,
    end,
    output: str | Path,
    settings: dict | None = None,
) -> Path:
    """Export [start, end) of the source to *output*.

    *end* past the source duration is clamped to it.

    Raises:
        ParameterError: start < 0, start >= end, or start past the end of
            the source.
    """
    start, end = seconds_to_time(start), seconds_to_time(end)
    if start < 0:
        raise ParameterError(f"Trim start must be >= 0, got {float(start)}")
    if start >= end:
        raise ParameterError(
            f"Trim start ({float(start)}) must be before end ({float(end)})"
        )
    source = _loaded(source)
    if start >= source.duration:
        raise ParameterError(
            f"Trim start ({float(start)}) is past the end of {source.path} "
            f"({float(source.duration):.3f}s)"
        )
    end = min(end, source.duration)
    return export_time_range(source.path, TimeRange.from_bounds(start, end), output, settings)


def merge(
    input_dir: str | Path,
    settings: dict | None = None,
    probe=None,
) -> ComposeResult:
    """Concatenate every file in *input_dir*, in filename order.

    Hidden files are skipped. Every merged clip is drawn upright and the
    whole timeline renders at one frame rate.

    Raises:
        FilesystemError: The directory is unreadable or holds no files.
        LoadError: A file in the directory is not readable media.
    """
    files = _list_directory(input_dir)
    if not files:
        raise FilesystemError(f"No files to merge in {input_dir}")

    composition = Composition()
    entries = []
    at = ZERO
    for path in files:
        source = load_source(path, probe=probe)
        tracks = copy_source_tracks(composition, source, at=at)
        video = tracks[MediaType.VIDEO]
        if video is not None:
            entries.append((video, source, source.full_range.shifted(at)))
        at += source.duration

    instruction = build_merge_instruction(entries, _frame_rate(settings))
    return ComposeResult(composition, instruction)


def split(
    source: MediaSource,
    duration,
    output_dir: str | Path,
    workers: int | None = None,
    settings: dict | None = None,
) -> SplitReport:
    """Cut the source into consecutive *duration*-second files, concurrently.

    Raises:
        ParameterError: duration <= 0.
    """
    step = seconds_to_time(duration)
    if step <= 0:
        raise ParameterError(f"Split duration must be > 0, got {duration}")
    source = _loaded(source)
    if workers is None and settings:
        workers = settings.get("workers")
    ranges = stride(source.full_range, step)
    return export_segments(source.path, ranges, output_dir, step, workers, settings)


# ── Stream extraction ────────────────────────────────────────────


def extract_video(source: MediaSource, settings: dict | None = None) -> ComposeResult:
    """The video track alone, upright."""
    source = _loaded(source)
    composition = Composition()
    video = insert_source_track(composition, source, MediaType.VIDEO)
    instruction = None
    if video is not None:
        instruction = build_oriented_instruction(
            video, source, source.full_range, _frame_rate(settings),
        )
    return ComposeResult(composition, instruction)


def extract_audio(source: MediaSource, settings: dict | None = None) -> ComposeResult:
    """The audio track alone."""
    source = _loaded(source)
    composition = Composition()
    insert_source_track(composition, source, MediaType.AUDIO)
    return ComposeResult(composition)


# ── Overlays ─────────────────────────────────────────────────────


def overlay_image(
    source: MediaSource,
    image_path: str | Path,
    start,
    duration,
    settings: dict | None = None,
) -> ComposeResult:
    """Fade *image_path* in at *start* and out after *duration* seconds.

    The image sits at the frame's bottom-left corner at its own size.

    Raises:
        ParameterError: Negative start or duration, or an unreadable image.
    """
    _check_overlay_window(start, duration)
    source = _loaded(source)
    result = _oriented_copy(source, settings)
    if result.render_instruction is not None:
        layer = image_overlay_layer(
            image_path, float(start), float(duration), _fade_duration(settings),
        )
        with_overlay(result.render_instruction, layer)
    return result


def overlay_text(
    source: MediaSource,
    text: str,
    font_size: float = TEXT_BASE_FONT_SIZE,
    color: tuple[int, int, int, int] = WHITE,
    start=0,
    duration=None,
    settings: dict | None = None,
) -> ComposeResult:
    """Centre *text* on the frame, fading in at *start*.

    The rendered font size grows with the frame width. Without a
    duration the text stays until the end.

    Raises:
        ParameterError: Negative start or duration.
    """
    _check_overlay_window(start, duration)
    source = _loaded(source)
    result = _oriented_copy(source, settings)
    instruction = result.render_instruction
    if instruction is not None:
        layer = text_overlay_layer(
            text,
            instruction.render_size,
            font_size=font_size,
            color=color,
            start=float(start),
            duration=None if duration is None else float(duration),
            fade=_fade_duration(settings),
        )
        with_overlay(instruction, layer)
    return result


def overlay_sound(
    source: MediaSource,
    sound: MediaSource,
    settings: dict | None = None,
) -> ComposeResult:
    """Mix *sound* over the source from time 0, faded in then out.

    Only the first min(sound, source) seconds of the sound are inserted,
    not its whole range, so the composition keeps the source's duration.
    Its volume rises from 0 to 1 over the first half of that span and
    falls back to 0 at its end, where the cut happens.
    """
    source = _loaded(source)
    sound = _loaded(sound)
    result = _oriented_copy(source, settings)
    composition = result.composition

    span = TimeRange(ZERO, min(sound.duration, source.duration))
    track = insert_source_track(composition, sound, MediaType.AUDIO, time_range=span)
    if track is None or span.is_empty:
        return result
    mix = fade_in_out_mix(track.track_id, track.time_range, source.duration)
    return ComposeResult(composition, result.render_instruction, mix)


# ── Stills ───────────────────────────────────────────────────────


def generate_images(
    source: MediaSource,
    output_dir: str | Path,
    times=None,
    stride=None,
) -> list[SampleResult]:
    """Write JPEG snapshots at explicit *times* or every *stride* seconds.

    Explicit times win when both are given.

    Raises:
        ParameterError: Neither a non-empty times list nor a positive
            stride.
    """
    step = seconds_to_time(stride) if stride is not None else ZERO
    if not times and step <= 0:
        raise ParameterError("generate-images needs --times or a positive --stride")
    source = _loaded(source)

    if times:
        sample_times = [seconds_to_time(t) for t in times]
    else:
        sample_times = stride_times(source.duration, step)
    return FrameSampler(source.path).sample(sample_times, output_dir)


def images_to_video(
    images_dir: str | Path,
    output: str | Path,
    frame_duration: float,
    settings: dict | None = None,
    quiet: bool = False,
) -> Path:
    """Turn the .png/.jpg/.jpeg files of *images_dir* into a slideshow.

    Images play in filename order, each for *frame_duration* seconds,
    centred on black at the first image's size.

    Raises:
        FilesystemError: Unreadable directory, no images, or an
            undecodable image.
        ParameterError: frame_duration shorter than one frame.
    """
    fps = _frame_rate(settings)
    frames_per_image = int(frame_duration * fps)
    if frames_per_image < 1:
        raise ParameterError(
            f"Frame duration {frame_duration}s is shorter than one frame at {fps}fps"
        )

    images = [
        p for p in _list_directory(images_dir)
        if p.suffix.lower() in IMAGE_EXTENSIONS
    ]
    if not images:
        raise FilesystemError(f"No .png/.jpg/.jpeg images in {images_dir}")
    return export_image_sequence(images, output, frames_per_image, settings, quiet=quiet)


# ── Registry ─────────────────────────────────────────────────────
# Maps CLI subcommand name → operation.

OPERATIONS = {
    "rotate": rotate,
    "crop": crop,
    "speed": speed,
    "trim": trim,
    "merge": merge,
    "split": split,
    "extract-video": extract_video,
    "extract-audio": extract_audio,
    "overlay-image": overlay_image,
    "overlay-text": overlay_text,
    "overlay-sound": overlay_sound,
    "generate-images": generate_images,
    "images-to-video": images_to_video,
}
