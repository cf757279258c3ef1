"""Exporter — renders compositions and raw time ranges to files.

Three paths:

  - export(): a ComposeResult through the frame renderer and moviepy's
    writer. Audio tracks are rebuilt as a CompositeAudioClip of their
    segments, each time-scaled and gain-enveloped as the composition and
    audio mix require.
  - export_time_range(): one source range straight through ffmpeg, no
    composition (trim, and each split segment).
  - export_segments(): concurrent export_time_range over many ranges,
    collecting a per-segment outcome report instead of stopping at the
    first failure.

export_image_sequence() writes the still-image slideshow.
"""

import subprocess
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from fractions import Fraction
from pathlib import Path

import imageio_ffmpeg
import numpy as np
from moviepy import (
    AudioFileClip,
    CompositeAudioClip,
    CompositeVideoClip,
    ImageClip,
    VideoClip,
    vfx,
)
from PIL import Image

from .audio_mix import apply_gain
from .errors import FilesystemError, RenderError
from .geometry import Size
from .media import MediaType
from .render import CompositionRenderer
from .settings import default_settings
from .timebase import TimeRange

_FFMPEG = imageio_ffmpeg.get_ffmpeg_exe()

# Audio-only outputs whose container cannot carry AAC.
_AUDIO_CODECS_BY_SUFFIX = {
    ".mp3": "libmp3lame",
    ".wav": "pcm_s16le",
    ".ogg": "libvorbis",
}


def ensure_directory(path: str | Path) -> Path:
    """Create *path* (and parents) if needed.

    Raises:
        FilesystemError: The directory cannot be created.
    """
    path = Path(path)
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise FilesystemError(f"Cannot create directory {path}: {exc}") from exc
    return path


def _video_ffmpeg_params(settings: dict, size: Size) -> list[str]:
    params = ["-crf", str(settings["crf"]), "-pix_fmt", settings["pixel_format"]]
    width, height = size.as_ints()
    if width % 2 or height % 2:
        # yuv420p needs even dimensions; pad with one black row/column.
        padded = (width + width % 2, height + height % 2)
        print(
            f"  NOTE   {width}x{height} padded to {padded[0]}x{padded[1]} "
            f"for even dimensions",
            flush=True,
        )
        params += ["-vf", "pad=ceil(iw/2)*2:ceil(ih/2)*2"]
    return params


# ── Composition export ───────────────────────────────────────────


def _segment_audio(segment, ramps):
    """One audio segment as a clip placed at its composition offset.

    Raises:
        RenderError: The audio stream cannot be decoded.
    """
    path = segment.source_track.source_path
    try:
        clip = AudioFileClip(path)
    except (OSError, KeyError) as exc:
        raise RenderError(f"Cannot decode audio from {path}: {exc}") from exc
    start = float(segment.source_range.start)
    end = min(float(segment.source_range.end), clip.duration)
    clip = clip.subclipped(start, end)

    if segment.target_duration != segment.source_range.duration:
        clip = clip.with_effects(
            [vfx.MultiplySpeed(final_duration=float(segment.target_duration))]
        )

    offset = float(segment.offset)
    if ramps:
        # Ramps are in composition time; the clip sees its own local time.
        clip = clip.transform(
            lambda get_frame, t: apply_gain(get_frame(t), np.asarray(t) + offset, ramps)
        )
    return clip.with_start(offset)


def _composition_audio(composition, audio_mix):
    """CompositeAudioClip of every audio track, or None without audio."""
    clips = []
    try:
        for track in composition.tracks_of(MediaType.AUDIO):
            params = audio_mix.for_track(track.track_id) if audio_mix else None
            ramps = params.ramps if params else None
            for segment in track.segments:
                if segment.target_range.is_empty:
                    continue
                clips.append(_segment_audio(segment, ramps))
    except RenderError:
        for clip in clips:
            clip.close()
        raise
    if not clips:
        return None
    return CompositeAudioClip(clips).with_duration(float(composition.duration))


def export(
    result,
    output: str | Path,
    settings: dict | None = None,
    quiet: bool = False,
) -> Path:
    """Render a ComposeResult to *output*.

    Video-bearing compositions are written with write_videofile at the
    render instruction's frame rate; audio-only compositions with
    write_audiofile.

    Args:
        result: ComposeResult from an operation.
        output: Destination file; the parent directory is created.
        settings: Resolved settings dict (see clipedit.settings).
        quiet: Suppress moviepy's progress bar.

    Raises:
        RenderError: Empty composition, undecodable source, or a failed
            encode.
    """
    settings = settings or default_settings()
    composition = result.composition
    if composition.is_empty:
        raise RenderError("Nothing to export: the composition has no media")

    output = Path(output)
    ensure_directory(output.parent)
    duration = float(composition.duration)
    logger = None if quiet else "bar"
    label = output.name

    print(f"  START  {label}", flush=True)
    t0 = time.monotonic()
    audio = None
    try:
        audio = _composition_audio(composition, result.audio_mix)
        if composition.has_track(MediaType.VIDEO):
            with CompositionRenderer(composition, result.render_instruction) as renderer:
                fps = (
                    result.render_instruction.frame_rate
                    if result.render_instruction is not None
                    else settings["frame_rate"]
                )
                clip = VideoClip(frame_function=renderer.frame_at, duration=duration)
                if audio is not None:
                    clip = clip.with_audio(audio)
                clip.write_videofile(
                    str(output),
                    fps=fps,
                    codec=settings["codec"],
                    audio_codec=settings["audio_codec"],
                    audio_fps=settings["audio_fps"],
                    preset=settings["preset"],
                    ffmpeg_params=_video_ffmpeg_params(settings, renderer.size),
                    logger=logger,
                )
        else:
            codec = _AUDIO_CODECS_BY_SUFFIX.get(output.suffix.lower(), settings["audio_codec"])
            audio.write_audiofile(
                str(output), fps=settings["audio_fps"], codec=codec, logger=logger,
            )
    except OSError as exc:
        print(f"  FAIL   {label} — {exc}", flush=True)
        raise RenderError(f"Export to {output} failed: {exc}") from exc
    except RenderError as exc:
        print(f"  FAIL   {label} — {exc}", flush=True)
        raise
    finally:
        if audio is not None:
            for clip in audio.clips:
                clip.close()

    elapsed = time.monotonic() - t0
    print(f"  DONE   {label} — {duration:.1f}s media, {elapsed:.1f}s wall", flush=True)
    return output


# ── Direct range export ──────────────────────────────────────────


def export_time_range(
    source: str | Path,
    time_range: TimeRange,
    output: str | Path,
    settings: dict | None = None,
) -> Path:
    """Re-encode one range of *source* to *output* with ffmpeg.

    Re-encoding keeps cuts frame-accurate; stream copy would snap the
    start to the previous keyframe.

    Raises:
        RenderError: ffmpeg exited non-zero.
    """
    settings = settings or default_settings()
    output = Path(output)
    ensure_directory(output.parent)

    cmd = [
        _FFMPEG, "-y",
        "-ss", f"{float(time_range.start):.3f}",
        "-to", f"{float(time_range.end):.3f}",
        "-i", str(source),
        "-c:v", settings["codec"],
        "-preset", settings["preset"],
        "-crf", str(settings["crf"]),
        "-pix_fmt", settings["pixel_format"],
        "-c:a", settings["audio_codec"],
        str(output),
    ]
    try:
        subprocess.run(cmd, check=True, capture_output=True)
    except subprocess.CalledProcessError as exc:
        stderr = exc.stderr.decode(errors="replace").strip().splitlines()
        detail = stderr[-1] if stderr else f"exit status {exc.returncode}"
        raise RenderError(f"ffmpeg failed writing {output}: {detail}") from exc
    return output


# ── Segmented export ─────────────────────────────────────────────


@dataclass
class SegmentOutcome:
    index: int
    time_range: TimeRange
    output: Path
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class SplitReport:
    """Per-segment results of a split, in segment order."""

    outcomes: list[SegmentOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> list[SegmentOutcome]:
        return [o for o in self.outcomes if o.ok]

    @property
    def failed(self) -> list[SegmentOutcome]:
        return [o for o in self.outcomes if not o.ok]

    @property
    def ok(self) -> bool:
        return not self.failed

    def summary(self) -> str:
        lines = [f"{len(self.succeeded)}/{len(self.outcomes)} segments exported"]
        for outcome in self.failed:
            lines.append(f"  FAIL   [{outcome.index}] {outcome.time_range}: {outcome.error}")
        return "\n".join(lines)


def segment_filename(start, step) -> str:
    """NNNNN.mp4 from the integer start second.

    Sub-second steps would repeat the same whole second, so they add the
    milliseconds: NNNNN-mmm.mp4.
    """
    start = Fraction(start)
    seconds = int(start)
    if Fraction(step) >= 1:
        return f"{seconds:05d}.mp4"
    millis = int(round((start - seconds) * 1000))
    return f"{seconds:05d}-{millis:03d}.mp4"


def _export_one(index, source, time_range, output, settings):
    label = f"[{index}] {output.name} {time_range}"
    print(f"  START  {label}", flush=True)
    t0 = time.monotonic()
    export_time_range(source, time_range, output, settings)
    elapsed = time.monotonic() - t0
    print(f"  DONE   {label} — {elapsed:.1f}s wall", flush=True)


def export_segments(
    source: str | Path,
    ranges: list[TimeRange],
    output_dir: str | Path,
    step,
    workers: int | None = None,
    settings: dict | None = None,
) -> SplitReport:
    """Export every range of *source* concurrently into *output_dir*.

    Each segment runs its own ffmpeg process; a failed segment is
    recorded in the report and does not cancel the others.

    Args:
        source: Source media path.
        ranges: Consecutive ranges, e.g. from timebase.stride().
        output_dir: Created if needed.
        step: Stride length, used for naming.
        workers: Max concurrent exports. None = one per segment.
        settings: Resolved settings dict.
    """
    out_dir = ensure_directory(output_dir)
    outcomes = [
        SegmentOutcome(i, r, out_dir / segment_filename(r.start, step))
        for i, r in enumerate(ranges)
    ]
    if not outcomes:
        return SplitReport()

    max_workers = min(workers or len(outcomes), len(outcomes))
    print(f"Exporting {len(outcomes)} segments to {out_dir}/ ({max_workers} workers)\n")

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        futures = {
            pool.submit(_export_one, o.index, source, o.time_range, o.output, settings): o
            for o in outcomes
        }
        for future in as_completed(futures):
            outcome = futures[future]
            try:
                future.result()
            except RenderError as exc:
                outcome.error = exc
                print(f"  FAIL   [{outcome.index}] {outcome.output.name} — {exc}", flush=True)

    return SplitReport(outcomes)


# ── Image slideshow ──────────────────────────────────────────────


def _centered_frame(path: Path, frame_size: tuple[int, int]) -> np.ndarray:
    """Decode *path* and centre it on a black canvas of *frame_size*."""
    try:
        with Image.open(path) as img:
            rgb = img.convert("RGB")
    except OSError as exc:
        raise FilesystemError(f"Cannot read image {path}: {exc}") from exc

    canvas = Image.new("RGB", frame_size, (0, 0, 0))
    canvas.paste(rgb, ((frame_size[0] - rgb.width) // 2, (frame_size[1] - rgb.height) // 2))
    return np.array(canvas)


def export_image_sequence(
    images: list[Path],
    output: str | Path,
    frames_per_image: int,
    settings: dict | None = None,
    quiet: bool = False,
) -> Path:
    """Write *images* as a video, each held for *frames_per_image* frames.

    The first image's pixel size is the output frame size; every image is
    centred on black at that size.

    Raises:
        FilesystemError: An image cannot be decoded.
        RenderError: The encode failed.
    """
    settings = settings or default_settings()
    output = Path(output)
    ensure_directory(output.parent)
    fps = settings["frame_rate"]
    hold = frames_per_image / fps

    try:
        with Image.open(images[0]) as first:
            frame_size = first.size
    except OSError as exc:
        raise FilesystemError(f"Cannot read image {images[0]}: {exc}") from exc

    clips = [
        ImageClip(_centered_frame(path, frame_size)).with_duration(hold).with_start(i * hold)
        for i, path in enumerate(images)
    ]
    slideshow = CompositeVideoClip(clips, size=frame_size).with_duration(hold * len(clips))

    params = _video_ffmpeg_params(settings, Size(*frame_size))

    print(f"  START  {output.name} — {len(images)} images, {hold:.2f}s each", flush=True)
    try:
        slideshow.write_videofile(
            str(output),
            fps=fps,
            codec=settings["codec"],
            audio=False,
            preset=settings["preset"],
            ffmpeg_params=params,
            logger=None if quiet else "bar",
        )
    except OSError as exc:
        raise RenderError(f"Export to {output} failed: {exc}") from exc
    print(f"  DONE   {output.name}", flush=True)
    return output
