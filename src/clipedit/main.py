"""Command-line entry point for clipedit.

Usage:
    clipedit rotate          --input in.mp4 --output out.mp4 --angle 90
    clipedit crop            --input in.mp4 --output out.mp4 --crop-rect "0 0 640 360"
    clipedit speed           --input in.mp4 --output out.mp4 --speed 2
    clipedit trim            --input in.mp4 --output out.mp4 --start 5 --end 12.5
    clipedit split           --input in.mp4 --output parts/ --duration 10 [--workers 4]
    clipedit merge           --input clips/ --output merged.mp4
    clipedit extract-video   --input in.mp4 --output video.mp4
    clipedit extract-audio   --input in.mp4 --output audio.m4a
    clipedit overlay-image   --input in.mp4 --output out.mp4 --image logo.png --start 1 --duration 3
    clipedit overlay-text    --input in.mp4 --output out.mp4 --text "Hello" [--size 18] [--color #FFFFFFFF]
    clipedit overlay-sound   --input in.mp4 --output out.mp4 --sound music.mp3
    clipedit generate-images --input in.mp4 --output frames/ (--times 1 2.5 | --stride 5)
    clipedit images-to-video --images-folder stills/ --duration 2 --output slideshow.mp4

Every subcommand also accepts --settings settings.yaml and --quiet.

Exit codes: 0 success, 1 other editing failure, 2 bad parameters,
3 unreadable input, 4 timeline assembly failure, 5 render failure
(including a split with failed segments), 6 filesystem failure.
"""

import argparse
import sys

from .common import WHITE, parse_hex_color, parse_rect
from .errors import EditError, ParameterError, RenderError
from .export import export
from .media import MediaSource
from .operations import OPERATIONS
from .settings import TEXT_BASE_FONT_SIZE, default_settings, load_settings


# ── Subcommand handlers ──────────────────────────────────────────
# Each takes (parsed args, settings) and either returns a ComposeResult
# to export to --output, or writes its own files and returns None.


def _source(parsed) -> MediaSource:
    return MediaSource(parsed.input).load()


def _run_rotate(parsed, settings):
    return OPERATIONS["rotate"](_source(parsed), parsed.angle, settings=settings)


def _run_crop(parsed, settings):
    rect = parse_rect(parsed.crop_rect)
    return OPERATIONS["crop"](_source(parsed), rect, settings=settings)


def _run_speed(parsed, settings):
    return OPERATIONS["speed"](_source(parsed), parsed.speed, settings=settings)


def _run_trim(parsed, settings):
    OPERATIONS["trim"](_source(parsed), parsed.start, parsed.end, parsed.output, settings=settings)
    print(f"Done: {parsed.output}")


def _run_split(parsed, settings):
    report = OPERATIONS["split"](
        _source(parsed), parsed.duration, parsed.output,
        workers=parsed.workers, settings=settings,
    )
    print(f"\n{report.summary()}")
    if not report.ok:
        raise RenderError(f"{len(report.failed)} of {len(report.outcomes)} segments failed")


def _run_merge(parsed, settings):
    return OPERATIONS["merge"](parsed.input, settings=settings)


def _run_extract_video(parsed, settings):
    return OPERATIONS["extract-video"](_source(parsed), settings=settings)


def _run_extract_audio(parsed, settings):
    return OPERATIONS["extract-audio"](_source(parsed), settings=settings)


def _run_overlay_image(parsed, settings):
    return OPERATIONS["overlay-image"](
        _source(parsed), parsed.image, parsed.start, parsed.duration, settings=settings,
    )


def _run_overlay_text(parsed, settings):
    color = parse_hex_color(parsed.color) if parsed.color else WHITE
    return OPERATIONS["overlay-text"](
        _source(parsed), parsed.text,
        font_size=parsed.size, color=color,
        start=parsed.start, duration=parsed.duration,
        settings=settings,
    )


def _run_overlay_sound(parsed, settings):
    sound = MediaSource(parsed.sound).load()
    return OPERATIONS["overlay-sound"](_source(parsed), sound, settings=settings)


def _run_generate_images(parsed, settings):
    results = OPERATIONS["generate-images"](
        _source(parsed), parsed.output, times=parsed.times, stride=parsed.stride,
    )
    written = sum(1 for r in results if r.path is not None)
    print(f"\nDone: {written}/{len(results)} frames in {parsed.output}")


def _run_images_to_video(parsed, settings):
    OPERATIONS["images-to-video"](
        parsed.images_folder, parsed.output, parsed.duration,
        settings=settings, quiet=parsed.quiet,
    )
    print(f"Done: {parsed.output}")


HANDLERS = {
    "rotate": _run_rotate,
    "crop": _run_crop,
    "speed": _run_speed,
    "trim": _run_trim,
    "split": _run_split,
    "merge": _run_merge,
    "extract-video": _run_extract_video,
    "extract-audio": _run_extract_audio,
    "overlay-image": _run_overlay_image,
    "overlay-text": _run_overlay_text,
    "overlay-sound": _run_overlay_sound,
    "generate-images": _run_generate_images,
    "images-to-video": _run_images_to_video,
}


# ── Parser ───────────────────────────────────────────────────────


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--settings", default=None,
        help="YAML settings file (frame rate, fade duration, encoder quality)",
    )
    common.add_argument(
        "--quiet", action="store_true",
        help="Suppress the encoder progress bar",
    )

    parser = argparse.ArgumentParser(
        prog="clipedit",
        description="Timeline-based audio/video editing: rotate, crop, trim, "
                    "speed, split, merge, overlay, extract, snapshot.",
    )
    subparsers = parser.add_subparsers(dest="command")

    def add(name, help_text, input_help="Source media file"):
        sub = subparsers.add_parser(name, help=help_text, parents=[common])
        sub.add_argument("--input", required=True, help=input_help)
        sub.add_argument("--output", required=True, help="Output file path")
        return sub

    sub = add("rotate", "Rotate by a right angle")
    sub.add_argument("--angle", type=float, required=True, help="Degrees: 90, 180, 270, -90, ...")

    sub = add("crop", "Crop to a rectangle")
    sub.add_argument(
        "--crop-rect", required=True,
        help="'x y width height', origin at the bottom-left corner",
    )

    sub = add("speed", "Change playback speed")
    sub.add_argument("--speed", type=float, required=True, help="Multiplier, e.g. 2 or 0.5")

    sub = add("trim", "Keep only [start, end)")
    sub.add_argument("--start", type=float, required=True, help="Start time in seconds")
    sub.add_argument("--end", type=float, required=True, help="End time in seconds")

    sub = add("split", "Split into fixed-length parts")
    sub.add_argument("--duration", type=float, required=True, help="Part length in seconds")
    sub.add_argument(
        "--workers", type=int, default=None,
        help="Max concurrent part exports (default: one per part)",
    )

    add("merge", "Concatenate every file in a directory", input_help="Directory of clips")
    add("extract-video", "Keep only the video track")
    add("extract-audio", "Keep only the audio track")

    sub = add("overlay-image", "Overlay an image with fade in/out")
    sub.add_argument("--image", required=True, help="Image file (png/jpg)")
    sub.add_argument("--start", type=float, required=True, help="Fade-in start, seconds")
    sub.add_argument("--duration", type=float, required=True, help="Seconds before fade-out")

    sub = add("overlay-text", "Overlay centred text with fade in")
    sub.add_argument("--text", required=True, help="Text to draw")
    sub.add_argument(
        "--size", type=float, default=TEXT_BASE_FONT_SIZE,
        help=f"Base font size (default: {TEXT_BASE_FONT_SIZE}); grows with frame width",
    )
    sub.add_argument("--color", default=None, help="#RRGGBBAA (default: opaque white)")
    sub.add_argument("--start", type=float, default=0.0, help="Fade-in start, seconds")
    sub.add_argument(
        "--duration", type=float, default=None,
        help="Seconds before fade-out (default: stay until the end)",
    )

    sub = add("overlay-sound", "Mix in a sound with fade in/out")
    sub.add_argument("--sound", required=True, help="Audio (or video) file to mix in")

    sub = add("generate-images", "Write JPEG snapshots")
    sub.add_argument("--times", type=float, nargs="+", default=None, help="Explicit times, seconds")
    sub.add_argument("--stride", type=float, default=None, help="Snapshot every N seconds")

    sub = subparsers.add_parser(
        "images-to-video", help="Slideshow from a folder of images", parents=[common],
    )
    sub.add_argument("--images-folder", required=True, help="Directory of png/jpg images")
    sub.add_argument("--duration", type=float, required=True, help="Seconds per image")
    sub.add_argument("--output", required=True, help="Output video path")

    return parser


# ── Entry point ──────────────────────────────────────────────────


def _load_settings(path) -> dict:
    if path is None:
        return default_settings()
    try:
        return load_settings(path)
    except OSError as exc:
        raise ParameterError(f"Cannot read settings file {path}: {exc}") from exc


def main(args=None):
    parser = build_parser()
    parsed = parser.parse_args(args)

    if parsed.command is None:
        parser.print_help()
        sys.exit(1)

    try:
        settings = _load_settings(parsed.settings)
        result = HANDLERS[parsed.command](parsed, settings)
        if result is not None:
            export(result, parsed.output, settings, quiet=parsed.quiet)
            print(f"Done: {parsed.output}")
    except EditError as exc:
        print(f"{exc.label} error: {exc}")
        sys.exit(exc.exit_code)


if __name__ == "__main__":
    main()
