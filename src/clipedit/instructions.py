"""Render instruction builder.

A RenderInstruction tells the renderer how to turn a composition's video
tracks into output frames:

  - instructions: time-ranged lists of layer transforms, one layer per
    composition video track active in that range.
  - render_size / frame_rate: the output frame geometry and rate.
  - filter: optional per-frame callable applied after the layers are
    drawn (used by crop).
  - overlay: optional OverlayTree, layers drawn over the video with
    keyframed opacity.

Video-bearing operations share one rule for the base layer: a portrait
source is rotated 90 degrees and rendered at its swapped size, anything
else is drawn untransformed at its natural size.
"""

from dataclasses import dataclass, field
from fractions import Fraction
from typing import Callable

import numpy as np

from .composition import CompositionTrack
from .geometry import AffineTransform, Rect, Size, rotation_transform
from .media import MediaSource
from .overlays import centered_position, load_image_patch, render_text_patch
from .settings import FADE_DURATION, FRAME_RATE, TEXT_BASE_FONT_SIZE, TEXT_SCALE_FACTOR
from .timebase import ZERO, TimeRange


# ── Data model ───────────────────────────────────────────────────


@dataclass(frozen=True)
class LayerInstruction:
    track_id: int
    transform: AffineTransform
    at: Fraction = ZERO


@dataclass(frozen=True)
class VideoInstruction:
    time_range: TimeRange
    layers: tuple[LayerInstruction, ...]


@dataclass(frozen=True)
class Keyframe:
    time: float
    value: float


@dataclass
class OverlayLayer:
    """Pre-rasterised overlay content with an opacity timeline.

    position is the bottom-left corner of the content in the render
    frame, bottom-left origin.
    """

    name: str
    content: np.ndarray
    position: tuple[float, float]
    keyframes: list[Keyframe]

    def opacity_at(self, t: float) -> float:
        return opacity_at(self.keyframes, t)


@dataclass
class OverlayTree:
    """Base video layer (implicit, the rendered frame) plus overlay layers."""

    size: Size
    layers: list[OverlayLayer] = field(default_factory=list)


@dataclass
class RenderInstruction:
    render_size: Size
    instructions: list[VideoInstruction]
    frame_rate: float = FRAME_RATE
    filter: Callable[[np.ndarray], np.ndarray] | None = None
    canvas_size: Size | None = None
    overlay: OverlayTree | None = None

    @property
    def layer_canvas_size(self) -> Size:
        """Size of the canvas layers are drawn on before the filter runs."""
        return self.canvas_size or self.render_size

    def instruction_at(self, t) -> VideoInstruction | None:
        """The instruction covering time *t*; the last one also owns its end."""
        for instruction in self.instructions:
            if instruction.time_range.contains(t):
                return instruction
        if self.instructions and t >= self.instructions[-1].time_range.end:
            return self.instructions[-1]
        return None


# ── Orientation-aware base layer ─────────────────────────────────


def oriented_transform(source: MediaSource) -> tuple[AffineTransform, Size]:
    """Portrait-correcting transform and render size for *source*."""
    angle = 90 if source.orientation_info.is_portrait else 0
    return rotation_transform(angle, source.natural_size)


def build_oriented_instruction(
    track: CompositionTrack,
    source: MediaSource,
    time_range: TimeRange,
    frame_rate: float = FRAME_RATE,
) -> RenderInstruction:
    """One instruction over *time_range* with the orientation-corrected layer."""
    transform, size = oriented_transform(source)
    return RenderInstruction(
        render_size=size,
        instructions=[
            VideoInstruction(time_range, (LayerInstruction(track.track_id, transform),)),
        ],
        frame_rate=frame_rate,
    )


def build_rotation_instruction(
    track: CompositionTrack,
    source: MediaSource,
    angle: float,
    frame_rate: float = FRAME_RATE,
) -> RenderInstruction:
    """Rotate the natural frame by *angle*; the source orientation is ignored."""
    transform, size = rotation_transform(angle, source.natural_size)
    return RenderInstruction(
        render_size=size,
        instructions=[
            VideoInstruction(
                source.full_range, (LayerInstruction(track.track_id, transform),),
            ),
        ],
        frame_rate=frame_rate,
    )


# ── Crop ─────────────────────────────────────────────────────────


class CropFilter:
    """Per-frame filter cropping to a bottom-left-origin rectangle.

    The output frame is the rectangle's size with the rectangle's origin
    as the new frame origin. Parts of the rectangle outside the input
    frame come out black.
    """

    def __init__(self, rect: Rect):
        self.rect = rect

    def __repr__(self):
        return f"CropFilter({self.rect})"

    def __call__(self, frame: np.ndarray) -> np.ndarray:
        frame_h, frame_w = frame.shape[:2]
        x, y = int(round(self.rect.x)), int(round(self.rect.y))
        w, h = int(round(self.rect.width)), int(round(self.rect.height))

        # Row of the rectangle's top edge in top-down numpy coordinates.
        top = frame_h - (y + h)
        out = np.zeros((h, w) + frame.shape[2:], dtype=frame.dtype)
        r0, r1 = max(top, 0), min(top + h, frame_h)
        c0, c1 = max(x, 0), min(x + w, frame_w)
        if r0 < r1 and c0 < c1:
            out[r0 - top:r1 - top, c0 - x:c1 - x] = frame[r0:r1, c0:c1]
        return out


def build_crop_instruction(
    track: CompositionTrack,
    source: MediaSource,
    rect: Rect,
    frame_rate: float = FRAME_RATE,
) -> RenderInstruction:
    """Orientation-corrected layer, then crop each frame to *rect*."""
    instruction = build_oriented_instruction(track, source, source.full_range, frame_rate)
    instruction.canvas_size = instruction.render_size
    instruction.render_size = rect.size
    instruction.filter = CropFilter(rect)
    return instruction


# ── Merge ────────────────────────────────────────────────────────


def build_merge_instruction(
    entries: list[tuple[CompositionTrack, MediaSource, TimeRange]],
    frame_rate: float = FRAME_RATE,
) -> RenderInstruction | None:
    """One instruction per merged clip, each with its own orientation fix.

    Args:
        entries: (video track, its source, destination span) in timeline
            order.

    Returns:
        None when no entry carries video.
    """
    if not entries:
        return None

    instructions = []
    render_size = None
    for track, source, span in entries:
        transform, size = oriented_transform(source)
        if render_size is None:
            render_size = size
        instructions.append(
            VideoInstruction(span, (LayerInstruction(track.track_id, transform),))
        )
    return RenderInstruction(
        render_size=render_size, instructions=instructions, frame_rate=frame_rate,
    )


# ── Opacity keyframes ────────────────────────────────────────────


def opacity_keyframes(
    start: float,
    duration: float | None = None,
    fade: float = FADE_DURATION,
) -> list[Keyframe]:
    """Keyframes for fade-in at *start* and fade-out at *start + duration*.

    Opacity is 0 before *start*, reaches 1 after *fade* seconds, and holds.
    With a duration, it drops from 1 to 0 over *fade* seconds starting at
    start + duration. A duration shorter than the fade cuts the fade-in
    short: the fade-out then begins from full opacity.
    """
    start = float(start)
    keyframes = [Keyframe(start, 0.0)]
    if duration is None:
        keyframes.append(Keyframe(start + fade, 1.0))
        return keyframes

    duration = float(duration)
    fade_out_at = start + duration
    if duration >= fade:
        keyframes.append(Keyframe(start + fade, 1.0))
    elif fade > 0:
        keyframes.append(Keyframe(fade_out_at, duration / fade))
    keyframes.append(Keyframe(fade_out_at, 1.0))
    keyframes.append(Keyframe(fade_out_at + fade, 0.0))
    return keyframes


def opacity_at(keyframes: list[Keyframe], t: float) -> float:
    """Piecewise-linear opacity at *t*, holding the end values outside.

    Two keyframes at the same time form a step: the later one wins from
    that instant on.
    """
    if not keyframes:
        return 1.0
    if t < keyframes[0].time:
        return keyframes[0].value

    value = keyframes[0].value
    for k0, k1 in zip(keyframes, keyframes[1:]):
        if t < k0.time:
            break
        if t < k1.time:
            frac = (t - k0.time) / (k1.time - k0.time)
            return k0.value + frac * (k1.value - k0.value)
        value = k1.value
    return value


# ── Overlay layers ───────────────────────────────────────────────


def scaled_font_size(
    render_size: Size,
    base_font_size: float = TEXT_BASE_FONT_SIZE,
    scale_factor: float = TEXT_SCALE_FACTOR,
) -> float:
    return base_font_size + render_size.width * scale_factor


def text_overlay_layer(
    text: str,
    render_size: Size,
    font_size: float = TEXT_BASE_FONT_SIZE,
    color: tuple[int, int, int, int] = (255, 255, 255, 255),
    start: float = 0.0,
    duration: float | None = None,
    fade: float = FADE_DURATION,
) -> OverlayLayer:
    """Rasterise *text* once, centred on the render frame."""
    patch = render_text_patch(text, scaled_font_size(render_size, font_size), color)
    return OverlayLayer(
        name="text",
        content=patch,
        position=centered_position(patch, (render_size.width, render_size.height)),
        keyframes=opacity_keyframes(start, duration, fade),
    )


def image_overlay_layer(
    image_path,
    start: float,
    duration: float,
    fade: float = FADE_DURATION,
) -> OverlayLayer:
    """Decode *image_path* once and pin it to the frame's bottom-left corner."""
    return OverlayLayer(
        name="image",
        content=load_image_patch(image_path),
        position=(0.0, 0.0),
        keyframes=opacity_keyframes(start, duration, fade),
    )


def with_overlay(
    instruction: RenderInstruction, layer: OverlayLayer,
) -> RenderInstruction:
    """Attach *layer* to the instruction's overlay tree, creating it if needed."""
    if instruction.overlay is None:
        instruction.overlay = OverlayTree(size=instruction.render_size)
    instruction.overlay.layers.append(layer)
    return instruction
