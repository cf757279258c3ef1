"""Frame renderer — applies a RenderInstruction to decoded source frames.

Pipeline for one output time t:

  1. Find the VideoInstruction covering t.
  2. For each layer, find the composition segment playing at t, map t to
     source time, decode that frame.
  3. Undo the decoder's display rotation to recover the natural frame
     (moviepy's ffmpeg reader autorotates), then warp it by the layer
     transform onto the layer canvas.
  4. Run the instruction's filter (crop).
  5. Blend the overlay layers at their opacity for t.

Transforms work in y-down pixel space: (0, 0) is the top-left corner of
the natural frame. Sampling is nearest-neighbour at pixel centres, which
is exact for the right-angle transforms the operations produce.
"""

from functools import lru_cache

import numpy as np
from moviepy import VideoFileClip

from .composition import Composition, CompositionTrack
from .errors import RenderError
from .geometry import AffineTransform, Size
from .instructions import RenderInstruction
from .media import MediaType
from .overlays import composite_patch


# ── Pixel transforms ─────────────────────────────────────────────


def natural_frame(frame: np.ndarray, rotation: int) -> np.ndarray:
    """Rotate a display-oriented frame back to the stream's coded orientation.

    A rotation of 90 means the decoder turned the coded frame 90 degrees
    clockwise for display; turning it back is a counter-clockwise rot90.
    """
    k = (rotation // 90) % 4
    if k == 0:
        return frame
    return np.ascontiguousarray(np.rot90(frame, k=k))


@lru_cache(maxsize=32)
def _index_maps(
    transform: AffineTransform, src_w: int, src_h: int, out_w: int, out_h: int,
):
    """Source row/column for every output pixel, plus a validity mask."""
    inverse = transform.inverted()
    xs = np.arange(out_w, dtype=np.float64) + 0.5
    ys = np.arange(out_h, dtype=np.float64) + 0.5
    gx, gy = np.meshgrid(xs, ys)
    sx = inverse.a * gx + inverse.c * gy + inverse.tx
    sy = inverse.b * gx + inverse.d * gy + inverse.ty
    cols = np.floor(sx).astype(np.intp)
    rows = np.floor(sy).astype(np.intp)
    valid = (cols >= 0) & (cols < src_w) & (rows >= 0) & (rows < src_h)
    return rows[valid], cols[valid], valid


def warp_affine(
    frame: np.ndarray, transform: AffineTransform, size: Size,
) -> tuple[np.ndarray, np.ndarray]:
    """Map *frame* through *transform* onto a black canvas of *size*.

    Returns:
        (warped frame, boolean coverage mask), both (h, w[, 3]).
    """
    out_w, out_h = size.as_ints()
    src_h, src_w = frame.shape[:2]

    if transform.is_identity and (src_w, src_h) == (out_w, out_h):
        return frame, np.ones((out_h, out_w), dtype=bool)

    rows, cols, valid = _index_maps(transform, src_w, src_h, out_w, out_h)
    out = np.zeros((out_h, out_w) + frame.shape[2:], dtype=frame.dtype)
    out[valid] = frame[rows, cols]
    return out, valid


# ── Composition renderer ─────────────────────────────────────────


class CompositionRenderer:
    """Produces output frames for a composition and its render instruction.

    Source files are opened lazily, one moviepy reader per path, and kept
    open until close().
    """

    def __init__(self, composition: Composition, instruction: RenderInstruction | None = None):
        self.composition = composition
        self.instruction = instruction
        self._readers: dict[str, VideoFileClip] = {}

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    @property
    def size(self) -> Size:
        """Output frame size."""
        if self.instruction is not None:
            return self.instruction.render_size
        track = self.composition.track(MediaType.VIDEO)
        if track is None or not track.segments:
            raise RenderError("Composition has no video to render")
        source_track = track.segments[0].source_track
        if source_track.rotation in (90, 270):
            return source_track.natural_size.swapped
        return source_track.natural_size

    def close(self) -> None:
        for reader in self._readers.values():
            reader.close()
        self._readers.clear()

    def _reader(self, path: str) -> VideoFileClip:
        if path not in self._readers:
            try:
                self._readers[path] = VideoFileClip(path, audio=False)
            except (OSError, KeyError) as exc:
                raise RenderError(f"Cannot decode video from {path}: {exc}") from exc
        return self._readers[path]

    def _display_frame(self, track: CompositionTrack, t: float):
        """Decoded display-oriented frame of *track* at composition time *t*.

        Returns (frame, source track), or (None, None) where the track
        has no segment at *t*.
        """
        segment = track.segment_at(t)
        if segment is None:
            return None, None
        reader = self._reader(segment.source_track.source_path)
        source_t = float(segment.source_time(t))
        # The last decodable frame starts one frame before the end.
        last = max(0.0, reader.duration - 1.0 / (reader.fps or 30))
        frame = reader.get_frame(min(max(source_t, 0.0), last))
        return frame, segment.source_track

    def _layer_canvas(self, t: float) -> np.ndarray:
        instruction = self.instruction
        canvas_w, canvas_h = instruction.layer_canvas_size.as_ints()
        canvas = np.zeros((canvas_h, canvas_w, 3), dtype=np.uint8)

        video = instruction.instruction_at(t)
        if video is None:
            return canvas

        # The first layer is frontmost: draw back to front.
        for layer in reversed(video.layers):
            track = self.composition.track_by_id(layer.track_id)
            frame, source_track = self._display_frame(track, t)
            if frame is None:
                continue
            frame = natural_frame(frame[:, :, :3], source_track.rotation)
            warped, mask = warp_affine(frame, layer.transform, instruction.layer_canvas_size)
            canvas[mask] = warped[mask]
        return canvas

    def frame_at(self, t) -> np.ndarray:
        """RGB uint8 output frame at composition time *t* (seconds)."""
        t = float(t)
        if self.instruction is None:
            track = self.composition.track(MediaType.VIDEO)
            frame, _ = self._display_frame(track, t) if track else (None, None)
            if frame is None:
                w, h = self.size.as_ints()
                return np.zeros((h, w, 3), dtype=np.uint8)
            return frame[:, :, :3]

        frame = self._layer_canvas(t)
        if self.instruction.filter is not None:
            frame = self.instruction.filter(frame)

        overlay = self.instruction.overlay
        if overlay is not None:
            for layer in overlay.layers:
                frame = composite_patch(frame, layer.content, layer.position, layer.opacity_at(t))
        return frame
