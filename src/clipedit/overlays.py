"""Overlay rasterisation and per-frame alpha compositing.

Overlay content is rasterised exactly once, when the render instruction
is built, into an RGBA numpy patch. At render time each frame only pays
for an alpha blend of that patch, scaled by the layer's opacity at the
frame's time.

Positions are given with a bottom-left origin (the frame's lower-left
corner is (0, 0), y grows upwards), matching the crop rectangle
convention. Numpy frames are row-major from the top, so placement
converts once in composite_patch.
"""

from pathlib import Path

import numpy as np
from PIL import Image, ImageDraw

from .common import load_font
from .errors import ParameterError


# ── Patch rendering ──────────────────────────────────────────────


def render_text_patch(
    text: str,
    font_size: float,
    color: tuple[int, int, int, int],
) -> np.ndarray:
    """Render *text* on a transparent background.

    Returns:
        numpy array of shape (h, w, 4), dtype uint8 (RGBA), sized to the
        text's bounding box.
    """
    font = load_font(max(1, int(round(font_size))))

    draw_tmp = ImageDraw.Draw(Image.new("RGBA", (1, 1)))
    left, top, right, bottom = draw_tmp.textbbox((0, 0), text, font=font)
    patch_w = max(1, right - left)
    patch_h = max(1, bottom - top)

    img = Image.new("RGBA", (patch_w, patch_h), (0, 0, 0, 0))
    draw = ImageDraw.Draw(img)
    # Offset by the bbox origin so glyph ascenders are not clipped.
    draw.text((-left, -top), text, fill=tuple(color), font=font)
    return np.array(img)


def load_image_patch(path: str | Path) -> np.ndarray:
    """Decode an image file to an RGBA patch.

    Raises:
        ParameterError: The file is missing or not a decodable image.
    """
    try:
        with Image.open(path) as img:
            return np.array(img.convert("RGBA"))
    except (OSError, ValueError) as exc:
        raise ParameterError(f"Cannot read overlay image {path}: {exc}") from exc


# ── Frame-level compositing ─────────────────────────────────────


def composite_patch(
    frame: np.ndarray,
    patch: np.ndarray,
    position: tuple[float, float],
    opacity: float = 1.0,
) -> np.ndarray:
    """Alpha-blend an RGBA *patch* onto an RGB *frame*.

    Args:
        frame: Input frame, shape (h, w, 3), dtype uint8. Not mutated.
        patch: RGBA patch, shape (ph, pw, 4), dtype uint8.
        position: (x, y) of the patch's bottom-left corner, bottom-left
            origin.
        opacity: Layer opacity multiplier in [0, 1].

    Returns:
        New frame with the patch composited, same shape and dtype. Parts
        of the patch outside the frame are dropped.
    """
    if opacity <= 0:
        return frame

    frame_h, frame_w = frame.shape[:2]
    patch_h, patch_w = patch.shape[:2]
    x = int(round(position[0]))
    y_top = frame_h - int(round(position[1])) - patch_h

    # Intersect patch with frame bounds.
    r0, r1 = max(y_top, 0), min(y_top + patch_h, frame_h)
    c0, c1 = max(x, 0), min(x + patch_w, frame_w)
    if r0 >= r1 or c0 >= c1:
        return frame

    result = frame.copy()
    sub = patch[r0 - y_top:r1 - y_top, c0 - x:c1 - x]
    alpha = sub[:, :, 3:4].astype(np.float32) / 255.0 * min(opacity, 1.0)
    rgb = sub[:, :, :3].astype(np.float32)
    dest = result[r0:r1, c0:c1].astype(np.float32)
    blended = dest * (1 - alpha) + rgb * alpha
    result[r0:r1, c0:c1] = np.clip(blended + 0.5, 0, 255).astype(np.uint8)
    return result


def centered_position(
    patch: np.ndarray, frame_size: tuple[float, float],
) -> tuple[float, float]:
    """Bottom-left corner that centres *patch* in a frame of *frame_size*."""
    patch_h, patch_w = patch.shape[:2]
    frame_w, frame_h = frame_size
    return (frame_w - patch_w) / 2, (frame_h - patch_h) / 2
