"""clipedit.common — shared parsing and font utilities.

Contains: RGBA color parsing, crop-rectangle parsing, and font loading.
"""

from pathlib import Path

from PIL import ImageFont

from .errors import ParameterError
from .geometry import Rect


# ── Font paths ─────────────────────────────────────────────────────
# Inter preferred, DejaVu Sans as fallback.

FONT_PATHS = [
    Path.home() / ".local/share/fonts/Inter.ttc",
    Path("/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"),
    Path("/System/Library/Fonts/Helvetica.ttc"),
]


# ── Color utilities ────────────────────────────────────────────────

WHITE = (255, 255, 255, 255)


def parse_hex_color(hex_str: str) -> tuple[int, int, int, int]:
    """Convert '#RRGGBBAA' to an (R, G, B, A) tuple.

    Anything that is not '#' followed by exactly eight hex digits falls
    back to opaque white.
    """
    if not hex_str.startswith("#"):
        return WHITE
    digits = hex_str[1:]
    if len(digits) != 8 or not all(c in "0123456789abcdefABCDEF" for c in digits):
        return WHITE
    value = int(digits, 16)
    return (
        (value >> 24) & 0xFF,
        (value >> 16) & 0xFF,
        (value >> 8) & 0xFF,
        value & 0xFF,
    )


# ── Rectangle parsing ──────────────────────────────────────────────

def parse_rect(text: str) -> Rect:
    """Parse 'x y width height' (space separated, bottom-left origin).

    Raises:
        ParameterError: Not exactly four numbers, or a non-positive size.
    """
    parts = text.strip().split()
    try:
        values = [float(p) for p in parts]
    except ValueError:
        raise ParameterError(f"Invalid rectangle '{text}': expected 'x y width height'") from None
    if len(values) != 4:
        raise ParameterError(f"Invalid rectangle '{text}': expected 4 numbers, got {len(values)}")

    rect = Rect(*values)
    if rect.is_empty:
        raise ParameterError(f"Invalid rectangle '{text}': width and height must be > 0")
    return rect


# ── Font loading ───────────────────────────────────────────────────

def load_font(size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    """Load Inter (or a fallback) at the given size.

    Inter.ttc is a font collection; index 0 is Regular.
    """
    for font_path in FONT_PATHS:
        if font_path.exists():
            try:
                return ImageFont.truetype(str(font_path), size=size, index=0)
            except (OSError, IndexError):
                continue
    # Last resort: Pillow's default font, scalable on Pillow >= 10.1.
    try:
        return ImageFont.load_default(size=size)
    except TypeError:
        return ImageFont.load_default()
