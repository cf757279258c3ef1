"""Geometry for orientation correction, rotation and cropping.

Affine transforms follow the Core Graphics convention:

    x' = a*x + c*y + tx
    y' = b*x + d*y + ty

``t.rotated(r)`` applies the rotation first and then ``t``, so
``AffineTransform.translation(w, h).rotated(pi)`` reads as
"rotate by pi, then translate by (w, h)".
"""

import math
from dataclasses import dataclass
from enum import Enum


# ── Basic shapes ─────────────────────────────────────────────────


@dataclass(frozen=True)
class Size:
    width: float
    height: float

    @property
    def swapped(self) -> "Size":
        return Size(self.height, self.width)

    def as_ints(self) -> tuple[int, int]:
        return int(round(self.width)), int(round(self.height))


@dataclass(frozen=True)
class Rect:
    """Rectangle with its origin at the bottom-left corner."""

    x: float
    y: float
    width: float
    height: float

    @property
    def size(self) -> Size:
        return Size(self.width, self.height)

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0


# ── Affine transforms ────────────────────────────────────────────


def _snap(value: float) -> float:
    """Round away float noise so right-angle rotations stay exact."""
    return round(value, 12) + 0.0


@dataclass(frozen=True)
class AffineTransform:
    a: float = 1.0
    b: float = 0.0
    c: float = 0.0
    d: float = 1.0
    tx: float = 0.0
    ty: float = 0.0

    @classmethod
    def identity(cls) -> "AffineTransform":
        return cls()

    @classmethod
    def translation(cls, tx: float, ty: float) -> "AffineTransform":
        return cls(tx=float(tx), ty=float(ty))

    @classmethod
    def rotation(cls, radians: float) -> "AffineTransform":
        cos, sin = _snap(math.cos(radians)), _snap(math.sin(radians))
        return cls(cos, sin, _snap(-sin), cos)

    @property
    def linear(self) -> tuple[float, float, float, float]:
        """The 2x2 linear part (a, b, c, d)."""
        return self.a, self.b, self.c, self.d

    @property
    def is_identity(self) -> bool:
        return self == AffineTransform()

    def concatenating(self, other: "AffineTransform") -> "AffineTransform":
        """Apply self, then *other*."""
        return AffineTransform(
            a=self.a * other.a + self.b * other.c,
            b=self.a * other.b + self.b * other.d,
            c=self.c * other.a + self.d * other.c,
            d=self.c * other.b + self.d * other.d,
            tx=self.tx * other.a + self.ty * other.c + other.tx,
            ty=self.tx * other.b + self.ty * other.d + other.ty,
        )

    def rotated(self, radians: float) -> "AffineTransform":
        return AffineTransform.rotation(radians).concatenating(self)

    def inverted(self) -> "AffineTransform":
        det = self.a * self.d - self.b * self.c
        if det == 0:
            raise ValueError(f"Transform is not invertible: {self}")
        return AffineTransform(
            a=self.d / det,
            b=-self.b / det,
            c=-self.c / det,
            d=self.a / det,
            tx=(self.c * self.ty - self.d * self.tx) / det,
            ty=(self.b * self.tx - self.a * self.ty) / det,
        )

    def apply(self, x: float, y: float) -> tuple[float, float]:
        return (
            self.a * x + self.c * y + self.tx,
            self.b * x + self.d * y + self.ty,
        )


# ── Orientation ──────────────────────────────────────────────────


class Orientation(Enum):
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"


@dataclass(frozen=True)
class OrientationInfo:
    orientation: Orientation
    is_portrait: bool


# Canonical 2x2 linear parts, matched exactly.
_CANONICAL_ORIENTATIONS = {
    (0.0, 1.0, -1.0, 0.0): OrientationInfo(Orientation.UP, True),
    (0.0, -1.0, 1.0, 0.0): OrientationInfo(Orientation.DOWN, True),
    (1.0, 0.0, 0.0, 1.0): OrientationInfo(Orientation.RIGHT, False),
    (-1.0, 0.0, 0.0, -1.0): OrientationInfo(Orientation.LEFT, False),
}


def orientation_from_transform(transform: AffineTransform) -> OrientationInfo:
    """Classify a display transform into one of four orientations.

    Anything that is not one of the canonical right-angle transforms
    (e.g. a scaled or skewed matrix) is treated as portrait-up.
    """
    return _CANONICAL_ORIENTATIONS.get(
        transform.linear, OrientationInfo(Orientation.UP, True),
    )


# ── Rotation ─────────────────────────────────────────────────────


def rotation_transform(
    angle: float, original_size: Size,
) -> tuple[AffineTransform, Size]:
    """Transform and output size for rotating a frame by *angle* degrees.

    Only right angles rotate. The angle is reduced with a sign-preserving
    remainder, so 450 behaves as 90 and -270 behaves as 90. Any other
    angle (0, 45, 90.5, ...) yields the identity at the original size.

    Returns:
        (transform, new_size). Right-angle cases translate the rotated
        frame back into the positive quadrant; 90/270 swap width and
        height.
    """
    reduced = math.fmod(angle, 360)
    width, height = original_size.width, original_size.height

    if reduced in (90, -270):
        transform = AffineTransform.translation(height, 0).rotated(math.radians(90))
        return transform, original_size.swapped
    if reduced in (180, -180):
        transform = AffineTransform.translation(width, height).rotated(math.radians(180))
        return transform, original_size
    if reduced in (270, -90):
        transform = AffineTransform.translation(0, width).rotated(math.radians(270))
        return transform, original_size.swapped
    return AffineTransform.identity(), original_size
