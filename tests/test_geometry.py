"""Tests for affine transforms, orientation and rotation geometry."""

import math

import pytest

from clipedit.geometry import (
    AffineTransform,
    Orientation,
    Size,
    orientation_from_transform,
    rotation_transform,
)


HD = Size(1920, 1080)


class TestAffineTransform:
    def test_rotation_is_exact_at_right_angles(self):
        assert AffineTransform.rotation(math.pi / 2) == AffineTransform(0, 1, -1, 0)
        assert AffineTransform.rotation(math.pi) == AffineTransform(-1, 0, 0, -1)

    def test_rotated_applies_rotation_first(self):
        t = AffineTransform.translation(10, 0).rotated(math.pi / 2)
        # (1, 0) rotates to (0, 1), then shifts by (10, 0).
        assert t.apply(1, 0) == pytest.approx((10, 1))

    def test_concatenating_order(self):
        scale = AffineTransform(2, 0, 0, 2)
        shift = AffineTransform.translation(5, 5)
        assert scale.concatenating(shift).apply(1, 1) == (7, 7)
        assert shift.concatenating(scale).apply(1, 1) == (12, 12)

    def test_inverted_round_trips(self):
        t = AffineTransform.translation(3, 4).rotated(math.pi / 2)
        x, y = t.apply(7, -2)
        assert t.inverted().apply(x, y) == pytest.approx((7, -2))

    def test_singular_inverse_raises(self):
        with pytest.raises(ValueError):
            AffineTransform(0, 0, 0, 0).inverted()


class TestRotationTransform:
    @pytest.mark.parametrize("angle", [90, -270, 270, -90])
    def test_quarter_turns_swap_size(self, angle):
        _, size = rotation_transform(angle, HD)
        assert size == Size(1080, 1920)

    @pytest.mark.parametrize("angle", [180, -180, 0])
    def test_half_turn_and_zero_keep_size(self, angle):
        _, size = rotation_transform(angle, HD)
        assert size == HD

    def test_90(self):
        t, _ = rotation_transform(90, HD)
        assert t == AffineTransform(0, 1, -1, 0, 1080, 0)

    def test_180(self):
        t, _ = rotation_transform(180, HD)
        assert t == AffineTransform(-1, 0, 0, -1, 1920, 1080)

    def test_270(self):
        t, _ = rotation_transform(270, HD)
        assert t == AffineTransform(0, -1, 1, 0, 0, 1920)

    @pytest.mark.parametrize("angle,congruent", [(90, 450), (90, -270), (180, 540), (270, -90)])
    def test_congruent_angles_match(self, angle, congruent):
        assert rotation_transform(angle, HD) == rotation_transform(congruent, HD)

    @pytest.mark.parametrize("angle", [45, 90.5, 1])
    def test_other_angles_are_identity(self, angle):
        t, size = rotation_transform(angle, HD)
        assert t.is_identity
        assert size == HD

    @pytest.mark.parametrize("angle", [90, 180, 270])
    def test_frame_lands_in_positive_quadrant(self, angle):
        t, size = rotation_transform(angle, HD)
        corners = [t.apply(x, y) for x in (0, HD.width) for y in (0, HD.height)]
        xs = [round(x) for x, _ in corners]
        ys = [round(y) for _, y in corners]
        assert (min(xs), max(xs)) == (0, size.width)
        assert (min(ys), max(ys)) == (0, size.height)


class TestOrientation:
    def test_portrait_up(self):
        info = orientation_from_transform(rotation_transform(90, HD)[0])
        assert info.orientation is Orientation.UP
        assert info.is_portrait

    def test_portrait_down(self):
        info = orientation_from_transform(rotation_transform(270, HD)[0])
        assert info.orientation is Orientation.DOWN
        assert info.is_portrait

    def test_landscape(self):
        assert orientation_from_transform(AffineTransform()).orientation is Orientation.RIGHT
        left = orientation_from_transform(rotation_transform(180, HD)[0])
        assert left.orientation is Orientation.LEFT
        assert not left.is_portrait

    def test_unknown_transform_is_portrait_up(self):
        info = orientation_from_transform(AffineTransform(2, 0, 0, 2))
        assert info.orientation is Orientation.UP
        assert info.is_portrait
