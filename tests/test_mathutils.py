"""Tests for math utilities."""

import math

import pytest


class TestMathUtils:
    """Tests for the pure numeric helpers."""

    def test_distance(self):
        from threadart.utils.mathutils import distance

        assert distance((0, 0), (3, 4)) == pytest.approx(5.0)

    def test_lerp_point_midpoint(self):
        from threadart.utils.mathutils import lerp_point

        assert lerp_point((0, 0), (10, 20), 0.5) == pytest.approx((5.0, 10.0))

    def test_angle_conversion(self):
        from threadart.utils.mathutils import deg_to_rad, rad_to_deg

        assert deg_to_rad(180) == pytest.approx(math.pi)
        assert rad_to_deg(deg_to_rad(37.5)) == pytest.approx(37.5)

    def test_clamp(self):
        from threadart.utils.mathutils import clamp

        assert clamp(-1, 0, 10) == 0
        assert clamp(11, 0, 10) == 10
        assert clamp(5, 0, 10) == 5

    def test_circular_index_distance_wraps(self):
        """Test that the first and last index are adjacent on the ring."""
        from threadart.utils.mathutils import circular_index_distance

        assert circular_index_distance(0, 9, 10) == 1
        assert circular_index_distance(2, 7, 10) == 5
        assert circular_index_distance(3, 3, 10) == 0

    def test_normalized_key_is_order_independent(self):
        from threadart.utils.mathutils import normalized_key

        assert normalized_key(7, 2) == normalized_key(2, 7) == (2, 7)

    def test_safe_divide_zero_denominator(self):
        from threadart.utils.mathutils import safe_divide

        assert safe_divide(5.0, 0) == 0.0
        assert safe_divide(float("inf"), 1.0) == 0.0
        assert safe_divide(6.0, 3.0) == 2.0

    def test_is_finite_point(self):
        from threadart.utils.mathutils import is_finite_point

        assert is_finite_point((1.0, 2.0))
        assert not is_finite_point((float("nan"), 2.0))
        assert not is_finite_point(("a", 2.0))
