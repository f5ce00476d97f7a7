"""
Tests for the curve interpolants.

Covers: exactness at pillars, forward = d/dt of the integrated forward,
extrapolation rules, and the Hagan-West collars.
"""

import pytest
import numpy as np

from fxcore.interpolation import (
    LinearZeroInterpolant, CubicSplineZeroInterpolant, NaturalCubicSpline,
    LogLinearDiscount, LogCubicDiscount, LinearForwardInterpolant,
    MonotoneConvexInterpolant, hagan_west_node_forwards,
)


TENORS = np.array([0.5, 1.0, 2.0, 3.0, 5.0])
ZEROS = np.array([0.040, 0.042, 0.045, 0.044, 0.046])
INTEGRATED = ZEROS * TENORS

# off-pillar points strictly inside segments (derivative checks avoid kinks)
SAMPLE_T = np.array([0.2, 0.7, 1.3, 2.6, 4.2, 6.5])


def _all_interpolants():
    return [
        LinearZeroInterpolant(TENORS, ZEROS),
        CubicSplineZeroInterpolant(TENORS, ZEROS),
        LogLinearDiscount(TENORS, INTEGRATED),
        LogCubicDiscount(TENORS, INTEGRATED),
        LinearForwardInterpolant(TENORS, INTEGRATED),
        MonotoneConvexInterpolant(TENORS, INTEGRATED),
    ]


class TestCommonContract:
    """Every scheme reproduces its pillars and its own forward."""

    @pytest.mark.parametrize("interp", _all_interpolants(), ids=lambda i: type(i).__name__)
    def test_exact_at_pillars(self, interp):
        assert np.allclose(interp.integrated_forward(TENORS), INTEGRATED, atol=1e-12)

    @pytest.mark.parametrize("interp", _all_interpolants(), ids=lambda i: type(i).__name__)
    def test_zero_at_origin(self, interp):
        assert abs(float(interp.integrated_forward(np.array([0.0]))[0])) < 1e-14

    @pytest.mark.parametrize("interp", _all_interpolants(), ids=lambda i: type(i).__name__)
    def test_forward_is_derivative(self, interp):
        h = 1e-6
        numeric = (interp.integrated_forward(SAMPLE_T + h) - interp.integrated_forward(SAMPLE_T - h)) / (2 * h)
        assert np.allclose(interp.forward(SAMPLE_T), numeric, atol=1e-6)


class TestValidation:

    def test_unsorted_tenors(self):
        with pytest.raises(ValueError):
            LogLinearDiscount([1.0, 0.5], [0.04, 0.02])

    def test_non_positive_tenor(self):
        with pytest.raises(ValueError):
            LinearZeroInterpolant([0.0, 1.0], [0.04, 0.04])

    def test_shape_mismatch(self):
        with pytest.raises(ValueError):
            LinearZeroInterpolant([0.5, 1.0], [0.04])


class TestSchemes:

    def test_linear_zero_flat_extrapolation(self):
        interp = LinearZeroInterpolant(TENORS, ZEROS)
        assert abs(interp.zero_rate(np.array(0.1)) - ZEROS[0]) < 1e-15
        assert abs(interp.zero_rate(np.array(10.0)) - ZEROS[-1]) < 1e-15
        assert abs(interp.forward(np.array(10.0)) - ZEROS[-1]) < 1e-15

    def test_log_linear_forwards_are_piecewise_flat(self):
        interp = LogLinearDiscount(TENORS, INTEGRATED)
        f = interp.forward(np.array([1.1, 1.5, 1.9]))
        assert np.allclose(f, (INTEGRATED[2] - INTEGRATED[1]) / 1.0)

    def test_log_linear_flat_tail(self):
        interp = LogLinearDiscount(TENORS, INTEGRATED)
        assert abs(interp.forward(np.array(8.0)) - interp.discrete_forwards[-1]) < 1e-15

    def test_natural_spline_reproduces_a_line(self):
        x = np.array([0.0, 1.0, 2.5, 4.0])
        spline = NaturalCubicSpline(x, 3.0 + 2.0 * x)
        t = np.array([0.3, 1.7, 3.9])
        assert np.allclose(spline(t), 3.0 + 2.0 * t)
        assert np.allclose(spline.derivative(t), 2.0)

    def test_linear_forward_node_recursion(self):
        interp = LinearForwardInterpolant(TENORS, INTEGRATED)
        fd = interp.discrete_forwards
        nodes = interp.node_forwards
        # each segment's trapezoid integral equals its discrete forward
        assert np.allclose(0.5 * (nodes[:-1] + nodes[1:]), fd)

    def test_monotone_convex_matches_flat_curve(self):
        """A flat 4% curve stays flat at 4% everywhere."""
        interp = MonotoneConvexInterpolant(TENORS, 0.04 * TENORS)
        t = np.linspace(0.0, 7.0, 50)
        assert np.allclose(interp.forward(t), 0.04)
        assert np.allclose(interp.integrated_forward(t), 0.04 * t)

    def test_monotone_convex_custom_nodes_shape(self):
        with pytest.raises(ValueError):
            MonotoneConvexInterpolant(TENORS, INTEGRATED, node_forwards=np.zeros(3))


class TestHaganWestCollars:

    def test_collars_for_positive_discrete_forwards(self):
        knots = np.concatenate(([0.0], TENORS))
        fd = np.diff(np.concatenate(([0.0], INTEGRATED))) / np.diff(knots)
        f = hagan_west_node_forwards(knots, fd)
        assert len(f) == len(knots)
        assert np.all(f >= 0)
        assert f[0] <= 2 * fd[0] + 1e-15
        assert f[-1] <= 2 * fd[-1] + 1e-15
        for i in range(1, len(fd)):
            assert f[i] <= 2 * min(fd[i - 1], fd[i]) + 1e-15

    def test_single_segment(self):
        f = hagan_west_node_forwards(np.array([0.0, 1.0]), np.array([0.03]))
        assert np.allclose(f, 0.03)
