"""
Curve interpolants: from a handful of bootstrapped pillars to a term
structure that can be queried at any tenor.

Every interpolant answers two questions for an array of tenors t:
    integrated_forward(t) = -ln DF(t) = r(t) * t
    forward(t)            = instantaneous forward f(t) = d/dt [r(t) * t]

Discount factors and zero rates are derived from the first one in
curve.py, so DF(0) = 1 holds by construction for every method.

Implemented schemes:
    LinearZeroInterpolant      - linear on zero rates
    CubicSplineZeroInterpolant - natural cubic spline on zero rates
    LogLinearDiscount          - linear on log DF (piecewise-flat forwards)
    LogCubicDiscount           - natural cubic spline on log DF
    LinearForwardInterpolant   - piecewise-linear instantaneous forwards
    MonotoneConvexInterpolant  - Hagan-West monotone convex on forwards

References:
    Hagan, P. & West, G. (2006). Interpolation Methods for Curve Construction.
        Applied Mathematical Finance, 13(2), 89-129.
    Hagan, P. & West, G. (2008). Methods for Constructing a Yield Curve.
        Wilmott Magazine, May 2008.
"""

from abc import ABC, abstractmethod
from typing import Sequence

import numpy as np
from scipy.linalg import solve_banded


class Interpolant(ABC):
    """Base class: validated, strictly increasing positive pillar tenors."""

    def __init__(self, tenors: Sequence[float], values: Sequence[float]):
        tenors = np.asarray(tenors, dtype=float)
        values = np.asarray(values, dtype=float)
        if tenors.shape != values.shape or tenors.ndim != 1:
            raise ValueError("tenors and values must be 1D arrays of the same length")
        if len(tenors) < 1:
            raise ValueError("need at least one pillar")
        if np.any(tenors <= 0):
            raise ValueError("pillar tenors must be positive")
        if np.any(np.diff(tenors) <= 0):
            raise ValueError("pillar tenors must be strictly increasing")
        self.tenors = tenors
        self.values = values

    @abstractmethod
    def integrated_forward(self, t: np.ndarray) -> np.ndarray:
        """-ln DF(t)."""

    @abstractmethod
    def forward(self, t: np.ndarray) -> np.ndarray:
        """Instantaneous forward rate at t."""


def _segment_index(knots: np.ndarray, t: np.ndarray) -> np.ndarray:
    """Index i of the segment [knots[i], knots[i+1]) containing t, clipped to valid segments."""
    idx = np.searchsorted(knots, t, side="right") - 1
    return np.clip(idx, 0, len(knots) - 2)


# ════════════════════════════════════════════════════════════════════════
#  ZERO-RATE INTERPOLANTS
# ════════════════════════════════════════════════════════════════════════

class LinearZeroInterpolant(Interpolant):
    """
    Linear interpolation on continuously compounded zero rates.

    Flat extrapolation on both sides: r(t) = r_0 below the first pillar,
    r(t) = r_n beyond the last. Forwards jump at every pillar.
    """

    def zero_rate(self, t):
        return np.interp(t, self.tenors, self.values)

    def _slope(self, t):
        if len(self.tenors) == 1:
            return np.zeros_like(t)
        i = _segment_index(self.tenors, t)
        slopes = np.diff(self.values) / np.diff(self.tenors)
        inside = (t >= self.tenors[0]) & (t < self.tenors[-1])
        return np.where(inside, slopes[i], 0.0)

    def integrated_forward(self, t):
        return self.zero_rate(t) * t

    def forward(self, t):
        return self.zero_rate(t) + t * self._slope(t)


class NaturalCubicSpline:
    """
    Natural cubic spline y(x) through (x_i, y_i), second derivative zero at
    both ends, stored as per-segment coefficients:

        S_i(x) = a_i + b_i dx + c_i dx^2 + d_i dx^3,   dx = x - x_i

    The second derivatives M_i solve the standard tridiagonal system
        h_{i-1} M_{i-1} + 2 (h_{i-1} + h_i) M_i + h_i M_{i+1}
            = 6 [ (y_{i+1} - y_i) / h_i - (y_i - y_{i-1}) / h_{i-1} ]
    with M_0 = M_n = 0.
    """

    def __init__(self, x: np.ndarray, y: np.ndarray):
        x = np.asarray(x, dtype=float)
        y = np.asarray(y, dtype=float)
        n = len(x)
        if n < 2:
            raise ValueError("a spline needs at least two knots")

        h = np.diff(x)
        M = np.zeros(n)
        if n > 2:
            m = n - 2
            ab = np.zeros((3, m))
            ab[0, 1:] = h[1:-1]                 # super-diagonal
            ab[1, :] = 2.0 * (h[:-1] + h[1:])   # diagonal
            ab[2, :-1] = h[1:-1]                # sub-diagonal
            slopes = np.diff(y) / h
            rhs = 6.0 * np.diff(slopes)
            M[1:-1] = solve_banded((1, 1), ab, rhs)

        self.x = x
        self.a = y[:-1]
        self.b = np.diff(y) / h - h * (2.0 * M[:-1] + M[1:]) / 6.0
        self.c = M[:-1] / 2.0
        self.d = np.diff(M) / (6.0 * h)

    def __call__(self, t):
        i = _segment_index(self.x, t)
        dx = t - self.x[i]
        return self.a[i] + dx * (self.b[i] + dx * (self.c[i] + dx * self.d[i]))

    def derivative(self, t):
        i = _segment_index(self.x, t)
        dx = t - self.x[i]
        return self.b[i] + dx * (2.0 * self.c[i] + 3.0 * dx * self.d[i])


class CubicSplineZeroInterpolant(Interpolant):
    """
    Natural cubic spline on zero rates, flat outside the pillar range.

    Smooth (C2) zero curve; forwards can still overshoot between pillars,
    which is why this method carries no positive-forward guarantee.
    """

    def __init__(self, tenors, zero_rates):
        super().__init__(tenors, zero_rates)
        self._spline = NaturalCubicSpline(self.tenors, self.values) if len(self.tenors) > 1 else None

    def zero_rate(self, t):
        if self._spline is None:
            return np.full_like(t, self.values[0])
        inside = (t >= self.tenors[0]) & (t <= self.tenors[-1])
        flat = np.where(t < self.tenors[0], self.values[0], self.values[-1])
        return np.where(inside, self._spline(t), flat)

    def integrated_forward(self, t):
        return self.zero_rate(t) * t

    def forward(self, t):
        if self._spline is None:
            return np.full_like(t, self.values[0])
        inside = (t >= self.tenors[0]) & (t <= self.tenors[-1])
        slope = np.where(inside, self._spline.derivative(t), 0.0)
        return self.zero_rate(t) + t * slope


# ════════════════════════════════════════════════════════════════════════
#  DISCOUNT-FACTOR INTERPOLANTS
#  values are integrated forwards Y_i = -ln DF(t_i); a node (0, 0) is implied
# ════════════════════════════════════════════════════════════════════════

class _IntegratedInterpolant(Interpolant):

    def __init__(self, tenors, integrated):
        super().__init__(tenors, integrated)
        self.knots = np.concatenate(([0.0], self.tenors))
        self.knot_values = np.concatenate(([0.0], self.values))
        # discrete (segment-average) forwards between consecutive knots
        self.discrete_forwards = np.diff(self.knot_values) / np.diff(self.knots)


class LogLinearDiscount(_IntegratedInterpolant):
    """
    Linear interpolation on log DF.

    The forward is constant on every segment and equal to the discrete
    forward, so it is positive whenever the pillar DFs are decreasing.
    Beyond the last pillar the last forward is held flat.
    """

    def integrated_forward(self, t):
        i = _segment_index(self.knots, t)
        return self.knot_values[i] + self.discrete_forwards[i] * (t - self.knots[i])

    def forward(self, t):
        return self.discrete_forwards[_segment_index(self.knots, t)]


class LogCubicDiscount(_IntegratedInterpolant):
    """Natural cubic spline on log DF; constant forward beyond the last pillar."""

    def __init__(self, tenors, integrated):
        super().__init__(tenors, integrated)
        self._spline = NaturalCubicSpline(self.knots, self.knot_values)
        self._tail_forward = float(self._spline.derivative(np.array(self.knots[-1])))

    def integrated_forward(self, t):
        tail = self.knot_values[-1] + self._tail_forward * (t - self.knots[-1])
        return np.where(t <= self.knots[-1], self._spline(t), tail)

    def forward(self, t):
        return np.where(t <= self.knots[-1], self._spline.derivative(t), self._tail_forward)


class LinearForwardInterpolant(_IntegratedInterpolant):
    """
    Piecewise-linear instantaneous forwards, bootstrapped pillar by pillar.

    The first segment is flat at its discrete forward; each following node
    forward is solved so the segment integral reproduces the pillar DF:
        f_i = 2 * fd_i - f_{i-1}
    Exact at pillars but prone to zig-zag forwards on noisy inputs.
    """

    def __init__(self, tenors, integrated):
        super().__init__(tenors, integrated)
        fd = self.discrete_forwards
        nodes = np.empty(len(self.knots))
        nodes[0] = fd[0]
        for i in range(1, len(nodes)):
            nodes[i] = 2.0 * fd[i - 1] - nodes[i - 1]
        self.node_forwards = nodes

    def integrated_forward(self, t):
        i = _segment_index(self.knots, t)
        h = np.diff(self.knots)[i]
        dx = np.minimum(t - self.knots[i], h)
        f0, f1 = self.node_forwards[i], self.node_forwards[i + 1]
        inside = self.knot_values[i] + f0 * dx + (f1 - f0) * dx ** 2 / (2.0 * h)
        tail = self.knot_values[-1] + self.node_forwards[-1] * (t - self.knots[-1])
        return np.where(t <= self.knots[-1], inside, tail)

    def forward(self, t):
        return np.interp(t, self.knots, self.node_forwards)


# ════════════════════════════════════════════════════════════════════════
#  HAGAN-WEST MONOTONE CONVEX
# ════════════════════════════════════════════════════════════════════════

def hagan_west_node_forwards(knots: np.ndarray, fd: np.ndarray) -> np.ndarray:
    """
    Instantaneous forwards at the knots from the discrete forwards, with
    the positivity collars of Hagan & West (2008):
        f_0 in [0, 2 fd_1],  f_i in [0, 2 min(fd_i, fd_{i+1})],  f_n in [0, 2 fd_n]
    """
    n = len(fd)
    f = np.empty(n + 1)
    if n == 1:
        f[:] = fd[0]
        return f

    for i in range(1, n):
        w_left = (knots[i] - knots[i - 1]) / (knots[i + 1] - knots[i - 1])
        w_right = (knots[i + 1] - knots[i]) / (knots[i + 1] - knots[i - 1])
        f[i] = w_left * fd[i] + w_right * fd[i - 1]
    f[0] = fd[0] - 0.5 * (f[1] - fd[0])
    f[n] = fd[n - 1] - 0.5 * (f[n - 1] - fd[n - 1])

    f[0] = np.clip(f[0], 0.0, 2.0 * fd[0]) if fd[0] >= 0 else f[0]
    for i in range(1, n):
        cap = 2.0 * min(fd[i - 1], fd[i])
        if cap >= 0:
            f[i] = np.clip(f[i], 0.0, cap)
    f[n] = np.clip(f[n], 0.0, 2.0 * fd[n - 1]) if fd[n - 1] >= 0 else f[n]
    return f


def _hw_g(x: np.ndarray, g0: float, g1: float):
    """
    Forward shape g(x) on a segment and its integral G(x) = int_0^x g,
    x in [0, 1]. g(0) = g0, g(1) = g1 and G(1) = 0 in every region, so
    the segment reproduces its discrete forward exactly.
    """
    if g0 == 0.0 and g1 == 0.0:
        zero = np.zeros_like(x)
        return zero, zero

    if (g0 < 0 and -0.5 * g0 <= g1 <= -2.0 * g0) or (g0 > 0 and -0.5 * g0 >= g1 >= -2.0 * g0):
        # region (i): plain quadratic
        g = g0 * (1 - 4 * x + 3 * x ** 2) + g1 * (-2 * x + 3 * x ** 2)
        G = g0 * (x - 2 * x ** 2 + x ** 3) + g1 * (-x ** 2 + x ** 3)
        return g, G

    if (g0 < 0 and g1 > -2.0 * g0) or (g0 > 0 and g1 < -2.0 * g0):
        # region (ii): flat then quadratic
        eta = (g1 + 2.0 * g0) / (g1 - g0)
        right = x > eta
        u = np.where(right, (x - eta) / (1.0 - eta), 0.0)
        g = g0 + (g1 - g0) * u ** 2
        G = g0 * x + (g1 - g0) * (1.0 - eta) * u ** 3 / 3.0
        return g, G

    if (g0 > 0 and 0 > g1 > -0.5 * g0) or (g0 < 0 and 0 < g1 < -0.5 * g0):
        # region (iii): quadratic then flat
        eta = 3.0 * g1 / (g1 - g0)
        v = np.where(x < eta, (eta - x) / eta, 0.0)
        g = g1 + (g0 - g1) * v ** 2
        G = g1 * x + (g0 - g1) * eta / 3.0 * (1.0 - v ** 3)
        return g, G

    # region (iv): g0 and g1 share a sign, two quadratics meeting at eta
    eta = g1 / (g1 + g0)
    A = -g0 * g1 / (g0 + g1)
    left = x < eta
    v = np.where(left & (eta > 0), (eta - x) / np.where(eta > 0, eta, 1.0), 0.0)
    u = np.where(~left & (eta < 1), (x - eta) / np.where(eta < 1, 1.0 - eta, 1.0), 0.0)
    g = A + (g0 - A) * v ** 2 + (g1 - A) * u ** 2
    G = (A * x + (g0 - A) * eta / 3.0 * (1.0 - v ** 3)
         + (g1 - A) * (1.0 - eta) * u ** 3 / 3.0)
    g = np.where(x == 0.0, g0, np.where(x == 1.0, g1, g))
    return g, G


class MonotoneConvexInterpolant(_IntegratedInterpolant):
    """
    Hagan-West monotone convex interpolation of instantaneous forwards.

    Keeps the discrete forward of every segment (exact pillars), places
    collared node forwards at the knots and bends the forward between them
    without spurious oscillation. node_forwards may be supplied to override
    the default collared estimates; the bootstrapper uses this in its
    correction loop.
    """

    def __init__(self, tenors, integrated, node_forwards=None):
        super().__init__(tenors, integrated)
        if node_forwards is None:
            node_forwards = hagan_west_node_forwards(self.knots, self.discrete_forwards)
        self.node_forwards = np.asarray(node_forwards, dtype=float)
        if self.node_forwards.shape != self.knots.shape:
            raise ValueError("node_forwards must have one value per knot (including t=0)")

    def _evaluate(self, t):
        t = np.asarray(t, dtype=float)
        flat_t = np.atleast_1d(t).ravel()
        I = np.empty_like(flat_t)
        f = np.empty_like(flat_t)

        beyond = flat_t > self.knots[-1]
        I[beyond] = self.knot_values[-1] + self.node_forwards[-1] * (flat_t[beyond] - self.knots[-1])
        f[beyond] = self.node_forwards[-1]

        idx = _segment_index(self.knots, flat_t)
        for i in np.unique(idx[~beyond]):
            mask = (idx == i) & ~beyond
            h = self.knots[i + 1] - self.knots[i]
            x = (flat_t[mask] - self.knots[i]) / h
            fd = self.discrete_forwards[i]
            g, G = _hw_g(x, self.node_forwards[i] - fd, self.node_forwards[i + 1] - fd)
            f[mask] = fd + g
            I[mask] = self.knot_values[i] + fd * (flat_t[mask] - self.knots[i]) + h * G

        return I.reshape(t.shape), f.reshape(t.shape)

    def integrated_forward(self, t):
        return self._evaluate(t)[0]

    def forward(self, t):
        return self._evaluate(t)[1]

    def segment_minimum_forward(self, n_points: int) -> np.ndarray:
        """
        Smallest forward on each segment, used to police positivity: a
        uniform sample plus the stationary point of the segment's shape,
        where an interior minimum sits.
        """
        mins = np.empty(len(self.discrete_forwards))
        grid = np.linspace(0.0, 1.0, n_points)
        for i, fd in enumerate(self.discrete_forwards):
            g0, g1 = self.node_forwards[i] - fd, self.node_forwards[i + 1] - fd
            x = grid
            if g0 + g1 != 0.0:
                stationary = (g1 / (g1 + g0), (2.0 * g0 + g1) / (3.0 * (g0 + g1)))
                x = np.concatenate((grid, [s for s in stationary if 0.0 < s < 1.0]))
            g, _ = _hw_g(x, g0, g1)
            mins[i] = np.min(fd + g)
        return mins
