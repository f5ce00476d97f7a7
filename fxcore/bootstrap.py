"""
Curve bootstrapping: from instrument quotes to a Curve.

Golden rule shared by every method: swaps are exact calibration points.
Futures (or government bonds, on the bonds-only path) are guides. They
fill the gaps between swaps and are adjusted, or dropped, whenever taking
them verbatim would create a negative or wildly oscillating forward.

The pipeline:
    1. Clean the quote set (dedupe tenors, drop futures sitting on a swap)
    2. Adjust guides against their neighbouring points
    3. Build the method's interpolant from the prepared points
    4. Wrap the interpolant in an immutable Curve

Methods:
    LINEAR               linear zero rates
    CUBIC_SPLINE         natural cubic spline on zero rates
    NELSON_SIEGEL        weighted NS fit, residual spread pins swaps
    BLOOMBERG            log-DF base on swaps, guides, smoothed forwards
    QL_LOG_LINEAR        sequential DF bootstrap, log-linear DF
    QL_MONOTONIC_CONVEX  sequential bootstrap, Hagan-West monotone convex
    QL_LOG_CUBIC         natural cubic spline on log DF
    QL_LINEAR_FORWARD    piecewise-linear forwards

A swap quote is read as the continuously compounded zero rate at its
tenor, so the DF it implies is exp(-rate * tenor).
"""

import logging
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional

import numpy as np
from scipy.optimize import minimize

from . import config
from .curve import Curve, CurveMethod, CurvePillar
from .errors import InsufficientDataError, NegativeForwardError, NonConvergenceError
from .interpolation import (
    CubicSplineZeroInterpolant,
    LinearForwardInterpolant,
    LinearZeroInterpolant,
    LogCubicDiscount,
    LogLinearDiscount,
    MonotoneConvexInterpolant,
)
from .nelson_siegel import NelsonSiegelInterpolant, fit_nelson_siegel
from .quotes import InstrumentQuote, SourceKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CalibrationPoint:
    """A quote after cleaning: exact (swap) or guide, possibly adjusted."""

    tenor: float
    rate: float
    source: SourceKind
    exact: bool
    quoted_rate: float

    @property
    def integrated(self) -> float:
        """-ln DF at the point."""
        return self.rate * self.tenor

    @property
    def adjusted(self) -> bool:
        return self.rate != self.quoted_rate


# ════════════════════════════════════════════════════════════════════════
#  SHARED DISCIPLINE
# ════════════════════════════════════════════════════════════════════════

def _dedupe(quotes: List[InstrumentQuote]) -> List[InstrumentQuote]:
    """One quote per tenor, keeping the highest priority (lowest number)."""
    best: Dict[float, InstrumentQuote] = {}
    for q in quotes:
        kept = best.get(q.tenor)
        if kept is None or q.priority < kept.priority:
            best[q.tenor] = q
        else:
            logger.info("dropping duplicate %s quote at %.4fy", q.source.value, q.tenor)
    return sorted(best.values(), key=lambda q: q.tenor)


def _check_exact_points(swaps: List[InstrumentQuote]) -> None:
    """Swaps may not imply a negative forward for positive-forward methods."""
    prev_y = 0.0
    for q in swaps:
        y = q.rate * q.tenor
        if y < prev_y - config.FORWARD_FLOOR_TOL:
            raise NegativeForwardError(
                q, f"swap at {q.tenor:g}y implies a negative forward from the previous pillar")
        prev_y = y


def prepare_points(quotes: Iterable[InstrumentQuote], positive_forwards: bool = False) -> List[CalibrationPoint]:
    """
    Clean a quote set into calibration points sorted by tenor.

    Parameters
    ----------
    quotes : raw quotes of any source kind
    positive_forwards : enforce forward >= 0 from t = 0 (and fail on
                        swaps that violate it) rather than only between points

    Returns
    -------
    list of CalibrationPoint

    Raises
    ------
    InsufficientDataError : fewer than 2 usable quotes after cleaning
    NegativeForwardError : swaps imply a negative forward and positive_forwards is set
    """
    quotes = list(quotes)
    swaps = _dedupe([q for q in quotes if q.is_swap])
    guides = _dedupe([q for q in quotes if not q.is_swap])

    kept_guides = []
    for g in guides:
        if any(abs(g.tenor - s.tenor) <= config.TENOR_MATCH_TOLERANCE for s in swaps):
            logger.info("dropping %s at %.4fy in favour of the swap at the same tenor",
                        g.source.value, g.tenor)
            continue
        kept_guides.append(g)

    n_usable = len(swaps) + len(kept_guides)
    if n_usable < 2:
        raise InsufficientDataError(n_usable)

    if positive_forwards:
        _check_exact_points(swaps)

    swap_tenors = np.array([s.tenor for s in swaps])
    swap_rates = np.array([s.rate for s in swaps])

    points = [CalibrationPoint(s.tenor, s.rate, s.source, True, s.rate) for s in swaps]
    prev_y = 0.0 if positive_forwards else -np.inf

    merged = sorted(swaps + kept_guides, key=lambda q: q.tenor)
    for q in merged:
        if q.is_swap:
            prev_y = q.rate * q.tenor
            continue

        rate = q.rate
        right = np.searchsorted(swap_tenors, q.tenor)
        has_left = right > 0
        has_right = right < len(swaps)

        # between two swaps: stay close to the straight line joining them
        if has_left and has_right:
            t0, t1 = swap_tenors[right - 1], swap_tenors[right]
            r0, r1 = swap_rates[right - 1], swap_rates[right]
            line = r0 + (r1 - r0) * (q.tenor - t0) / (t1 - t0)
            rate = float(np.clip(rate, line - config.GUIDE_MAX_DEVIATION, line + config.GUIDE_MAX_DEVIATION))

        # no negative forward into the guide, nor out of it to the next swap
        lo = prev_y
        hi = swap_rates[right] * swap_tenors[right] if has_right else np.inf
        if lo > hi:
            logger.warning("dropping %s at %.4fy: no rate keeps both adjacent forwards non-negative",
                           q.source.value, q.tenor)
            continue
        y = rate * q.tenor
        if y < lo or y > hi:
            rate = float(np.clip(y, lo, hi)) / q.tenor

        if rate != q.rate:
            logger.info("adjusted %s at %.4fy from %.6f to %.6f", q.source.value, q.tenor, q.rate, rate)
        points.append(CalibrationPoint(q.tenor, rate, q.source, False, q.rate))
        prev_y = rate * q.tenor

    points.sort(key=lambda p: p.tenor)
    if len(points) < 2:
        raise InsufficientDataError(len(points))
    return points


def _sequential_integrated(points: List[CalibrationPoint], method: CurveMethod) -> np.ndarray:
    """
    Instrument-by-instrument DF bootstrap. Each point fixes -ln DF at its
    tenor given everything before it; a DF that rises is a negative forward.
    """
    ys = np.empty(len(points))
    prev_y = 0.0
    for i, p in enumerate(points):
        y = p.integrated
        if y < prev_y - config.FORWARD_FLOOR_TOL:
            raise NegativeForwardError(p, f"{method.value}: DF rises at {p.tenor:g}y")
        ys[i] = max(y, prev_y) if not p.exact else y
        prev_y = ys[i]
        logger.debug("%s pillar %.4fy: DF=%.10f", method.value, p.tenor, np.exp(-ys[i]))
    return ys


# ════════════════════════════════════════════════════════════════════════
#  METHOD IMPLEMENTATIONS
# ════════════════════════════════════════════════════════════════════════

def _build_linear(points, **_):
    return LinearZeroInterpolant([p.tenor for p in points], [p.rate for p in points])


def _build_cubic_spline(points, **_):
    return CubicSplineZeroInterpolant([p.tenor for p in points], [p.rate for p in points])


def _build_nelson_siegel(points, ns_max_iter=None, **_):
    weights = [config.NS_SWAP_WEIGHT if p.exact else config.NS_GUIDE_WEIGHT for p in points]
    fit = fit_nelson_siegel([p.tenor for p in points], [p.rate for p in points],
                            weights=weights, max_iter=ns_max_iter)
    if not fit.converged:
        raise NonConvergenceError(CurveMethod.NELSON_SIEGEL.value, fit.iterations, fit.message)
    logger.info("Nelson-Siegel: b0=%.5f b1=%.5f b2=%.5f lam=%.3f rmse=%.2e",
                fit.b0, fit.b1, fit.b2, fit.lam, fit.rmse)
    exact = [p for p in points if p.exact]
    return NelsonSiegelInterpolant(fit, [p.tenor for p in exact], [p.rate for p in exact])


def _build_log_linear(points, **_):
    ys = _sequential_integrated(points, CurveMethod.QL_LOG_LINEAR)
    return LogLinearDiscount([p.tenor for p in points], ys)


def _build_log_cubic(points, **_):
    return LogCubicDiscount([p.tenor for p in points], [p.integrated for p in points])


def _build_linear_forward(points, **_):
    return LinearForwardInterpolant([p.tenor for p in points], [p.integrated for p in points])


def _build_monotonic_convex(points, **_):
    """
    Hagan-West monotone convex with an explicit bounded correction loop:
    any segment whose sampled forward dips below zero has its node forwards
    pulled toward the segment's discrete forward, then the check reruns.
    """
    tenors = [p.tenor for p in points]
    ys = _sequential_integrated(points, CurveMethod.QL_MONOTONIC_CONVEX)
    interp = MonotoneConvexInterpolant(tenors, ys)
    nodes = interp.node_forwards.copy()

    for iteration in range(config.MC_MAX_ITER):
        mins = interp.segment_minimum_forward(config.MC_CHECK_POINTS)
        bad = np.flatnonzero(mins < -config.FORWARD_FLOOR_TOL)
        if len(bad) == 0:
            logger.debug("monotone convex clean after %d correction passes", iteration)
            return interp
        for i in bad:
            fd = interp.discrete_forwards[i]
            nodes[i] = fd + config.MC_SHRINK * (nodes[i] - fd)
            nodes[i + 1] = fd + config.MC_SHRINK * (nodes[i + 1] - fd)
        logger.debug("monotone convex pass %d: corrected segments %s", iteration, bad.tolist())
        interp = MonotoneConvexInterpolant(tenors, ys, nodes)

    worst = int(np.argmin(interp.segment_minimum_forward(config.MC_CHECK_POINTS)))
    raise NegativeForwardError(points[worst], "monotone convex could not remove a negative forward")


def _smooth_forwards(f: np.ndarray) -> np.ndarray:
    """Weighted moving average, then forward >= 0 and bounded steps."""
    w_prev, w_mid, w_next = config.BLOOMBERG_SMOOTHING_WEIGHTS
    f = f.copy()
    for _ in range(config.BLOOMBERG_SMOOTHING_PASSES):
        if len(f) < 3:
            break
        padded = np.concatenate(([f[0]], f, [f[-1]]))
        f = w_prev * padded[:-2] + w_mid * padded[1:-1] + w_next * padded[2:]

    f = np.maximum(f, 0.0)
    step = config.BLOOMBERG_MAX_FORWARD_STEP
    for j in range(1, len(f)):
        f[j] = max(0.0, min(max(f[j], f[j - 1] - step), f[j - 1] + step))
    return f


def _refine_grid(tenors: np.ndarray, spacing: float) -> np.ndarray:
    """0, every tenor, and even sub-knots so no interval is wider than spacing."""
    knots = [0.0]
    for a, b in zip(np.concatenate(([0.0], tenors[:-1])), tenors):
        n = max(1, int(np.ceil((b - a) / spacing - 1e-9)))
        knots.extend(np.linspace(a, b, n + 1)[1:])
    return np.array(knots)


def _rescale_segments(f: np.ndarray, dt: np.ndarray, seg_ends: np.ndarray, targets: np.ndarray) -> np.ndarray:
    """Scale forwards within each anchor segment so its integral hits the target."""
    f = f.copy()
    start = 0
    for end, target in zip(seg_ends, targets):
        current = float(np.sum(f[start:end] * dt[start:end]))
        if current > 0:
            f[start:end] *= target / current
        else:
            f[start:end] = target / np.sum(dt[start:end])
        start = end
    return f


def _fit_bounded_forwards(f_smooth, dt, seg_ends, targets) -> Optional[np.ndarray]:
    """
    Forwards closest to f_smooth (dt-weighted least squares) that integrate
    to every anchor segment target, stay >= 0 and move by at most
    BLOOMBERG_MAX_FORWARD_STEP between neighbours. None when SLSQP ends
    on a point that breaks any of those constraints.

    Solved in basis points so the tolerances are not lost in the noise.
    """
    bp = 1e4
    n = len(f_smooth)
    xs = f_smooth * bp
    step = config.BLOOMBERG_MAX_FORWARD_STEP * bp

    A = np.zeros((len(seg_ends), n))
    start = 0
    for k, end in enumerate(seg_ends):
        A[k, start:end] = dt[start:end]
        start = end
    b = targets * bp

    constraints = [{"type": "eq", "fun": lambda x: A @ x - b, "jac": lambda x: A}]
    if n > 1:
        D = np.diff(np.eye(n), axis=0)
        G = np.vstack((-D, D))
        constraints.append({"type": "ineq", "fun": lambda x: step + G @ x, "jac": lambda x: G})

    x0 = _rescale_segments(f_smooth, dt, seg_ends, targets) * bp
    result = minimize(
        lambda x: float(np.sum(dt * (x - xs) ** 2)),
        x0,
        jac=lambda x: 2.0 * dt * (x - xs),
        method="SLSQP",
        bounds=[(0.0, None)] * n,
        constraints=constraints,
        options={"maxiter": config.BLOOMBERG_FIT_MAX_ITER, "ftol": 1e-10},
    )
    f = np.maximum(result.x, 0.0) / bp
    residual = float(np.max(np.abs(A @ f - targets)))
    worst_step = float(np.max(np.abs(np.diff(f)))) if n > 1 else 0.0
    logger.debug("bloomberg fit: success=%s nit=%d residual=%.2e max step=%.4f",
                 result.success, result.nit, residual, worst_step)
    if residual > config.BLOOMBERG_FIT_TOL or worst_step > config.BLOOMBERG_MAX_FORWARD_STEP + config.BLOOMBERG_FIT_TOL:
        return None
    return f


def _build_bloomberg(points, **_):
    """
    1. DFs from the anchors (swaps; every point on the bonds-only path)
    2. log DF linear between anchors as the base curve
    3. guides inserted halfway between the base and their own quote
    4. quote intervals split into sub-knots, forwards smoothed
    5. closest forwards >= 0 with bounded steps that hit every anchor DF;
       when none exist the smoothed forwards are rescaled per anchor
       segment instead, keeping the anchors exact
    """
    anchors = [p for p in points if p.exact] or list(points)
    anchor_tenors = np.array([p.tenor for p in anchors])
    anchor_ys = _sequential_integrated(anchors, CurveMethod.BLOOMBERG)
    base = LogLinearDiscount(anchor_tenors, anchor_ys)

    anchor_set = set(anchor_tenors.tolist())
    grid = np.array(sorted({p.tenor for p in points}))
    ys = np.empty(len(grid))
    for j, t in enumerate(grid):
        if t in anchor_set:
            ys[j] = anchor_ys[np.searchsorted(anchor_tenors, t)]
        else:
            guide = next(p for p in points if p.tenor == t)
            y_base = float(base.integrated_forward(np.array(t)))
            ys[j] = y_base + 0.5 * (guide.integrated - y_base)
    coarse = np.diff(np.concatenate(([0.0], ys))) / np.diff(np.concatenate(([0.0], grid)))

    knots = _refine_grid(grid, config.BLOOMBERG_KNOT_SPACING)
    dt = np.diff(knots)
    f_smooth = _smooth_forwards(coarse[np.searchsorted(grid, knots[1:])])

    seg_ends = np.searchsorted(knots, anchor_tenors)
    targets = np.diff(np.concatenate(([0.0], anchor_ys)))
    if np.any(targets < -config.FORWARD_FLOOR_TOL):
        raise NegativeForwardError(anchors[0], "bloomberg: anchors imply a negative forward")
    targets = np.maximum(targets, 0.0)

    f = _fit_bounded_forwards(f_smooth, dt, seg_ends, targets)
    if f is None:
        logger.warning("bloomberg: no forwards within %.0fbp steps reproduce every anchor; steps left unbounded",
                       config.BLOOMBERG_MAX_FORWARD_STEP * 1e4)
        f = f_smooth
    f = _rescale_segments(f, dt, seg_ends, targets)

    final_ys = np.cumsum(f * dt)
    # snap anchors to their exact values, removing cumulative rounding
    final_ys[seg_ends - 1] = anchor_ys
    return LogLinearDiscount(knots[1:], final_ys)


_BUILDERS = {
    CurveMethod.LINEAR: _build_linear,
    CurveMethod.CUBIC_SPLINE: _build_cubic_spline,
    CurveMethod.NELSON_SIEGEL: _build_nelson_siegel,
    CurveMethod.BLOOMBERG: _build_bloomberg,
    CurveMethod.QL_LOG_LINEAR: _build_log_linear,
    CurveMethod.QL_MONOTONIC_CONVEX: _build_monotonic_convex,
    CurveMethod.QL_LOG_CUBIC: _build_log_cubic,
    CurveMethod.QL_LINEAR_FORWARD: _build_linear_forward,
}


# ════════════════════════════════════════════════════════════════════════
#  PUBLIC ENTRY POINTS
# ════════════════════════════════════════════════════════════════════════

def bootstrap(
    quotes: Iterable[InstrumentQuote],
    method,
    currency: str = "USD",
    ns_max_iter: Optional[int] = None,
) -> Curve:
    """
    Build a curve from quotes with the given method.

    Parameters
    ----------
    quotes : swaps, futures and/or bonds
    method : CurveMethod or its name ("bloomberg", "quantlib_log_linear", ...)
    currency : ISO code carried on the curve
    ns_max_iter : Nelson-Siegel iteration budget (default: config.NS_MAX_ITER)

    Returns
    -------
    Curve

    Raises
    ------
    InsufficientDataError : fewer than 2 usable quotes
    NonConvergenceError : Nelson-Siegel optimizer ran out of iterations
    NegativeForwardError : a positive-forward method cannot avoid a negative forward
    """
    method = CurveMethod.parse(method)
    points = prepare_points(quotes, positive_forwards=method.guarantees_positive_forwards)
    logger.debug("%s %s: %d points (%d exact)", currency, method.value,
                 len(points), sum(p.exact for p in points))

    interpolant = _BUILDERS[method](points, ns_max_iter=ns_max_iter)

    tenors = np.array([p.tenor for p in points])
    ys = interpolant.integrated_forward(tenors)
    pillars = tuple(
        CurvePillar(tenor=float(t), discount_factor=float(np.exp(-y)), zero_rate=float(y / t), source=p.source)
        for t, y, p in zip(tenors, ys, points)
    )
    return Curve(currency=currency.upper(), method=method, pillars=pillars, interpolant=interpolant)


def bootstrap_bonds(quotes: Iterable[InstrumentQuote], method, currency: str) -> Curve:
    """
    Bonds-only path for currencies without a swap/futures strip.

    Every quote must be a government bond yield; the yields act as the
    guides and are adjusted for non-negative forwards exactly like futures.
    """
    quotes = list(quotes)
    others = [q for q in quotes if q.source is not SourceKind.BOND]
    if others:
        raise ValueError(f"bonds-only bootstrap got non-bond quotes: {others[:3]}")
    return bootstrap(quotes, method, currency)


def bootstrap_curves(
    quote_sets: Mapping[str, Iterable[InstrumentQuote]],
    method,
    max_workers: Optional[int] = None,
    timeout: Optional[float] = None,
) -> Dict[str, Curve]:
    """
    Bootstrap independent currencies in parallel.

    Curves share no state, so each currency runs in its own worker.
    timeout bounds the caller's wait for the whole batch (sensible for
    Nelson-Siegel): on expiry queued currencies are cancelled and the call
    returns without joining workers still running. The first error raised
    by any currency propagates unchanged.

    Raises
    ------
    TimeoutError : some currencies did not finish within timeout
    """
    pool = ThreadPoolExecutor(max_workers=max_workers)
    futures = {ccy: pool.submit(bootstrap, list(quotes), method, ccy)
               for ccy, quotes in quote_sets.items()}
    done, pending = wait(futures.values(), timeout=timeout)
    if pending:
        pool.shutdown(wait=False, cancel_futures=True)
        late = sorted(ccy for ccy, fut in futures.items() if fut in pending)
        logger.warning("bootstrap timed out after %ss for %s", timeout, late)
        raise TimeoutError(f"bootstrap timed out for {late}")
    pool.shutdown()
    return {ccy: fut.result() for ccy, fut in futures.items()}
