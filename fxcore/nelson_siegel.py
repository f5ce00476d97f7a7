"""
Nelson-Siegel parameterization of the zero curve.

The Nelson-Siegel model (1987) writes the continuously compounded zero
rate at tenor tau as

    r(tau) = b0 + b1 * h1(tau/lam) + b2 * (h1(tau/lam) - exp(-tau/lam))
    h1(x)  = (1 - exp(-x)) / x

where:
    b0  = long-run level (r -> b0 as tau -> inf)
    b1  = slope (short end sits at b0 + b1)
    b2  = curvature / hump
    lam = decay scale in years, locates the hump

The instantaneous forward has the closed form
    f(tau) = b0 + b1 * exp(-x) + b2 * x * exp(-x),   x = tau / lam

This module provides:
    1. Vectorised zero-rate and forward evaluation
    2. A weighted least-squares fit (swaps weighted above guides)
    3. A curve interpolant that adds back the fit residuals at swap
       pillars, so swaps stay exact calibration points

References:
    Nelson, C. & Siegel, A. (1987). Parsimonious Modeling of Yield Curves.
    Diebold, F. & Li, C. (2006). Forecasting the term structure of
        government bond yields.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np
from scipy.optimize import minimize

from . import config
from .interpolation import Interpolant

logger = logging.getLogger(__name__)


# ════════════════════════════════════════════════════════════════════════
#  NS EVALUATION
# ════════════════════════════════════════════════════════════════════════

def _loadings(tau: np.ndarray, lam: float):
    """Slope and curvature loadings, with the tau -> 0 limit (1, 0)."""
    x = np.asarray(tau, dtype=float) / lam
    safe = np.where(x > 1e-12, x, 1.0)
    h1 = np.where(x > 1e-12, -np.expm1(-safe) / safe, 1.0)
    h2 = h1 - np.exp(-x)
    return h1, h2


def ns_zero_rate(tau, b0: float, b1: float, b2: float, lam: float) -> np.ndarray:
    """Nelson-Siegel zero rate at tenor(s) tau."""
    h1, h2 = _loadings(tau, lam)
    return b0 + b1 * h1 + b2 * h2


def ns_forward_rate(tau, b0: float, b1: float, b2: float, lam: float) -> np.ndarray:
    """Nelson-Siegel instantaneous forward rate at tenor(s) tau."""
    x = np.asarray(tau, dtype=float) / lam
    e = np.exp(-x)
    return b0 + b1 * e + b2 * x * e


# ════════════════════════════════════════════════════════════════════════
#  CALIBRATION
# ════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class NelsonSiegelFit:
    b0: float
    b1: float
    b2: float
    lam: float
    rmse: float
    iterations: int
    converged: bool
    message: str = ""

    @property
    def params(self):
        return self.b0, self.b1, self.b2, self.lam


def fit_nelson_siegel(
    tenors: Sequence[float],
    rates: Sequence[float],
    weights: Optional[Sequence[float]] = None,
    max_iter: int = None,
    initial_params: Optional[Sequence[float]] = None,
) -> NelsonSiegelFit:
    """
    Fit (b0, b1, b2, lam) by weighted least squares on zero rates.

    Uses L-BFGS-B with bounds on lam (config.NS_LAMBDA_BOUNDS). The
    betas are free. The result reports whether the optimizer converged
    within max_iter; deciding what to do about it is the caller's job.

    Parameters
    ----------
    tenors : pillar tenors in years
    rates : zero rates (decimal) at those tenors
    weights : per-point weights (default: all ones)
    max_iter : iteration budget (default: config.NS_MAX_ITER)
    initial_params : starting (b0, b1, b2, lam); default from the data

    Returns
    -------
    NelsonSiegelFit
    """
    if max_iter is None:
        max_iter = config.NS_MAX_ITER

    tau = np.asarray(tenors, dtype=float)
    y = np.asarray(rates, dtype=float)
    w = np.ones_like(y) if weights is None else np.asarray(weights, dtype=float)

    if initial_params is None:
        # heuristic start: long end sets the level, short end the slope
        order = np.argsort(tau)
        long_rate, short_rate = y[order[-1]], y[order[0]]
        initial_params = (long_rate, short_rate - long_rate, 0.0, config.NS_INITIAL_LAMBDA)

    bounds = [
        (None, None),              # b0
        (None, None),              # b1
        (None, None),              # b2
        config.NS_LAMBDA_BOUNDS,   # lam
    ]

    def objective(params):
        b0, b1, b2, lam = params
        h1, h2 = _loadings(tau, lam)
        residuals = b0 + b1 * h1 + b2 * h2 - y
        # d r / d lam, using h1' = (e^-x - h1) / x and dx/dlam = -x / lam
        e = np.exp(-tau / lam)
        dr_dlam = -(b1 * (e - h1) + b2 * (e - h1 + (tau / lam) * e)) / lam
        wr = 2.0 * w * residuals
        grad = np.array([wr.sum(), (wr * h1).sum(), (wr * h2).sum(), (wr * dr_dlam).sum()])
        return np.sum(w * residuals ** 2), grad

    result = minimize(
        objective, np.asarray(initial_params, dtype=float), jac=True,
        method="L-BFGS-B", bounds=bounds,
        options={"maxiter": max_iter, "ftol": config.NS_TOL, "gtol": 1e-12},
    )

    b0, b1, b2, lam = result.x
    fitted = ns_zero_rate(tau, b0, b1, b2, lam)
    rmse = float(np.sqrt(np.mean((fitted - y) ** 2)))
    logger.debug("Nelson-Siegel fit: params=%s rmse=%.3e nit=%s status=%s",
                 result.x, rmse, result.nit, result.status)

    # status 1 = iteration/evaluation budget exhausted; status 2 = line search
    # stall, kept only when the fit is already within NS_STALL_RMSE_TOL
    converged = result.status == 0
    if result.status == 2:
        converged = rmse <= config.NS_STALL_RMSE_TOL
        logger.warning("Nelson-Siegel line search stalled (%s), rmse=%.3e, %s",
                       result.message, rmse, "kept" if converged else "rejected")

    return NelsonSiegelFit(
        b0=float(b0), b1=float(b1), b2=float(b2), lam=float(lam),
        rmse=rmse,
        iterations=int(result.nit),
        converged=converged,
        message=str(result.message),
    )


# ════════════════════════════════════════════════════════════════════════
#  CURVE INTERPOLANT
# ════════════════════════════════════════════════════════════════════════

class NelsonSiegelInterpolant(Interpolant):
    """
    NS zero curve plus a spread that pins the exact calibration points.

    spread(t) is the linear interpolation (flat outside) of the fit
    residuals at the exact pillars, so r(t_swap) equals the swap rate.
    With no exact pillars the spread is zero and the curve is pure NS.
    """

    def __init__(self, fit: NelsonSiegelFit, exact_tenors, exact_rates):
        exact_tenors = np.asarray(exact_tenors, dtype=float)
        exact_rates = np.asarray(exact_rates, dtype=float)
        if len(exact_tenors):
            residuals = exact_rates - ns_zero_rate(exact_tenors, *fit.params)
            super().__init__(exact_tenors, residuals)
        else:
            self.tenors = exact_tenors
            self.values = exact_rates
        self.fit = fit

    def _spread(self, t):
        if len(self.tenors) == 0:
            return np.zeros_like(t), np.zeros_like(t)
        spread = np.interp(t, self.tenors, self.values)
        if len(self.tenors) == 1:
            return spread, np.zeros_like(t)
        i = np.clip(np.searchsorted(self.tenors, t, side="right") - 1, 0, len(self.tenors) - 2)
        slopes = np.diff(self.values) / np.diff(self.tenors)
        inside = (t >= self.tenors[0]) & (t < self.tenors[-1])
        return spread, np.where(inside, slopes[i], 0.0)

    def zero_rate(self, t):
        spread, _ = self._spread(t)
        return ns_zero_rate(t, *self.fit.params) + spread

    def integrated_forward(self, t):
        return self.zero_rate(t) * t

    def forward(self, t):
        spread, slope = self._spread(t)
        return ns_forward_rate(t, *self.fit.params) + spread + t * slope
