"""
The bootstrapped term structure.

A Curve is produced by exactly one bootstrap call and never changes
afterwards. Every query goes through the method's interpolant:

    DF(t)   = exp(-Y(t)),  Y(t) = integrated forward from 0 to t
    r(t)    = Y(t) / t      (instantaneous short rate at t = 0)
    f(t)    = dY/dt

so DF(0) = 1 for every method and zero rates round-trip exactly
through discount factors.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from . import config
from .interpolation import Interpolant
from .quotes import SourceKind, basis_convention


class CurveMethod(Enum):
    LINEAR = "linear"
    CUBIC_SPLINE = "cubic_spline"
    NELSON_SIEGEL = "nelson_siegel"
    BLOOMBERG = "bloomberg"
    QL_LOG_LINEAR = "quantlib_log_linear"
    QL_MONOTONIC_CONVEX = "quantlib_monotonic_convex"
    QL_LOG_CUBIC = "quantlib_log_cubic"
    QL_LINEAR_FORWARD = "quantlib_linear_forward"

    @property
    def guarantees_positive_forwards(self) -> bool:
        return self in (CurveMethod.BLOOMBERG, CurveMethod.QL_LOG_LINEAR,
                        CurveMethod.QL_MONOTONIC_CONVEX)

    @classmethod
    def parse(cls, value) -> "CurveMethod":
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower().replace("-", "_").replace(" ", "_")
        aliases = {
            "cubic": "cubic_spline", "spline": "cubic_spline", "ns": "nelson_siegel",
            "log_linear": "quantlib_log_linear", "ql_log_linear": "quantlib_log_linear",
            "monotonic_convex": "quantlib_monotonic_convex",
            "ql_monotonic_convex": "quantlib_monotonic_convex",
            "log_cubic": "quantlib_log_cubic", "ql_log_cubic": "quantlib_log_cubic",
            "linear_forward": "quantlib_linear_forward",
            "ql_linear_forward": "quantlib_linear_forward",
        }
        return cls(aliases.get(text, text))


def zero_rate_to_discount_factor(rate, t):
    """DF = exp(-r t), continuous compounding."""
    return np.exp(-np.asarray(rate, dtype=float) * np.asarray(t, dtype=float))


def discount_factor_to_zero_rate(df, t):
    """r = -ln(DF) / t, continuous compounding. t must be positive."""
    t = np.asarray(t, dtype=float)
    if np.any(t <= 0):
        raise ValueError("zero rate from a discount factor needs t > 0")
    return -np.log(np.asarray(df, dtype=float)) / t


def _scalar_or_array(t, values):
    return float(values) if np.ndim(t) == 0 else values


@dataclass(frozen=True)
class CurvePillar:
    tenor: float
    discount_factor: float
    zero_rate: float
    source: SourceKind


@dataclass(frozen=True)
class Curve:
    """
    Queryable discount / zero / forward curve.

    Attributes
    ----------
    currency : ISO code the curve was built for
    method : CurveMethod used by the bootstrapper
    pillars : calibration points actually used (after guide adjustment)
    interpolant : evaluator shared by every query
    """

    currency: str
    method: CurveMethod
    pillars: Tuple[CurvePillar, ...]
    interpolant: Interpolant

    # ── queries ─────────────────────────────────────────────────────────

    def discount_factor(self, t):
        """Discount factor at tenor(s) t >= 0."""
        t_arr = self._check_tenor(t)
        return _scalar_or_array(t, np.exp(-self.interpolant.integrated_forward(t_arr)))

    def zero_rate(self, t):
        """Continuously compounded zero rate; the short rate at t = 0."""
        t_arr = self._check_tenor(t)
        safe_t = np.where(t_arr > 0, t_arr, 1.0)
        rates = np.where(
            t_arr > 0,
            self.interpolant.integrated_forward(safe_t) / safe_t,
            self.interpolant.forward(np.zeros_like(t_arr)),
        )
        return _scalar_or_array(t, rates)

    def forward_rate(self, t):
        """Instantaneous forward rate at tenor(s) t."""
        t_arr = self._check_tenor(t)
        return _scalar_or_array(t, self.interpolant.forward(t_arr))

    def forward_rate_between(self, t1: float, t2: float) -> float:
        """Continuously compounded forward rate for the period [t1, t2]."""
        if t2 <= t1:
            raise ValueError(f"forward period needs t2 > t1, got {t1}, {t2}")
        y = self.interpolant.integrated_forward(np.array([t1, t2], dtype=float))
        return float((y[1] - y[0]) / (t2 - t1))

    @property
    def max_tenor(self) -> float:
        return self.pillars[-1].tenor

    def swap_pillars(self) -> Tuple[CurvePillar, ...]:
        return tuple(p for p in self.pillars if p.source is SourceKind.SWAP)

    @staticmethod
    def _check_tenor(t) -> np.ndarray:
        t_arr = np.asarray(t, dtype=float)
        if np.any(t_arr < 0) or np.any(~np.isfinite(t_arr)):
            raise ValueError(f"tenors must be finite and >= 0, got {t!r}")
        return t_arr

    # ── export ──────────────────────────────────────────────────────────

    def report(self, tenors: Optional[Sequence[float]] = None) -> pd.DataFrame:
        """
        Discount-factor table with columns tenor, discountFactor, zeroRate,
        forwardRate. Defaults to one row per pillar.
        """
        if tenors is None:
            tenors = [p.tenor for p in self.pillars]
        t = np.asarray(tenors, dtype=float)
        return pd.DataFrame({
            "tenor": t,
            "discountFactor": np.atleast_1d(self.discount_factor(t)),
            "zeroRate": np.atleast_1d(self.zero_rate(t)),
            "forwardRate": np.atleast_1d(self.forward_rate(t)),
        })

    def grid_report(self, n_points: int = None) -> pd.DataFrame:
        """Report on an even grid from 0 to the last pillar, for charts."""
        if n_points is None:
            n_points = config.REPORT_GRID_POINTS
        return self.report(np.linspace(0.0, self.max_tenor, n_points))

    def to_csv(self, path_or_buf=None, tenors: Optional[Sequence[float]] = None, sep: str = ","):
        """Write the report as delimited text; returns the text when no target is given."""
        return self.report(tenors).to_csv(path_or_buf, sep=sep, index=False, float_format="%.10f")

    def summary(self) -> dict:
        """Short description for logs and the CLI."""
        conv = basis_convention(self.currency)
        return {
            "currency": self.currency,
            "method": self.method.value,
            "n_pillars": len(self.pillars),
            "n_swaps": len(self.swap_pillars()),
            "max_tenor": self.max_tenor,
            "day_count": conv["dayCount"],
            "short_rate": self.zero_rate(0.0),
            "long_rate": self.zero_rate(self.max_tenor),
        }
