"""
Garman-Kohlhagen pricing and analytic greeks for FX vanilla options.

Garman-Kohlhagen is Black-Scholes with the foreign interest rate in the
role of a continuous dividend yield: the spot drifts at r_d - r_f and
payoffs are discounted at r_d. Prices are in quote-currency units per
unit of base currency.

Everything here is closed-form.

References:
    Garman, M. & Kohlhagen, S. (1983). Foreign Currency Option Values.
        Journal of International Money and Finance, 2(3), 231-237.
    Hull, J.C. (2018). Options, Futures, and Other Derivatives. 10th ed.
"""

import math

import numpy as np
from scipy.stats import norm

from .errors import InvalidOptionParameters


def check_inputs(S: float, K, r_d: float, r_f: float, T: float, sigma: float,
                 strike_required: bool = True) -> None:
    """
    Fail fast on inputs no formula in this package can price.

    K may be None for products without a strike (touches, ranges) when
    strike_required is False.

    Raises
    ------
    InvalidOptionParameters : naming the first offending parameter
    """
    for name, value in (("spot", S), ("strike", K), ("maturity", T), ("volatility", sigma)):
        if name == "strike" and value is None and not strike_required:
            continue
        if value is None or not math.isfinite(value) or value <= 0:
            raise InvalidOptionParameters(name, value, f"{name} must be a positive number, got {value!r}")
    for name, value in (("domestic_rate", r_d), ("foreign_rate", r_f)):
        if value is None or not math.isfinite(value):
            raise InvalidOptionParameters(name, value, f"{name} must be a finite number, got {value!r}")


# ════════════════════════════════════════════════════════════════════════
#  PRICING
# ════════════════════════════════════════════════════════════════════════

def d1(S: float, K: float, r_d: float, r_f: float, T: float, sigma: float) -> float:
    """
    Compute d1 in the Garman-Kohlhagen formula.

    Parameters
    ----------
    S : spot rate (quote per base)
    K : strike
    r_d : domestic (quote currency) rate, continuous compounding
    r_f : foreign (base currency) rate, continuous compounding
    T : time to expiry in years
    sigma : volatility (annualized)

    Returns
    -------
    float
    """
    return (np.log(S / K) + (r_d - r_f + 0.5 * sigma**2) * T) / (sigma * np.sqrt(T))


def d2(S: float, K: float, r_d: float, r_f: float, T: float, sigma: float) -> float:
    """Compute d2 = d1 - sigma * sqrt(T)."""
    return d1(S, K, r_d, r_f, T, sigma) - sigma * np.sqrt(T)


def call_price(S: float, K: float, r_d: float, r_f: float, T: float, sigma: float) -> float:
    """
    European FX call:
        C = S e^{-r_f T} N(d1) - K e^{-r_d T} N(d2)
    """
    _d1 = d1(S, K, r_d, r_f, T, sigma)
    _d2 = _d1 - sigma * np.sqrt(T)
    return float(S * np.exp(-r_f * T) * norm.cdf(_d1) - K * np.exp(-r_d * T) * norm.cdf(_d2))


def put_price(S: float, K: float, r_d: float, r_f: float, T: float, sigma: float) -> float:
    """
    European FX put:
        P = K e^{-r_d T} N(-d2) - S e^{-r_f T} N(-d1)
    """
    _d1 = d1(S, K, r_d, r_f, T, sigma)
    _d2 = _d1 - sigma * np.sqrt(T)
    return float(K * np.exp(-r_d * T) * norm.cdf(-_d2) - S * np.exp(-r_f * T) * norm.cdf(-_d1))


def _is_call(kind) -> bool:
    if hasattr(kind, "is_call"):
        return kind.is_call
    text = str(kind).lower()
    if text in ("c", "call"):
        return True
    if text in ("p", "put"):
        return False
    raise ValueError(f"Unknown option kind: {kind}. Use 'call' or 'put'.")


def price_vanilla(kind, S: float, K: float, r_d: float, r_f: float, T: float, sigma: float) -> float:
    """
    Validate inputs, then dispatch to call_price or put_price.

    kind is an OptionKind (CALL / PUT) or the strings "call" / "put".
    """
    check_inputs(S, K, r_d, r_f, T, sigma)
    if _is_call(kind):
        return call_price(S, K, r_d, r_f, T, sigma)
    return put_price(S, K, r_d, r_f, T, sigma)


# ════════════════════════════════════════════════════════════════════════
#  GREEKS
# ════════════════════════════════════════════════════════════════════════

def delta(S, K, r_d, r_f, T, sigma, kind="call") -> float:
    """
    Spot delta: dV/dS.

    Call delta is in [0, e^{-r_f T}]; put delta in [-e^{-r_f T}, 0].
    """
    _d1 = d1(S, K, r_d, r_f, T, sigma)
    if _is_call(kind):
        return float(np.exp(-r_f * T) * norm.cdf(_d1))
    return float(np.exp(-r_f * T) * (norm.cdf(_d1) - 1.0))


def gamma(S, K, r_d, r_f, T, sigma) -> float:
    """Gamma: d2V/dS2. Same for calls and puts."""
    _d1 = d1(S, K, r_d, r_f, T, sigma)
    return float(np.exp(-r_f * T) * norm.pdf(_d1) / (S * sigma * np.sqrt(T)))


def vega(S, K, r_d, r_f, T, sigma) -> float:
    """
    Vega: dV/dsigma per 1 unit (100%) of vol.

    Divide by 100 to get sensitivity per 1% vol change.
    """
    _d1 = d1(S, K, r_d, r_f, T, sigma)
    return float(S * np.exp(-r_f * T) * norm.pdf(_d1) * np.sqrt(T))


def theta(S, K, r_d, r_f, T, sigma, kind="call") -> float:
    """
    Theta: -dV/dT (value change per year as time passes).

    Divide by 365 for daily theta.
    """
    _d1 = d1(S, K, r_d, r_f, T, sigma)
    _d2 = _d1 - sigma * np.sqrt(T)
    time_decay = -(S * np.exp(-r_f * T) * norm.pdf(_d1) * sigma) / (2 * np.sqrt(T))

    if _is_call(kind):
        return float(time_decay
                     + r_f * S * np.exp(-r_f * T) * norm.cdf(_d1)
                     - r_d * K * np.exp(-r_d * T) * norm.cdf(_d2))
    return float(time_decay
                 - r_f * S * np.exp(-r_f * T) * norm.cdf(-_d1)
                 + r_d * K * np.exp(-r_d * T) * norm.cdf(-_d2))


def rho(S, K, r_d, r_f, T, sigma, kind="call") -> float:
    """Domestic rho: dV/dr_d."""
    _d2 = d2(S, K, r_d, r_f, T, sigma)
    if _is_call(kind):
        return float(K * T * np.exp(-r_d * T) * norm.cdf(_d2))
    return float(-K * T * np.exp(-r_d * T) * norm.cdf(-_d2))


def rho_foreign(S, K, r_d, r_f, T, sigma, kind="call") -> float:
    """Foreign rho: dV/dr_f."""
    _d1 = d1(S, K, r_d, r_f, T, sigma)
    if _is_call(kind):
        return float(-S * T * np.exp(-r_f * T) * norm.cdf(_d1))
    return float(S * T * np.exp(-r_f * T) * norm.cdf(-_d1))


def vanilla_greeks(kind, S, K, r_d, r_f, T, sigma) -> dict:
    """All analytic greeks of a vanilla in one dict."""
    check_inputs(S, K, r_d, r_f, T, sigma)
    return {
        "delta": delta(S, K, r_d, r_f, T, sigma, kind),
        "gamma": gamma(S, K, r_d, r_f, T, sigma),
        "theta": theta(S, K, r_d, r_f, T, sigma, kind),
        "vega": vega(S, K, r_d, r_f, T, sigma),
        "rho": rho(S, K, r_d, r_f, T, sigma, kind),
        "rho_foreign": rho_foreign(S, K, r_d, r_f, T, sigma, kind),
    }
