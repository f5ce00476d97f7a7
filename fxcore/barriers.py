"""
Closed-form barrier options under Garman-Kohlhagen.

Single barriers follow Reiner & Rubinstein (1991) in the A-F building
block notation of Haug, with cost of carry b = r_d - r_f and discounting
at r = r_d:

    mu     = (b - sigma^2/2) / sigma^2
    lambda = sqrt(mu^2 + 2 r / sigma^2)

    phi = +1 call, -1 put      eta = +1 down barrier, -1 up barrier

Double barriers use the Ikeda & Kunitomo (1992) image series with flat
boundaries, truncated at config.DOUBLE_BARRIER_SERIES_TERMS images on
each side. Knock-ins come from in-out parity with the vanilla, which
therefore holds to machine precision.

Side rules for single barriers:
    regular call: barrier below spot (down)   reverse call: above spot (up)
    regular put:  barrier above spot (up)     reverse put:  below spot (down)

This module also holds the first-passage primitives shared with the
digital products: touch probabilities, the value of one unit paid at the
first touch, and the double-barrier survival probability.

References:
    Reiner, E. & Rubinstein, M. (1991). Breaking Down the Barriers. Risk 4(8).
    Ikeda, M. & Kunitomo, N. (1992). Pricing Options with Curved Boundaries.
        Mathematical Finance, 2(4), 275-298.
    Haug, E.G. (2007). The Complete Guide to Option Pricing Formulas. 2nd ed.
"""

import logging

import numpy as np
from scipy.integrate import quad
from scipy.stats import norm

from . import config
from .errors import InvalidBarrierConfiguration, InvalidOptionParameters
from .garman_kohlhagen import call_price, check_inputs, put_price
from .kinds import OptionKind, ProductFamily

logger = logging.getLogger(__name__)

DOWN = 1
UP = -1


# ════════════════════════════════════════════════════════════════════════
#  VALIDATION
# ════════════════════════════════════════════════════════════════════════

def check_level(name: str, value) -> float:
    if value is None:
        raise InvalidBarrierConfiguration(name, value, f"{name} is required for this option kind")
    value = float(value)
    if not np.isfinite(value) or value <= 0:
        raise InvalidBarrierConfiguration(name, value, f"{name} must be a positive number")
    return value


def barrier_direction(kind: OptionKind) -> int:
    """DOWN or UP for a single-barrier kind, from call/put and regular/reverse."""
    down = kind.is_call != kind.is_reverse
    return DOWN if down else UP


def check_single_barrier(S: float, H, direction: int) -> float:
    H = check_level("barrier", H)
    if H == S:
        raise InvalidBarrierConfiguration("barrier", H, "barrier equals spot: the option is already touched")
    if direction == DOWN and H > S:
        raise InvalidBarrierConfiguration("barrier", H, f"down barrier must be below spot {S}")
    if direction == UP and H < S:
        raise InvalidBarrierConfiguration("barrier", H, f"up barrier must be above spot {S}")
    return H


def check_double_barrier(S: float, L, U, spot_inside: bool = True):
    L = check_level("barrier", L)
    U = check_level("second_barrier", U)
    if L >= U:
        raise InvalidBarrierConfiguration("second_barrier", U, f"needs barrier < second_barrier, got {L} >= {U}")
    if spot_inside and not L < S < U:
        raise InvalidBarrierConfiguration("spot", S, f"spot must lie strictly inside ({L}, {U})")
    return L, U


# ════════════════════════════════════════════════════════════════════════
#  FIRST-PASSAGE PRIMITIVES
# ════════════════════════════════════════════════════════════════════════

def _mu_lambda(r_d, r_f, sigma):
    b = r_d - r_f
    mu = (b - 0.5 * sigma**2) / sigma**2
    radicand = mu**2 + 2.0 * r_d / sigma**2
    if radicand < 0:
        raise InvalidOptionParameters(
            "domestic_rate", r_d, "domestic rate too negative for a closed-form touch value")
    return mu, np.sqrt(radicand)


def touch_probability(S, H, r_d, r_f, T, sigma) -> float:
    """
    Risk-neutral probability that spot touches H before T.

    Reflection principle for drifted Brownian motion in log space:
        P = N(eta (m - nu T) / s) + (H/S)^(2 mu) N(eta (m + nu T) / s)
    with m = ln(H/S), nu = b - sigma^2/2, s = sigma sqrt(T).
    """
    eta = DOWN if H < S else UP
    nu = r_d - r_f - 0.5 * sigma**2
    s = sigma * np.sqrt(T)
    m = np.log(H / S)
    p = (norm.cdf(eta * (m - nu * T) / s)
         + (H / S) ** (2.0 * nu / sigma**2) * norm.cdf(eta * (m + nu * T) / s))
    return float(np.clip(p, 0.0, 1.0))


def touch_value_at_hit(S, H, r_d, r_f, T, sigma) -> float:
    """
    Present value of 1 paid at the first touch of H (if before T):
        (H/S)^(mu+lambda) N(eta z) + (H/S)^(mu-lambda) N(eta z - 2 eta lambda s)
    z = ln(H/S)/s + lambda s. No discount-to-maturity factor applies.
    """
    eta = DOWN if H < S else UP
    mu, lam = _mu_lambda(r_d, r_f, sigma)
    s = sigma * np.sqrt(T)
    z = np.log(H / S) / s + lam * s
    v = ((H / S) ** (mu + lam) * norm.cdf(eta * z)
         + (H / S) ** (mu - lam) * norm.cdf(eta * z - 2.0 * eta * lam * s))
    return float(max(v, 0.0))


def _image_terms(S, a, c, L, U, b, T, sigma, n_terms):
    """
    Image series for a payoff region [a, c] inside (L, U) with survival.

    Returns (asset, cash): the asset-or-nothing value per unit of
    S e^{-r_f T} and the cash-or-nothing probability, both conditioned on
    never leaving (L, U).
    """
    if c <= a:
        return 0.0, 0.0
    s = sigma * np.sqrt(T)
    mu1 = 2.0 * b / sigma**2 + 1.0
    mu3 = mu1
    carry = (b + 0.5 * sigma**2) * T
    asset = 0.0
    cash = 0.0
    for n in range(-n_terms, n_terms + 1):
        ratio = (U / L) ** n
        reflect = L ** (n + 1) / (U ** n * S)

        def d(k):
            return (np.log(S * ratio**2 / k) + carry) / s

        def e(k):
            return (np.log(L**2 / (k * S) / ratio**2) + carry) / s

        da, dc = d(a), d(c)
        ea, ec = e(a), e(c)
        asset += (ratio**mu1 * (norm.cdf(da) - norm.cdf(dc))
                  - reflect**mu3 * (norm.cdf(ea) - norm.cdf(ec)))
        cash += (ratio ** (mu1 - 2.0) * (norm.cdf(da - s) - norm.cdf(dc - s))
                 - reflect ** (mu3 - 2.0) * (norm.cdf(ea - s) - norm.cdf(ec - s)))
    return asset, cash


def double_no_touch_probability(S, L, U, r_d, r_f, T, sigma, n_terms=None) -> float:
    """Probability that spot stays strictly inside (L, U) until T."""
    if n_terms is None:
        n_terms = config.DOUBLE_BARRIER_SERIES_TERMS
    _, cash = _image_terms(S, L, U, L, U, r_d - r_f, T, sigma, n_terms)
    return float(np.clip(cash, 0.0, 1.0))


def double_touch_value_at_hit(S, L, U, r_d, r_f, T, sigma) -> float:
    """
    Present value of 1 paid when spot first leaves (L, U), if before T.

    With F(t) = 1 - P_survive(t) the first-exit distribution,
        E[e^{-r tau} 1{tau <= T}] = e^{-rT} F(T) + r int_0^T e^{-rt} F(t) dt
    integrated numerically.
    """
    def exit_cdf(t):
        return 1.0 - double_no_touch_probability(S, L, U, r_d, r_f, t, sigma)

    tail = np.exp(-r_d * T) * exit_cdf(T)
    if r_d == 0:
        return float(tail)
    integral, _ = quad(lambda t: np.exp(-r_d * t) * exit_cdf(t), 0.0, T, limit=200)
    return float(max(tail + r_d * integral, 0.0))


# ════════════════════════════════════════════════════════════════════════
#  SINGLE BARRIER
# ════════════════════════════════════════════════════════════════════════

def _single_blocks(S, K, H, r_d, r_f, T, sigma, phi, eta):
    """Haug's A, B, C, D building blocks."""
    b = r_d - r_f
    mu = (b - 0.5 * sigma**2) / sigma**2
    s = sigma * np.sqrt(T)
    asset = S * np.exp((b - r_d) * T)
    cash = K * np.exp(-r_d * T)
    hs = H / S

    x1 = np.log(S / K) / s + (1 + mu) * s
    x2 = np.log(S / H) / s + (1 + mu) * s
    y1 = np.log(H**2 / (S * K)) / s + (1 + mu) * s
    y2 = np.log(H / S) / s + (1 + mu) * s

    A = phi * asset * norm.cdf(phi * x1) - phi * cash * norm.cdf(phi * x1 - phi * s)
    B = phi * asset * norm.cdf(phi * x2) - phi * cash * norm.cdf(phi * x2 - phi * s)
    C = (phi * asset * hs ** (2 * (mu + 1)) * norm.cdf(eta * y1)
         - phi * cash * hs ** (2 * mu) * norm.cdf(eta * y1 - eta * s))
    D = (phi * asset * hs ** (2 * (mu + 1)) * norm.cdf(eta * y2)
         - phi * cash * hs ** (2 * mu) * norm.cdf(eta * y2 - eta * s))
    return A, B, C, D


def _single_knock_out(S, K, H, r_d, r_f, T, sigma, is_call, direction) -> float:
    phi = 1 if is_call else -1
    A, B, C, D = _single_blocks(S, K, H, r_d, r_f, T, sigma, phi, direction)
    above = K > H
    if is_call and direction == DOWN:
        v = A - C if above else B - D
    elif is_call:
        v = 0.0 if above else A - B + C - D
    elif direction == UP:
        v = B - D if above else A - C
    else:
        v = A - B + C - D if above else 0.0
    return float(max(v, 0.0))


def _single_barrier(kind, S, K, H, r_d, r_f, T, sigma, rebate, pay_at_touch) -> float:
    direction = barrier_direction(kind)
    H = check_single_barrier(S, H, direction)
    vanilla = (call_price if kind.is_call else put_price)(S, K, r_d, r_f, T, sigma)
    knock_out = _single_knock_out(S, K, H, r_d, r_f, T, sigma, kind.is_call, direction)

    if kind.is_knock_out:
        value = knock_out
        if rebate:
            if pay_at_touch:
                value += rebate * touch_value_at_hit(S, H, r_d, r_f, T, sigma)
            else:
                value += rebate * np.exp(-r_d * T) * touch_probability(S, H, r_d, r_f, T, sigma)
        return float(value)

    value = vanilla - knock_out
    if rebate:
        value += rebate * np.exp(-r_d * T) * (1.0 - touch_probability(S, H, r_d, r_f, T, sigma))
    return float(max(value, 0.0))


# ════════════════════════════════════════════════════════════════════════
#  DOUBLE BARRIER
# ════════════════════════════════════════════════════════════════════════

def _double_knock_out(S, K, L, U, r_d, r_f, T, sigma, is_call) -> float:
    b = r_d - r_f
    n = config.DOUBLE_BARRIER_SERIES_TERMS
    if is_call:
        asset, cash = _image_terms(S, max(K, L), U, L, U, b, T, sigma, n)
        v = S * np.exp(-r_f * T) * asset - K * np.exp(-r_d * T) * cash
    else:
        asset, cash = _image_terms(S, L, min(K, U), L, U, b, T, sigma, n)
        v = K * np.exp(-r_d * T) * cash - S * np.exp(-r_f * T) * asset
    return float(max(v, 0.0))


def _double_barrier(kind, S, K, L, U, r_d, r_f, T, sigma, rebate, pay_at_touch) -> float:
    L, U = check_double_barrier(S, L, U)
    vanilla = (call_price if kind.is_call else put_price)(S, K, r_d, r_f, T, sigma)
    knock_out = _double_knock_out(S, K, L, U, r_d, r_f, T, sigma, kind.is_call)

    if kind.is_knock_out:
        value = knock_out
        if rebate:
            if pay_at_touch:
                value += rebate * double_touch_value_at_hit(S, L, U, r_d, r_f, T, sigma)
            else:
                value += rebate * np.exp(-r_d * T) * (
                    1.0 - double_no_touch_probability(S, L, U, r_d, r_f, T, sigma))
        return float(value)

    value = vanilla - knock_out
    if rebate:
        value += rebate * np.exp(-r_d * T) * double_no_touch_probability(S, L, U, r_d, r_f, T, sigma)
    return float(max(value, 0.0))


# ════════════════════════════════════════════════════════════════════════
#  ENTRY POINT
# ════════════════════════════════════════════════════════════════════════

def price_barrier(
    kind,
    S: float,
    K: float,
    r_d: float,
    r_f: float,
    T: float,
    sigma: float,
    barrier: float,
    second_barrier: float = None,
    rebate: float = 0.0,
    pay_at_touch: bool = True,
) -> float:
    """
    Price a single or double barrier option.

    Parameters
    ----------
    kind : barrier OptionKind (or its request spelling)
    S, K : spot and strike
    r_d, r_f : domestic and foreign continuous rates
    T : time to expiry (years)
    sigma : volatility
    barrier : the barrier; the lower one for double kinds
    second_barrier : upper barrier, double kinds only
    rebate : cash amount paid on knock-out, or at expiry if a knock-in never activates
    pay_at_touch : knock-out rebate paid at the touch (True) or at expiry (False)

    Returns
    -------
    float : price in quote currency per unit of base

    Raises
    ------
    InvalidOptionParameters : bad spot, strike, maturity, vol or rates
    InvalidBarrierConfiguration : missing barrier, wrong side, bad ordering
    """
    kind = OptionKind.parse(kind)
    if kind.family is not ProductFamily.BARRIER:
        raise InvalidOptionParameters("kind", kind.value, f"{kind.value} is not a barrier option")
    check_inputs(S, K, r_d, r_f, T, sigma)
    if rebate is None or not np.isfinite(rebate) or rebate < 0:
        raise InvalidOptionParameters("rebate", rebate, "rebate must be a non-negative number")

    if kind.is_double:
        price = _double_barrier(kind, S, K, barrier, second_barrier, r_d, r_f, T, sigma, rebate, pay_at_touch)
    else:
        price = _single_barrier(kind, S, K, barrier, r_d, r_f, T, sigma, rebate, pay_at_touch)
    logger.debug("%s S=%g K=%g H=%s/%s -> %.8f", kind.value, S, K, barrier, second_barrier, price)
    return price
