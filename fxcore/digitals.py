"""
Digital and touch options under Garman-Kohlhagen.

Every product pays a fixed cash rebate in quote currency. Payment timing
is explicit and never inferred:

    ONE_TOUCH      pays at the touch (pay_at_touch=True) or at expiry
    DOUBLE_TOUCH   pays at the first exit (pay_at_touch=True) or at expiry
    NO_TOUCH, DOUBLE_NO_TOUCH, RANGE_BINARY, OUTSIDE_BINARY,
    DIGITAL_CALL, DIGITAL_PUT
                   always pay at expiry; pay_at_touch is ignored

Paid at expiry, a price is rebate * e^{-r_d T} * probability, so it sits
in [0, rebate * e^{-r_d T}]. Paid at the touch there is no discount to
expiry, only the discount to the (random) touch time, which makes the
touch variants worth more whenever r_d > 0.

Range and outside binaries are European: they look at spot at expiry
only, between the two levels.
"""

import logging

import numpy as np
from scipy.stats import norm

from . import config
from .barriers import (
    check_double_barrier,
    check_level,
    double_no_touch_probability,
    double_touch_value_at_hit,
    touch_probability,
    touch_value_at_hit,
)
from .errors import InvalidBarrierConfiguration, InvalidOptionParameters
from .garman_kohlhagen import check_inputs
from .kinds import OptionKind, ProductFamily

logger = logging.getLogger(__name__)


def _terminal_above(S, level, r_d, r_f, T, sigma) -> float:
    """Risk-neutral P(S_T > level) = N(d2(level))."""
    s = sigma * np.sqrt(T)
    d2 = (np.log(S / level) + (r_d - r_f - 0.5 * sigma**2) * T) / s
    return float(norm.cdf(d2))


def _single_touch_level(S, H) -> float:
    H = check_level("barrier", H)
    if H == S:
        raise InvalidBarrierConfiguration("barrier", H, "barrier equals spot: the option is already touched")
    return H


def price_digital(
    kind,
    S: float,
    K,
    r_d: float,
    r_f: float,
    T: float,
    sigma: float,
    barrier: float = None,
    second_barrier: float = None,
    rebate: float = None,
    pay_at_touch: bool = False,
) -> float:
    """
    Price a digital / touch option.

    Parameters
    ----------
    kind : digital OptionKind (or its request spelling)
    S : spot
    K : strike, used by DIGITAL_CALL / DIGITAL_PUT only (None otherwise)
    r_d, r_f : domestic and foreign continuous rates
    T : time to expiry (years)
    sigma : volatility
    barrier : touch level; lower level for double / range kinds
    second_barrier : upper level for double / range kinds
    rebate : cash paid (default config.DEFAULT_DIGITAL_REBATE)
    pay_at_touch : ONE_TOUCH and DOUBLE_TOUCH only, see module docstring

    Returns
    -------
    float : price in quote currency per unit of base

    Raises
    ------
    InvalidOptionParameters : bad spot, strike, maturity, vol, rates or rebate
    InvalidBarrierConfiguration : missing or misordered levels
    """
    kind = OptionKind.parse(kind)
    if kind.family is not ProductFamily.DIGITAL:
        raise InvalidOptionParameters("kind", kind.value, f"{kind.value} is not a digital option")
    if rebate is None:
        rebate = config.DEFAULT_DIGITAL_REBATE
    if not np.isfinite(rebate) or rebate < 0:
        raise InvalidOptionParameters("rebate", rebate, "rebate must be a non-negative number")

    if kind.needs_strike:
        if K is None:
            raise InvalidOptionParameters("strike", K, f"{kind.value} requires a strike")
        check_inputs(S, K, r_d, r_f, T, sigma)
    else:
        check_inputs(S, None, r_d, r_f, T, sigma, strike_required=False)

    discount = np.exp(-r_d * T)

    if kind is OptionKind.DIGITAL_CALL:
        price = rebate * discount * _terminal_above(S, K, r_d, r_f, T, sigma)

    elif kind is OptionKind.DIGITAL_PUT:
        price = rebate * discount * (1.0 - _terminal_above(S, K, r_d, r_f, T, sigma))

    elif kind is OptionKind.ONE_TOUCH:
        H = _single_touch_level(S, barrier)
        if pay_at_touch:
            price = rebate * touch_value_at_hit(S, H, r_d, r_f, T, sigma)
        else:
            price = rebate * discount * touch_probability(S, H, r_d, r_f, T, sigma)

    elif kind is OptionKind.NO_TOUCH:
        H = _single_touch_level(S, barrier)
        price = rebate * discount * (1.0 - touch_probability(S, H, r_d, r_f, T, sigma))

    elif kind in (OptionKind.DOUBLE_TOUCH, OptionKind.DOUBLE_NO_TOUCH):
        L, U = check_double_barrier(S, barrier, second_barrier)
        if kind is OptionKind.DOUBLE_TOUCH and pay_at_touch:
            price = rebate * double_touch_value_at_hit(S, L, U, r_d, r_f, T, sigma)
        else:
            survive = double_no_touch_probability(S, L, U, r_d, r_f, T, sigma)
            p = 1.0 - survive if kind is OptionKind.DOUBLE_TOUCH else survive
            price = rebate * discount * p

    else:
        L, U = check_double_barrier(S, barrier, second_barrier, spot_inside=False)
        inside = _terminal_above(S, L, r_d, r_f, T, sigma) - _terminal_above(S, U, r_d, r_f, T, sigma)
        inside = float(np.clip(inside, 0.0, 1.0))
        p = inside if kind is OptionKind.RANGE_BINARY else 1.0 - inside
        price = rebate * discount * p

    logger.debug("%s S=%g levels=%s/%s rebate=%g at_touch=%s -> %.8f",
                 kind.value, S, barrier, second_barrier, rebate, pay_at_touch, price)
    return float(price)
