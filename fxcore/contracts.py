"""
Option contracts: one closed variant per product family.

Each variant carries only the fields its family needs and validates them
on construction, so an instance that exists can always be priced:

    VanillaOption  CALL, PUT
    BarrierOption  single, reverse and double knock-out / knock-in
    DigitalOption  touches, no-touches, ranges and European digitals

make_contract builds the right variant from flat arguments and resolves
percent-of-spot strikes and barriers to absolute levels exactly once.
price_option prices any variant and wraps the result with its method
label and, on request, its greeks.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Union

from . import config
from .barriers import barrier_direction, check_double_barrier, check_level, check_single_barrier, price_barrier
from .digitals import price_digital
from .errors import InvalidBarrierConfiguration, InvalidOptionParameters
from .garman_kohlhagen import check_inputs, price_vanilla
from .greeks import Greeks, greeks
from .kinds import OptionKind, ProductFamily

logger = logging.getLogger(__name__)

__all__ = [
    "OptionKind", "ProductFamily", "VanillaOption", "BarrierOption", "DigitalOption",
    "make_contract", "PricingResult", "price_option",
]

METHOD_LABELS = {
    ProductFamily.VANILLA: "Garman-Kohlhagen",
    ProductFamily.BARRIER: "Barrier Closed-Form",
    ProductFamily.DIGITAL: "Digital Closed-Form",
}


def _parse_kind(contract, family: ProductFamily) -> OptionKind:
    kind = OptionKind.parse(contract.kind)
    if kind.family is not family:
        raise InvalidOptionParameters("kind", kind.value, f"{kind.value} is not a {family.value} option")
    object.__setattr__(contract, "kind", kind)
    return kind


class _Priced:
    """Shared accessors; subclasses are frozen dataclasses."""

    def market_args(self):
        return (self.kind, self.spot, self.strike, self.domestic_rate,
                self.foreign_rate, self.maturity, self.volatility)

    def terms(self) -> dict:
        return {}


@dataclass(frozen=True)
class VanillaOption(_Priced):
    kind: OptionKind
    spot: float
    strike: float
    maturity: float
    volatility: float
    domestic_rate: float
    foreign_rate: float

    def __post_init__(self):
        _parse_kind(self, ProductFamily.VANILLA)
        check_inputs(self.spot, self.strike, self.domestic_rate, self.foreign_rate,
                     self.maturity, self.volatility)


@dataclass(frozen=True)
class BarrierOption(_Priced):
    kind: OptionKind
    spot: float
    strike: float
    maturity: float
    volatility: float
    domestic_rate: float
    foreign_rate: float
    barrier: float
    second_barrier: Optional[float] = None
    rebate: float = 0.0
    pay_at_touch: bool = True

    def __post_init__(self):
        kind = _parse_kind(self, ProductFamily.BARRIER)
        check_inputs(self.spot, self.strike, self.domestic_rate, self.foreign_rate,
                     self.maturity, self.volatility)
        if kind.is_double:
            check_double_barrier(self.spot, self.barrier, self.second_barrier)
        else:
            check_single_barrier(self.spot, self.barrier, barrier_direction(kind))
        if self.rebate < 0:
            raise InvalidOptionParameters("rebate", self.rebate, "rebate must be non-negative")

    def terms(self) -> dict:
        return {"barrier": self.barrier, "second_barrier": self.second_barrier,
                "rebate": self.rebate, "pay_at_touch": self.pay_at_touch}


@dataclass(frozen=True)
class DigitalOption(_Priced):
    kind: OptionKind
    spot: float
    maturity: float
    volatility: float
    domestic_rate: float
    foreign_rate: float
    strike: Optional[float] = None
    barrier: Optional[float] = None
    second_barrier: Optional[float] = None
    rebate: float = field(default=config.DEFAULT_DIGITAL_REBATE)
    pay_at_touch: bool = False

    def __post_init__(self):
        kind = _parse_kind(self, ProductFamily.DIGITAL)
        if kind.needs_strike and self.strike is None:
            raise InvalidOptionParameters("strike", None, f"{kind.value} requires a strike")
        check_inputs(self.spot, self.strike if kind.needs_strike else None,
                     self.domestic_rate, self.foreign_rate, self.maturity, self.volatility,
                     strike_required=kind.needs_strike)
        if kind.needs_second_barrier:
            spot_inside = kind in (OptionKind.DOUBLE_TOUCH, OptionKind.DOUBLE_NO_TOUCH)
            check_double_barrier(self.spot, self.barrier, self.second_barrier, spot_inside=spot_inside)
        elif kind.needs_barrier:
            if check_level("barrier", self.barrier) == self.spot:
                raise InvalidBarrierConfiguration("barrier", self.barrier, "barrier equals spot")
        if self.rebate < 0:
            raise InvalidOptionParameters("rebate", self.rebate, "rebate must be non-negative")

    def terms(self) -> dict:
        return {"barrier": self.barrier, "second_barrier": self.second_barrier,
                "rebate": self.rebate, "pay_at_touch": self.pay_at_touch}


Contract = Union[VanillaOption, BarrierOption, DigitalOption]


def _resolve_percent(value, spot, is_percent):
    if value is None or not is_percent:
        return value
    return spot * value / 100.0


def make_contract(
    kind,
    spot: float,
    strike: Optional[float],
    maturity: float,
    volatility: float,
    domestic_rate: float,
    foreign_rate: float,
    barrier: Optional[float] = None,
    second_barrier: Optional[float] = None,
    rebate: Optional[float] = None,
    pay_at_touch: Optional[bool] = None,
    strike_is_percent: bool = False,
    barrier_is_percent: bool = False,
) -> Contract:
    """
    Build the variant matching kind's family.

    Percent inputs are percent of spot (strike=100 with strike_is_percent
    is at-the-money). Rebate and pay_at_touch default per family: barriers
    pay no rebate, at the touch; digitals pay config.DEFAULT_DIGITAL_REBATE
    at expiry.

    Raises
    ------
    InvalidOptionParameters, InvalidBarrierConfiguration
    """
    kind = OptionKind.parse(kind)
    if spot is None or spot <= 0:
        # percent resolution below needs a usable spot
        raise InvalidOptionParameters("spot", spot)
    strike = _resolve_percent(strike, spot, strike_is_percent)
    barrier = _resolve_percent(barrier, spot, barrier_is_percent)
    second_barrier = _resolve_percent(second_barrier, spot, barrier_is_percent)

    if kind.family is ProductFamily.VANILLA:
        return VanillaOption(kind, spot, strike, maturity, volatility, domestic_rate, foreign_rate)

    if kind.family is ProductFamily.BARRIER:
        return BarrierOption(
            kind, spot, strike, maturity, volatility, domestic_rate, foreign_rate,
            barrier=barrier, second_barrier=second_barrier,
            rebate=0.0 if rebate is None else rebate,
            pay_at_touch=True if pay_at_touch is None else pay_at_touch,
        )

    return DigitalOption(
        kind, spot, maturity, volatility, domestic_rate, foreign_rate,
        strike=strike if kind.needs_strike else None,
        barrier=barrier, second_barrier=second_barrier,
        rebate=config.DEFAULT_DIGITAL_REBATE if rebate is None else rebate,
        pay_at_touch=False if pay_at_touch is None else pay_at_touch,
    )


@dataclass(frozen=True)
class PricingResult:
    """
    Price of one unit of base currency.

    price_in_quote_currency is the premium as quoted (quote per base);
    price_in_base_currency is the same premium divided by spot.
    """

    price_in_quote_currency: float
    price_in_base_currency: float
    method_used: str
    greeks: Optional[Greeks] = None

    @property
    def price(self) -> float:
        return self.price_in_quote_currency


def price_option(contract: Contract, with_greeks: bool = False) -> PricingResult:
    """Price any contract variant; greeks are computed only when asked."""
    kind, S, K, r_d, r_f, T, sigma = contract.market_args()
    family = kind.family

    if family is ProductFamily.VANILLA:
        price = price_vanilla(kind, S, K, r_d, r_f, T, sigma)
    elif family is ProductFamily.BARRIER:
        price = price_barrier(kind, S, K, r_d, r_f, T, sigma, **contract.terms())
    else:
        price = price_digital(kind, S, K, r_d, r_f, T, sigma, **contract.terms())

    g = greeks(kind, S, K, r_d, r_f, T, sigma, **contract.terms()) if with_greeks else None
    logger.info("priced %s: %.8f (%s)", kind.value, price, METHOD_LABELS[family])
    return PricingResult(
        price_in_quote_currency=price,
        price_in_base_currency=price / S,
        method_used=METHOD_LABELS[family],
        greeks=g,
    )
