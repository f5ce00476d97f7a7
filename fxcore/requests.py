"""
Pricing request / response schema for the surrounding application.

Requests arrive as dicts in the application's field names, with
volatility and rates in percent:

    optionType, currencyPair ("EUR/USD"), spotPrice, strike,
    strikeType ("percent" | "absolute"), maturity (years), volatility (%),
    domesticRate? (%), foreignRate? (%), barrier?, secondBarrier?,
    barrierType ("percent" | "absolute"), rebate?, quantity?, notional?,
    payAtTouch?

In a pair BASE/QUOTE the quote currency is domestic and the base
currency is foreign. Rates missing from the request are looked up, in
order, on a bootstrapped curve for the currency (zero rate at the
option's maturity) and then in a plain rate table in percent. Both are
passed in by the caller; nothing here keeps global state.
"""

import logging
from typing import Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .contracts import make_contract, price_option
from .curve import Curve
from .errors import InvalidOptionParameters
from .greeks import Greeks
from .kinds import OptionKind

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("optionType", "currencyPair", "spotPrice", "strike", "strikeType", "maturity", "volatility")

LevelType = Literal["percent", "absolute"]


def _present(payload: Mapping, key: str) -> bool:
    return payload.get(key) is not None and payload.get(key) != ""


def missing_fields(payload: Mapping) -> list:
    """
    Names of the fields a request still needs before it can be priced.

    Barrier-type and touch products need barrier; double and range
    products also need secondBarrier. Strike-less digitals do not need a
    strike.
    """
    try:
        kind = OptionKind.parse(payload["optionType"]) if _present(payload, "optionType") else None
    except ValueError:
        kind = None

    missing = []
    for key in REQUIRED_FIELDS:
        if key in ("strike", "strikeType") and kind is not None and not kind.needs_strike:
            continue
        if not _present(payload, key):
            missing.append(key)
    if kind is not None:
        if kind.needs_barrier and not _present(payload, "barrier"):
            missing.append("barrier")
        if kind.needs_second_barrier and not _present(payload, "secondBarrier"):
            missing.append("secondBarrier")
    return missing


def split_pair(pair: str):
    """'EUR/USD' or 'EURUSD' -> ('EUR', 'USD'), base first."""
    text = pair.strip().upper().replace("-", "/")
    if "/" in text:
        base, quote = text.split("/", 1)
    elif len(text) == 6:
        base, quote = text[:3], text[3:]
    else:
        raise InvalidOptionParameters("currencyPair", pair, f"cannot read currency pair {pair!r}")
    if len(base) != 3 or len(quote) != 3:
        raise InvalidOptionParameters("currencyPair", pair, f"cannot read currency pair {pair!r}")
    return base, quote


class PricingRequest(BaseModel):
    """One option to price, in the application's field names (aliases)."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    option_type: OptionKind = Field(..., alias="optionType")
    currency_pair: str = Field(..., alias="currencyPair", min_length=6)
    spot_price: float = Field(..., alias="spotPrice", gt=0)
    strike: Optional[float] = Field(default=None, gt=0)
    strike_type: LevelType = Field(default="absolute", alias="strikeType")
    maturity: float = Field(..., gt=0, description="Years")
    volatility: float = Field(..., gt=0, description="Percent")
    domestic_rate: Optional[float] = Field(default=None, alias="domesticRate", description="Percent")
    foreign_rate: Optional[float] = Field(default=None, alias="foreignRate", description="Percent")
    barrier: Optional[float] = Field(default=None, gt=0)
    second_barrier: Optional[float] = Field(default=None, alias="secondBarrier", gt=0)
    barrier_type: LevelType = Field(default="absolute", alias="barrierType")
    rebate: Optional[float] = Field(default=None, ge=0)
    quantity: Optional[float] = Field(default=None, gt=0, description="Percent of one unit")
    notional: Optional[float] = Field(default=None, gt=0)
    pay_at_touch: Optional[bool] = Field(default=None, alias="payAtTouch")

    @field_validator("option_type", mode="before")
    @classmethod
    def parse_option_type(cls, v):
        return OptionKind.parse(v)

    @field_validator("strike_type", "barrier_type", mode="before")
    @classmethod
    def normalise_level_type(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

    @classmethod
    def from_dict(cls, payload: Mapping) -> "PricingRequest":
        """
        Build a request from application field names.

        Raises
        ------
        InvalidOptionParameters : a required field is missing, or a field
                                  fails validation (named by its alias)
        """
        missing = missing_fields(payload)
        if missing:
            raise InvalidOptionParameters(missing[0], None, f"missing request fields: {missing}")
        try:
            return cls.model_validate({k: v for k, v in payload.items() if _present(payload, k)})
        except ValidationError as exc:
            error = exc.errors()[0]
            name = str(error["loc"][0]) if error["loc"] else "request"
            raise InvalidOptionParameters(name, error.get("input"), f"{name}: {error['msg']}") from None

    @property
    def currencies(self):
        return split_pair(self.currency_pair)


class PricingResponse(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    price: float
    price_in_base_currency: float = Field(..., alias="priceInBaseCurrency")
    price_in_quote_currency: float = Field(..., alias="priceInQuoteCurrency")
    method: str
    greeks: Optional[Greeks] = None

    def to_dict(self) -> dict:
        out = self.model_dump(by_alias=True, exclude={"greeks"})
        if self.greeks is not None:
            out["greeks"] = self.greeks.to_dict()
        return out


def resolve_rate(
    currency: str,
    explicit_pct: Optional[float],
    maturity: float,
    curves: Optional[Mapping[str, Curve]] = None,
    rate_table: Optional[Mapping[str, float]] = None,
    parameter: str = "rate",
) -> float:
    """
    Decimal rate for a currency: request value (percent), then the curve's
    zero rate at maturity, then the rate table (percent).

    Raises
    ------
    InvalidOptionParameters : no source has a rate for the currency
    """
    if explicit_pct is not None:
        return explicit_pct / 100.0
    if curves and currency in curves:
        rate = curves[currency].zero_rate(maturity)
        logger.debug("%s: %s from %s curve at %.4fy = %.6f", parameter, currency,
                     curves[currency].method.value, maturity, rate)
        return rate
    if rate_table and rate_table.get(currency) is not None:
        return float(rate_table[currency]) / 100.0
    raise InvalidOptionParameters(parameter, None, f"no {parameter} available for {currency}")


def price_request(
    request: PricingRequest,
    rate_table: Optional[Mapping[str, float]] = None,
    curves: Optional[Mapping[str, Curve]] = None,
    with_greeks: bool = True,
) -> PricingResponse:
    """
    Price a request end to end.

    quantity is a percentage of one unit (50 -> half a unit); notional
    multiplies on top. Greeks are scaled the same way as the price.
    """
    base, quote = request.currencies
    r_d = resolve_rate(quote, request.domestic_rate, request.maturity, curves, rate_table, "domestic_rate")
    r_f = resolve_rate(base, request.foreign_rate, request.maturity, curves, rate_table, "foreign_rate")

    contract = make_contract(
        request.option_type,
        spot=request.spot_price,
        strike=request.strike,
        maturity=request.maturity,
        volatility=request.volatility / 100.0,
        domestic_rate=r_d,
        foreign_rate=r_f,
        barrier=request.barrier,
        second_barrier=request.second_barrier,
        rebate=request.rebate,
        pay_at_touch=request.pay_at_touch,
        strike_is_percent=request.strike_type == "percent",
        barrier_is_percent=request.barrier_type == "percent",
    )
    result = price_option(contract, with_greeks=with_greeks)

    scale = 1.0
    if request.quantity is not None:
        scale *= request.quantity / 100.0
    if request.notional is not None:
        scale *= request.notional

    return PricingResponse(
        price=result.price * scale,
        price_in_base_currency=result.price_in_base_currency * scale,
        price_in_quote_currency=result.price_in_quote_currency * scale,
        method=result.method_used,
        greeks=result.greeks.scaled(scale) if result.greeks is not None else None,
    )
