"""
Tests for the request / response layer.
"""

import pytest
from pydantic import ValidationError

from fxcore.bootstrap import bootstrap
from fxcore.curve import CurveMethod
from fxcore.errors import InvalidOptionParameters
from fxcore.garman_kohlhagen import call_price
from fxcore.kinds import OptionKind
from fxcore.requests import (
    PricingRequest, missing_fields, price_request, resolve_rate, split_pair,
)


def _payload(**overrides):
    payload = {
        "optionType": "call",
        "currencyPair": "EUR/USD",
        "spotPrice": 1.10,
        "strike": 100,
        "strikeType": "percent",
        "maturity": 1.0,
        "volatility": 10.0,
        "domesticRate": 4.5,
        "foreignRate": 3.0,
    }
    payload.update(overrides)
    return {k: v for k, v in payload.items() if v is not None}


class TestParsing:

    def test_from_dict(self):
        req = PricingRequest.from_dict(_payload())
        assert req.option_type is OptionKind.CALL
        assert req.strike == 100.0
        assert req.strike_type == "percent"
        assert req.barrier_type == "absolute"
        assert req.currencies == ("EUR", "USD")

    def test_strings_are_coerced(self):
        req = PricingRequest.from_dict(_payload(spotPrice="1.10", strikeType="PERCENT", payAtTouch="true"))
        assert req.spot_price == 1.10
        assert req.strike_type == "percent"
        assert req.pay_at_touch is True

    def test_missing_fields_listed(self):
        payload = _payload(spotPrice=None, volatility=None)
        assert missing_fields(payload) == ["spotPrice", "volatility"]
        with pytest.raises(InvalidOptionParameters, match="spotPrice"):
            PricingRequest.from_dict(payload)

    def test_touch_needs_no_strike(self):
        payload = _payload(optionType="one-touch", strike=None, strikeType=None, barrier=1.2)
        assert missing_fields(payload) == []
        req = PricingRequest.from_dict(payload)
        assert req.strike is None

    def test_barrier_kinds_need_barriers(self):
        assert missing_fields(_payload(optionType="call-knockout")) == ["barrier"]
        assert missing_fields(_payload(optionType="put-double-knockin", barrier=1.0)) == ["secondBarrier"]
        assert missing_fields(_payload(optionType="range-binary", strike=None)) == ["barrier", "secondBarrier"]

    def test_empty_string_counts_as_missing(self):
        assert missing_fields(_payload(maturity="")) == ["maturity"]

    def test_unknown_option_type(self):
        with pytest.raises(InvalidOptionParameters) as exc:
            PricingRequest.from_dict(_payload(optionType="straddle"))
        assert exc.value.parameter == "optionType"

    def test_bad_level_type(self):
        with pytest.raises(InvalidOptionParameters):
            PricingRequest.from_dict(_payload(strikeType="pips"))

    def test_non_numeric(self):
        with pytest.raises(InvalidOptionParameters):
            PricingRequest.from_dict(_payload(maturity="one year"))

    @pytest.mark.parametrize("field,bad", [
        ("spotPrice", -1.10), ("maturity", 0.0), ("volatility", -5.0),
        ("rebate", -1.0), ("notional", 0.0), ("payAtTouch", "sometimes"),
    ])
    def test_field_constraints_name_the_field(self, field, bad):
        with pytest.raises(InvalidOptionParameters) as exc:
            PricingRequest.from_dict(_payload(**{field: bad}))
        assert exc.value.parameter == field

    def test_python_names_accepted(self):
        req = PricingRequest(option_type="put", currency_pair="EURUSD", spot_price=1.1,
                             strike=1.0, maturity=0.5, volatility=8.0)
        assert req.option_type is OptionKind.PUT
        assert req.barrier_type == "absolute"

    def test_request_is_immutable(self):
        req = PricingRequest.from_dict(_payload())
        with pytest.raises(ValidationError):
            req.spot_price = 2.0

    @pytest.mark.parametrize("pair,expected", [
        ("EUR/USD", ("EUR", "USD")), ("usdjpy", ("USD", "JPY")), ("GBP-CHF", ("GBP", "CHF")),
    ])
    def test_split_pair(self, pair, expected):
        assert split_pair(pair) == expected

    def test_split_pair_garbage(self):
        with pytest.raises(InvalidOptionParameters):
            split_pair("EURO/DOLLAR")


class TestRates:

    def test_explicit_rate_wins(self):
        assert resolve_rate("USD", 4.5, 1.0, rate_table={"USD": 9.0}) == 0.045

    def test_curve_before_table(self, usd_quotes):
        curve = bootstrap(usd_quotes, CurveMethod.QL_LOG_LINEAR, "USD")
        r = resolve_rate("USD", None, 2.0, curves={"USD": curve}, rate_table={"USD": 9.0})
        assert abs(r - 0.047) < 1e-12

    def test_table_fallback(self):
        assert resolve_rate("EUR", None, 1.0, curves={}, rate_table={"EUR": 3.0}) == 0.03

    def test_no_source(self):
        with pytest.raises(InvalidOptionParameters) as exc:
            resolve_rate("BRL", None, 1.0, rate_table={"USD": 4.5}, parameter="foreign_rate")
        assert exc.value.parameter == "foreign_rate"


class TestPriceRequest:

    def test_scenario(self):
        """EUR/USD 1y ATM call, vol 10%, r_d 4.5%, r_f 3%."""
        resp = price_request(PricingRequest.from_dict(_payload()))
        expected = call_price(1.10, 1.10, 0.045, 0.03, 1.0, 0.10)
        assert abs(resp.price - expected) < 1e-12
        assert abs(resp.price_in_base_currency - expected / 1.10) < 1e-12
        assert resp.method == "Garman-Kohlhagen"
        assert resp.greeks is not None

    def test_quantity_and_notional(self):
        base = price_request(PricingRequest.from_dict(_payload()))
        scaled = price_request(PricingRequest.from_dict(_payload(quantity=50, notional=1_000_000)))
        assert abs(scaled.price - base.price * 500_000) < 1e-6
        assert abs(scaled.greeks.delta - base.greeks.delta * 500_000) < 1e-6

    def test_rates_from_table(self):
        payload = _payload(domesticRate=None, foreignRate=None)
        resp = price_request(PricingRequest.from_dict(payload), rate_table={"USD": 4.5, "EUR": 3.0})
        explicit = price_request(PricingRequest.from_dict(_payload()))
        assert abs(resp.price - explicit.price) < 1e-15

    def test_missing_rate(self):
        payload = _payload(foreignRate=None)
        with pytest.raises(InvalidOptionParameters):
            price_request(PricingRequest.from_dict(payload), rate_table={"USD": 4.5})

    def test_barrier_percent_levels(self):
        payload = _payload(optionType="call-knockout", barrier=90, barrierType="percent", rebate=0.001)
        resp = price_request(PricingRequest.from_dict(payload), with_greeks=False)
        assert resp.method == "Barrier Closed-Form"
        assert resp.greeks is None
        assert "greeks" not in resp.to_dict()
        assert 0.0 < resp.price < call_price(1.10, 1.10, 0.045, 0.03, 1.0, 0.10) + 0.001

    def test_digital_with_touch_payment(self):
        payload = _payload(optionType="one-touch", strike=None, strikeType=None,
                           barrier=1.2, rebate=1000, payAtTouch=True)
        resp = price_request(PricingRequest.from_dict(payload))
        assert resp.method == "Digital Closed-Form"
        assert 0.0 < resp.price < 1000

    def test_response_dict(self):
        resp = price_request(PricingRequest.from_dict(_payload()))
        d = resp.to_dict()
        assert set(d) == {"price", "priceInBaseCurrency", "priceInQuoteCurrency", "method", "greeks"}
        assert set(d["greeks"]) == {"delta", "gamma", "theta", "vega", "rho", "rhoForeign"}
