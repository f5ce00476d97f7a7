"""
Tests for digital and touch options.
"""

import pytest
import numpy as np
from scipy.integrate import quad
from scipy.stats import norm

from fxcore.barriers import touch_probability, touch_value_at_hit, double_touch_value_at_hit
from fxcore.digitals import price_digital
from fxcore.errors import InvalidBarrierConfiguration, InvalidOptionParameters
from fxcore.garman_kohlhagen import d2


# ── fixtures ─────────────────────────────────────────────────────────

S = 1.10
r_d = 0.045
r_f = 0.03
T = 1.0
sigma = 0.10
DISCOUNT = np.exp(-r_d * T)


class TestTouches:

    def test_one_touch_plus_no_touch(self):
        """Both paid at expiry, they add up to a zero-coupon bond."""
        for H in (1.00, 1.20):
            ot = price_digital("one-touch", S, None, r_d, r_f, T, sigma, barrier=H, pay_at_touch=False)
            nt = price_digital("no-touch", S, None, r_d, r_f, T, sigma, barrier=H)
            assert abs(ot + nt - DISCOUNT) < 1e-14

    def test_touch_probability_in_unit_interval(self):
        for H in (0.8, 1.0, 1.09, 1.11, 1.3, 2.0):
            p = touch_probability(S, H, r_d, r_f, T, sigma)
            assert 0.0 <= p <= 1.0

    def test_touch_probability_driftless_reflection(self):
        """With zero log drift the touch probability is exactly twice the terminal one."""
        rf = r_d - 0.5 * sigma**2
        H = 1.00
        terminal = norm.cdf(np.log(H / S) / (sigma * np.sqrt(T)))
        assert abs(touch_probability(S, H, r_d, rf, T, sigma) - 2 * terminal) < 1e-12

    def test_closer_barrier_more_likely(self):
        assert (touch_probability(S, 1.05, r_d, r_f, T, sigma)
                > touch_probability(S, 1.00, r_d, r_f, T, sigma))

    def test_value_at_hit_matches_quadrature(self):
        """PV of 1 at the hit = e^{-rT} P(T) + r int_0^T e^{-rt} P(t) dt."""
        for H in (1.00, 1.20):
            integral, _ = quad(lambda t: np.exp(-r_d * t) * touch_probability(S, H, r_d, r_f, t, sigma),
                               1e-12, T, limit=200)
            expected = DISCOUNT * touch_probability(S, H, r_d, r_f, T, sigma) + r_d * integral
            assert abs(touch_value_at_hit(S, H, r_d, r_f, T, sigma) - expected) < 1e-7

    def test_pay_at_touch_worth_more(self):
        at_touch = price_digital("one-touch", S, None, r_d, r_f, T, sigma, barrier=1.0, pay_at_touch=True)
        at_expiry = price_digital("one-touch", S, None, r_d, r_f, T, sigma, barrier=1.0, pay_at_touch=False)
        assert at_touch > at_expiry

    def test_no_touch_ignores_pay_at_touch(self):
        a = price_digital("no-touch", S, None, r_d, r_f, T, sigma, barrier=1.2, pay_at_touch=True)
        b = price_digital("no-touch", S, None, r_d, r_f, T, sigma, barrier=1.2, pay_at_touch=False)
        assert a == b

    def test_rebate_scales_linearly(self):
        one = price_digital("one-touch", S, None, r_d, r_f, T, sigma, barrier=1.2)
        many = price_digital("one-touch", S, None, r_d, r_f, T, sigma, barrier=1.2, rebate=250.0)
        assert abs(many - 250.0 * one) < 1e-10

    def test_expiry_prices_bounded(self):
        for kind in ("one-touch", "no-touch"):
            v = price_digital(kind, S, None, r_d, r_f, T, sigma, barrier=1.2, rebate=3.0)
            assert 0.0 <= v <= 3.0 * DISCOUNT


class TestDoubleTouches:

    def test_double_touch_plus_double_no_touch(self):
        dt = price_digital("double-touch", S, None, r_d, r_f, T, sigma, barrier=1.0, second_barrier=1.2)
        dnt = price_digital("double-no-touch", S, None, r_d, r_f, T, sigma, barrier=1.0, second_barrier=1.2)
        assert abs(dt + dnt - DISCOUNT) < 1e-14

    def test_far_upper_matches_no_touch(self):
        dnt = price_digital("dnt", S, None, r_d, r_f, T, sigma, barrier=1.0, second_barrier=3.0)
        nt = price_digital("no-touch", S, None, r_d, r_f, T, sigma, barrier=1.0)
        assert abs(dnt - nt) < 1e-8

    def test_double_touch_at_hit_far_upper_matches_one_touch(self):
        v = double_touch_value_at_hit(S, 1.0, 3.0, r_d, r_f, T, sigma)
        assert abs(v - touch_value_at_hit(S, 1.0, r_d, r_f, T, sigma)) < 1e-6

    def test_double_touch_at_hit_worth_more(self):
        at_touch = price_digital("double-touch", S, None, r_d, r_f, T, sigma,
                                 barrier=1.0, second_barrier=1.2, pay_at_touch=True)
        at_expiry = price_digital("double-touch", S, None, r_d, r_f, T, sigma,
                                  barrier=1.0, second_barrier=1.2, pay_at_touch=False)
        assert at_expiry < at_touch <= 1.0

    def test_dnt_shrinks_with_the_corridor(self):
        wide = price_digital("double-no-touch", S, None, r_d, r_f, T, sigma, barrier=0.9, second_barrier=1.3)
        narrow = price_digital("double-no-touch", S, None, r_d, r_f, T, sigma, barrier=1.0, second_barrier=1.2)
        assert narrow < wide

    def test_spot_must_be_inside(self):
        with pytest.raises(InvalidBarrierConfiguration):
            price_digital("double-no-touch", S, None, r_d, r_f, T, sigma, barrier=1.15, second_barrier=1.3)


class TestEuropeanDigitals:

    def test_digital_call_plus_put(self):
        c = price_digital("digital-call", S, 1.10, r_d, r_f, T, sigma)
        p = price_digital("digital-put", S, 1.10, r_d, r_f, T, sigma)
        assert abs(c + p - DISCOUNT) < 1e-14

    def test_digital_call_is_discounted_n_d2(self):
        c = price_digital("digital-call", S, 1.05, r_d, r_f, T, sigma, rebate=2.0)
        expected = 2.0 * DISCOUNT * norm.cdf(d2(S, 1.05, r_d, r_f, T, sigma))
        assert abs(c - expected) < 1e-14

    def test_range_plus_outside(self):
        rng = price_digital("range-binary", S, None, r_d, r_f, T, sigma, barrier=1.0, second_barrier=1.2)
        out = price_digital("outside-binary", S, None, r_d, r_f, T, sigma, barrier=1.0, second_barrier=1.2)
        assert abs(rng + out - DISCOUNT) < 1e-14

    def test_range_is_difference_of_digital_calls(self):
        rng = price_digital("range", S, None, r_d, r_f, T, sigma, barrier=1.0, second_barrier=1.2)
        c_lo = price_digital("digital-call", S, 1.0, r_d, r_f, T, sigma)
        c_hi = price_digital("digital-call", S, 1.2, r_d, r_f, T, sigma)
        assert abs(rng - (c_lo - c_hi)) < 1e-14

    def test_range_beats_double_no_touch(self):
        """Only the terminal spot matters for the range, so it is worth at least the DNT."""
        rng = price_digital("range-binary", S, None, r_d, r_f, T, sigma, barrier=1.0, second_barrier=1.2)
        dnt = price_digital("double-no-touch", S, None, r_d, r_f, T, sigma, barrier=1.0, second_barrier=1.2)
        assert rng > dnt

    def test_range_allows_spot_outside(self):
        v = price_digital("range-binary", S, None, r_d, r_f, T, sigma, barrier=1.15, second_barrier=1.3)
        assert 0.0 < v < DISCOUNT


class TestValidation:

    def test_digital_call_needs_strike(self):
        with pytest.raises(InvalidOptionParameters):
            price_digital("digital-call", S, None, r_d, r_f, T, sigma)

    def test_touch_needs_barrier(self):
        with pytest.raises(InvalidBarrierConfiguration):
            price_digital("one-touch", S, None, r_d, r_f, T, sigma)

    def test_touch_at_spot(self):
        with pytest.raises(InvalidBarrierConfiguration):
            price_digital("one-touch", S, None, r_d, r_f, T, sigma, barrier=S)

    def test_range_needs_ordered_levels(self):
        with pytest.raises(InvalidBarrierConfiguration):
            price_digital("range-binary", S, None, r_d, r_f, T, sigma, barrier=1.2, second_barrier=1.0)

    def test_negative_rebate(self):
        with pytest.raises(InvalidOptionParameters):
            price_digital("no-touch", S, None, r_d, r_f, T, sigma, barrier=1.2, rebate=-1.0)

    def test_not_a_digital(self):
        with pytest.raises(InvalidOptionParameters):
            price_digital("call-knockout", S, 1.1, r_d, r_f, T, sigma, barrier=1.0)

    def test_bad_volatility(self):
        with pytest.raises(InvalidOptionParameters):
            price_digital("no-touch", S, None, r_d, r_f, T, 0.0, barrier=1.2)
