"""
Tests for the greeks dispatcher.
"""

import pytest
import numpy as np

from fxcore.contracts import make_contract, price_option
from fxcore.digitals import price_digital
from fxcore.garman_kohlhagen import vanilla_greeks
from fxcore.greeks import Greeks, greeks, finite_difference_greeks, spot_bump, value


# ── fixtures ─────────────────────────────────────────────────────────

S = 1.10
K = 1.10
r_d = 0.045
r_f = 0.03
T = 1.0
sigma = 0.10


class TestGreeksObject:

    def test_to_dict_keys(self):
        g = Greeks(0.5, 2.0, -0.01, 0.4, 0.3, -0.2)
        assert g.to_dict() == {"delta": 0.5, "gamma": 2.0, "theta": -0.01, "vega": 0.4,
                               "rho": 0.3, "rhoForeign": -0.2}

    def test_scaled(self):
        g = Greeks(0.5, 2.0, -0.01, 0.4, 0.3, -0.2).scaled(10.0)
        assert g.delta == 5.0
        assert g.rho_foreign == -2.0


class TestVanilla:

    def test_vanilla_uses_analytic(self):
        g = greeks("call", S, K, r_d, r_f, T, sigma)
        assert g == Greeks(**vanilla_greeks("call", S, K, r_d, r_f, T, sigma))

    def test_finite_differences_agree_with_analytic(self):
        for kind in ("call", "put"):
            a = greeks(kind, S, K, r_d, r_f, T, sigma)
            n = finite_difference_greeks(kind, S, K, r_d, r_f, T, sigma)
            assert abs(a.delta - n.delta) < 1e-6
            assert abs(a.gamma - n.gamma) < 1e-3
            assert abs(a.vega - n.vega) < 1e-6
            assert abs(a.rho - n.rho) < 1e-6
            assert abs(a.rho_foreign - n.rho_foreign) < 1e-6
            # one-day step back in time
            assert abs(a.theta - n.theta) < 1e-4


class TestExotics:

    def test_down_and_out_call(self):
        g = greeks("call-knockout", S, K, r_d, r_f, T, sigma, barrier=1.00)
        vanilla = greeks("call", S, K, r_d, r_f, T, sigma)
        # knock-out risk adds delta and removes vega relative to the vanilla
        assert g.delta > vanilla.delta
        assert g.vega < vanilla.vega
        assert all(np.isfinite(v) for v in g.to_dict().values())

    def test_double_no_touch(self):
        g = greeks("double-no-touch", S, None, r_d, r_f, T, sigma, barrier=1.0, second_barrier=1.2)
        assert g.vega < 0
        assert g.gamma < 0

    def test_one_touch_delta_sign(self):
        up = greeks("one-touch", S, None, r_d, r_f, T, sigma, barrier=1.2)
        down = greeks("one-touch", S, None, r_d, r_f, T, sigma, barrier=1.0)
        assert up.delta > 0
        assert down.delta < 0

    def test_short_maturity_theta_step(self):
        """Maturities shorter than the one-day bump still produce a finite theta."""
        g = greeks("no-touch", S, None, r_d, r_f, 0.5 / 365, sigma, barrier=1.2)
        assert np.isfinite(g.theta)

    def test_spot_bump_capped_by_barrier(self):
        assert spot_bump("call-knockout", S, barrier=1.09995) == pytest.approx(2.5e-5)
        assert spot_bump("double-no-touch", S, barrier=1.0, second_barrier=1.1001) == pytest.approx(5e-5)
        # European payoffs are not monitored, so the levels do not limit the step
        assert spot_bump("range-binary", S, barrier=1.09995, second_barrier=1.2) == pytest.approx(1e-4 * S)
        assert spot_bump("call", S) == pytest.approx(1e-4 * S)

    def test_knock_out_barrier_next_to_spot(self):
        """Barrier 0.005% below spot: every bumped spot stays above it."""
        g = greeks("call-knockout", S, K, r_d, r_f, T, sigma, barrier=1.09995)
        assert all(np.isfinite(v) for v in g.to_dict().values())
        assert g.delta > 0

    def test_knock_out_greeks_through_price_option(self):
        c = make_contract("call-knockout", S, K, T, sigma, r_d, r_f, barrier=1.09995)
        result = price_option(c, with_greeks=True)
        assert result.greeks.delta > 0

    def test_one_touch_barrier_next_to_spot(self):
        """Barrier 0.005% above spot: delta matches a tiny one-sided slope."""
        H = 1.10005
        g = greeks("one-touch", S, None, r_d, r_f, T, sigma, barrier=H)
        eps = 1e-7
        slope = (price_digital("one-touch", S, None, r_d, r_f, T, sigma, barrier=H)
                 - price_digital("one-touch", S - eps, None, r_d, r_f, T, sigma, barrier=H)) / eps
        assert slope > 0
        assert abs(g.delta - slope) < 1e-2 * slope
        assert abs(g.gamma) < 100.0

    def test_value_dispatch(self):
        assert value("put", S, K, r_d, r_f, T, sigma, barrier=1.0) == value("put", S, K, r_d, r_f, T, sigma)
        with pytest.raises(TypeError):
            value("no-touch", S, None, r_d, r_f, T, sigma, unknown=1.0)
