"""
Greeks for every option kind.

Vanillas use the analytic Garman-Kohlhagen partials. Barrier and digital
kinds are bumped and repriced with central finite differences; bump
sizes live in config (FD_SPOT_BUMP is relative to spot, the others are
absolute). Near a monitored barrier the spot step shrinks to half the
distance to it.

Conventions shared by both paths:
    delta  dV/dS
    gamma  d2V/dS2
    vega   dV/dsigma per 1.00 of vol
    theta  value change per year as time passes (-dV/dT)
    rho    dV/dr_d, rho_foreign dV/dr_f
"""

from dataclasses import asdict, dataclass

from . import config
from .barriers import price_barrier
from .digitals import price_digital
from .garman_kohlhagen import price_vanilla, vanilla_greeks
from .kinds import OptionKind, ProductFamily


@dataclass(frozen=True)
class Greeks:
    delta: float
    gamma: float
    theta: float
    vega: float
    rho: float
    rho_foreign: float = 0.0

    def to_dict(self) -> dict:
        d = asdict(self)
        d["rhoForeign"] = d.pop("rho_foreign")
        return d

    def scaled(self, factor: float) -> "Greeks":
        return Greeks(**{k: v * factor for k, v in asdict(self).items()})


def value(kind, S, K, r_d, r_f, T, sigma, **terms) -> float:
    """
    Price any kind from flat arguments.

    terms carries barrier, second_barrier, rebate and pay_at_touch for the
    exotic families and is ignored for vanillas.
    """
    kind = OptionKind.parse(kind)
    if kind.family is ProductFamily.VANILLA:
        return price_vanilla(kind, S, K, r_d, r_f, T, sigma)
    if kind.family is ProductFamily.BARRIER:
        return price_barrier(kind, S, K, r_d, r_f, T, sigma, **terms)
    return price_digital(kind, S, K, r_d, r_f, T, sigma, **terms)


def spot_bump(kind, S, **terms) -> float:
    """
    Spot step for the finite differences.

    For barrier-monitored kinds the step is capped at half the distance
    to the nearest barrier, so both bumped spots stay on the live side.
    """
    kind = OptionKind.parse(kind)
    h = config.FD_SPOT_BUMP * S
    if kind.is_path_dependent:
        names = ("barrier", "second_barrier") if kind.is_double else ("barrier",)
        gaps = [abs(S - float(terms[n])) for n in names if terms.get(n) is not None]
        if gaps:
            h = min(h, 0.5 * min(gaps))
    return h


def finite_difference_greeks(kind, S, K, r_d, r_f, T, sigma, **terms) -> Greeks:
    """Central differences for spot, vol and rates; a one-sided step back in time for theta."""
    def v(**bumped):
        args = dict(S=S, r_d=r_d, r_f=r_f, T=T, sigma=sigma)
        args.update(bumped)
        return value(kind, args["S"], K, args["r_d"], args["r_f"], args["T"], args["sigma"], **terms)

    base = v()
    h = spot_bump(kind, S, **terms)
    up, down = v(S=S + h), v(S=S - h)

    dv = config.FD_VOL_BUMP
    dr = config.FD_RATE_BUMP
    dt = config.FD_TIME_BUMP if T > config.FD_TIME_BUMP else 0.5 * T

    return Greeks(
        delta=(up - down) / (2.0 * h),
        gamma=(up - 2.0 * base + down) / h**2,
        theta=(v(T=T - dt) - base) / dt,
        vega=(v(sigma=sigma + dv) - v(sigma=sigma - dv)) / (2.0 * dv),
        rho=(v(r_d=r_d + dr) - v(r_d=r_d - dr)) / (2.0 * dr),
        rho_foreign=(v(r_f=r_f + dr) - v(r_f=r_f - dr)) / (2.0 * dr),
    )


def greeks(kind, S, K, r_d, r_f, T, sigma, **terms) -> Greeks:
    """
    Greeks of one option per unit of base currency.

    Parameters
    ----------
    kind : OptionKind or its request spelling
    S, K, r_d, r_f, T, sigma : as for the pricing functions (K may be None
                               for strike-less digitals)
    terms : barrier, second_barrier, rebate, pay_at_touch for exotics

    Returns
    -------
    Greeks
    """
    kind = OptionKind.parse(kind)
    if kind.family is ProductFamily.VANILLA:
        return Greeks(**vanilla_greeks(kind, S, K, r_d, r_f, T, sigma))
    return finite_difference_greeks(kind, S, K, r_d, r_f, T, sigma, **terms)
