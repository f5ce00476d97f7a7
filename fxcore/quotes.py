"""
Instrument quote model and the ingestion paths that feed the bootstrapper.

Two paths exist, mirroring where the market data comes from:
    1. Swaps + futures: major currencies with a liquid IRS strip and
       an exchange-traded short-rate futures strip.
    2. Government bonds: every other currency, where the only usable
       term structure is the sovereign yield curve.

Both normalize into the same InstrumentQuote shape:
    - tenor in year fractions
    - rate as a decimal (0.045, never 4.5)
    - source kind and calibration priority

Cleaning is the same for both paths: parse maturity labels, convert
percent to decimal, drop implausible values (scraped feeds carry junk),
and hand back an ordered list.
"""

import calendar
import logging
import math
import re
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Iterable, List, Mapping, Optional

import pandas as pd
from dateutil.relativedelta import relativedelta, WE

from . import config

logger = logging.getLogger(__name__)


class SourceKind(Enum):
    SWAP = "swap"
    FUTURE = "future"
    BOND = "bond"

    @classmethod
    def parse(cls, value) -> "SourceKind":
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        aliases = {"swaps": "swap", "irs": "swap", "futures": "future",
                   "bonds": "bond", "govt": "bond", "government": "bond"}
        return cls(aliases.get(text, text))


def _as_float(value, name: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValueError(f"quote {name} must be numeric, got {value!r}") from None


_DEFAULT_PRIORITY = {
    SourceKind.SWAP: config.SWAP_PRIORITY,
    SourceKind.FUTURE: config.FUTURE_PRIORITY,
    SourceKind.BOND: config.BOND_PRIORITY,
}


@dataclass(frozen=True)
class InstrumentQuote:
    """
    One calibration point.

    priority follows the market-data convention: 1 is the strongest
    (swaps), larger numbers are guides.
    """

    tenor: float
    rate: float
    source: SourceKind = SourceKind.SWAP
    priority: Optional[int] = field(default=None)

    def __post_init__(self):
        tenor = _as_float(self.tenor, "tenor")
        rate = _as_float(self.rate, "rate")
        if not math.isfinite(tenor) or tenor <= 0:
            raise ValueError(f"quote tenor must be a positive number, got {self.tenor!r}")
        if not math.isfinite(rate):
            raise ValueError(f"quote rate must be finite, got {self.rate!r}")
        # frozen: go through object.__setattr__ for the normalised fields
        object.__setattr__(self, "tenor", tenor)
        object.__setattr__(self, "rate", rate)
        object.__setattr__(self, "source", SourceKind.parse(self.source))
        if self.priority is None:
            object.__setattr__(self, "priority", _DEFAULT_PRIORITY[self.source])

    @property
    def is_swap(self) -> bool:
        return self.source is SourceKind.SWAP

    @property
    def discount_factor(self) -> float:
        """DF implied by the quote read as a continuously compounded zero rate."""
        return math.exp(-self.rate * self.tenor)


# ════════════════════════════════════════════════════════════════════════
#  MATURITY LABELS
# ════════════════════════════════════════════════════════════════════════

_UNIT_YEARS = {
    "d": 1.0 / 365.0, "day": 1.0 / 365.0,
    "w": 7.0 / 365.0, "wk": 7.0 / 365.0, "week": 7.0 / 365.0,
    "m": 1.0 / 12.0, "mo": 1.0 / 12.0, "mth": 1.0 / 12.0, "month": 1.0 / 12.0,
    "y": 1.0, "yr": 1.0, "year": 1.0,
}
_TENOR_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([a-z]+?)s?\s*$")
_CONTRACT_RE = re.compile(r"^\s*([a-z]{3})[a-z]*[\s\-']*(\d{2}|\d{4})\s*$")
_MONTHS = {name.lower(): i for i, name in enumerate(calendar.month_abbr) if name}


def _imm_date(year: int, month: int) -> date:
    """Third Wednesday of the month (IMM futures expiry)."""
    return date(year, month, 1) + relativedelta(weekday=WE(3))


def maturity_to_years(label, as_of: Optional[date] = None) -> float:
    """
    Convert a maturity label to a year fraction.

    Accepts tenor labels ("3M", "6 months", "1Y", "10 years", "2W",
    "ON") and futures contract months ("Mar 2026", "DEC25"). Contract
    months need an as_of date and resolve to the IMM expiry, ACT/365.

    Raises
    ------
    ValueError : for labels that match neither form
    """
    if isinstance(label, (int, float)):
        return float(label)

    text = str(label).strip().lower()
    if text in ("on", "o/n", "overnight", "tn", "t/n"):
        return 1.0 / 365.0

    m = _TENOR_RE.match(text)
    if m and m.group(2) in _UNIT_YEARS:
        return float(m.group(1)) * _UNIT_YEARS[m.group(2)]

    m = _CONTRACT_RE.match(text)
    if m and m.group(1) in _MONTHS:
        if as_of is None:
            raise ValueError(f"contract month {label!r} needs an as_of date")
        year = int(m.group(2))
        if year < 100:
            year += 2000
        expiry = _imm_date(year, _MONTHS[m.group(1)])
        return (expiry - as_of).days / 365.0

    raise ValueError(f"unrecognised maturity label: {label!r}")


def futures_price_to_rate(price: float) -> float:
    """IMM convention: a price of 95.50 implies a 4.50% rate."""
    return (100.0 - price) / 100.0


def uses_swap_curve(currency: str) -> bool:
    """True when the currency bootstraps from swaps + futures rather than bonds."""
    return currency.upper() in config.MAJOR_CURRENCIES


def basis_convention(currency: str) -> dict:
    """Money-market day count and compounding used when reporting a curve."""
    ccy = currency.upper()
    day_count = "ACT/365" if ccy in config.ACT_365_CURRENCIES else "ACT/360"
    return {"currency": ccy, "dayCount": day_count, "compounding": "continuous"}


# ════════════════════════════════════════════════════════════════════════
#  INGESTION PATHS
# ════════════════════════════════════════════════════════════════════════

def quotes_from_swaps_and_futures(
    swap_rows: Iterable[Mapping],
    futures_rows: Iterable[Mapping] = (),
    as_of: Optional[date] = None,
) -> List[InstrumentQuote]:
    """
    Normalize an IRS strip and a futures strip into quotes.

    Parameters
    ----------
    swap_rows : rows with "tenor" (label or years) and "rate" in percent
    futures_rows : rows with "maturity" (label or contract month) and "price"
    as_of : valuation date, needed for contract-month maturities

    Returns
    -------
    list of InstrumentQuote sorted by tenor
    """
    quotes = []
    for row in swap_rows:
        rate_pct = float(row["rate"])
        if not 0.0 < rate_pct < config.MAX_SWAP_RATE_PCT:
            logger.warning("dropping swap quote %s: rate %.4f%% out of range", row.get("tenor"), rate_pct)
            continue
        tenor = maturity_to_years(row["tenor"], as_of)
        quotes.append(InstrumentQuote(tenor, rate_pct / 100.0, SourceKind.SWAP))

    for row in futures_rows:
        rate = futures_price_to_rate(float(row["price"]))
        tenor = maturity_to_years(row["maturity"], as_of)
        if tenor <= 0 or not 0.0 < rate < config.MAX_FUTURE_RATE:
            logger.warning("dropping futures quote %s: tenor=%.4f rate=%.4f", row.get("maturity"), tenor, rate)
            continue
        quotes.append(InstrumentQuote(tenor, rate, SourceKind.FUTURE))

    return sorted(quotes, key=lambda q: q.tenor)


def quotes_from_bond_yields(rows: Iterable[Mapping], as_of: Optional[date] = None) -> List[InstrumentQuote]:
    """
    Normalize government bond yields (percent) into quotes.

    Rows without a yield or with a non-positive maturity are skipped,
    which is what scraped sovereign tables routinely contain.
    """
    quotes = []
    for row in rows:
        y = row.get("yield")
        if y is None or (isinstance(y, float) and math.isnan(y)):
            continue
        tenor = maturity_to_years(row["maturity"], as_of)
        if tenor <= 0:
            continue
        quotes.append(InstrumentQuote(tenor, float(y) / 100.0, SourceKind.BOND))
    return sorted(quotes, key=lambda q: q.tenor)


def load_quotes_csv(path, rate_in_percent: bool = False) -> List[InstrumentQuote]:
    """
    Read quotes from a delimited file with columns tenor, rate, source[, priority].

    tenor may be a number of years or a label ("6M", "2Y").
    """
    df = pd.read_csv(path, sep=None, engine="python")
    df.columns = [c.strip().lower() for c in df.columns]
    missing = {"tenor", "rate"} - set(df.columns)
    if missing:
        raise ValueError(f"quote file is missing columns: {sorted(missing)}")

    quotes = []
    for row in df.itertuples(index=False):
        rate = float(row.rate) / (100.0 if rate_in_percent else 1.0)
        source = getattr(row, "source", SourceKind.SWAP)
        priority = getattr(row, "priority", None)
        if priority is not None and pd.isna(priority):
            priority = None
        quotes.append(InstrumentQuote(
            maturity_to_years(row.tenor), rate, SourceKind.parse(source),
            None if priority is None else int(priority),
        ))
    return sorted(quotes, key=lambda q: q.tenor)


def quotes_to_frame(quotes: Iterable[InstrumentQuote]) -> pd.DataFrame:
    """Tabular view of a quote set, mainly for logging and the CLI."""
    return pd.DataFrame([
        {"tenor": q.tenor, "rate": q.rate, "source": q.source.value, "priority": q.priority}
        for q in quotes
    ])
