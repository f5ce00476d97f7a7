"""
Shared quote fixtures.
"""

import pytest

from fxcore.quotes import InstrumentQuote, SourceKind


@pytest.fixture
def scenario_quotes():
    """Two swaps and one future, the minimal mixed quote set."""
    return [
        InstrumentQuote(1.0, 0.045, SourceKind.SWAP),
        InstrumentQuote(2.0, 0.047, SourceKind.SWAP),
        InstrumentQuote(0.25, 0.044, SourceKind.FUTURE),
    ]


@pytest.fixture
def usd_quotes():
    """A USD-like strip: futures at the front, swaps out to 30y, a slight inversion at 3y."""
    swaps = [(1, 0.0450), (2, 0.0470), (3, 0.0462), (5, 0.0455), (7, 0.0458),
             (10, 0.0465), (20, 0.0480), (30, 0.0470)]
    futures = [(0.25, 0.0440), (0.5, 0.0438), (0.75, 0.0436), (1.5, 0.0455)]
    return ([InstrumentQuote(t, r, SourceKind.SWAP) for t, r in swaps]
            + [InstrumentQuote(t, r, SourceKind.FUTURE) for t, r in futures])


@pytest.fixture
def bond_quotes():
    """Government yields for a bonds-only currency."""
    yields = [(0.5, 0.105), (1, 0.108), (2, 0.112), (5, 0.118), (10, 0.121)]
    return [InstrumentQuote(t, r, SourceKind.BOND) for t, r in yields]
