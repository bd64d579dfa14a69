"""Shared fixtures for the coverage model tests."""

import pytest

from btc_coverage.model.assumptions import Assumptions
from btc_coverage.model.catalog import CapitalStructure, mstr_structure, strive_structure
from btc_coverage.model.instruments import DebtInstrument, PreferredInstrument


@pytest.fixture
def three_notes():
    """Three convertible notes, already in maturity order."""
    return [
        DebtInstrument("n-2028", "Note 2028", 1050.0, 2028),
        DebtInstrument("n-2029", "Note 2029", 1010.0, 2029),
        DebtInstrument("n-2030", "Note 2030",  800.0, 2030),
    ]


@pytest.fixture
def two_preferreds():
    return [
        PreferredInstrument("strf", "STRF", "Strife", 584.0, 0.10),
        PreferredInstrument("strk", "STRK", "Strike", 563.0, 0.08),
    ]


@pytest.fixture
def small_structure(three_notes, two_preferreds):
    return CapitalStructure(
        name="Test Co",
        ticker="TEST",
        debt=tuple(three_notes),
        preferred=tuple(two_preferreds),
        holdings_increment=100_000,
    )


@pytest.fixture
def nav_50bn():
    """500k BTC at $100k: $50,000M of BTC, no reserve."""
    return Assumptions(btc_price=100_000.0, btc_holdings=500_000, btc_volatility=0.60)


@pytest.fixture
def mstr():
    return mstr_structure()


@pytest.fixture
def strive():
    return strive_structure()
