import pytest

from btc_coverage.model.assumptions import Assumptions
from btc_coverage.model.catalog import (MSTR_BTC_HOLDINGS, MSTR_USD_RESERVE, STRIVE_BTC_HOLDINGS,
                                        default_assumptions)
from btc_coverage.model.instruments import (DebtInstrument, MarketQuote, PreferredInstrument,
                                            overlay_quotes)


def test_negative_notional_rejected():
    with pytest.raises(ValueError):
        DebtInstrument("x", "Bad Note", -1.0, 2030)
    with pytest.raises(ValueError):
        PreferredInstrument("y", "BAD", "Bad Pref", -5.0, 0.10)


def test_annual_dividend(two_preferreds):
    strf, strk = two_preferreds
    assert strf.annual_dividend == pytest.approx(58.4)
    assert strk.annual_dividend == pytest.approx(45.04)


def test_with_notional_returns_new_instrument(three_notes):
    note = three_notes[0]
    edited = note.with_notional(2000.0)
    assert edited.notional == 2000.0
    assert note.notional == 1050.0


def test_overlay_quotes_leaves_unquoted_tickers_empty(two_preferreds):
    quotes = {"STRF": MarketQuote("STRF", 104.5, 103.0, 1.46)}
    strf, strk = overlay_quotes(two_preferreds, quotes)
    assert strf.price == 104.5
    assert strf.change_percent == 1.46
    assert strk.price is None
    assert strk.change_percent is None


@pytest.mark.parametrize("kwargs", [
    {"btc_price": 0.0, "btc_holdings": 1.0},
    {"btc_price": -1.0, "btc_holdings": 1.0},
    {"btc_price": 1.0, "btc_holdings": -1.0},
    {"btc_price": 1.0, "btc_holdings": 1.0, "btc_volatility": -0.1},
    {"btc_price": 1.0, "btc_holdings": 1.0, "cash_reserve": -10.0},
])
def test_assumptions_validation(kwargs):
    with pytest.raises(ValueError):
        Assumptions(**kwargs)


def test_assumptions_allow_negative_arr():
    a = Assumptions(btc_price=50_000.0, btc_holdings=10.0, btc_arr=-0.2)
    assert a.btc_arr == -0.2


def test_default_assumptions_per_issuer(mstr, strive):
    a = default_assumptions(mstr)
    assert a.btc_holdings == MSTR_BTC_HOLDINGS
    assert a.cash_reserve == MSTR_USD_RESERVE

    b = default_assumptions(strive)
    assert b.btc_holdings == STRIVE_BTC_HOLDINGS


def test_structure_edits(mstr):
    edited = mstr.with_preferred_notional("strc", 4000.0)
    assert edited.base_preferred == pytest.approx(mstr.base_preferred + 621.0)
    assert mstr.base_preferred == pytest.approx(7467.0)

    with pytest.raises(KeyError):
        mstr.with_debt_notional("no-such-note", 10.0)
