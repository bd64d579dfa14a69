import math

import pytest

from btc_coverage.model.assumptions import Assumptions
from btc_coverage.model.catalog import CapitalStructure, default_assumptions
from btc_coverage.model.treasury import run_model
from btc_coverage.model.waterfall import ADDITIONAL_PREFERRED_ID

YEAR = 2025


def test_entity_totals(small_structure, nav_50bn):
    t = run_model(small_structure, nav_50bn, current_year=YEAR)["treasury"]

    assert t.nav == pytest.approx(50e9)
    assert t.treasury_value == pytest.approx(50e9)
    assert t.total_debt == pytest.approx(2860.0)
    assert t.total_preferred == pytest.approx(1147.0)
    assert t.total_obligations == pytest.approx(4007.0)
    assert t.debt_coverage == pytest.approx(50_000 / 2860)
    assert t.total_coverage == pytest.approx(50_000 / 4007)
    assert t.annual_dividends == pytest.approx(103.44)
    assert t.btc_years_of_dividends == pytest.approx(50e9 / 103.44e6)
    assert t.adjustments_valid


def test_weighted_duration_and_breakeven(small_structure, nav_50bn):
    t = run_model(small_structure, nav_50bn, current_year=YEAR)["treasury"]

    weighted = (1050 * 3 + 1010 * 4 + 800 * 5 + 584 * 30 + 563 * 30) / 4007
    assert t.avg_duration == pytest.approx(weighted)
    assert t.btc_breakeven_arr == pytest.approx(4007e6 / 50e9 / weighted)


def test_zero_nav(small_structure):
    """No BTC: every tranche uncovered, breakeven guarded to zero."""
    a = Assumptions(btc_price=90_000.0, btc_holdings=0)
    result = run_model(small_structure, a, current_year=YEAR)
    t = result["treasury"]

    assert all(m.coverage == 0.0 for m in result["debt_metrics"] + result["preferred_metrics"])
    assert t.avg_duration > 0
    assert t.btc_breakeven_arr == 0.0
    assert t.btc_years_of_dividends == 0.0


def test_no_obligations(nav_50bn):
    empty = CapitalStructure(name="Empty", ticker="NONE")
    result = run_model(empty, nav_50bn, current_year=YEAR)
    t = result["treasury"]

    assert t.total_obligations == 0.0
    assert t.total_coverage == math.inf
    assert t.debt_coverage == math.inf
    assert t.avg_duration == 0.0
    assert t.btc_breakeven_arr == 0.0
    assert t.btc_years_of_dividends == math.inf
    assert result["tranche_df"].empty
    assert result["summary"]["Total Coverage"] == "∞x"


def test_reserve_lifts_entity_coverage(small_structure, nav_50bn):
    a = nav_50bn.update(cash_reserve=1_000.0)
    t = run_model(small_structure, a, current_year=YEAR)["treasury"]
    assert t.treasury_value == pytest.approx(51e9)
    assert t.total_coverage == pytest.approx(51_000 / 4007)
    # years of dividends is BTC-only
    assert t.btc_years_of_dividends == pytest.approx(50e9 / 103.44e6)


def test_negative_debt_adjustment_lowers_totals(small_structure, nav_50bn):
    s = small_structure.with_adjustments(debt=-860.0)
    result = run_model(s, nav_50bn, current_year=YEAR)
    t = result["treasury"]

    assert t.total_debt == pytest.approx(2000.0)
    assert t.total_obligations == pytest.approx(3147.0)
    assert t.adjustments_valid
    assert len(result["debt_metrics"]) == 3


def test_adjustment_below_zero_is_floored_and_flagged(small_structure, nav_50bn):
    s = small_structure.with_adjustments(preferred=-5_000.0)
    t = run_model(s, nav_50bn, current_year=YEAR)["treasury"]

    assert t.total_preferred == 0.0
    assert t.total_obligations == pytest.approx(2860.0)
    assert not t.adjustments_valid


def test_positive_preferred_adjustment(small_structure, nav_50bn):
    s = small_structure.with_adjustments(preferred=353.0)
    result = run_model(s, nav_50bn, current_year=YEAR)
    t = result["treasury"]

    assert t.total_preferred == pytest.approx(1500.0)
    assert t.annual_dividends == pytest.approx(103.44)
    assert result["preferred_metrics"][-1].instrument.id == ADDITIONAL_PREFERRED_ID


def test_tranche_frame(small_structure, nav_50bn):
    df = run_model(small_structure, nav_50bn, current_year=YEAR)["tranche_df"]
    assert list(df["Tranche"]) == ["Note 2028", "Note 2029", "Note 2030", "STRF", "STRK"]
    assert list(df["Class"]) == ["Debt"] * 3 + ["Preferred"] * 2
    assert df["Cum. Notional ($M)"].iloc[-1] == pytest.approx(4007.0)
    assert "Coverage (x)" in df.columns


def test_mstr_reference_structure(mstr):
    a = default_assumptions(mstr)
    t = run_model(mstr, a)["treasury"]
    assert t.total_debt == pytest.approx(8214.0)
    assert t.total_preferred == pytest.approx(7467.0)
    assert t.annual_dividends == pytest.approx(128.4 + 380.1375 + 112.16 + 140.2)


def test_strive_has_no_debt(strive):
    t = run_model(strive, default_assumptions(strive))["treasury"]
    assert t.total_debt == 0.0
    assert t.debt_coverage == math.inf
    assert t.annual_dividends == pytest.approx(60.0)


def test_run_model_is_pure(small_structure, nav_50bn):
    first  = run_model(small_structure, nav_50bn, current_year=YEAR)
    second = run_model(small_structure, nav_50bn, current_year=YEAR)
    assert first["treasury"] == second["treasury"]
    assert small_structure.debt_adjustment == 0.0
    assert nav_50bn.btc_price == 100_000.0


DEBT_DURATION = (1050 * 3 + 1010 * 4 + 800 * 5) / 2860


def test_duration_follows_adjusted_class_totals(small_structure, nav_50bn):
    """A negative adjustment reweights duration on the same base as total_obligations."""
    t = run_model(small_structure.with_adjustments(debt=-860.0), nav_50bn,
                  current_year=YEAR)["treasury"]
    expected = (2000 * DEBT_DURATION + 1147 * 30) / 3147
    assert t.avg_duration == pytest.approx(expected)
    assert t.btc_breakeven_arr == pytest.approx(3147e6 / 50e9 / expected)


def test_duration_ignores_wiped_out_class(small_structure, nav_50bn):
    t = run_model(small_structure.with_adjustments(preferred=-5_000.0), nav_50bn,
                  current_year=YEAR)["treasury"]
    assert t.avg_duration == pytest.approx(DEBT_DURATION)
    assert t.btc_breakeven_arr == pytest.approx(2860e6 / 50e9 / DEBT_DURATION)
