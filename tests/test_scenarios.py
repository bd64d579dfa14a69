import pytest

from btc_coverage.analysis.scenarios import PRICE_SHOCKS, price_scenarios, project_coverage


def test_default_price_scenarios(small_structure, nav_50bn):
    out = price_scenarios(small_structure, nav_50bn)

    assert list(out["comparison_df"].index) == ["Bear", "Base", "Bull"]
    assert out["assumptions"]["Bear"].btc_price == pytest.approx(50_000.0)
    assert out["assumptions"]["Bull"].btc_price == pytest.approx(200_000.0)

    base = out["results"]["Base"]["treasury"].total_coverage
    bull = out["results"]["Bull"]["treasury"].total_coverage
    bear = out["results"]["Bear"]["treasury"].total_coverage
    # no reserve: coverage scales with price
    assert bull == pytest.approx(2 * base)
    assert bear == pytest.approx(0.5 * base)


def test_scenarios_keep_holdings_and_obligations(small_structure, nav_50bn):
    out = price_scenarios(small_structure, nav_50bn, shocks={"Crash": -0.8})
    a = out["assumptions"]["Crash"]
    t = out["results"]["Crash"]["treasury"]
    assert a.btc_holdings == nav_50bn.btc_holdings
    assert t.total_obligations == pytest.approx(4007.0)


def test_shock_wiping_out_price_rejected(small_structure, nav_50bn):
    with pytest.raises(ValueError):
        price_scenarios(small_structure, nav_50bn, shocks={"Zero": -1.0})


def test_default_shocks_unchanged():
    assert PRICE_SHOCKS == {"Bear": -0.50, "Base": 0.0, "Bull": 1.00}


def test_project_coverage(small_structure, nav_50bn):
    a = nav_50bn.update(btc_arr=0.5)
    df = project_coverage(small_structure, a, years=3)

    assert list(df["Year"]) == [0, 1, 2, 3]
    assert df["BTC Price"].iloc[-1] == pytest.approx(100_000 * 1.5 ** 3)
    ratio = df["Total Coverage (x)"].iloc[2] / df["Total Coverage (x)"].iloc[1]
    assert ratio == pytest.approx(1.5)


def test_project_coverage_validation(small_structure, nav_50bn):
    with pytest.raises(ValueError):
        project_coverage(small_structure, nav_50bn, years=-1)
    with pytest.raises(ValueError):
        project_coverage(small_structure, nav_50bn.update(btc_arr=-1.0), years=5)
