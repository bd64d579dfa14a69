"""
scenarios.py
------------
Bear / Base / Bull BTC price scenarios and a forward coverage projection.

Scenarios shock the BTC price only; holdings, reserve and obligations stay
at the base assumptions.  The projection compounds the BTC price at the
assumed appreciation rate (btc_arr) year by year.
"""

import numpy as np
import pandas as pd

from btc_coverage.model.treasury import run_model
from btc_coverage.utils.formatting import fmt_millions, fmt_multiple, fmt_pct, fmt_years


SCENARIO_NAMES = ["Bear", "Base", "Bull"]

PRICE_SHOCKS = {
    "Bear": -0.50,
    "Base":  0.00,
    "Bull":  1.00,
}


def _make_scenario_assumptions(assumptions, shocks: dict) -> dict:
    return {
        name: assumptions.update(btc_price=assumptions.btc_price * (1 + shocks[name]))
        for name in shocks
    }


def price_scenarios(structure, assumptions, shocks: dict | None = None) -> dict:
    """
    Run the model under each BTC price shock.

    Returns
    -------
    {
      "results"      : {scenario_name: run_model() dict},
      "assumptions"  : {scenario_name: Assumptions},
      "comparison_df": pd.DataFrame  (key coverage metrics across scenarios),
    }
    """
    shocks = shocks or PRICE_SHOCKS
    for name, shock in shocks.items():
        if shock <= -1:
            raise ValueError(f"{name}: price shock {shock:.0%} wipes out the BTC price")

    scenarios = _make_scenario_assumptions(assumptions, shocks)
    results   = {name: run_model(structure, a) for name, a in scenarios.items()}

    rows = []
    for name, a in scenarios.items():
        t = results[name]["treasury"]
        rows.append({
            "Scenario":               name,
            "BTC Price":              f"${a.btc_price:,.0f}",
            "BTC NAV ($M)":           fmt_millions(t.nav_millions, 0),
            "Debt Coverage":          fmt_multiple(t.debt_coverage),
            "Total Coverage":         fmt_multiple(t.total_coverage),
            "BTC Years of Dividends": fmt_years(t.btc_years_of_dividends, 0),
            "Breakeven ARR":          fmt_pct(t.btc_breakeven_arr),
        })
    comparison_df = pd.DataFrame(rows).set_index("Scenario")

    return {
        "results":       results,
        "assumptions":   scenarios,
        "comparison_df": comparison_df,
    }


def project_coverage(structure, assumptions, years: int = 10) -> pd.DataFrame:
    """
    Year-by-year total coverage with BTC compounding at btc_arr.

    Returns a DataFrame with columns Year, BTC Price, BTC NAV ($M),
    Total Coverage (x); Year 0 is today.
    """
    if years < 0:
        raise ValueError(f"years must be >= 0, got {years}")
    if assumptions.btc_arr <= -1:
        raise ValueError(f"btc_arr must be > -100%, got {assumptions.btc_arr}")

    growth = (1 + assumptions.btc_arr) ** np.arange(years + 1)
    rows = []
    for yr, g in enumerate(growth):
        a = assumptions.update(btc_price=assumptions.btc_price * float(g))
        t = run_model(structure, a)["treasury"]
        rows.append({
            "Year":               yr,
            "BTC Price":          a.btc_price,
            "BTC NAV ($M)":       t.nav_millions,
            "Total Coverage (x)": t.total_coverage,
        })
    return pd.DataFrame(rows)
