"""
treasury.py
-----------
Entity-level roll-up of tranche metrics, and the master orchestrator that
runs the whole coverage model for one issuer.

Computes:
  - Total debt / preferred / obligations ($M), adjustments applied
  - Debt-only and total coverage
  - Annual preferred dividends and BTC years of dividends
  - Notional-weighted average duration
  - Breakeven ARR: BTC appreciation needed for NAV growth alone to match
    obligations over the weighted horizon

The model is a pure function of (CapitalStructure, Assumptions); nothing is
cached between calls.
"""

import logging
import math
from dataclasses import dataclass

import pandas as pd

from btc_coverage.model.coverage import coverage, nav, tranche_metrics, treasury_value
from btc_coverage.model.waterfall import effective_total, waterfall_for
from btc_coverage.utils.formatting import fmt_millions, fmt_multiple, fmt_pct, fmt_years

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TreasuryMetrics:
    nav: float                      # $ BTC value
    treasury_value: float           # $ BTC value + USD reserve
    total_debt: float               # $M
    total_preferred: float          # $M
    total_obligations: float        # $M
    debt_coverage: float            # x
    total_coverage: float           # x
    annual_dividends: float         # $M / yr
    btc_years_of_dividends: float   # years
    avg_duration: float             # years
    btc_breakeven_arr: float        # annual rate
    adjustments_valid: bool = True

    @property
    def nav_millions(self) -> float:
        return self.nav / 1_000_000


def _class_duration(metrics) -> float:
    """Notional-weighted duration of one class of tranches."""
    weight = sum(m.notional for m in metrics)
    return sum(m.notional * m.duration for m in metrics) / weight if weight > 0 else 0.0


def aggregate(
    debt_metrics: list,
    preferred_metrics: list,
    assumptions,
    debt_adjustment: float = 0.0,
    preferred_adjustment: float = 0.0,
) -> TreasuryMetrics:
    """
    Roll tranche metrics into a TreasuryMetrics record.

    Positive adjustments are already present as tranches in the metrics
    lists; only negative adjustments are applied here.
    """
    btc_nav = nav(assumptions.btc_holdings, assumptions.btc_price)
    value   = treasury_value(btc_nav, assumptions.cash_reserve)

    tranche_debt = sum(m.notional for m in debt_metrics)
    tranche_pref = sum(m.notional for m in preferred_metrics)

    total_debt, debt_ok = effective_total(tranche_debt, min(debt_adjustment, 0.0))
    total_pref, pref_ok = effective_total(tranche_pref, min(preferred_adjustment, 0.0))
    total_obligations   = total_debt + total_pref

    annual_dividends = sum(m.annual_dividend for m in preferred_metrics)
    years_of_dividends = (
        btc_nav / (annual_dividends * 1_000_000) if annual_dividends > 0 else math.inf
    )

    # Class averages weighted by the adjusted class totals, so the duration
    # and total_obligations share one base
    avg_duration = (
        (total_debt * _class_duration(debt_metrics)
         + total_pref * _class_duration(preferred_metrics)) / total_obligations
        if total_obligations > 0 else 0.0
    )

    breakeven_arr = (
        (total_obligations * 1_000_000) / btc_nav / avg_duration
        if btc_nav > 0 and avg_duration > 0 else 0.0
    )

    return TreasuryMetrics(
        nav                    = btc_nav,
        treasury_value         = value,
        total_debt             = total_debt,
        total_preferred        = total_pref,
        total_obligations      = total_obligations,
        debt_coverage          = coverage(value, total_debt),
        total_coverage         = coverage(value, total_obligations),
        annual_dividends       = annual_dividends,
        btc_years_of_dividends = years_of_dividends,
        avg_duration           = avg_duration,
        btc_breakeven_arr      = breakeven_arr,
        adjustments_valid      = debt_ok and pref_ok,
    )


def tranche_frame(metrics: list) -> pd.DataFrame:
    """Display table of tranche metrics in waterfall order."""
    rows = []
    for m in metrics:
        rows.append({
            "Tranche":              m.name,
            "Class":                "Debt" if m.kind == "debt" else "Preferred",
            "Notional ($M)":        round(m.notional, 1),
            "Cum. Notional ($M)":   round(m.cumulative_notional, 1),
            "Duration (yrs)":       round(m.duration, 1),
            "Coverage (x)":         m.coverage,
            "BTC Risk":             m.btc_risk,
            "BTC Credit":           m.btc_credit,
            "Annual Dividend ($M)": m.annual_dividend,
            "Price":                m.price,
            "Chg %":                m.change_percent,
            "Current Yield":        m.current_yield,
        })
    columns = ["Tranche", "Class", "Notional ($M)", "Cum. Notional ($M)", "Duration (yrs)",
               "Coverage (x)", "BTC Risk", "BTC Credit", "Annual Dividend ($M)",
               "Price", "Chg %", "Current Yield"]
    return pd.DataFrame(rows, columns=columns)


def run_model(structure, assumptions, current_year: int | None = None) -> dict:
    """
    Run the coverage model for one issuer.

    Returns
    -------
    dict with keys:
      waterfall, debt_metrics, preferred_metrics, treasury, tranche_df, summary
    """
    waterfall = waterfall_for(structure)
    metrics   = tranche_metrics(waterfall, assumptions, current_year=current_year)

    debt_metrics      = [m for m in metrics if m.kind == "debt"]
    preferred_metrics = [m for m in metrics if m.kind == "preferred"]

    treasury = aggregate(
        debt_metrics,
        preferred_metrics,
        assumptions,
        debt_adjustment=structure.debt_adjustment,
        preferred_adjustment=structure.preferred_adjustment,
    )
    if not treasury.adjustments_valid:
        logger.warning("%s: adjustments push a class total below zero; totals floored at 0",
                       structure.ticker)

    summary = {
        "BTC NAV ($M)":          fmt_millions(treasury.nav_millions, 0),
        "USD Reserve ($M)":      fmt_millions(assumptions.cash_reserve, 0),
        "Total Debt ($M)":       fmt_millions(treasury.total_debt, 0),
        "Total Preferred ($M)":  fmt_millions(treasury.total_preferred, 0),
        "Debt Coverage":         fmt_multiple(treasury.debt_coverage, 1),
        "Total Coverage":        fmt_multiple(treasury.total_coverage, 1),
        "Annual Dividends ($M)": fmt_millions(treasury.annual_dividends, 1),
        "BTC Years of Dividends": fmt_years(treasury.btc_years_of_dividends, 0),
        "Avg. Duration":         fmt_years(treasury.avg_duration, 1),
        "Breakeven ARR":         fmt_pct(treasury.btc_breakeven_arr, 1),
    }

    return {
        "waterfall":         waterfall,
        "debt_metrics":      debt_metrics,
        "preferred_metrics": preferred_metrics,
        "treasury":          treasury,
        "tranche_df":        tranche_frame(metrics),
        "summary":           summary,
    }
