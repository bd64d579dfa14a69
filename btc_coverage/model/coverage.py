"""
coverage.py
-----------
Coverage and BTC-risk formulas applied tranche by tranche.

Computed per tranche (in waterfall order):
  - Coverage      (BTC value + USD reserve) / cumulative notional
  - Duration      years to maturity, floored at 0.5y; preferred uses a
                  fixed perpetual proxy (30y by default)
  - BTC Risk      volatility x sqrt(duration)
  - BTC Credit    full BTC Risk at or below 1.0x, then BTC Risk x (1 - 1/coverage)
  - Current Yield (preferred) coupon x par / market price

Coverage is +inf when the cumulative notional is zero or negative.
Notionals in $M, NAV / treasury value in $.
"""

import math
from dataclasses import dataclass

from btc_coverage.config import settings

MIN_DURATION = 0.5   # years


# ---------------------------------------------------------------------------
# Scalar formulas
# ---------------------------------------------------------------------------

def nav(holdings: float, price: float) -> float:
    """BTC net asset value: holdings x price (in $)."""
    return holdings * price


def treasury_value(nav_usd: float, cash_reserve: float = 0.0) -> float:
    """NAV plus USD reserve ($M) in $."""
    return nav_usd + cash_reserve * 1_000_000


def coverage(value: float, cumulative_notional: float) -> float:
    """Times the treasury value covers a cumulative notional given in $M."""
    if cumulative_notional <= 0:
        return math.inf
    return value / (cumulative_notional * 1_000_000)


def debt_duration(maturity_year: int, current_year: int | None = None) -> float:
    if current_year is None:
        current_year = settings.current_year
    return max(maturity_year - current_year, MIN_DURATION)


def btc_risk(volatility: float, duration: float) -> float:
    return volatility * math.sqrt(duration)


def btc_credit(risk: float, coverage_ratio: float) -> float:
    """
    Credit-spread proxy.  Full risk at or below 1.0x; above it the risk is
    scaled by (1 - 1/coverage), which starts near zero just above 1.0x and
    tends back to the full risk as coverage grows.
    """
    if coverage_ratio <= 1:
        return risk
    return risk * (1 - 1 / coverage_ratio)


def preferred_yield(dividend_rate: float, price: float | None, par: float = 100.0) -> float:
    """Current yield on a perpetual preferred; the coupon when unpriced."""
    if not price or price <= 0:
        return dividend_rate
    return dividend_rate * par / price


# ---------------------------------------------------------------------------
# Tranche records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TrancheMetrics:
    instrument: object
    kind: str                         # "debt" | "preferred"
    cumulative_notional: float        # $M
    duration: float                   # years
    coverage: float                   # x
    btc_risk: float
    btc_credit: float
    annual_dividend: float | None = None
    price: float | None = None
    change_percent: float | None = None
    current_yield: float | None = None

    @property
    def name(self) -> str:
        return getattr(self.instrument, "ticker", None) or self.instrument.name

    @property
    def notional(self) -> float:
        return self.instrument.notional


def tranche_metrics(
    waterfall: list[tuple],
    assumptions,
    current_year: int | None = None,
    perpetual_duration: float | None = None,
) -> list[TrancheMetrics]:
    """
    Compute metrics for every (instrument, cumulative) row of a waterfall.

    Parameters
    ----------
    waterfall          : output of waterfall.build_waterfall()
    assumptions        : Assumptions snapshot
    current_year       : valuation year for debt durations (settings default)
    perpetual_duration : duration proxy for preferred (settings default)
    """
    if perpetual_duration is None:
        perpetual_duration = settings.perpetual_duration

    value = treasury_value(nav(assumptions.btc_holdings, assumptions.btc_price),
                           assumptions.cash_reserve)

    records = []
    for inst, cumulative in waterfall:
        ratio = coverage(value, cumulative)

        if inst.kind == "debt":
            dur  = debt_duration(inst.maturity_year, current_year)
            risk = btc_risk(assumptions.btc_volatility, dur)
            records.append(TrancheMetrics(
                instrument          = inst,
                kind                = "debt",
                cumulative_notional = cumulative,
                duration            = dur,
                coverage            = ratio,
                btc_risk            = risk,
                btc_credit          = btc_credit(risk, ratio),
            ))
        else:
            risk = btc_risk(assumptions.btc_volatility, perpetual_duration)
            records.append(TrancheMetrics(
                instrument          = inst,
                kind                = "preferred",
                cumulative_notional = cumulative,
                duration            = perpetual_duration,
                coverage            = ratio,
                btc_risk            = risk,
                btc_credit          = btc_credit(risk, ratio),
                annual_dividend     = inst.annual_dividend,
                price               = inst.price,
                change_percent      = inst.change_percent,
                current_yield       = preferred_yield(inst.dividend_rate, inst.price,
                                                      inst.liquidation_preference),
            ))
    return records
