"""
waterfall.py
------------
Seniority ordering and cumulative notional for a treasury's obligations.

Key mechanics:
  - Debt is paid first, nearest maturity first (stable sort on
    maturity year, ties keep catalog order)
  - Preferred follows all debt in catalog order, its running total
    continuing from total debt
  - Cumulative notional at tranche i = offset + sum(notional[0..i])
  - Class-level adjustments are an explicit override layer: a positive
    adjustment is appended as an "Additional" tranche at the end of its
    class, a negative one only lowers the class total (floored at zero
    for display and flagged invalid if it would go below)

A waterfall is a list of (instrument, cumulative_notional) pairs in
payment order.  All values in $M.
"""

import logging

from btc_coverage.config import settings
from btc_coverage.model.instruments import DebtInstrument, PreferredInstrument

logger = logging.getLogger(__name__)

ADDITIONAL_DEBT_ID = "additional-debt"
ADDITIONAL_PREFERRED_ID = "additional-preferred"


def order_debt(instruments) -> list:
    """Debt in payment order: ascending maturity year, stable on ties."""
    return sorted(instruments, key=lambda d: d.maturity_year)


def accumulate(instruments, starting_cumulative: float = 0.0) -> list[tuple]:
    """
    Running cumulative notional over instruments in the order given.

    Parameters
    ----------
    instruments         : ordered iterable of objects with a .notional ($M)
    starting_cumulative : offset carried over from a more senior class

    Returns
    -------
    list of (instrument, cumulative_notional)
    """
    if starting_cumulative < 0:
        raise ValueError(f"starting cumulative must be >= 0, got {starting_cumulative}")

    cumulative = starting_cumulative
    rows = []
    for inst in instruments:
        if inst.notional < 0:
            raise ValueError(f"negative notional {inst.notional} on {inst.id!r}")
        cumulative += inst.notional
        rows.append((inst, cumulative))
    return rows


def effective_total(base_sum: float, adjustment: float = 0.0) -> tuple[float, bool]:
    """
    Class total after an adjustment.

    Returns (display_total, valid).  A total that would go negative is
    shown as zero and reported invalid so the caller can flag it.
    """
    raw = base_sum + adjustment
    if raw < 0:
        logger.warning("Adjustment %.1f drives class total %.1f below zero", adjustment, base_sum)
        return 0.0, False
    return raw, True


def adjustment_for_total(new_total: float, base_sum: float) -> float:
    """Delta to store when a user types a class total directly."""
    return new_total - base_sum


def _additional_debt(amount: float, debt: list) -> DebtInstrument:
    last_maturity = max((d.maturity_year for d in debt), default=settings.current_year)
    return DebtInstrument(ADDITIONAL_DEBT_ID, "Additional Debt", amount, last_maturity)


def _additional_preferred(amount: float) -> PreferredInstrument:
    return PreferredInstrument(ADDITIONAL_PREFERRED_ID, "ADDL", "Additional Preferred",
                               amount, dividend_rate=0.0)


def build_waterfall(
    debt,
    preferred,
    debt_adjustment: float = 0.0,
    preferred_adjustment: float = 0.0,
) -> list[tuple]:
    """
    Full payment-order waterfall: ordered debt, then preferred.

    Returns a list of (instrument, cumulative_notional).
    """
    ordered_debt = order_debt(debt)
    if debt_adjustment > 0:
        ordered_debt.append(_additional_debt(debt_adjustment, ordered_debt))

    debt_rows = accumulate(ordered_debt)
    total_debt = debt_rows[-1][1] if debt_rows else 0.0

    pref_list = list(preferred)
    if preferred_adjustment > 0:
        pref_list.append(_additional_preferred(preferred_adjustment))

    pref_rows = accumulate(pref_list, starting_cumulative=total_debt)

    logger.debug("Waterfall built: %d debt, %d preferred, total %.1f",
                 len(debt_rows), len(pref_rows),
                 pref_rows[-1][1] if pref_rows else total_debt)
    return debt_rows + pref_rows


def waterfall_for(structure) -> list[tuple]:
    """Waterfall for a CapitalStructure, including its adjustments."""
    return build_waterfall(
        structure.debt,
        structure.preferred,
        debt_adjustment=structure.debt_adjustment,
        preferred_adjustment=structure.preferred_adjustment,
    )


def cumulative_through(waterfall: list[tuple], instrument_id: str) -> float:
    """Cumulative notional up to and including the given tranche."""
    for inst, cumulative in waterfall:
        if inst.id == instrument_id:
            return cumulative
    raise KeyError(instrument_id)
