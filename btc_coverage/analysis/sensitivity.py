"""
sensitivity.py
--------------
Two-way coverage sensitivity: BTC holdings (rows) vs BTC price (cols).

Every cell re-runs the same coverage formula as the tranche model:
    coverage(nav(holdings, price) + reserve, obligations)

Grids can be taken against total obligations (whole-entity view) or
against the cumulative notional through one selected security.

Ranges are caller-supplied; holdings_window() builds the usual symmetric
window (current holdings +/- 3 increments).
"""

import logging
from dataclasses import dataclass

import pandas as pd

from btc_coverage.model.coverage import coverage, nav, treasury_value
from btc_coverage.model.waterfall import cumulative_through

logger = logging.getLogger(__name__)

DEFAULT_PRICE_STEPS = [30_000, 50_000, 75_000, 100_000, 150_000, 200_000]

# Bands used to flag the cell nearest the current position
HOLDINGS_TOLERANCE = 0.10
PRICE_TOLERANCE    = 0.15


@dataclass(frozen=True)
class SensitivityCell:
    holdings: float
    price: float
    coverage: float


def _check_range(label: str, values) -> list[float]:
    values = list(values)
    if not values:
        raise ValueError(f"{label} range must not be empty")
    if any(v < 0 for v in values):
        raise ValueError(f"{label} range must be non-negative, got {values}")
    return values


def generate_grid(
    total_obligations: float,
    holdings_range,
    price_range,
    cash_reserve: float = 0.0,
) -> list[SensitivityCell]:
    """
    Coverage over the cross product of holdings and prices.

    Parameters
    ----------
    total_obligations : obligations to cover ($M)
    holdings_range    : ordered, non-empty BTC holdings levels
    price_range       : ordered, non-empty BTC prices ($)
    cash_reserve      : USD reserve added to every cell ($M)

    Returns
    -------
    list of SensitivityCell, holdings-major (all prices for the first
    holdings level, then the next level, ...)
    """
    holdings_range = _check_range("holdings", holdings_range)
    price_range    = _check_range("price", price_range)
    if cash_reserve < 0:
        raise ValueError(f"cash_reserve must be >= 0, got {cash_reserve}")

    cells = []
    for h in holdings_range:
        for p in price_range:
            value = treasury_value(nav(h, p), cash_reserve)
            cells.append(SensitivityCell(h, p, coverage(value, total_obligations)))

    logger.debug("Sensitivity grid %dx%d against %.1f $M",
                 len(holdings_range), len(price_range), total_obligations)
    return cells


def holdings_window(current: float, increment: float, steps: int = 3) -> list[float]:
    """current +/- k*increment for k in 0..steps, dropping levels <= 0."""
    if increment <= 0:
        raise ValueError(f"increment must be > 0, got {increment}")
    levels = [current + k * increment for k in range(-steps, steps + 1)]
    return [h for h in levels if h > 0]


def grid_to_frame(cells: list[SensitivityCell]) -> pd.DataFrame:
    """
    Pivot cells into a holdings x price DataFrame of coverage values.
    A level repeated in a range yields one row / column.
    """
    df = pd.DataFrame([(c.holdings, c.price, c.coverage) for c in cells],
                      columns=["Holdings", "Price", "Coverage"])
    df = df.drop_duplicates(subset=["Holdings", "Price"])
    table = df.pivot(index="Holdings", columns="Price", values="Coverage")
    table = table.reindex(index=pd.unique(df["Holdings"]), columns=pd.unique(df["Price"]))
    table.index.name = "Holdings"
    table.columns.name = "BTC Price"
    return table


def tranche_sensitivity(
    waterfall: list[tuple],
    instrument_id: str,
    holdings_range,
    price_range=None,
    cash_reserve: float = 0.0,
) -> list[SensitivityCell]:
    """Grid against the cumulative notional through one security."""
    through = cumulative_through(waterfall, instrument_id)
    return generate_grid(through, holdings_range,
                         DEFAULT_PRICE_STEPS if price_range is None else price_range,
                         cash_reserve=cash_reserve)


def nearest_cell(
    cells: list[SensitivityCell],
    holdings: float,
    price: float,
    holdings_tol: float = HOLDINGS_TOLERANCE,
    price_tol: float = PRICE_TOLERANCE,
) -> SensitivityCell | None:
    """
    The cell closest to the current position, if it sits inside both
    tolerance bands (fractions of the current holdings / price).
    """
    inside = [
        c for c in cells
        if abs(c.holdings - holdings) < holdings * holdings_tol
        and abs(c.price - price) < price * price_tol
    ]
    if not inside:
        return None
    return min(inside, key=lambda c: abs(c.holdings - holdings) / holdings
                                     + abs(c.price - price) / price)
