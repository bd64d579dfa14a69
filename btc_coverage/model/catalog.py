"""
catalog.py
----------
Capital structures for the two covered issuers plus default assumptions.

  Strategy (MSTR) : six convertible note issues + four perpetual preferreds
  Strive (ASST)   : one perpetual preferred, no debt

Figures are the dashboard's reference values and can be edited at runtime
(each edit returns a new CapitalStructure).  Used as the fallback whenever
live data is unavailable.  All monetary values in $M.
"""

from dataclasses import dataclass, replace

from btc_coverage.model.assumptions import Assumptions
from btc_coverage.model.instruments import DebtInstrument, PreferredInstrument


# ---------------------------------------------------------------------------
# Fixed contractual dividend rates by ticker
# ---------------------------------------------------------------------------
PREFERRED_YIELDS = {
    "STRF": 0.10,
    "STRK": 0.08,
    "STRC": 0.1125,
    "STRD": 0.10,
    "SATA": 0.12,
}

PAR_VALUE = 100.0   # $ liquidation preference per preferred share


@dataclass(frozen=True)
class CapitalStructure:
    """
    One issuer's obligations in catalog order.

    debt_adjustment / preferred_adjustment are an explicit override layer
    ($M) on top of the catalog notionals, used when a user edits a class
    total directly instead of a single instrument.
    """
    name: str
    ticker: str
    debt: tuple[DebtInstrument, ...] = ()
    preferred: tuple[PreferredInstrument, ...] = ()
    debt_adjustment: float = 0.0
    preferred_adjustment: float = 0.0
    default_reserve: float = 0.0      # $M USD reserve disclosed by the issuer
    holdings_increment: float = 0.0   # BTC step for the sensitivity window

    @property
    def base_debt(self) -> float:
        return sum(d.notional for d in self.debt)

    @property
    def base_preferred(self) -> float:
        return sum(p.notional for p in self.preferred)

    def with_debt_notional(self, instrument_id: str, notional: float) -> "CapitalStructure":
        if not any(d.id == instrument_id for d in self.debt):
            raise KeyError(instrument_id)
        debt = tuple(d.with_notional(notional) if d.id == instrument_id else d for d in self.debt)
        return replace(self, debt=debt)

    def with_preferred_notional(self, instrument_id: str, notional: float) -> "CapitalStructure":
        if not any(p.id == instrument_id for p in self.preferred):
            raise KeyError(instrument_id)
        preferred = tuple(
            p.with_notional(notional) if p.id == instrument_id else p for p in self.preferred
        )
        return replace(self, preferred=preferred)

    def with_adjustments(self, debt: float | None = None,
                         preferred: float | None = None) -> "CapitalStructure":
        return replace(
            self,
            debt_adjustment=self.debt_adjustment if debt is None else debt,
            preferred_adjustment=self.preferred_adjustment if preferred is None else preferred,
        )


def _pref(ticker: str, name: str, notional: float) -> PreferredInstrument:
    return PreferredInstrument(
        id=ticker.lower(),
        ticker=ticker,
        name=name,
        notional=notional,
        dividend_rate=PREFERRED_YIELDS[ticker],
        liquidation_preference=PAR_VALUE,
        shares_outstanding=notional * 1_000_000 / PAR_VALUE,
    )


# ---------------------------------------------------------------------------
# Strategy (MSTR)
# ---------------------------------------------------------------------------
MSTR_DEBT = (
    DebtInstrument("conv-2028",  "Convert 2028",   1_010.0, 2028, 0.00625, 183.19),
    DebtInstrument("conv-2030b", "Convert 2030 B", 2_000.0, 2030, 0.0,     433.43),
    DebtInstrument("conv-2029",  "Convert 2029",   3_000.0, 2029, 0.0,     672.40),
    DebtInstrument("conv-2030a", "Convert 2030 A",   800.0, 2030, 0.00625, 149.77),
    DebtInstrument("conv-2031",  "Convert 2031",     604.0, 2031, 0.00875, 232.72),
    DebtInstrument("conv-2032",  "Convert 2032",     800.0, 2032, 0.0225,  204.33),
)

MSTR_PREFERRED = (
    _pref("STRF", "Strife 10% Series A Perpetual",    1_284.0),
    _pref("STRC", "Stretch Variable Rate Perpetual",  3_379.0),
    _pref("STRK", "Strike 8% Series A Perpetual",     1_402.0),
    _pref("STRD", "Stride 10% Series A Perpetual",    1_402.0),
)

MSTR_USD_RESERVE = 2_250.0      # $M
MSTR_BTC_HOLDINGS = 713_502     # BTC


def mstr_structure() -> CapitalStructure:
    return CapitalStructure(
        name="Strategy",
        ticker="MSTR",
        debt=MSTR_DEBT,
        preferred=MSTR_PREFERRED,
        default_reserve=MSTR_USD_RESERVE,
        holdings_increment=100_000,
    )


# ---------------------------------------------------------------------------
# Strive (ASST) — preferred only
# ---------------------------------------------------------------------------
STRIVE_PREFERRED = (
    _pref("SATA", "SATA 12% Variable Rate Perpetual", 500.0),
)

STRIVE_USD_RESERVE = 100.0      # $M
STRIVE_BTC_HOLDINGS = 50_000    # BTC


def strive_structure() -> CapitalStructure:
    return CapitalStructure(
        name="Strive",
        ticker="ASST",
        preferred=STRIVE_PREFERRED,
        default_reserve=STRIVE_USD_RESERVE,
        holdings_increment=5_000,
    )


# ---------------------------------------------------------------------------
# Default market assumptions (fallback when live data is unavailable)
# ---------------------------------------------------------------------------
DEFAULT_BTC_PRICE = 97_000.0
DEFAULT_BTC_VOLATILITY = 0.60
DEFAULT_BTC_ARR = 0.30


def default_assumptions(structure: CapitalStructure | None = None) -> Assumptions:
    """Fallback assumptions for an issuer (MSTR when structure is None)."""
    structure = structure or mstr_structure()
    holdings = STRIVE_BTC_HOLDINGS if structure.ticker == "ASST" else MSTR_BTC_HOLDINGS
    return Assumptions(
        btc_price=DEFAULT_BTC_PRICE,
        btc_holdings=holdings,
        btc_volatility=DEFAULT_BTC_VOLATILITY,
        btc_arr=DEFAULT_BTC_ARR,
        cash_reserve=structure.default_reserve,
    )
