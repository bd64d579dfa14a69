"""
instruments.py
--------------
Reference-data records for the securities that sit on a bitcoin treasury's
capital structure.

  - DebtInstrument       convertible / senior notes with a maturity year
  - PreferredInstrument  perpetual preferred stock (no maturity)
  - MarketQuote          live price overlay for a preferred ticker

Records are frozen: editing a notional or attaching a quote returns a new
instrument.  All monetary values in $M.  Rates as decimals (0.10 = 10%).
"""

from dataclasses import dataclass, replace


@dataclass(frozen=True)
class MarketQuote:
    """Latest market price for a listed preferred; not part of its identity."""
    ticker: str
    price: float
    previous_close: float | None = None
    change_percent: float | None = None   # percent points, e.g. -2.3


@dataclass(frozen=True)
class DebtInstrument:
    """One convertible note issue."""
    id: str
    name: str
    notional: float                       # $M outstanding principal
    maturity_year: int
    coupon_rate: float = 0.0              # 0.0 = zero coupon
    conversion_price: float | None = None

    def __post_init__(self):
        if self.notional < 0:
            raise ValueError(f"{self.name}: notional must be >= 0, got {self.notional}")
        if self.coupon_rate < 0:
            raise ValueError(f"{self.name}: coupon rate must be >= 0, got {self.coupon_rate}")

    @property
    def kind(self) -> str:
        return "debt"

    @property
    def annual_coupon(self) -> float:
        """Cash coupon per year ($M)."""
        return self.notional * self.coupon_rate

    def with_notional(self, notional: float) -> "DebtInstrument":
        return replace(self, notional=notional)


@dataclass(frozen=True)
class PreferredInstrument:
    """One perpetual preferred series."""
    id: str
    ticker: str
    name: str
    notional: float                       # $M aggregate liquidation preference
    dividend_rate: float
    liquidation_preference: float = 100.0 # $ per share
    shares_outstanding: float = 0.0
    quote: MarketQuote | None = None

    def __post_init__(self):
        if self.notional < 0:
            raise ValueError(f"{self.ticker}: notional must be >= 0, got {self.notional}")
        if self.dividend_rate < 0:
            raise ValueError(f"{self.ticker}: dividend rate must be >= 0, got {self.dividend_rate}")

    @property
    def kind(self) -> str:
        return "preferred"

    @property
    def annual_dividend(self) -> float:
        """Dividend obligation per year ($M)."""
        return self.notional * self.dividend_rate

    @property
    def price(self) -> float | None:
        return self.quote.price if self.quote else None

    @property
    def change_percent(self) -> float | None:
        return self.quote.change_percent if self.quote else None

    def with_notional(self, notional: float) -> "PreferredInstrument":
        return replace(self, notional=notional)

    def with_quote(self, quote: MarketQuote | None) -> "PreferredInstrument":
        return replace(self, quote=quote)


def overlay_quotes(
    preferred: list[PreferredInstrument],
    quotes: dict[str, MarketQuote],
) -> list[PreferredInstrument]:
    """Attach quotes by ticker; tickers without a quote keep quote=None."""
    return [p.with_quote(quotes.get(p.ticker)) for p in preferred]
