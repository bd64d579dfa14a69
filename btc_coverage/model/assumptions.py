"""
assumptions.py
--------------
Market assumptions that drive every coverage calculation.

Holdings are a plain coin count everywhere in the model: callers that
display "thousands of BTC" convert before building an Assumptions.
Cash reserve in $M.  Rates as decimals.
"""

from dataclasses import dataclass, replace


@dataclass(frozen=True)
class Assumptions:
    btc_price: float              # $ per BTC
    btc_holdings: float           # BTC
    btc_volatility: float = 0.60  # annualized
    btc_arr: float = 0.30         # assumed annual BTC appreciation
    cash_reserve: float = 0.0     # $M USD reserve

    def __post_init__(self):
        if not self.btc_price > 0:
            raise ValueError(f"btc_price must be > 0, got {self.btc_price}")
        if self.btc_holdings < 0:
            raise ValueError(f"btc_holdings must be >= 0, got {self.btc_holdings}")
        if self.btc_volatility < 0:
            raise ValueError(f"btc_volatility must be >= 0, got {self.btc_volatility}")
        if self.cash_reserve < 0:
            raise ValueError(f"cash_reserve must be >= 0, got {self.cash_reserve}")

    def update(self, **changes) -> "Assumptions":
        return replace(self, **changes)
