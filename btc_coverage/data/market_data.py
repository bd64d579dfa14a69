"""
market_data.py
--------------
Live inputs for the coverage model.

Sources (in order of preference):
  - Strategy KPI API     BTC price, MSTR BTC holdings, historic volatility
  - CoinGecko            BTC spot price and public-company treasuries
                         (fallback holdings for MSTR, holdings for Strive)
  - Yahoo via yfinance   preferred stock quotes (STRF, STRC, STRK, STRD, SATA)

One poll cycle produces one MarketSnapshot or None, never a mix of fields
from different cycles.  Preferred quotes are optional: a ticker without a
quote is simply absent from the snapshot.  The model never calls this
module; callers apply a snapshot to their Assumptions with apply_snapshot().
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime

import pandas as pd
import requests
import yfinance as yf

from btc_coverage.config import settings
from btc_coverage.model.catalog import PREFERRED_YIELDS
from btc_coverage.model.instruments import MarketQuote

logger = logging.getLogger(__name__)

PREFERRED_TICKERS = list(PREFERRED_YIELDS)

HEADERS = {"Accept": "application/json", "User-Agent": "btc-coverage/1.0"}

# Errors that mean "this source gave us nothing usable this cycle"
FETCH_ERRORS = (requests.RequestException, KeyError, IndexError, TypeError, ValueError)


@dataclass(frozen=True)
class MarketSnapshot:
    btc_price: float
    btc_holdings: float                       # MSTR, BTC
    historic_volatility: float | None = None
    strive_holdings: float | None = None      # ASST, BTC
    preferred_quotes: dict = field(default_factory=dict)   # ticker -> MarketQuote
    source: str = "strategy"
    fetched_at: datetime = field(default_factory=datetime.now)


# ---------------------------------------------------------------------------
# HTTP helpers
# ---------------------------------------------------------------------------

def _get_json(url: str, params: dict | None = None,
              retries: int | None = None, backoff: float | None = None):
    """
    GET a JSON document, retrying on request errors a fixed number of
    times with a fixed pause between attempts.
    """
    retries = settings.retry_count if retries is None else retries
    backoff = settings.retry_backoff if backoff is None else backoff
    attempts = max(retries, 1)
    last_err = None
    for attempt in range(attempts):
        try:
            resp = requests.get(url, params=params, headers=HEADERS,
                                timeout=settings.http_timeout)
            resp.raise_for_status()
            return resp.json()
        except requests.RequestException as e:
            last_err = e
            logger.warning("GET %s failed (attempt %d/%d): %s", url, attempt + 1, attempts, e)
            if attempt < attempts - 1:
                time.sleep(backoff)
    raise last_err


def _num(val) -> float:
    """Parse API numbers that may arrive as '713,502' strings."""
    if isinstance(val, str):
        val = val.replace(",", "").replace("$", "").strip()
    return float(val)


def _first(payload):
    return payload[0] if isinstance(payload, list) else payload


def _record(payload, what: str) -> dict:
    """First JSON object of a payload; anything else is a malformed response."""
    rec = _first(payload) if payload else None
    if not isinstance(rec, dict):
        raise ValueError(f"{what}: expected a JSON object, got {type(rec).__name__}")
    return rec


# ---------------------------------------------------------------------------
# Individual sources
# ---------------------------------------------------------------------------

def fetch_mstr_kpis(**kwargs) -> dict:
    """BTC price, MSTR holdings and historic volatility from the Strategy API."""
    base = settings.mstr_api_url.rstrip("/")
    btc  = _record(_get_json(f"{base}/btc/bitcoinKpis", **kwargs), "bitcoinKpis")
    mstr = _record(_get_json(f"{base}/btc/mstrKpiData", **kwargs), "mstrKpiData")

    vol = mstr.get("historicVolatility")
    vol = _num(vol) if vol not in (None, "") else None
    if vol is not None and vol > 1.5:
        vol = vol / 100   # reported in percent points

    return {
        "btc_price":           _num(btc["latestPrice"]),
        "btc_holdings":        _num(btc["btcHoldings"]),
        "historic_volatility": vol,
    }


def fetch_btc_price(**kwargs) -> float:
    """BTC/USD spot from CoinGecko."""
    data = _get_json(
        f"{settings.coingecko_api_url.rstrip('/')}/simple/price",
        params={"ids": "bitcoin", "vs_currencies": "usd", "include_24hr_change": "true"},
        **kwargs,
    )
    return _num(data["bitcoin"]["usd"])


def fetch_public_treasuries(**kwargs) -> list[dict]:
    """CoinGecko list of public companies holding BTC."""
    data = _get_json(
        f"{settings.coingecko_api_url.rstrip('/')}/companies/public_treasury/bitcoin",
        **kwargs,
    )
    companies = data["companies"]
    if not isinstance(companies, list):
        raise ValueError("public_treasury: 'companies' is not a list")
    return [c for c in companies if isinstance(c, dict)]


def company_holdings(companies: list[dict], symbol: str, names: tuple) -> float | None:
    """total_holdings for the company matching symbol or any name fragment."""
    for c in companies:
        name = str(c.get("name", "")).lower()
        sym  = str(c.get("symbol", "")).upper().split(".")[0].split(":")[0]
        if sym == symbol.upper() or any(n in name for n in names):
            holdings = c.get("total_holdings")
            return _num(holdings) if holdings is not None else None
    return None


def fetch_preferred_quotes(tickers=None) -> dict:
    """
    Latest close and day-over-day change per preferred ticker.
    Tickers that fail or return no data are left out.
    """
    tickers = tickers or PREFERRED_TICKERS
    quotes = {}
    for ticker in tickers:
        try:
            hist   = yf.Ticker(ticker).history(period="5d")
            closes = hist["Close"].dropna() if hist is not None and not hist.empty else pd.Series(dtype=float)
            if closes.empty:
                logger.info("No quote data for %s", ticker)
                continue
            price = float(closes.iloc[-1])
            prev  = float(closes.iloc[-2]) if len(closes) > 1 else None
            change = (price - prev) / prev * 100 if prev else None
            quotes[ticker] = MarketQuote(ticker, price, prev, change)
        except Exception as e:
            # yfinance raises a wide range of errors on throttling / bad symbols
            logger.warning("Quote fetch failed for %s: %s", ticker, e)
    return quotes


# ---------------------------------------------------------------------------
# Poll cycle
# ---------------------------------------------------------------------------

def get_market_snapshot(tickers=None, retries: int | None = None,
                        backoff: float | None = None) -> MarketSnapshot | None:
    """
    Run one poll cycle.  Returns None when no consistent BTC price +
    MSTR holdings pair could be obtained.
    """
    kw = {"retries": retries, "backoff": backoff}

    kpis, source = None, "strategy"
    try:
        kpis = fetch_mstr_kpis(**kw)
    except FETCH_ERRORS as e:
        logger.warning("Strategy KPI API unavailable, falling back to CoinGecko: %s", e)

    companies = []
    try:
        companies = fetch_public_treasuries(**kw)
    except FETCH_ERRORS as e:
        logger.warning("CoinGecko treasury list unavailable: %s", e)

    if kpis is None:
        source = "coingecko"
        try:
            price = fetch_btc_price(**kw)
        except FETCH_ERRORS as e:
            logger.error("No BTC price from any source: %s", e)
            return None
        holdings = company_holdings(companies, "MSTR", ("strategy", "microstrategy"))
        if holdings is None:
            logger.error("No MSTR holdings from any source; skipping this cycle")
            return None
        kpis = {"btc_price": price, "btc_holdings": holdings, "historic_volatility": None}

    snapshot = MarketSnapshot(
        btc_price           = kpis["btc_price"],
        btc_holdings        = kpis["btc_holdings"],
        historic_volatility = kpis["historic_volatility"],
        strive_holdings     = company_holdings(companies, "ASST", ("strive",)),
        preferred_quotes    = fetch_preferred_quotes(tickers),
        source              = source,
    )
    logger.info("Snapshot from %s: BTC $%.0f, MSTR %.0f BTC, %d quotes",
                source, snapshot.btc_price, snapshot.btc_holdings,
                len(snapshot.preferred_quotes))
    return snapshot


def apply_snapshot(assumptions, snapshot: MarketSnapshot | None, entity: str = "MSTR"):
    """
    New Assumptions with live price / holdings / volatility for an entity.
    A missing snapshot (or missing field) keeps the caller's values.
    """
    if snapshot is None:
        return assumptions

    holdings = snapshot.btc_holdings if entity == "MSTR" else snapshot.strive_holdings
    return assumptions.update(
        btc_price      = snapshot.btc_price,
        btc_holdings   = assumptions.btc_holdings if holdings is None else holdings,
        btc_volatility = snapshot.historic_volatility or assumptions.btc_volatility,
    )


# ---------------------------------------------------------------------------
# Cached callers
# ---------------------------------------------------------------------------

class MarketDataUnavailable(RuntimeError):
    """No consistent BTC price + MSTR holdings pair this cycle."""


def require_snapshot(tickers=None) -> MarketSnapshot:
    """
    get_market_snapshot() for cached callers.  Raises instead of returning
    None, so a TTL cache never stores a failed cycle.
    """
    snap = get_market_snapshot(tickers)
    if snap is None:
        raise MarketDataUnavailable("no market snapshot from any source")
    return snap


def latest_snapshot(load, last_good: MarketSnapshot | None = None) -> MarketSnapshot | None:
    """Snapshot from load(), or last_good when this cycle fails."""
    try:
        return load()
    except MarketDataUnavailable as e:
        logger.warning("%s; keeping last known data", e)
        return last_good
