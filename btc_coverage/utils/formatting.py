"""
formatting.py
-------------
Number formatting helpers for Streamlit tables and charts.

Coverage can be infinite (no obligations); every helper here renders
infinity explicitly instead of raising.
"""

import math
from datetime import datetime

import numpy as np
import pandas as pd


# Coverage colour bands (lower bound, CSS)
COVERAGE_THRESHOLDS = {
    "EXCELLENT": 10.0,
    "GOOD":      5.0,
    "ADEQUATE":  3.0,
    "WARNING":   2.0,
    "CRITICAL":  1.0,
}


def _missing(val) -> bool:
    return val is None or pd.isna(val)


def fmt_millions(val, decimals: int = 1) -> str:
    if _missing(val):
        return "—"
    return f"${val:,.{decimals}f}M"


def fmt_currency(val, decimals: int = 0, compact: bool = False) -> str:
    """$ amount; compact=True gives $1.2B / $3.4M / $5.6K."""
    if _missing(val):
        return "—"
    if compact:
        for div, suffix in ((1e9, "B"), (1e6, "M"), (1e3, "K")):
            if abs(val) >= div:
                return f"${val / div:.1f}{suffix}"
    return f"${val:,.{decimals}f}"


def fmt_number(val, decimals: int = 0, compact: bool = False) -> str:
    if _missing(val):
        return "—"
    if compact:
        for div, suffix in ((1e6, "M"), (1e3, "K")):
            if abs(val) >= div:
                return f"{val / div:.1f}{suffix}"
    return f"{val:,.{decimals}f}"


def fmt_btc(val, decimals: int = 0) -> str:
    if _missing(val):
        return "—"
    return f"₿{val:,.{decimals}f}"


def fmt_pct(val, decimals: int = 1, include_sign: bool = False) -> str:
    if _missing(val):
        return "—"
    sign = "+" if include_sign and val > 0 else ""
    return f"{sign}{val:.{decimals}%}"


def fmt_multiple(val, decimals: int = 1) -> str:
    if _missing(val):
        return "—"
    if math.isinf(val):
        return "∞x"
    return f"{val:.{decimals}f}x"


def fmt_years(val, decimals: int = 1) -> str:
    if _missing(val):
        return "—"
    if math.isinf(val):
        return "∞ years"
    return f"{val:.{decimals}f} years"


def fmt_bps(val) -> str:
    if _missing(val):
        return "—"
    return f"{val * 10_000:.0f} bps"


def fmt_relative_time(when: datetime | None, now: datetime | None = None) -> str:
    """'Just now', '42s ago', '5m ago', '2h ago'."""
    if when is None:
        return "Never"
    now  = now or datetime.now()
    secs = int((now - when).total_seconds())
    if secs < 10:
        return "Just now"
    if secs < 60:
        return f"{secs}s ago"
    if secs < 3600:
        return f"{secs // 60}m ago"
    return f"{secs // 3600}h ago"


def coverage_color(val) -> str:
    """CSS background for a coverage ratio."""
    if not isinstance(val, (int, float)) or np.isnan(val):
        return "background-color: #444; color: #aaa"
    if val >= COVERAGE_THRESHOLDS["EXCELLENT"]:
        return "background-color: #16a085; color: white"
    if val >= COVERAGE_THRESHOLDS["GOOD"]:
        return "background-color: #2ecc71; color: white"
    if val >= COVERAGE_THRESHOLDS["ADEQUATE"]:
        return "background-color: #f1c40f; color: black"
    if val >= COVERAGE_THRESHOLDS["WARNING"]:
        return "background-color: #e67e22; color: black"
    return "background-color: #c0392b; color: white"


def style_coverage_table(df: pd.DataFrame):
    """
    Colour a numeric coverage grid (e.g. sensitivity pivot) and render
    each cell as a multiple.  Returns a pandas Styler.
    """
    # applymap was renamed to map in pandas 2.1+; support both
    _map = getattr(pd.DataFrame, "map", None) or getattr(pd.DataFrame, "applymap")

    display_df = _map(df, lambda v: fmt_multiple(v) if isinstance(v, (int, float)) else v)
    return display_df.style.apply(
        lambda col: [coverage_color(df.loc[idx, col.name]) for idx in df.index],
        axis=0,
    )
