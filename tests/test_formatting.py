import math
from datetime import datetime, timedelta

import pandas as pd
import pytest

from btc_coverage.utils.formatting import (coverage_color, fmt_bps, fmt_btc, fmt_currency,
                                           fmt_millions, fmt_multiple, fmt_number, fmt_pct,
                                           fmt_relative_time, fmt_years, style_coverage_table)


def test_fmt_multiple():
    assert fmt_multiple(47.619) == "47.6x"
    assert fmt_multiple(math.inf) == "∞x"
    assert fmt_multiple(None) == "—"
    assert fmt_multiple(float("nan")) == "—"
    assert fmt_multiple(2.0, decimals=2) == "2.00x"


def test_money_formats():
    assert fmt_millions(2860) == "$2,860.0M"
    assert fmt_millions(2860, 0) == "$2,860M"
    assert fmt_currency(97_000) == "$97,000"
    assert fmt_currency(1.5e9, compact=True) == "$1.5B"
    assert fmt_currency(2_400_000, compact=True) == "$2.4M"
    assert fmt_currency(950, compact=True) == "$950"
    assert fmt_number(713_502, compact=True) == "713.5K"
    assert fmt_btc(713_502) == "₿713,502"


def test_pct_years_bps():
    assert fmt_pct(0.1125, 2) == "11.25%"
    assert fmt_pct(0.05, include_sign=True) == "+5.0%"
    assert fmt_pct(-0.05, include_sign=True) == "-5.0%"
    assert fmt_years(math.inf) == "∞ years"
    assert fmt_years(11.38) == "11.4 years"
    assert fmt_bps(0.0125) == "125 bps"


def test_fmt_relative_time():
    now = datetime(2025, 1, 1, 12, 0, 0)
    assert fmt_relative_time(None) == "Never"
    assert fmt_relative_time(now - timedelta(seconds=3), now) == "Just now"
    assert fmt_relative_time(now - timedelta(seconds=42), now) == "42s ago"
    assert fmt_relative_time(now - timedelta(minutes=5), now) == "5m ago"
    assert fmt_relative_time(now - timedelta(hours=2), now) == "2h ago"


@pytest.mark.parametrize("value, colour", [
    (math.inf, "#16a085"),
    (12.0, "#16a085"),
    (6.0, "#2ecc71"),
    (3.5, "#f1c40f"),
    (2.5, "#e67e22"),
    (1.2, "#c0392b"),
    (0.4, "#c0392b"),
])
def test_coverage_color_bands(value, colour):
    assert colour in coverage_color(value)


def test_coverage_color_handles_missing():
    assert "#444" in coverage_color(float("nan"))
    assert "#444" in coverage_color(None)


def test_style_coverage_table():
    pytest.importorskip("jinja2")
    df = pd.DataFrame({50_000: [25.0, 30.0], 100_000: [50.0, math.inf]},
                      index=[500_000, 600_000])
    html = style_coverage_table(df).to_html()
    assert "25.0x" in html
    assert "∞x" in html
