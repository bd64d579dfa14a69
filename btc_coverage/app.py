"""
app.py  —  BTC Treasury Coverage
================================
Streamlit dashboard for the credit coverage of bitcoin treasury companies.

Run with:  streamlit run btc_coverage/app.py

Tabs
----
  0  Strategy (MSTR)  six convertibles + four perpetual preferreds
  1  Strive (ASST)    one perpetual preferred

Each tab shows
  - KPI strip (NAV, coverage, dividends, breakeven ARR)
  - Capital stack with cumulative coverage per tranche
  - Tranche metrics table (duration, BTC risk / credit, preferred quotes)
  - Holdings x price coverage sensitivity (total or through one security)
  - Bear / Base / Bull scenarios and a forward coverage projection
"""

from dataclasses import replace

import pandas as pd
import streamlit as st

# ---- Project modules ----
from btc_coverage.config import settings
from btc_coverage.model.catalog import default_assumptions, mstr_structure, strive_structure
from btc_coverage.model.instruments import overlay_quotes
from btc_coverage.model.treasury import run_model
from btc_coverage.model.waterfall import adjustment_for_total
from btc_coverage.data.market_data import apply_snapshot, latest_snapshot, require_snapshot
from btc_coverage.analysis.sensitivity import (DEFAULT_PRICE_STEPS, generate_grid,
                                               grid_to_frame, holdings_window,
                                               nearest_cell, tranche_sensitivity)
from btc_coverage.analysis.scenarios import price_scenarios, project_coverage
from btc_coverage.utils.formatting import (fmt_btc, fmt_currency, fmt_millions,
                                           fmt_multiple, fmt_pct, fmt_relative_time,
                                           fmt_years, style_coverage_table)
from btc_coverage.utils.charts import (capital_stack_chart, coverage_projection_chart,
                                       credit_risk_chart, scenario_coverage_chart,
                                       sensitivity_heatmap, yield_coverage_scatter)

settings.configure_logging()

# ---------------------------------------------------------------------------
# Page Config
# ---------------------------------------------------------------------------
st.set_page_config(
    page_title="BTC Treasury Coverage",
    page_icon="₿",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.markdown("""
<style>
    .main { background-color: #0E1117; }
    div[data-testid="stMetricValue"] { color: #F7931A !important; font-weight: 700; }
    div[data-testid="stMetricLabel"] { color: #8A8D93 !important; }
    .section-header {
        color: #F7931A; font-size: 1.1rem; font-weight: 700;
        border-bottom: 1px solid #2D3035; padding-bottom: 6px; margin: 16px 0 10px 0;
    }
    .stDataFrame { font-size: 0.80rem; }
    .stTabs [data-baseweb="tab"] { font-size: 0.85rem; color: #8A8D93; }
    .stTabs [aria-selected="true"] { color: #F7931A !important; border-bottom: 2px solid #F7931A; }
</style>
""", unsafe_allow_html=True)


# ---------------------------------------------------------------------------
# Sidebar — Market Assumptions
# ---------------------------------------------------------------------------
st.sidebar.title("⚙️ Market Assumptions")
st.sidebar.caption("Live data seeds the inputs; any override reruns the model")

use_live_data = st.sidebar.toggle("Live market data", value=True,
                                  help="Strategy KPI API, CoinGecko and Yahoo Finance")
refresh       = st.sidebar.button("🔄 Refresh now", use_container_width=True,
                                  disabled=not use_live_data)


# ---------------------------------------------------------------------------
# Market data (cached; failed cycles raise and are never cached)
# ---------------------------------------------------------------------------
@st.cache_data(ttl=settings.dedupe_window, show_spinner=False)
def _fetch_snapshot():
    return require_snapshot()


@st.cache_data(ttl=settings.refresh_interval, show_spinner=False)
def load_market_snapshot():
    # "Refresh now" clears this cache only, so repeat clicks inside the
    # dedupe window reuse the inner result
    return _fetch_snapshot()


snapshot = None
if use_live_data:
    if refresh:
        load_market_snapshot.clear()
    with st.spinner("Fetching market data…"):
        snapshot = latest_snapshot(load_market_snapshot,
                                   st.session_state.get("last_snapshot"))
    st.session_state["last_snapshot"] = snapshot
    if snapshot is None:
        st.sidebar.warning("Market data unavailable — using reference values")
    else:
        st.sidebar.caption(f"Source: {snapshot.source}  ·  updated "
                           f"{fmt_relative_time(snapshot.fetched_at)}")

live_price = snapshot.btc_price if snapshot else default_assumptions().btc_price
live_vol   = (snapshot.historic_volatility if snapshot and snapshot.historic_volatility
              else default_assumptions().btc_volatility)

st.sidebar.markdown("### ₿ Bitcoin")
btc_price = st.sidebar.number_input("BTC Price ($)", min_value=1_000.0,
                                    value=float(round(live_price)), step=1_000.0)
btc_vol   = st.sidebar.slider("BTC Volatility (%)", 10.0, 150.0,
                              min(max(round(live_vol * 100, 1), 10.0), 150.0), 1.0) / 100
btc_arr   = st.sidebar.slider("Assumed BTC ARR (%)", -50.0, 100.0, 30.0, 1.0) / 100

st.sidebar.markdown("### 🎯 Scenarios")
bear_shock = st.sidebar.slider("Bear price shock (%)", -90, 0, -50, 5) / 100
bull_shock = st.sidebar.slider("Bull price shock (%)", 0, 300, 100, 10) / 100
proj_years = st.sidebar.slider("Projection horizon (years)", 1, 20, 10, 1)


# ---------------------------------------------------------------------------
# Header
# ---------------------------------------------------------------------------
st.markdown("""
<h1 style='color:#F7931A; font-size:2rem; margin-bottom:4px;'>
₿ BTC Treasury Coverage Model
</h1>
<p style='color:#8A8D93; font-size:0.9rem; margin-top:0;'>
How many times does each company's bitcoin (plus USD reserve) cover its
debt and preferred stock, tranche by tranche in order of seniority?
</p>
""", unsafe_allow_html=True)

c1, c2, c3 = st.columns(3)
c1.metric("BTC Price",      fmt_currency(btc_price))
c2.metric("BTC Volatility", fmt_pct(btc_vol, 0))
c3.metric("Assumed ARR",    fmt_pct(btc_arr, 0))

st.markdown("---")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _edit_structure(structure, key: str):
    """Sidebar-style editor for notionals and class totals; returns a new structure."""
    with st.expander("✏️ Edit capital structure ($M)"):
        if structure.debt:
            st.caption("**Debt**")
            cols = st.columns(3)
            for i, d in enumerate(structure.debt):
                val = cols[i % 3].number_input(d.name, min_value=0.0, value=float(d.notional),
                                               step=50.0, key=f"{key}_{d.id}")
                if val != d.notional:
                    structure = structure.with_debt_notional(d.id, val)

        st.caption("**Preferred**")
        cols = st.columns(3)
        for i, p in enumerate(structure.preferred):
            val = cols[i % 3].number_input(p.ticker, min_value=0.0, value=float(p.notional),
                                           step=50.0, key=f"{key}_{p.id}")
            if val != p.notional:
                structure = structure.with_preferred_notional(p.id, val)

        st.caption("**Class totals** — typing a total stores the difference as an adjustment")
        col_d, col_p = st.columns(2)
        debt_total = col_d.number_input("Total Debt", value=float(structure.base_debt),
                                        step=100.0, key=f"{key}_debt_total_{structure.base_debt:.0f}",
                                        disabled=not structure.debt)
        pref_total = col_p.number_input("Total Preferred", value=float(structure.base_preferred),
                                        step=100.0, key=f"{key}_pref_total_{structure.base_preferred:.0f}")

    return structure.with_adjustments(
        debt=adjustment_for_total(debt_total, structure.base_debt),
        preferred=adjustment_for_total(pref_total, structure.base_preferred),
    )


def _display_tranches(df: pd.DataFrame) -> pd.DataFrame:
    out = df.copy()
    for col in ["Notional ($M)", "Cum. Notional ($M)", "Annual Dividend ($M)"]:
        out[col] = out[col].apply(lambda v: fmt_millions(v, 0) if pd.notna(v) else "—")
    out["Duration (yrs)"] = out["Duration (yrs)"].apply(lambda v: f"{v:.1f}")
    out["Coverage (x)"]   = out["Coverage (x)"].apply(fmt_multiple)
    out["BTC Risk"]       = out["BTC Risk"].apply(lambda v: f"{v:.2f}")
    out["BTC Credit"]     = out["BTC Credit"].apply(lambda v: f"{v:.3f}")
    out["Price"]          = out["Price"].apply(lambda v: f"${v:,.2f}" if pd.notna(v) else "—")
    out["Chg %"]          = out["Chg %"].apply(lambda v: f"{v:+.2f}%" if pd.notna(v) else "—")
    out["Current Yield"]  = out["Current Yield"].apply(fmt_pct, decimals=2)
    return out


def render_entity(structure, key: str):
    base = apply_snapshot(default_assumptions(structure), snapshot, entity=structure.ticker)
    base = base.update(btc_price=btc_price, btc_volatility=btc_vol, btc_arr=btc_arr)

    col_h, col_r = st.columns(2)
    holdings = col_h.number_input("BTC Holdings", min_value=0.0,
                                  value=float(base.btc_holdings),
                                  step=float(structure.holdings_increment) / 10,
                                  key=f"{key}_holdings")
    reserve  = col_r.number_input("USD Reserve ($M)", min_value=0.0,
                                  value=float(base.cash_reserve), step=50.0,
                                  key=f"{key}_reserve")
    assumptions = base.update(btc_holdings=holdings, cash_reserve=reserve)

    structure = _edit_structure(structure, key)
    if snapshot is not None:
        structure = replace(structure, preferred=tuple(
            overlay_quotes(list(structure.preferred), snapshot.preferred_quotes)))

    result   = run_model(structure, assumptions)
    treasury = result["treasury"]
    metrics  = result["debt_metrics"] + result["preferred_metrics"]

    if not treasury.adjustments_valid:
        st.warning("⚠️ An adjusted class total is below zero; it is shown as $0M")

    # ---- KPI strip ----
    k = st.columns(6)
    k[0].metric("BTC NAV",           fmt_millions(treasury.nav_millions, 0))
    k[1].metric("Holdings",          fmt_btc(assumptions.btc_holdings))
    k[2].metric("Debt Coverage",     fmt_multiple(treasury.debt_coverage))
    k[3].metric("Total Coverage",    fmt_multiple(treasury.total_coverage))
    k[4].metric("Years of Dividends", fmt_years(treasury.btc_years_of_dividends, 0))
    k[5].metric("Breakeven ARR",     fmt_pct(treasury.btc_breakeven_arr))

    k2 = st.columns(4)
    k2[0].metric("Total Debt",        fmt_millions(treasury.total_debt, 0))
    k2[1].metric("Total Preferred",   fmt_millions(treasury.total_preferred, 0))
    k2[2].metric("Annual Dividends",  fmt_millions(treasury.annual_dividends, 1))
    k2[3].metric("Avg. Duration",     fmt_years(treasury.avg_duration))

    # ---- Capital stack ----
    st.markdown('<div class="section-header">Capital Stack & Tranche Coverage</div>',
                unsafe_allow_html=True)
    if metrics:
        st.plotly_chart(capital_stack_chart(metrics), use_container_width=True,
                        key=f"{key}_chart_stack")
        st.dataframe(_display_tranches(result["tranche_df"]),
                     use_container_width=True, hide_index=True)

        col_l, col_r = st.columns(2)
        with col_l:
            st.plotly_chart(credit_risk_chart(metrics), use_container_width=True,
                            key=f"{key}_chart_risk")
        with col_r:
            if result["preferred_metrics"]:
                st.plotly_chart(yield_coverage_scatter(result["preferred_metrics"]),
                                use_container_width=True, key=f"{key}_chart_yield")
    else:
        st.info("No obligations outstanding — coverage is unbounded.")

    # ---- Sensitivity ----
    st.markdown('<div class="section-header">Coverage Sensitivity — Holdings × BTC Price</div>',
                unsafe_allow_html=True)
    options = {"Total obligations": None}
    options.update({f"Through {m.name}": m.instrument.id for m in metrics})
    choice = st.selectbox("Coverage measured against", list(options), key=f"{key}_sens_sel")

    holdings_levels = holdings_window(assumptions.btc_holdings or structure.holdings_increment,
                                      structure.holdings_increment)
    if options[choice] is None:
        cells = generate_grid(treasury.total_obligations, holdings_levels, DEFAULT_PRICE_STEPS,
                              cash_reserve=assumptions.cash_reserve)
    else:
        cells = tranche_sensitivity(result["waterfall"], options[choice], holdings_levels,
                                    DEFAULT_PRICE_STEPS, cash_reserve=assumptions.cash_reserve)

    table   = grid_to_frame(cells)
    current = nearest_cell(cells, assumptions.btc_holdings, assumptions.btc_price)
    st.plotly_chart(sensitivity_heatmap(table, current, title=f"Coverage — {choice}"),
                    use_container_width=True, key=f"{key}_chart_sens")
    with st.expander("Sensitivity table"):
        shown = table.copy()
        shown.index   = [fmt_btc(h) for h in shown.index]
        shown.columns = [fmt_currency(p) for p in shown.columns]
        st.dataframe(style_coverage_table(shown), use_container_width=True)
    if current is not None:
        st.caption(f"Outlined cell: {fmt_btc(current.holdings)} at {fmt_currency(current.price)}"
                   f" ≈ current position ({fmt_multiple(current.coverage)})")

    # ---- Scenarios ----
    st.markdown('<div class="section-header">Scenario Analysis</div>', unsafe_allow_html=True)
    scen = price_scenarios(structure, assumptions,
                           shocks={"Bear": bear_shock, "Base": 0.0, "Bull": bull_shock})
    st.plotly_chart(scenario_coverage_chart(scen["results"]), use_container_width=True,
                    key=f"{key}_chart_scen")
    st.dataframe(scen["comparison_df"], use_container_width=True)

    proj = project_coverage(structure, assumptions, years=proj_years)
    st.plotly_chart(coverage_projection_chart(proj), use_container_width=True,
                    key=f"{key}_chart_proj")


# ---------------------------------------------------------------------------
# Tabs
# ---------------------------------------------------------------------------
tabs = st.tabs(["🟠 Strategy (MSTR)", "🟣 Strive (ASST)"])

with tabs[0]:
    render_entity(mstr_structure(), "mstr")

with tabs[1]:
    render_entity(strive_structure(), "asst")

st.markdown("---")
st.caption("Preferred durations use a perpetual proxy of "
           f"{settings.perpetual_duration:.0f} years; debt durations are measured from "
           f"{settings.current_year}.  Not investment advice.")
