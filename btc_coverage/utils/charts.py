"""
charts.py
---------
Plotly chart builders for the BTC coverage Streamlit dashboard.
All charts share a consistent institutional dark theme.
"""

import math

import numpy as np
import pandas as pd
import plotly.graph_objects as go
from plotly.subplots import make_subplots

from btc_coverage.utils.formatting import COVERAGE_THRESHOLDS, fmt_multiple

# ---------------------------------------------------------------------------
# Global design tokens
# ---------------------------------------------------------------------------
COLORS = {
    "primary":   "#F7931A",   # Bitcoin orange
    "secondary": "#4ECDC4",   # Teal
    "accent":    "#FF6B6B",   # Coral
    "green":     "#27AE60",
    "yellow":    "#F4C842",
    "red":       "#E74C3C",
    "bg":        "#0E1117",
    "panel":     "#161B22",
    "panel2":    "#1C2230",
    "grid":      "#252D3A",
    "text":      "#E8EAF0",
    "subtext":   "#8A9BB0",
    "bear":      "#E74C3C",
    "base":      "#F7931A",
    "bull":      "#27AE60",
    "border":    "#2D3748",
    "debt":      "#3B82F6",
    "preferred": "#8B5CF6",
}

FONT = "Inter, -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif"

_HOVER  = dict(bgcolor=COLORS["panel2"], bordercolor=COLORS["border"],
               font=dict(family=FONT, size=12, color=COLORS["text"]))
_LEGEND = dict(bgcolor=COLORS["panel2"], bordercolor=COLORS["border"], borderwidth=1,
               font=dict(size=11), orientation="h",
               x=0, xanchor="left", y=1.0, yanchor="bottom")

LAYOUT_BASE = dict(
    paper_bgcolor = COLORS["bg"],
    plot_bgcolor  = COLORS["panel"],
    font          = dict(family=FONT, size=12, color=COLORS["text"]),
    margin        = dict(l=64, r=48, t=72, b=48),
    hoverlabel    = _HOVER,
    legend        = _LEGEND,
)

AXIS_STYLE = dict(
    gridcolor     = COLORS["grid"],
    zerolinecolor = COLORS["border"],
    linecolor     = COLORS["border"],
    showline      = True,
    tickfont      = dict(family=FONT, size=11, color=COLORS["subtext"]),
    title_font    = dict(family=FONT, size=12, color=COLORS["subtext"]),
)

TITLE_STYLE = dict(font=dict(family=FONT, size=15, color=COLORS["primary"]),
                   x=0, xanchor="left", pad=dict(l=0))

# Infinite coverage is drawn at this height
COVERAGE_CAP = 100.0

# log10 scale from 1x to 20x; stops sit on the 2x / 3x / 5x / 10x bands
HEATMAP_SCALE = [
    [0.00, "#c0392b"],
    [0.23, "#e67e22"],
    [0.37, "#f1c40f"],
    [0.54, "#2ecc71"],
    [0.77, "#16a085"],
    [1.00, "#16a085"],
]


def _base(fig: go.Figure, title: str, height: int = 420) -> go.Figure:
    """Apply shared layout to a figure."""
    fig.update_layout(
        **LAYOUT_BASE,
        title=dict(text=title, **TITLE_STYLE),
        height=height,
    )
    fig.update_xaxes(**AXIS_STYLE)
    fig.update_yaxes(**AXIS_STYLE)
    return fig


def _capped(values, cap: float = COVERAGE_CAP) -> list[float]:
    return [cap if math.isinf(v) else min(v, cap) for v in values]


# ---------------------------------------------------------------------------
# Capital stack & tranche coverage
# ---------------------------------------------------------------------------

def capital_stack_chart(metrics: list) -> go.Figure:
    """Tranche notionals stacked in seniority order, coverage on the right axis."""
    names     = [m.name for m in metrics]
    notionals = [m.notional for m in metrics]
    coverages = [m.coverage for m in metrics]
    colors    = [COLORS["debt"] if m.kind == "debt" else COLORS["preferred"] for m in metrics]

    fig = make_subplots(specs=[[{"secondary_y": True}]])

    fig.add_trace(go.Bar(
        x=names, y=notionals, name="Notional ($M)",
        marker=dict(color=colors, opacity=0.85, line_width=0),
        hovertemplate="<b>%{x}</b><br>Notional: $%{y:,.0f}M<extra></extra>",
    ), secondary_y=False)

    fig.add_trace(go.Scatter(
        x=names, y=_capped(coverages), name="Cumulative Coverage",
        mode="lines+markers+text",
        text=[fmt_multiple(c) for c in coverages],
        textposition="top center",
        textfont=dict(size=10, color=COLORS["primary"]),
        line=dict(color=COLORS["primary"], width=2.5),
        marker=dict(size=9, symbol="circle", line=dict(width=2, color=COLORS["bg"])),
        hovertemplate="<b>%{x}</b><br>Coverage: %{text}<extra></extra>",
    ), secondary_y=True)

    fig.add_hline(y=1.0, line_dash="dash", line_color=COLORS["red"],
                  line_width=1, opacity=0.5,
                  annotation_text="1.0x",
                  annotation_font_color=COLORS["red"],
                  annotation_font_size=10,
                  secondary_y=True)

    fig.update_layout(**LAYOUT_BASE, height=420,
                      title=dict(text="Capital Stack — Notional & Coverage by Seniority",
                                 **TITLE_STYLE))
    fig.update_xaxes(**AXIS_STYLE)
    fig.update_yaxes(title_text="Notional ($M)", tickformat="$,.0f",
                     secondary_y=False, **AXIS_STYLE)
    fig.update_yaxes(title_text="Coverage (x)", type="log", secondary_y=True,
                     showgrid=False, tickfont=dict(size=11, color=COLORS["subtext"]))
    return fig


def credit_risk_chart(metrics: list) -> go.Figure:
    """BTC risk vs BTC credit per tranche."""
    names = [m.name for m in metrics]

    fig = go.Figure()
    fig.add_trace(go.Bar(
        x=names, y=[m.btc_risk for m in metrics], name="BTC Risk",
        marker=dict(color=COLORS["accent"], opacity=0.45, line_width=0),
        hovertemplate="<b>%{x}</b><br>BTC Risk: %{y:.2f}<extra></extra>",
    ))
    fig.add_trace(go.Bar(
        x=names, y=[m.btc_credit for m in metrics], name="BTC Credit",
        marker=dict(color=COLORS["secondary"], opacity=0.9, line_width=0),
        hovertemplate="<b>%{x}</b><br>BTC Credit: %{y:.3f}<extra></extra>",
    ))
    fig.update_layout(barmode="group")
    return _base(fig, "BTC Risk vs. BTC Credit by Tranche", height=380)


# ---------------------------------------------------------------------------
# Sensitivity heatmap
# ---------------------------------------------------------------------------

def sensitivity_heatmap(table: pd.DataFrame, current=None, title: str = "Coverage Sensitivity") -> go.Figure:
    """
    Heatmap of a holdings x price coverage table (grid_to_frame output).
    `current` is an optional SensitivityCell to outline.
    """
    z     = table.to_numpy(dtype=float)
    z_cap = np.where(np.isinf(z), COVERAGE_CAP, np.minimum(z, COVERAGE_CAP))
    x     = [f"${p:,.0f}" for p in table.columns]
    y     = [f"₿{h:,.0f}" for h in table.index]
    text  = [[fmt_multiple(v) for v in row] for row in z]

    fig = go.Figure(go.Heatmap(
        z=np.log10(np.maximum(z_cap, 0.1)), x=x, y=y,
        text=text, texttemplate="%{text}",
        textfont=dict(size=11, family=FONT),
        colorscale=HEATMAP_SCALE,
        zmin=np.log10(COVERAGE_THRESHOLDS["CRITICAL"]),
        zmax=np.log10(COVERAGE_THRESHOLDS["EXCELLENT"] * 2),
        showscale=False,
        hovertemplate="Holdings %{y}<br>BTC %{x}<br>Coverage %{text}<extra></extra>",
    ))

    if current is not None:
        xi = list(table.columns).index(current.price)
        yi = list(table.index).index(current.holdings)
        fig.add_shape(type="rect", x0=xi - 0.5, x1=xi + 0.5, y0=yi - 0.5, y1=yi + 0.5,
                      line=dict(color=COLORS["text"], width=3))

    fig = _base(fig, title, height=max(320, 48 * len(y) + 120))
    fig.update_xaxes(title_text="BTC Price", showgrid=False)
    fig.update_yaxes(title_text="BTC Holdings", showgrid=False)
    return fig


# ---------------------------------------------------------------------------
# Preferred yield vs coverage
# ---------------------------------------------------------------------------

def yield_coverage_scatter(preferred_metrics: list) -> go.Figure:
    """Current (or stated) yield against cumulative coverage for each preferred."""
    pts = [m for m in preferred_metrics if m.notional > 0]
    yields = [m.current_yield if m.current_yield is not None else m.instrument.dividend_rate
              for m in pts]
    covs   = [m.coverage for m in pts]

    fig = go.Figure(go.Scatter(
        x=_capped(covs), y=yields,
        mode="markers+text",
        text=[m.name for m in pts],
        textposition="top center",
        textfont=dict(size=11, color=COLORS["text"]),
        marker=dict(size=[max(10, min(40, m.notional / 100)) for m in pts],
                    color=COLORS["preferred"], opacity=0.85,
                    line=dict(width=2, color=COLORS["bg"])),
        customdata=[fmt_multiple(c) for c in covs],
        hovertemplate="<b>%{text}</b><br>Coverage: %{customdata}<br>Yield: %{y:.2%}<extra></extra>",
    ))
    fig = _base(fig, "Preferred Yield vs. BTC Coverage", height=400)
    fig.update_xaxes(title_text="Cumulative Coverage (x)", type="log")
    fig.update_yaxes(title_text="Yield", tickformat=".1%")
    return fig


# ---------------------------------------------------------------------------
# Scenarios & projection
# ---------------------------------------------------------------------------

def scenario_coverage_chart(scenario_results: dict) -> go.Figure:
    names = list(scenario_results.keys())
    debt  = [scenario_results[n]["treasury"].debt_coverage  for n in names]
    total = [scenario_results[n]["treasury"].total_coverage for n in names]
    colors_map = {"Bear": COLORS["bear"], "Base": COLORS["base"], "Bull": COLORS["bull"]}
    bar_colors = [colors_map.get(n, COLORS["primary"]) for n in names]

    fig = make_subplots(
        rows=1, cols=2,
        subplot_titles=["Debt Coverage", "Total Coverage"],
        horizontal_spacing=0.12,
    )
    for col, vals in ((1, debt), (2, total)):
        fig.add_trace(go.Bar(
            x=names, y=_capped(vals),
            marker=dict(color=bar_colors, line_width=0, opacity=0.9),
            text=[fmt_multiple(v) for v in vals],
            textposition="outside",
            textfont=dict(size=12, family=FONT, color=COLORS["text"]),
            hovertemplate="<b>%{x}</b><br>%{text}<extra></extra>",
            showlegend=False,
        ), row=1, col=col)

    fig.update_layout(
        **LAYOUT_BASE, height=400, showlegend=False,
        title=dict(text="Bear / Base / Bull — Coverage Comparison", **TITLE_STYLE),
    )
    for style_dict in [{"row": 1, "col": 1}, {"row": 1, "col": 2}]:
        fig.update_xaxes(**AXIS_STYLE, **style_dict)
        fig.update_yaxes(**AXIS_STYLE, **style_dict)
    for ann in fig.layout.annotations:
        ann.font.color = COLORS["subtext"]
        ann.font.size  = 12
    return fig


def coverage_projection_chart(projection_df: pd.DataFrame) -> go.Figure:
    fig = make_subplots(specs=[[{"secondary_y": True}]])

    fig.add_trace(go.Bar(
        x=projection_df["Year"], y=projection_df["BTC NAV ($M)"],
        name="BTC NAV ($M)",
        marker=dict(color=COLORS["primary"], opacity=0.45, line_width=0),
        hovertemplate="<b>Year %{x}</b><br>NAV: $%{y:,.0f}M<extra></extra>",
    ), secondary_y=False)

    fig.add_trace(go.Scatter(
        x=projection_df["Year"], y=_capped(projection_df["Total Coverage (x)"]),
        name="Total Coverage",
        mode="lines+markers",
        line=dict(color=COLORS["green"], width=2.5),
        marker=dict(size=8, symbol="diamond", line=dict(width=2, color=COLORS["bg"])),
        hovertemplate="<b>Year %{x}</b><br>Coverage: %{y:.1f}x<extra></extra>",
    ), secondary_y=True)

    fig.update_layout(**LAYOUT_BASE, height=400,
                      title=dict(text="Projected NAV & Coverage at Assumed BTC ARR",
                                 **TITLE_STYLE))
    fig.update_xaxes(title_text="Years from today", **AXIS_STYLE)
    fig.update_yaxes(title_text="BTC NAV ($M)", tickformat="$,.0f",
                     secondary_y=False, **AXIS_STYLE)
    fig.update_yaxes(title_text="Coverage (x)", secondary_y=True, showgrid=False,
                     tickfont=dict(size=11, color=COLORS["subtext"]))
    return fig
