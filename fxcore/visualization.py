"""
Visualization module: zero-rate and forward-rate curve charts.

Two backends:
    - matplotlib: high-resolution static PNGs for reports
    - plotly: interactive HTML with zoom and hover tooltips

Both take one or more bootstrapped curves (typically the same quotes run
through several methods) and draw zero rates on top, instantaneous
forwards below, with the calibration pillars marked. Forward charts are
where the methods differ: log-linear gives steps, monotone convex gives
smooth positive forwards, splines can overshoot.
"""

from typing import Iterable

import numpy as np

import matplotlib
matplotlib.use("Agg")  # non-interactive backend for server/CI environments
import matplotlib.pyplot as plt

import plotly.graph_objects as go
from plotly.subplots import make_subplots

from . import config
from .curve import Curve


def _label(curve: Curve) -> str:
    return f"{curve.currency} {curve.method.value}"


def _as_list(curves) -> list:
    if isinstance(curves, Curve):
        return [curves]
    if isinstance(curves, dict):
        return list(curves.values())
    return list(curves)


# ════════════════════════════════════════════════════════════════════════
#  MATPLOTLIB (static PNG)
# ════════════════════════════════════════════════════════════════════════

def plot_curves_matplotlib(curves: Iterable[Curve], output_path: str = None, title: str = None) -> str:
    """
    Render zero and forward curves as a two-panel PNG.

    Parameters
    ----------
    curves : a Curve, a list of Curves, or a dict of them
    output_path : PNG save path (default: config.OUTPUT_DIR / "curves.png")
    title : chart title (default from the first curve's currency)

    Returns
    -------
    str : the path written
    """
    curves = _as_list(curves)
    if output_path is None:
        config.OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
        output_path = str(config.OUTPUT_DIR / "curves.png")
    if title is None:
        title = f"{curves[0].currency} Zero and Forward Curves"

    fig, (ax_zero, ax_fwd) = plt.subplots(2, 1, sharex=True, figsize=(config.FIG_WIDTH, config.FIG_HEIGHT * 1.4))
    fig.patch.set_facecolor(config.DARK_BG)

    for i, curve in enumerate(curves):
        color = config.METHOD_COLORS[i % len(config.METHOD_COLORS)]
        grid = curve.grid_report()
        ax_zero.plot(grid["tenor"], grid["zeroRate"] * 100, color=color, linewidth=2.0, label=_label(curve))
        ax_fwd.plot(grid["tenor"], grid["forwardRate"] * 100, color=color, linewidth=1.6)

        pillars = np.array([(p.tenor, p.zero_rate) for p in curve.pillars])
        ax_zero.scatter(pillars[:, 0], pillars[:, 1] * 100, color=color, s=18, zorder=3)

    ax_zero.set_ylabel("Zero rate %", fontsize=12, color="white")
    ax_fwd.set_ylabel("Instantaneous forward %", fontsize=12, color="white")
    ax_fwd.set_xlabel("Tenor (years)", fontsize=12, color="white")
    ax_zero.set_title(title, fontsize=16, fontweight="bold", color=config.TITLE_COLOR)
    ax_fwd.axhline(0.0, color="white", alpha=0.3, linestyle="--", linewidth=1)

    for ax in (ax_zero, ax_fwd):
        ax.set_facecolor(config.DARK_BG)
        ax.tick_params(colors="white", labelsize=10)
        ax.grid(True, alpha=0.12, color="white")
        for spine in ax.spines.values():
            spine.set_color("#333355")

    leg = ax_zero.legend(title="Method", loc="lower right", fontsize=9, title_fontsize=10,
                         facecolor="#191930", edgecolor="#ffffff30", labelcolor="white")
    leg.get_title().set_color("white")

    plt.tight_layout()
    plt.savefig(output_path, dpi=config.DPI, bbox_inches="tight",
                facecolor=config.DARK_BG, edgecolor="none")
    plt.close()
    return output_path


# ════════════════════════════════════════════════════════════════════════
#  PLOTLY (interactive HTML)
# ════════════════════════════════════════════════════════════════════════

def plot_curves_plotly(curves: Iterable[Curve], output_path: str = None, title: str = None) -> str:
    """Render zero and forward curves as interactive HTML; returns the path written."""
    curves = _as_list(curves)
    if output_path is None:
        config.OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
        output_path = str(config.OUTPUT_DIR / "curves.html")
    if title is None:
        title = f"{curves[0].currency} Zero and Forward Curves"

    fig = make_subplots(rows=2, cols=1, shared_xaxes=True, vertical_spacing=0.06,
                        subplot_titles=("Zero rate", "Instantaneous forward"))
    for i, curve in enumerate(curves):
        color = config.METHOD_COLORS[i % len(config.METHOD_COLORS)]
        grid = curve.grid_report()
        fig.add_trace(go.Scatter(
            x=grid["tenor"], y=grid["zeroRate"], mode="lines", name=_label(curve),
            line=dict(color=color, width=2.2), legendgroup=_label(curve),
            hovertemplate="T=%{x:.2f}y  r=%{y:.3%}<extra></extra>",
        ), row=1, col=1)
        fig.add_trace(go.Scatter(
            x=[p.tenor for p in curve.pillars], y=[p.zero_rate for p in curve.pillars],
            mode="markers", marker=dict(color=color, size=6), showlegend=False,
            legendgroup=_label(curve),
            hovertemplate="pillar T=%{x:.2f}y  r=%{y:.3%}<extra></extra>",
        ), row=1, col=1)
        fig.add_trace(go.Scatter(
            x=grid["tenor"], y=grid["forwardRate"], mode="lines", showlegend=False,
            line=dict(color=color, width=1.8), legendgroup=_label(curve),
            hovertemplate="T=%{x:.2f}y  f=%{y:.3%}<extra></extra>",
        ), row=2, col=1)

    axis_style = dict(tickfont=dict(size=11, color="#ccc"), gridcolor="rgba(200,200,200,0.1)")
    fig.update_xaxes(**axis_style)
    fig.update_yaxes(tickformat=".2%", **axis_style)
    fig.update_xaxes(title=dict(text="Tenor (years)", font=dict(size=14, color=config.AXIS_TEXT_COLOR)),
                     row=2, col=1)
    fig.update_layout(
        title=dict(text=f"<b>{title}</b>", font=dict(size=20, color=config.TITLE_COLOR), x=0.5),
        plot_bgcolor=config.DARK_BG,
        paper_bgcolor=config.DARK_BG,
        font=dict(color="white"),
        legend=dict(bgcolor="rgba(25,25,45,0.85)", bordercolor="rgba(255,255,255,0.15)",
                    borderwidth=1, font=dict(size=12)),
        width=1000, height=750,
        margin=dict(l=60, r=30, t=80, b=50),
    )

    fig.write_html(output_path)
    return output_path
