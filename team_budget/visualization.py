"""Plotly visualisation helpers for the budget planner.

Each function accepts data produced by :mod:`team_budget.calculations` or
:mod:`team_budget.reports` and returns a `plotly.graph_objects.Figure` that
Streamlit renders via ``st.plotly_chart``.
"""

from __future__ import annotations

from typing import Dict

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

# Blue-to-green ramp used by the calculator's cost breakdown
COST_COLORS = [
    'hsl(213, 100%, 35%)',
    'hsl(195, 80%, 45%)',
    'hsl(175, 70%, 50%)',
    'hsl(160, 60%, 55%)',
    'hsl(145, 50%, 60%)',
    'hsl(130, 40%, 65%)',
    'hsl(115, 40%, 70%)',
]


def _empty_figure(title: str = "No data to display") -> go.Figure:
    fig = go.Figure()
    fig.update_layout(title=title)
    return fig


def create_cost_breakdown_chart(breakdown: pd.Series, title: str | None = None) -> go.Figure:
    """Doughnut chart of one budget's cost lines.

    Parameters
    ----------
    breakdown : pandas.Series
        Amounts indexed by cost line label, as returned by
        :func:`team_budget.calculations.cost_breakdown`.
    title : str, optional
        Chart title.

    Returns
    -------
    plotly.graph_objects.Figure
        Doughnut chart; zero lines are dropped so they do not clutter the legend.
    """
    nonzero = breakdown[breakdown > 0] if not breakdown.empty else breakdown
    if nonzero.empty:
        return _empty_figure()
    fig = go.Figure(
        go.Pie(
            labels=list(nonzero.index),
            values=list(nonzero.values),
            hole=0.55,
            sort=False,
            marker={'colors': COST_COLORS[:len(nonzero)]},
        )
    )
    fig.update_layout(title=title or "Répartition des coûts", legend={'orientation': 'h'})
    return fig


def create_discipline_bar_chart(summary: Dict[str, float], title: str | None = None) -> go.Figure:
    """Bar chart of total annual cost per discipline, highest first.

    Parameters
    ----------
    summary : dict
        Mapping of discipline to total cost, as returned by
        :func:`team_budget.reports.summarize_by_discipline`.
    title : str, optional
        Chart title.

    Returns
    -------
    plotly.graph_objects.Figure
        Bar chart of disciplines vs total cost.
    """
    if not summary:
        return _empty_figure()
    df = pd.DataFrame(list(summary.items()), columns=["Discipline", "Coût total"])
    df = df.sort_values("Coût total", ascending=False)
    fig = px.bar(df, x="Discipline", y="Coût total")
    fig.update_layout(
        title=title or "Coût total annuel par discipline",
        xaxis_title="Discipline",
        yaxis_title="Coût total ($)",
    )
    return fig
