from typing import List, Optional

import plotly.graph_objects as go

from kotla.cities import City
from kotla.geo_calc import DOMAIN_LAT, DOMAIN_LON
from kotla.scoring import GuessRow
from kotla.storage import AllTimeStats, guess_distribution_as_list

TIER_COLORS = {
    "far": "#FCA5A5",
    "near": "#FDE047",
    "close": "#86EFAC",
    "exact": "#06B6D4",
}

FONT = dict(family="Inter, Segoe UI, Roboto, Helvetica, Arial, sans-serif", color="#0f172a")


def build_guess_map(rows: List[GuessRow], city_of_the_day: Optional[City] = None, reveal: bool = False) -> go.Figure:
    """Map of today's guesses coloured by closeness tier.

    The city of the day is only drawn when ``reveal`` is set (game over).
    """
    hover_text = [
        f"<b>{row.city.name}</b>"
        f"<br>{row.distance_label} {row.direction.emoji}"
        f"<br>Closeness: {row.percentage:.1f}%"
        for row in rows
    ]
    guesses = go.Scattergeo(
        lon=[row.city.longitude for row in rows],
        lat=[row.city.latitude for row in rows],
        mode="markers+text",
        text=[str(i) for i in range(1, len(rows) + 1)],
        textposition="top center",
        marker=dict(
            size=14,
            color=[TIER_COLORS[row.tier] for row in rows],
            line=dict(width=1, color="#334155"),
        ),
        hovertext=hover_text,
        hoverinfo="text",
        name="Guesses",
    )
    data = [guesses]

    if reveal and city_of_the_day is not None:
        data.append(go.Scattergeo(
            lon=[city_of_the_day.longitude],
            lat=[city_of_the_day.latitude],
            mode="markers+text",
            text=[f"📍 {city_of_the_day.name}"],
            textposition="bottom center",
            marker=dict(size=16, color="#0f172a", symbol="star"),
            hoverinfo="text",
            name="Kotla of the day",
        ))

    fig = go.Figure(data=data)
    fig.update_layout(
        template="plotly_white",
        font=FONT,
        showlegend=False,
        geo=dict(
            showframe=False,
            showcoastlines=True,
            coastlinecolor="#CBD5E1",
            coastlinewidth=0.5,
            showland=True,
            landcolor="#F8FAFC",
            showocean=True,
            oceancolor="#F1F5F9",
            lataxis=dict(range=list(DOMAIN_LAT)),
            lonaxis=dict(range=list(DOMAIN_LON)),
            projection_type="mercator",
        ),
        paper_bgcolor="#FFFFFF",
        margin=dict(l=0, r=0, t=0, b=0),
        height=360,
    )
    return fig


def build_guess_distribution(stats: AllTimeStats, highlight: Optional[int] = None) -> go.Figure:
    """Horizontal bars of wins per guess count; ``highlight`` marks today's bar."""
    labels = [str(n) for n, _ in stats.guess_distribution]
    wins = guess_distribution_as_list(stats)
    colors = ["#06B6D4" if n == highlight else "#94A3B8" for n, _ in stats.guess_distribution]

    bars = go.Bar(
        x=wins,
        y=labels,
        orientation="h",
        text=wins,
        textposition="auto",
        marker_color=colors,
        hovertemplate="Won in %{y}: %{x}<extra></extra>",
    )
    fig = go.Figure(data=[bars])
    fig.update_layout(
        template="plotly_white",
        font=FONT,
        yaxis=dict(autorange="reversed", title="Guesses"),
        xaxis=dict(showticklabels=False, showgrid=False),
        margin=dict(l=0, r=0, t=0, b=0),
        height=240,
    )
    return fig
