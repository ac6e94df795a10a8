"""
Rendered site: one static index.html with the forecast comparison.

The page holds an interactive Plotly chart of the forecasts, the holdout and
cross-validation accuracy tables, and the static PNGs. The output directory
is what `deploy` mirrors to the web host.
"""

import html
import logging
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional, Sequence

import pandas as pd
import plotly.graph_objects as go

logger = logging.getLogger(__name__)


def forecast_figure(
    history: pd.DataFrame,
    forecasts: pd.DataFrame,
    level: Optional[int] = 95,
    title: str = "Wine sales: forecasts by model",
) -> go.Figure:
    """
    Create an interactive plotly visualization of history and forecasts.

    Args:
        history: [unique_id, ds, y] rows (target only is drawn)
        forecasts: Output of forecast_models
        level: Interval level to shade (None = no bands)

    Returns:
        Plotly Figure object
    """
    target_ids = forecasts["unique_id"].unique()
    hist = history[history["unique_id"].isin(target_ids)].sort_values("ds")

    fig = go.Figure()
    fig.add_trace(go.Scatter(
        x=hist["ds"],
        y=hist["y"],
        mode="lines",
        name="History",
        line=dict(color="black", width=2)
    ))

    lo_col, hi_col = f"yhat_lo_{level}", f"yhat_hi_{level}"
    for model_name, sub in forecasts.groupby("model_name", sort=False):
        sub = sub.sort_values("ds")
        fig.add_trace(go.Scatter(
            x=sub["ds"],
            y=sub["yhat"],
            mode="lines",
            name=model_name,
            legendgroup=model_name,
        ))
        if level is not None and lo_col in sub.columns and sub[lo_col].notna().any():
            fig.add_trace(go.Scatter(
                x=sub["ds"].tolist() + sub["ds"].tolist()[::-1],
                y=sub[hi_col].tolist() + sub[lo_col].tolist()[::-1],
                fill="toself",
                opacity=0.15,
                line=dict(width=0),
                name=f"{model_name} {level}%",
                legendgroup=model_name,
                showlegend=False,
                hoverinfo="skip",
            ))

    fig.update_layout(
        title=title,
        xaxis_title="Month",
        yaxis_title="Sales",
        hovermode="x unified",
        height=500,
        template="plotly_white"
    )

    return fig


def _table(df: Optional[pd.DataFrame], caption: str) -> str:
    if df is None or df.empty:
        return ""
    return (
        f"<h2>{html.escape(caption)}</h2>\n"
        + df.to_html(index=False, float_format=lambda v: f"{v:,.2f}", classes="accuracy", border=0)
    )


def render_site(
    site_dir: Path,
    history: pd.DataFrame,
    forecasts: pd.DataFrame,
    holdout_accuracy: Optional[pd.DataFrame] = None,
    cv_accuracy: Optional[pd.DataFrame] = None,
    horizon_accuracy: Optional[pd.DataFrame] = None,
    images: Sequence[Path] = (),
    level: Optional[int] = 95,
    title: str = "Forecasting wine sales",
) -> Path:
    """
    Write site_dir/index.html (and copy PNGs to site_dir/img).

    Returns:
        Path to index.html
    """
    site_dir = Path(site_dir)
    img_dir = site_dir / "img"
    img_dir.mkdir(parents=True, exist_ok=True)

    figures: Dict[str, str] = {}
    for image in images:
        image = Path(image)
        target = img_dir / image.name
        if image.resolve() != target.resolve():
            shutil.copyfile(image, target)
        figures[image.stem.replace("_", " ")] = f"img/{image.name}"

    chart = forecast_figure(history, forecasts, level=level).to_html(
        full_html=False, include_plotlyjs="cdn"
    )

    horizon_wide = None
    if horizon_accuracy is not None and not horizon_accuracy.empty:
        horizon_wide = (
            horizon_accuracy.pivot(index="step", columns="model_name", values="mape")
            .reset_index()
        )

    sections = [
        _table(holdout_accuracy, "Holdout accuracy"),
        _table(cv_accuracy, "Cross-validated accuracy"),
        _table(horizon_wide, "Cross-validated MAPE by horizon"),
    ]
    gallery = "\n".join(
        f'<figure><img src="{src}" alt="{html.escape(name)}"><figcaption>{html.escape(name)}</figcaption></figure>'
        for name, src in figures.items()
    )
    generated = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")

    page = f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{html.escape(title)}</title>
<style>
body {{ font-family: sans-serif; max-width: 1100px; margin: 2rem auto; }}
table.accuracy {{ border-collapse: collapse; margin-bottom: 1.5rem; }}
table.accuracy td, table.accuracy th {{ padding: 0.25rem 0.75rem; text-align: right; }}
figure img {{ max-width: 100%; }}
</style>
</head>
<body>
<h1>{html.escape(title)}</h1>
{chart}
{''.join(sections)}
{gallery}
<footer><small>Generated {generated}</small></footer>
</body>
</html>
"""

    index_path = site_dir / "index.html"
    index_path.write_text(page, encoding="utf-8")
    logger.info(f"Rendered site: {index_path} ({len(figures)} images)")
    return index_path
