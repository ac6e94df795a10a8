# file: src/reporting/plots.py
"""
Static plots for the sales analysis.

Every function writes a PNG and returns its path:
1. plot_series - the raw series (all series in the table)
2. plot_decomposition - STL trend / season / remainder
3. plot_autocorrelation - ACF with the seasonal lag marked
4. plot_forecasts - history, model forecasts and interval bands
5. plot_accuracy_by_horizon - accuracy metric vs forecast step, per model
"""

from __future__ import annotations

import warnings
from pathlib import Path
from typing import Optional, Sequence

import matplotlib

matplotlib.use("Agg")  # Non-interactive backend for server-side rendering
import matplotlib.pyplot as plt  # noqa: E402
import pandas as pd  # noqa: E402
from statsmodels.graphics.tsaplots import plot_acf  # noqa: E402
from statsmodels.tsa.seasonal import STL  # noqa: E402

from src.series.objects import to_ts_series  # noqa: E402

# Suppress matplotlib warnings for cleaner output
warnings.filterwarnings("ignore", category=UserWarning, module="matplotlib")

plt.rcParams["figure.figsize"] = (12, 6)
plt.rcParams["figure.dpi"] = 100


def _save(fig, path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.tight_layout()
    fig.savefig(path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    return path


def plot_series(df: pd.DataFrame, path: Path, title: str = "Monthly wine sales") -> Path:
    """Line plot of every series in a [unique_id, ds, y] table"""
    fig, ax = plt.subplots()
    for uid, sub in df.sort_values("ds").groupby("unique_id"):
        ax.plot(sub["ds"], sub["y"], label=uid)
    ax.set_title(title)
    ax.set_xlabel("Month")
    ax.set_ylabel("Sales")
    ax.legend()
    return _save(fig, path)


def plot_decomposition(
    df: pd.DataFrame,
    path: Path,
    unique_id: Optional[str] = None,
    period: int = 12,
    freq: str = "MS",
) -> Path:
    """STL decomposition (robust) of one series"""
    series = to_ts_series(df, unique_id=unique_id, freq=freq)
    result = STL(series, period=period, robust=True).fit()

    fig, axes = plt.subplots(4, 1, figsize=(12, 10), sharex=True)
    for ax, (label, component) in zip(axes, [
        ("Observed", result.observed),
        ("Trend", result.trend),
        ("Seasonal", result.seasonal),
        ("Remainder", result.resid),
    ]):
        ax.plot(component.index, component.values)
        ax.set_ylabel(label)
    axes[0].set_title(f"{series.name} - STL decomposition (period={period})")
    return _save(fig, path)


def plot_autocorrelation(
    df: pd.DataFrame,
    path: Path,
    unique_id: Optional[str] = None,
    lags: int = 36,
    season_length: int = 12,
    freq: str = "MS",
) -> Path:
    """ACF of one series, seasonal lag marked"""
    series = to_ts_series(df, unique_id=unique_id, freq=freq)
    lags = min(lags, len(series) - 1)

    fig, ax = plt.subplots()
    plot_acf(series.values, lags=lags, ax=ax)
    ax.axvline(x=season_length, color="orange", linestyle="--", label=f"lag {season_length}")
    ax.set_title(f"{series.name} - Autocorrelation")
    ax.set_xlabel("Lag (months)")
    ax.legend()
    return _save(fig, path)


def plot_forecasts(
    history: pd.DataFrame,
    forecasts: pd.DataFrame,
    path: Path,
    level: Optional[int] = 95,
    models: Optional[Sequence[str]] = None,
    history_periods: Optional[int] = 72,
    title: str = "Forecasts",
) -> Path:
    """
    History of the target plus one line per model.

    Args:
        history: [unique_id, ds, y] rows of the forecast target
        forecasts: Output of forecast_models (optionally with `actual`)
        path: PNG destination
        level: Interval level to shade (None = no bands)
        models: Subset of model names to draw (default: all)
        history_periods: Trailing history to show (None = all)
    """
    target_ids = forecasts["unique_id"].unique()
    hist = history[history["unique_id"].isin(target_ids)].sort_values("ds")
    if history_periods is not None:
        hist = hist.tail(history_periods)

    fig, ax = plt.subplots()
    ax.plot(hist["ds"], hist["y"], color="black", label="History")

    if "actual" in forecasts.columns:
        actual = forecasts.drop_duplicates("ds").sort_values("ds")
        ax.plot(actual["ds"], actual["actual"], color="black", linestyle=":", label="Actual")

    lo_col, hi_col = f"yhat_lo_{level}", f"yhat_hi_{level}"
    for model_name, sub in forecasts.groupby("model_name", sort=False):
        if models is not None and model_name not in models:
            continue
        sub = sub.sort_values("ds")
        line, = ax.plot(sub["ds"], sub["yhat"], label=model_name)
        if level is not None and lo_col in sub.columns and sub[lo_col].notna().any():
            ax.fill_between(
                sub["ds"], sub[lo_col], sub[hi_col],
                color=line.get_color(), alpha=0.12,
            )

    ax.set_title(title if level is None else f"{title} ({level}% intervals)")
    ax.set_xlabel("Month")
    ax.set_ylabel("Sales")
    ax.legend(ncol=2)
    return _save(fig, path)


def plot_accuracy_by_horizon(
    horizon_accuracy: pd.DataFrame,
    path: Path,
    metric: str = "mape",
) -> Path:
    """One line per model: metric against forecast step"""
    if metric not in horizon_accuracy.columns:
        raise ValueError(f"Metric not in accuracy table: {metric}")

    fig, ax = plt.subplots()
    for model_name, sub in horizon_accuracy.groupby("model_name"):
        sub = sub.sort_values("step")
        ax.plot(sub["step"], sub[metric], marker="o", markersize=3, label=model_name)
    if metric in ("me", "mpe"):
        ax.axhline(0, color="grey", linewidth=0.8)
    ax.set_title(f"Cross-validated {metric.upper()} by forecast horizon")
    ax.set_xlabel("Horizon (months ahead)")
    ax.set_ylabel(metric.upper())
    ax.legend(ncol=2)
    return _save(fig, path)
