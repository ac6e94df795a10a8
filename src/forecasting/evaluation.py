"""
Forecasting: Accuracy Metrics

Computes forecast accuracy with explicit NaN handling (fail-loud principle).
Errors follow the e = actual - forecast convention, so a positive ME/MPE
means the model under-forecasts.
"""

import logging
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

METRIC_COLS = ["me", "rmse", "mae", "mpe", "mape", "mase"]


def _valid(y_true: np.ndarray, y_pred: np.ndarray) -> np.ndarray:
    return np.isfinite(y_pred) & np.isfinite(y_true)


def _valid_pct(y_true: np.ndarray, y_pred: np.ndarray) -> np.ndarray:
    return _valid(y_true, y_pred) & (np.abs(y_true) > 1e-10)


class ForecastMetrics:
    """Compute and track forecasting accuracy metrics"""

    @staticmethod
    def me(y_true: np.ndarray, y_pred: np.ndarray) -> float:
        """Mean Error (bias in units of y)"""
        valid_mask = _valid(y_true, y_pred)

        if valid_mask.sum() == 0:
            return np.nan

        return float(np.mean(y_true[valid_mask] - y_pred[valid_mask]))

    @staticmethod
    def rmse(y_true: np.ndarray, y_pred: np.ndarray) -> float:
        """
        Root Mean Squared Error

        Explicit NaN masking (fail-loud):
        - Returns NaN if no valid predictions
        - Masks NaN/inf values before computation
        """
        valid_mask = _valid(y_true, y_pred)

        if valid_mask.sum() == 0:
            return np.nan

        return float(np.sqrt(np.mean((y_pred[valid_mask] - y_true[valid_mask]) ** 2)))

    @staticmethod
    def mae(y_true: np.ndarray, y_pred: np.ndarray) -> float:
        """Mean Absolute Error"""
        valid_mask = _valid(y_true, y_pred)

        if valid_mask.sum() == 0:
            return np.nan

        return float(np.mean(np.abs(y_pred[valid_mask] - y_true[valid_mask])))

    @staticmethod
    def mpe(y_true: np.ndarray, y_pred: np.ndarray) -> float:
        """
        Mean Percent Error (%)

        Signed, so over- and under-forecasts cancel: a bias measure.
        Masks NaN/inf values and zero y_true before computation.
        """
        valid_mask = _valid_pct(y_true, y_pred)

        if valid_mask.sum() == 0:
            return np.nan

        pe = (y_true[valid_mask] - y_pred[valid_mask]) / y_true[valid_mask]
        return float(100 * np.mean(pe))

    @staticmethod
    def mape(y_true: np.ndarray, y_pred: np.ndarray) -> float:
        """
        Mean Absolute Percentage Error (%)

        Explicit NaN masking (fail-loud):
        - Returns NaN if no valid predictions
        - Masks NaN/inf values and zero y_true before computation
        """
        valid_mask = _valid_pct(y_true, y_pred)

        if valid_mask.sum() == 0:
            return np.nan

        ape = np.abs((y_true[valid_mask] - y_pred[valid_mask]) / y_true[valid_mask])
        return float(100 * np.mean(ape))

    @staticmethod
    def mase(
        y_true: np.ndarray,
        y_pred: np.ndarray,
        y_train: np.ndarray,
        season_length: int = 12
    ) -> float:
        """
        Mean Absolute Scaled Error

        Scales error relative to the in-sample seasonal naive forecast.
        Returns NaN if the training data is no longer than one season.
        """
        y_train = np.asarray(y_train, dtype=float)
        if len(y_train) <= season_length:
            return np.nan

        scale = np.nanmean(np.abs(y_train[season_length:] - y_train[:-season_length]))

        if not np.isfinite(scale) or scale < 1e-10:
            return np.nan

        valid_mask = _valid(y_true, y_pred)

        if valid_mask.sum() == 0:
            return np.nan

        mae_test = np.mean(np.abs(y_pred[valid_mask] - y_true[valid_mask]))

        return float(mae_test / scale)

    @staticmethod
    def coverage(
        y_true: np.ndarray,
        lower: np.ndarray,
        upper: np.ndarray
    ) -> float:
        """
        Prediction Interval Coverage (%)

        Counts valid (non-NaN) rows in the denominator.
        """
        valid_mask = (
            np.isfinite(y_true) &
            np.isfinite(lower) &
            np.isfinite(upper)
        )

        if valid_mask.sum() == 0:
            return np.nan

        covered = (y_true[valid_mask] >= lower[valid_mask]) & \
                  (y_true[valid_mask] <= upper[valid_mask])

        return float(100 * np.mean(covered))

    @staticmethod
    def compute_all(
        y_true: np.ndarray,
        y_pred: np.ndarray,
        y_train: Optional[np.ndarray] = None,
        season_length: int = 12
    ) -> Dict[str, float]:
        """
        Compute all point metrics at once

        Args:
            y_true: Actual values
            y_pred: Predictions
            y_train: Training values (for MASE)
            season_length: Seasonal period (for MASE)

        Returns:
            Dictionary of metrics
        """
        y_true = np.asarray(y_true, dtype=float)
        y_pred = np.asarray(y_pred, dtype=float)

        metrics = {
            "me": ForecastMetrics.me(y_true, y_pred),
            "rmse": ForecastMetrics.rmse(y_true, y_pred),
            "mae": ForecastMetrics.mae(y_true, y_pred),
            "mpe": ForecastMetrics.mpe(y_true, y_pred),
            "mape": ForecastMetrics.mape(y_true, y_pred),
            "mase": np.nan,
        }

        if y_train is not None:
            metrics["mase"] = ForecastMetrics.mase(
                y_true, y_pred, y_train, season_length=season_length
            )

        return metrics


def compute_series_metrics(
    y_true: np.ndarray,
    y_pred: np.ndarray,
    y_train: Optional[np.ndarray] = None,
    valid_threshold: int = 1,
    season_length: int = 12
) -> Dict[str, float]:
    """
    Compute metrics with explicit validation

    Args:
        y_true: Actual values
        y_pred: Predictions
        y_train: Training values (for MASE)
        valid_threshold: Minimum valid predictions required
        season_length: Seasonal period (for MASE)

    Returns:
        Dictionary of metrics
    """
    y_true = np.asarray(y_true, dtype=float)
    y_pred = np.asarray(y_pred, dtype=float)

    valid_count = int(_valid(y_true, y_pred).sum())

    if valid_count < valid_threshold:
        metrics = {col: np.nan for col in METRIC_COLS}
        metrics["valid_count"] = valid_count
        metrics["error"] = f"Insufficient valid predictions: {valid_count} < {valid_threshold}"
        return metrics

    metrics = ForecastMetrics.compute_all(y_true, y_pred, y_train, season_length)
    metrics["valid_count"] = valid_count

    return metrics


def aggregate_metrics(
    results: pd.DataFrame,
    by: Optional[str] = None
) -> pd.DataFrame:
    """
    Aggregate metrics across splits and series

    Args:
        results: DataFrame with metric columns
        by: Groupby column ("model_name", "unique_id", etc.)

    Returns:
        Aggregated metrics DataFrame
    """
    metric_cols = [c for c in METRIC_COLS if c in results.columns]

    if by is None:
        return results[metric_cols].agg(["mean", "std", "min", "max"])

    return results.groupby(by)[metric_cols].agg(["mean", "std", "count"])


def accuracy_table(
    forecasts: pd.DataFrame,
    by: Sequence[str] = ("model_name",),
    metrics: Sequence[str] = ("me", "rmse", "mae", "mpe", "mape"),
) -> pd.DataFrame:
    """
    Pool forecast rows per group and score them.

    by=["model_name"] gives accuracy per model; by=["model_name", "step"]
    gives accuracy per model and forecast horizon.

    Args:
        forecasts: Rows with at least [*by, yhat, actual]
        by: Grouping columns
        metrics: ForecastMetrics method names to compute

    Returns:
        One row per group with the metric columns and n (valid rows)
    """
    by = list(by)
    required = by + ["yhat", "actual"]
    missing = [c for c in required if c not in forecasts.columns]
    if missing:
        raise ValueError(f"Missing required columns: {missing}")

    rows: List[Dict] = []
    for key, group in forecasts.groupby(by, sort=True):
        key = key if isinstance(key, tuple) else (key,)
        y_true = group["actual"].to_numpy(dtype=float)
        y_pred = group["yhat"].to_numpy(dtype=float)

        row = dict(zip(by, key))
        for name in metrics:
            row[name] = getattr(ForecastMetrics, name)(y_true, y_pred)
        row["n"] = int(_valid(y_true, y_pred).sum())
        rows.append(row)

    return pd.DataFrame(rows, columns=by + list(metrics) + ["n"])
