"""
Forecasting: Model Fitting, Holdout and Cross-Validation

- fit_models / forecast_models: a table of fitted models (one row per model)
  and its forecasts with prediction intervals
- evaluate_holdout: score every model on the last `horizon` periods
- TrainingPipeline: rolling-origin cross-validation across backtesting splits
- ModelSelector: leaderboard and best model
"""

import json
import logging
import time
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from src.series.objects import future_index, holdout_split, to_wide

from .backtesting import RollingOriginBacktest, check_splits, describe_splits
from .evaluation import (METRIC_COLS, ForecastMetrics, accuracy_table,
                         compute_series_metrics)
from .models import ForecastModel, ModelFactory

logger = logging.getLogger(__name__)

DEFAULT_MODELS = ("mean", "naive", "drift", "ets", "arima", "var", "nnetar")


def _default_target(data: pd.DataFrame, target_id: Optional[str]) -> str:
    ids = list(data["unique_id"].unique())
    if target_id is None:
        if not ids:
            raise ValueError("No series in data")
        return ids[0]
    if target_id not in ids:
        raise ValueError(f"Unknown target series: {target_id}. Available: {ids}")
    return target_id


def _companions(data: pd.DataFrame, target_id: str, ds: pd.Series) -> Optional[np.ndarray]:
    """Other series aligned on the target's timestamps (complete columns only)"""
    wide = to_wide(data)
    others = [c for c in wide.columns if c != target_id]
    if not others:
        return None

    aligned = wide.reindex(pd.DatetimeIndex(ds))[others]
    complete = aligned.columns[aligned.notna().all()].tolist()
    dropped = sorted(set(others) - set(complete))
    if dropped:
        logger.warning(f"Companion series with gaps ignored for VAR: {dropped}")
    if not complete:
        return None
    return aligned[complete].to_numpy(dtype=float)


def _fit_one(
    model_name: str,
    y: np.ndarray,
    companions: Optional[np.ndarray],
    season_length: int,
    model_kwargs: Optional[Dict[str, Dict]] = None,
) -> ForecastModel:
    kwargs = dict((model_kwargs or {}).get(model_name, {}))
    model = ModelFactory.create(model_name, season_length=season_length, **kwargs)
    if model_name == "var":
        return model.fit(y, companions=companions)
    return model.fit(y)


def fit_models(
    data: pd.DataFrame,
    target_id: Optional[str] = None,
    models: Tuple[str, ...] = DEFAULT_MODELS,
    season_length: int = 12,
    model_kwargs: Optional[Dict[str, Dict]] = None,
) -> pd.DataFrame:
    """
    Fit every model on the target series.

    Args:
        data: Long table [unique_id, ds, y]; extra series feed the VAR
        target_id: Series to forecast (default: first series)
        models: Model names (see ModelFactory.list_models)
        season_length: Seasonal period (12 for monthly data)
        model_kwargs: Optional per-model constructor arguments

    Returns:
        Model table with columns [unique_id, model_name, model, last_ds, n_obs]
    """
    target_id = _default_target(data, target_id)
    series = data[data["unique_id"] == target_id].sort_values("ds")
    y = series["y"].to_numpy(dtype=float)
    companions = _companions(data, target_id, series["ds"]) if "var" in models else None

    rows = []
    for model_name in models:
        start_time = time.time()
        model = _fit_one(model_name, y, companions, season_length, model_kwargs)
        logger.info(f"Fitted {model_name} on {target_id} ({len(y)} obs, {time.time() - start_time:.2f}s)")
        rows.append({
            "unique_id": target_id,
            "model_name": model_name,
            "model": model,
            "last_ds": series["ds"].max(),
            "n_obs": len(y),
        })

    return pd.DataFrame(rows, columns=["unique_id", "model_name", "model", "last_ds", "n_obs"])


def forecast_models(
    model_table: pd.DataFrame,
    horizon: int,
    level: Optional[int] = 95,
    freq: str = "MS",
) -> pd.DataFrame:
    """
    Forecast every fitted model in a model table.

    Returns:
        Long table [unique_id, model_name, ds, step, yhat(, yhat_lo_L, yhat_hi_L)]
    """
    frames = []
    for row in model_table.itertuples(index=False):
        model: ForecastModel = row.model
        frame = pd.DataFrame({
            "unique_id": row.unique_id,
            "model_name": row.model_name,
            "ds": future_index(row.last_ds, horizon, freq),
            "step": np.arange(1, horizon + 1),
            "yhat": model.predict(horizon),
        })
        if level is not None:
            lower, upper = model.predict_interval(horizon, level=level)
            frame[f"yhat_lo_{level}"] = lower
            frame[f"yhat_hi_{level}"] = upper
        frames.append(frame)

    return pd.concat(frames, ignore_index=True)


def evaluate_holdout(
    data: pd.DataFrame,
    target_id: Optional[str] = None,
    models: Tuple[str, ...] = DEFAULT_MODELS,
    horizon: int = 24,
    level: Optional[int] = 95,
    season_length: int = 12,
    freq: str = "MS",
    model_kwargs: Optional[Dict[str, Dict]] = None,
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Fit on everything but the last `horizon` periods and score the forecasts.

    Returns:
        (forecasts, accuracy): forecasts carry an `actual` column; accuracy
        has one row per model with ME, RMSE, MAE, MPE, MAPE, MASE
    """
    target_id = _default_target(data, target_id)
    train_df, test_df = holdout_split(data, horizon)

    logger.info(
        f"Holdout: train through {train_df['ds'].max().date()}, "
        f"test {test_df['ds'].min().date()} to {test_df['ds'].max().date()}"
    )

    table = fit_models(train_df, target_id, models, season_length, model_kwargs)
    forecasts = forecast_models(table, horizon, level=level, freq=freq)

    actual = test_df[test_df["unique_id"] == target_id][["ds", "y"]].rename(columns={"y": "actual"})
    forecasts = forecasts.merge(actual, on="ds", how="left")

    accuracy = accuracy_table(forecasts, by=["model_name"])
    y_train = train_df[train_df["unique_id"] == target_id].sort_values("ds")["y"].to_numpy(dtype=float)
    accuracy["mase"] = [
        ForecastMetrics.mase(
            group["actual"].to_numpy(dtype=float),
            group["yhat"].to_numpy(dtype=float),
            y_train,
            season_length=season_length,
        )
        for _, group in forecasts.groupby("model_name", sort=True)
    ]

    return forecasts, accuracy.sort_values("mape").reset_index(drop=True)


class TrainingPipeline:
    """Trains models across all backtesting splits"""

    def __init__(
        self,
        models: Optional[List[str]] = None,
        min_train_size: int = 60,
        horizon: int = 24,
        step_size: int = 12,
        window_size: Optional[int] = None,
        season_length: int = 12,
        fail_fast: bool = True,
        model_kwargs: Optional[Dict[str, Dict]] = None,
    ):
        """
        Initialize training pipeline

        Args:
            models: List of model names to train
            min_train_size: Observations before the first origin
            horizon: Forecast horizon (test size per split)
            step_size: Months between forecast origins
            window_size: Fixed training length (None = from the first month)
            season_length: Seasonal period
            fail_fast: Re-raise model errors instead of skipping the split
            model_kwargs: Optional per-model constructor arguments
        """
        self.models = list(models) if models is not None else list(DEFAULT_MODELS)
        self.min_train_size = min_train_size
        self.horizon = horizon
        self.step_size = step_size
        self.window_size = window_size
        self.season_length = season_length
        self.fail_fast = fail_fast
        self.model_kwargs = model_kwargs
        self.results: List[Dict] = []
        self.forecasts = pd.DataFrame()
        self.splits_info: Dict = {}

    def run(
        self,
        data: pd.DataFrame,
        target_id: Optional[str] = None,
        output_dir: Optional[Path] = None
    ) -> pd.DataFrame:
        """
        Run rolling-origin cross-validation

        Args:
            data: DataFrame with columns [unique_id, ds, y]
            target_id: Series to forecast (default: first series)
            output_dir: Directory to save results

        Returns:
            DataFrame with one metric row per (split, model); per-step rows
            are kept in self.forecasts
        """
        target_id = _default_target(data, target_id)
        self.results = []

        logger.info(f"Starting training pipeline with {len(self.models)} models")
        backtest = RollingOriginBacktest(
            min_train_size=self.min_train_size,
            test_size=self.horizon,
            step_size=self.step_size,
            window_size=self.window_size,
        )
        splits = backtest.generate_splits(data, target_id)

        n_obs = int((data["unique_id"] == target_id).sum())
        problems = check_splits(splits, n_obs, self.min_train_size, self.horizon)
        if problems:
            raise ValueError(f"Invalid cross-validation splits for {target_id}: {problems}")
        self.splits_info = describe_splits(backtest, target_id, splits)

        forecast_frames = []

        for split in splits:
            train_df, test_df = backtest.split_frames(data, target_id, split)

            y_train = train_df["y"].to_numpy(dtype=float)
            y_test = test_df["y"].to_numpy(dtype=float)
            companions = None
            if "var" in self.models:
                companions = _companions(data, target_id, train_df["ds"])

            for model_name in self.models:
                try:
                    result = self._train_and_forecast(
                        model_name=model_name,
                        split_id=split.split_id,
                        y_train=y_train,
                        y_test=y_test,
                        companions=companions,
                    )
                except Exception as e:
                    if self.fail_fast:
                        raise
                    logger.warning(
                        f"Failed to train {model_name} on {target_id} split {split.split_id}: {e}"
                    )
                    continue

                result["unique_id"] = target_id
                self.results.append(result)
                forecast_frames.append(pd.DataFrame({
                    "unique_id": target_id,
                    "split_id": split.split_id,
                    "model_name": model_name,
                    "origin": split.train_end,
                    "step": np.arange(1, len(y_test) + 1),
                    "ds": test_df["ds"].to_numpy(),
                    "yhat": result["forecast"],
                    "actual": y_test,
                }))

        results_df = self._create_results_dataframe()
        if forecast_frames:
            self.forecasts = pd.concat(forecast_frames, ignore_index=True)

        if output_dir:
            output_dir = Path(output_dir)
            output_dir.mkdir(parents=True, exist_ok=True)

            results_df.to_parquet(output_dir / "cv_results.parquet", index=False)
            self.forecasts.to_parquet(output_dir / "cv_forecasts.parquet", index=False)
            with open(output_dir / "cv_splits.json", "w", encoding="utf-8") as f:
                json.dump(self.splits_info, f, indent=2)
            logger.info(f"Saved results to {output_dir}")

        return results_df

    def _train_and_forecast(
        self,
        model_name: str,
        split_id: int,
        y_train: np.ndarray,
        y_test: np.ndarray,
        companions: Optional[np.ndarray] = None
    ) -> Dict:
        """Train model and generate forecast"""
        start_time = time.time()
        model = _fit_one(model_name, y_train, companions, self.season_length, self.model_kwargs)
        train_time = time.time() - start_time

        start_time = time.time()
        forecast = model.predict(horizon=len(y_test))
        forecast_time = time.time() - start_time

        metrics = compute_series_metrics(
            y_true=y_test,
            y_pred=forecast,
            y_train=y_train,
            season_length=self.season_length
        )

        result = {
            "split_id": split_id,
            "model_name": model_name,
            "valid_count": metrics.get("valid_count", 0),
            "train_time": train_time,
            "forecast_time": forecast_time,
            "forecast": forecast,
        }
        for col in METRIC_COLS:
            result[col] = metrics.get(col)
        return result

    def _create_results_dataframe(self) -> pd.DataFrame:
        """Split-level metrics (forecast arrays are kept in self.forecasts)"""
        columns = ["unique_id", "split_id", "model_name"] + METRIC_COLS + [
            "valid_count", "train_time", "forecast_time"
        ]
        return pd.DataFrame(
            [{col: result.get(col) for col in columns} for result in self.results],
            columns=columns,
        )


class ModelSelector:
    """Select best model based on performance"""

    RANKED_METRICS = ["rmse", "mae", "mape", "mase"]

    def __init__(self, primary_metric: str = "mape", min_valid: int = 1):
        """
        Initialize model selector

        Args:
            primary_metric: Metric for ranking ("rmse", "mae", "mape", "mase", "mpe")
            min_valid: Minimum valid predictions required per split
        """
        if primary_metric not in METRIC_COLS:
            raise ValueError(f"Unknown metric: {primary_metric}. Available: {METRIC_COLS}")
        self.primary_metric = primary_metric
        self.min_valid = min_valid

    def _valid(self, results: pd.DataFrame) -> pd.DataFrame:
        return results[results["valid_count"] >= self.min_valid].copy()

    def select_best_model(
        self,
        results: pd.DataFrame
    ) -> Dict:
        """
        Select best model across all splits

        Args:
            results: Training results DataFrame

        Returns:
            Dictionary with best model info
        """
        valid_results = self._valid(results)

        if valid_results.empty:
            logger.error("No valid results found")
            return {}

        agg_dict = {col: "mean" for col in METRIC_COLS}
        agg_dict["valid_count"] = "sum"
        model_performance = valid_results.groupby("model_name").agg(agg_dict).reset_index()

        # Lower is better; bias metrics rank by magnitude
        sort_key = model_performance[self.primary_metric]
        if self.primary_metric in ("me", "mpe"):
            sort_key = sort_key.abs()
        model_performance = model_performance.loc[sort_key.sort_values().index]

        best_model = model_performance.iloc[0]

        summary = {
            "model_name": best_model["model_name"],
            "primary_metric": self.primary_metric,
            "primary_metric_mean": float(best_model[self.primary_metric]),
            "total_valid": int(best_model["valid_count"]),
            "ranking": model_performance.reset_index(drop=True),
        }
        for col in METRIC_COLS:
            summary[f"{col}_mean"] = float(best_model[col])
        return summary

    def generate_leaderboard(
        self,
        results: pd.DataFrame
    ) -> pd.DataFrame:
        """
        Generate model leaderboard

        Args:
            results: Training results DataFrame

        Returns:
            Leaderboard DataFrame (one row per model, best first)
        """
        valid_results = self._valid(results)

        agg_spec = {col: ["mean", "std"] for col in METRIC_COLS}
        agg_spec.update({
            "valid_count": "sum",
            "train_time": ["mean", "max"],
            "forecast_time": ["mean", "max"],
        })
        leaderboard = valid_results.groupby("model_name").agg(agg_spec).round(3)

        # Flatten column names
        leaderboard.columns = [
            "_".join(col).strip() for col in leaderboard.columns.values
        ]

        rank_cols = []
        for metric in self.RANKED_METRICS:
            leaderboard[f"{metric}_rank"] = leaderboard[f"{metric}_mean"].rank()
            rank_cols.append(f"{metric}_rank")

        leaderboard["avg_rank"] = leaderboard[rank_cols].mean(axis=1)

        return leaderboard.sort_values("avg_rank").reset_index()
