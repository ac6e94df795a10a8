"""
Pipeline Tasks

These tasks are designed to be:
- deterministic for a given config and dataset
- atomic on write
- safe to rerun (overwrite flag controls)
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict

import pandas as pd

from src.forecasting.evaluation import accuracy_table
from src.forecasting.training import (ModelSelector, TrainingPipeline,
                                      evaluate_holdout, fit_models,
                                      forecast_models)
from src.pipeline.config import PipelineConfig
from src.pipeline.io_utils import (atomic_write_json, atomic_write_parquet,
                                   ensure_dir, read_parquet_if_exists)
from src.reporting.plots import (plot_accuracy_by_horizon,
                                 plot_autocorrelation, plot_decomposition,
                                 plot_forecasts, plot_series)
from src.reporting.site import render_site
from src.series.ingest import pull_sales_csv
from src.series.prepare import normalize_time, prepare_for_forecasting
from src.series.validate import validate_time_index

logger = logging.getLogger(__name__)


def ingest_sales(config: PipelineConfig) -> str:
    """
    Task 1: Read the source CSV and save data/raw.parquet
    """
    raw_path = config.raw_path()
    ensure_dir(raw_path.parent)

    if raw_path.exists() and not config.overwrite:
        logger.info(f"[ingest] raw exists, skipping: {raw_path}")
        return str(raw_path)

    if not config.source:
        raise ValueError("No data source configured. Pass --source or set WINE_DATA_SOURCE.")

    df_raw = pull_sales_csv(config.source)

    atomic_write_parquet(df_raw, raw_path)
    logger.info(f"[ingest] wrote raw: {raw_path} ({len(df_raw)} rows)")

    return str(raw_path)


def prepare_clean(raw_path: str, config: PipelineConfig) -> str:
    """
    Task 2: Prepare clean dataset and save data/clean.parquet + data/metadata.json
    """
    clean_path = config.clean_path()
    ensure_dir(clean_path.parent)

    if clean_path.exists() and not config.overwrite:
        logger.info(f"[prepare] clean exists, skipping: {clean_path}")
        return str(clean_path)

    df_raw = pd.read_parquet(raw_path)
    df_time = normalize_time(df_raw, date_col=config.date_col, freq=config.freq)
    df_clean = prepare_for_forecasting(
        df_time,
        date_col=config.date_col,
        value_cols=config.value_cols,
        unique_id_prefix=config.unique_id_prefix,
    )

    metadata = {
        "prepared_at": datetime.now(timezone.utc).isoformat(),
        "source": config.source,
        "series": sorted(df_clean["unique_id"].unique().tolist()),
        "target": config.target_id(),
        "start": df_clean["ds"].min(),
        "end": df_clean["ds"].max(),
        "raw_rows": int(len(df_raw)),
        "clean_rows": int(len(df_clean)),
    }

    atomic_write_parquet(df_clean, clean_path)
    atomic_write_json(metadata, config.metadata_path())

    logger.info(f"[prepare] wrote clean: {clean_path} ({len(df_clean)} rows)")

    return str(clean_path)


def validate_clean(clean_path: str, config: PipelineConfig) -> Dict:
    """
    Task 3: Validate time series integrity (duplicates, gaps, nulls, order).
    """
    df_clean = pd.read_parquet(clean_path)
    result = validate_time_index(df_clean, freq=config.freq)

    if not result.is_valid:
        raise ValueError(
            f"Time-series integrity failed: "
            f"{result.n_duplicates} duplicate (unique_id, ds) rows; "
            f"{result.n_missing_periods} missing periods "
            f"(first: {result.missing_periods[:3]}); "
            f"{result.n_nulls} nulls; monotonic={result.is_monotonic}"
        )

    report = {
        "status": "valid",
        "n_rows": result.n_rows,
        "value_min": result.value_min,
        "value_max": result.value_max,
    }
    logger.info(f"[validate] OK: {report}")
    return report


def evaluate_holdout_task(clean_path: str, config: PipelineConfig) -> pd.DataFrame:
    """
    Task 4: Fit on all but the last `horizon` months and score every model.
    Writes artifacts/holdout_forecasts.parquet + artifacts/holdout_accuracy.parquet
    """
    accuracy_path = config.holdout_accuracy_path()

    if accuracy_path.exists() and not config.overwrite:
        logger.info(f"[holdout] accuracy exists, skipping: {accuracy_path}")
        return pd.read_parquet(accuracy_path)

    df_clean = pd.read_parquet(clean_path)
    forecasts, accuracy = evaluate_holdout(
        df_clean,
        target_id=config.target_id(),
        models=config.models,
        horizon=config.horizon,
        level=config.level,
        season_length=config.season_length,
        freq=config.freq,
        model_kwargs=config.model_kwargs(),
    )

    atomic_write_parquet(forecasts, config.holdout_forecasts_path())
    atomic_write_parquet(accuracy, accuracy_path)

    logger.info(f"[holdout] wrote accuracy: {accuracy_path} ({len(accuracy)} models)")
    return accuracy


def cross_validate_task(clean_path: str, config: PipelineConfig) -> pd.DataFrame:
    """
    Task 5: Rolling-origin cross-validation.
    Writes cv results/forecasts, the fold layout, accuracy by model and by
    horizon, and the leaderboard. Returns the leaderboard.
    """
    leaderboard_path = config.leaderboard_path()

    if leaderboard_path.exists() and not config.overwrite:
        logger.info(f"[cv] leaderboard exists, skipping: {leaderboard_path}")
        return pd.read_parquet(leaderboard_path)

    df_clean = pd.read_parquet(clean_path)

    pipeline = TrainingPipeline(
        models=list(config.models),
        min_train_size=config.init,
        horizon=config.horizon,
        step_size=config.step,
        season_length=config.season_length,
        model_kwargs=config.model_kwargs(),
    )
    cv_results = pipeline.run(df_clean, target_id=config.target_id())
    cv_forecasts = pipeline.forecasts

    cv_accuracy = accuracy_table(cv_forecasts, by=["model_name"]).sort_values(config.primary_metric)
    horizon_accuracy = accuracy_table(cv_forecasts, by=["model_name", "step"])
    leaderboard = ModelSelector(primary_metric=config.primary_metric).generate_leaderboard(cv_results)

    atomic_write_parquet(cv_results, config.cv_results_path())
    atomic_write_parquet(cv_forecasts, config.cv_forecasts_path())
    atomic_write_json(pipeline.splits_info, config.cv_splits_path())
    atomic_write_parquet(cv_accuracy.reset_index(drop=True), config.cv_accuracy_path())
    atomic_write_parquet(horizon_accuracy, config.horizon_accuracy_path())
    atomic_write_parquet(leaderboard, leaderboard_path)

    logger.info(f"[cv] wrote cv: {config.cv_results_path()} ({len(cv_results)} rows)")
    logger.info(f"[cv] wrote leaderboard: {leaderboard_path} ({len(leaderboard)} rows)")

    return leaderboard


def forecast_publish(clean_path: str, config: PipelineConfig) -> str:
    """
    Task 6: Fit on all clean data and publish artifacts/predictions.parquet
    """
    pred_path = config.predictions_path()
    ensure_dir(pred_path.parent)

    if pred_path.exists() and not config.overwrite:
        logger.info(f"[forecast] predictions exist, skipping: {pred_path}")
        return str(pred_path)

    df_clean = pd.read_parquet(clean_path)
    model_table = fit_models(
        df_clean,
        target_id=config.target_id(),
        models=config.models,
        season_length=config.season_length,
        model_kwargs=config.model_kwargs(),
    )
    forecast_df = forecast_models(model_table, config.horizon, level=config.level, freq=config.freq)

    atomic_write_parquet(forecast_df, pred_path)
    logger.info(f"[forecast] wrote predictions: {pred_path} ({len(forecast_df)} rows)")

    return str(pred_path)


def render_report(clean_path: str, pred_path: str, config: PipelineConfig) -> str:
    """
    Task 7: Plots into artifacts/figures and the static site into site_dir.
    """
    index_path = config.index_path()

    if index_path.exists() and not config.overwrite:
        logger.info(f"[report] site exists, skipping: {index_path}")
        return str(index_path)

    df_clean = pd.read_parquet(clean_path)
    predictions = pd.read_parquet(pred_path)
    holdout_forecasts = read_parquet_if_exists(config.holdout_forecasts_path())
    holdout_accuracy = read_parquet_if_exists(config.holdout_accuracy_path())
    cv_accuracy = read_parquet_if_exists(config.cv_accuracy_path())
    horizon_accuracy = read_parquet_if_exists(config.horizon_accuracy_path())

    target = config.target_id()
    figures = config.figures_path()

    images = [
        plot_series(df_clean, figures / "sales.png"),
        plot_decomposition(df_clean, figures / "decomposition.png", unique_id=target,
                           period=config.season_length, freq=config.freq),
        plot_autocorrelation(df_clean, figures / "autocorrelation.png", unique_id=target,
                             season_length=config.season_length, freq=config.freq),
        plot_forecasts(df_clean, predictions, figures / "forecasts.png", level=config.level,
                       title="Forecasts from all models"),
    ]
    if holdout_forecasts is not None:
        train_only = df_clean[df_clean["ds"] < holdout_forecasts["ds"].min()]
        images.append(plot_forecasts(train_only, holdout_forecasts, figures / "holdout_forecasts.png",
                                     level=config.level, title="Holdout forecasts vs actual"))
    if horizon_accuracy is not None:
        images.append(plot_accuracy_by_horizon(horizon_accuracy, figures / "mape_by_horizon.png", "mape"))
        images.append(plot_accuracy_by_horizon(horizon_accuracy, figures / "mpe_by_horizon.png", "mpe"))

    path = render_site(
        config.site_path(),
        history=df_clean,
        forecasts=predictions,
        holdout_accuracy=holdout_accuracy,
        cv_accuracy=cv_accuracy,
        horizon_accuracy=horizon_accuracy,
        images=images,
        level=config.level,
    )
    logger.info(f"[report] wrote site: {path}")
    return str(path)


def run_full_pipeline(config: PipelineConfig) -> Dict:
    """
    Runs tasks in order and returns a summary dict.
    """
    logger.info("=" * 60)
    logger.info("START PIPELINE")
    logger.info("=" * 60)

    run_id = config.run_id()
    logger.info(f"Pipeline run_id: {run_id}")

    raw = ingest_sales(config)
    clean = prepare_clean(raw, config)
    integrity = validate_clean(clean, config)
    holdout_accuracy = evaluate_holdout_task(clean, config)
    leaderboard = cross_validate_task(clean, config)
    predictions = forecast_publish(clean, config)
    site = render_report(clean, predictions, config)

    best_holdout = holdout_accuracy.iloc[0] if len(holdout_accuracy) else None
    best_cv = leaderboard.iloc[0] if len(leaderboard) else None

    out = {
        "run_id": run_id,
        "raw_path": raw,
        "clean_path": clean,
        "integrity": integrity["status"],
        "holdout_best_model": best_holdout["model_name"] if best_holdout is not None else None,
        "holdout_best_mape": float(best_holdout["mape"]) if best_holdout is not None else None,
        "cv_best_model": best_cv["model_name"] if best_cv is not None else None,
        "cv_best_mape_mean": float(best_cv["mape_mean"]) if best_cv is not None else None,
        "leaderboard_path": str(config.leaderboard_path()),
        "predictions_path": predictions,
        "site_index": site,
    }

    logger.info("=" * 60)
    logger.info("PIPELINE COMPLETE")
    logger.info("=" * 60)
    return out
