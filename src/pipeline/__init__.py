"""
Pipeline: Automation (ingest -> validate -> evaluate -> forecast -> report)

This module provides:
1. Idempotent pipeline tasks (tasks.py)
2. Typer CLI for local execution (cli.py)

Usage (CLI):
    winecast run --source data/wine.csv
    winecast accuracy
    winecast deploy --dry-run

Usage (Python):
    from src.pipeline import PipelineConfig, run_full_pipeline
"""

from .config import ALL_MODELS, PipelineConfig
from .tasks import (cross_validate_task, evaluate_holdout_task,
                    forecast_publish, ingest_sales, prepare_clean,
                    render_report, run_full_pipeline, validate_clean)

__all__ = [
    "ALL_MODELS",
    "PipelineConfig",
    "ingest_sales",
    "prepare_clean",
    "validate_clean",
    "evaluate_holdout_task",
    "cross_validate_task",
    "forecast_publish",
    "render_report",
    "run_full_pipeline",
]
