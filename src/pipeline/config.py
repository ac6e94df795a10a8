"""
Pipeline Configuration
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Tuple

ALL_MODELS: Tuple[str, ...] = ("mean", "naive", "drift", "ets", "arima", "var", "nnetar")


@dataclass(frozen=True)
class PipelineConfig:
    # Data parameters
    source: str = ""
    date_col: str = "date"
    value_cols: Tuple[str, ...] = ("sales",)
    unique_id_prefix: str = "wine"
    freq: str = "MS"

    # IO
    data_dir: str = "data"
    artifacts_dir: str = "artifacts"
    site_dir: str = "public"
    overwrite: bool = False

    # Forecasting / backtest
    models: Tuple[str, ...] = ALL_MODELS
    horizon: int = 24
    init: int = 60
    step: int = 12
    season_length: int = 12
    level: int = 95
    nnetar_repeats: int = 20
    primary_metric: str = "mape"

    def run_id(self) -> str:
        return datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")

    def target_id(self) -> str:
        return f"{self.unique_id_prefix}_{self.value_cols[0]}"

    def model_kwargs(self) -> Dict[str, Dict]:
        return {"nnetar": {"repeats": self.nnetar_repeats}}

    def data_path(self) -> Path:
        return Path(self.data_dir)

    def artifacts_path(self) -> Path:
        return Path(self.artifacts_dir)

    def site_path(self) -> Path:
        return Path(self.site_dir)

    def raw_path(self) -> Path:
        return self.data_path() / "raw.parquet"

    def clean_path(self) -> Path:
        return self.data_path() / "clean.parquet"

    def metadata_path(self) -> Path:
        return self.data_path() / "metadata.json"

    def holdout_forecasts_path(self) -> Path:
        return self.artifacts_path() / "holdout_forecasts.parquet"

    def holdout_accuracy_path(self) -> Path:
        return self.artifacts_path() / "holdout_accuracy.parquet"

    def cv_results_path(self) -> Path:
        return self.artifacts_path() / "cv_results.parquet"

    def cv_forecasts_path(self) -> Path:
        return self.artifacts_path() / "cv_forecasts.parquet"

    def cv_splits_path(self) -> Path:
        return self.artifacts_path() / "cv_splits.json"

    def cv_accuracy_path(self) -> Path:
        return self.artifacts_path() / "cv_accuracy.parquet"

    def horizon_accuracy_path(self) -> Path:
        return self.artifacts_path() / "horizon_accuracy.parquet"

    def leaderboard_path(self) -> Path:
        return self.artifacts_path() / "leaderboard.parquet"

    def predictions_path(self) -> Path:
        return self.artifacts_path() / "predictions.parquet"

    def figures_path(self) -> Path:
        return self.artifacts_path() / "figures"

    def index_path(self) -> Path:
        return self.site_path() / "index.html"

