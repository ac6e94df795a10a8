"""
Forecasting: Model comparison framework

Implements the forecasting workflow for the sales series:
- Seven models (mean, naive, drift, ETS, ARIMA, VAR, NNETAR)
- Holdout evaluation and rolling-origin cross-validation
- Accuracy metrics (ME, RMSE, MAE, MPE, MAPE, MASE) by model and horizon
- Model comparison and selection
"""

from .backtesting import (BacktestSplit, RollingOriginBacktest,
                          check_splits, describe_splits)
from .evaluation import (ForecastMetrics, accuracy_table, aggregate_metrics,
                         compute_series_metrics)
from .models import (ARIMAModel, DriftModel, ETSModel, ForecastModel,
                     MeanModel, ModelFactory, NaiveModel,
                     NNETARModel, VARModel)
from .training import (DEFAULT_MODELS, ModelSelector, TrainingPipeline,
                       evaluate_holdout, fit_models, forecast_models)

__all__ = [
    # Backtesting
    "BacktestSplit",
    "RollingOriginBacktest",
    "check_splits",
    "describe_splits",
    # Models
    "ForecastModel",
    "MeanModel",
    "NaiveModel",
    "DriftModel",
    "ETSModel",
    "ARIMAModel",
    "VARModel",
    "NNETARModel",
    "ModelFactory",
    # Evaluation
    "ForecastMetrics",
    "compute_series_metrics",
    "aggregate_metrics",
    "accuracy_table",
    # Training
    "DEFAULT_MODELS",
    "fit_models",
    "forecast_models",
    "evaluate_holdout",
    "TrainingPipeline",
    "ModelSelector",
]
