"""
Forecasting: Metrics Tests

Validates sign conventions and NaN-aware behavior (explicit masking, not
silent ignoring).
"""

import numpy as np
import pandas as pd
import pytest

from src.forecasting.evaluation import (METRIC_COLS, ForecastMetrics,
                                        accuracy_table, aggregate_metrics,
                                        compute_series_metrics)


class TestPointMetrics:

    def test_known_values(self):
        y_true = np.array([100.0, 200.0])
        y_pred = np.array([90.0, 220.0])

        # errors e = actual - forecast = [10, -20]
        assert ForecastMetrics.me(y_true, y_pred) == pytest.approx(-5.0)
        assert ForecastMetrics.mae(y_true, y_pred) == pytest.approx(15.0)
        assert ForecastMetrics.rmse(y_true, y_pred) == pytest.approx(np.sqrt(250.0))
        assert ForecastMetrics.mpe(y_true, y_pred) == pytest.approx(0.0)
        assert ForecastMetrics.mape(y_true, y_pred) == pytest.approx(10.0)

    def test_under_forecast_is_positive_bias(self):
        y_true = np.array([110.0, 110.0])
        y_pred = np.array([100.0, 100.0])
        assert ForecastMetrics.me(y_true, y_pred) > 0
        assert ForecastMetrics.mpe(y_true, y_pred) > 0

    def test_mase_against_seasonal_naive(self):
        y_train = np.arange(24, dtype=float)  # seasonal differences all 12
        y_true = np.array([30.0, 31.0])
        y_pred = np.array([24.0, 25.0])
        assert ForecastMetrics.mase(y_true, y_pred, y_train, season_length=12) == pytest.approx(0.5)

    def test_coverage(self):
        y_true = np.array([1.0, 5.0, 10.0, np.nan])
        lower = np.zeros(4)
        upper = np.full(4, 6.0)
        assert ForecastMetrics.coverage(y_true, lower, upper) == pytest.approx(100 * 2 / 3)


@pytest.mark.fail_loud
class TestMetricsNaNHandling:
    """Metrics must explicitly handle NaN via masking, not silent ignoring"""

    def test_rmse_nan_masked(self):
        y_true = np.array([100.0, 102.0, np.nan, 106.0])
        y_pred = np.array([99.0, 101.0, 104.0, 107.0])
        assert ForecastMetrics.rmse(y_true, y_pred) == pytest.approx(1.0)

    def test_all_nan_returns_nan(self):
        y = np.array([np.nan, np.nan])
        for name in ("me", "rmse", "mae", "mpe", "mape"):
            assert np.isnan(getattr(ForecastMetrics, name)(y, y))

    def test_percentage_metrics_skip_zero_actuals(self):
        y_true = np.array([0.0, 100.0])
        y_pred = np.array([5.0, 90.0])
        assert ForecastMetrics.mape(y_true, y_pred) == pytest.approx(10.0)
        assert ForecastMetrics.mpe(y_true, y_pred) == pytest.approx(10.0)

    def test_mase_short_training_is_nan(self):
        y = np.array([1.0, 2.0])
        assert np.isnan(ForecastMetrics.mase(y, y, np.arange(12, dtype=float), season_length=12))

    def test_mase_flat_training_is_nan(self):
        y = np.array([1.0, 2.0])
        assert np.isnan(ForecastMetrics.mase(y, y, np.ones(30), season_length=12))

    def test_series_metrics_insufficient_valid(self):
        metrics = compute_series_metrics(
            np.array([np.nan, 1.0]), np.array([1.0, np.nan]), valid_threshold=1
        )
        assert metrics["valid_count"] == 0
        assert "error" in metrics
        assert all(np.isnan(metrics[col]) for col in METRIC_COLS)

    def test_series_metrics_complete(self):
        metrics = compute_series_metrics(
            np.array([10.0, 12.0]), np.array([11.0, 12.0]),
            y_train=np.arange(30, dtype=float),
        )
        assert metrics["valid_count"] == 2
        assert set(METRIC_COLS) <= set(metrics)
        assert np.isfinite(metrics["mase"])


class TestAccuracyTable:

    @pytest.fixture
    def forecasts(self):
        return pd.DataFrame({
            "model_name": ["naive", "naive", "mean", "mean"],
            "step": [1, 2, 1, 2],
            "yhat": [100.0, 100.0, 95.0, 105.0],
            "actual": [100.0, 110.0, 100.0, 100.0],
        })

    def test_by_model(self, forecasts):
        table = accuracy_table(forecasts, by=["model_name"])
        assert list(table.columns) == ["model_name", "me", "rmse", "mae", "mpe", "mape", "n"]
        naive = table.set_index("model_name").loc["naive"]
        assert naive["mae"] == pytest.approx(5.0)
        assert naive["me"] == pytest.approx(5.0)
        assert naive["n"] == 2

    def test_by_model_and_step(self, forecasts):
        table = accuracy_table(forecasts, by=["model_name", "step"], metrics=["mape"])
        assert len(table) == 4
        row = table[(table["model_name"] == "mean") & (table["step"] == 2)].iloc[0]
        assert row["mape"] == pytest.approx(5.0)

    @pytest.mark.fail_loud
    def test_missing_actual_raises(self, forecasts):
        with pytest.raises(ValueError, match="actual"):
            accuracy_table(forecasts.drop(columns="actual"))


def test_aggregate_metrics_by_model():
    results = pd.DataFrame({
        "model_name": ["a", "a", "b"],
        "rmse": [1.0, 3.0, 2.0],
        "mape": [10.0, 30.0, 20.0],
    })
    agg = aggregate_metrics(results, by="model_name")
    assert agg.loc["a", ("rmse", "mean")] == pytest.approx(2.0)
    assert agg.loc["b", ("mape", "count")] == 1
