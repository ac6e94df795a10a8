"""
Series: ingest, time normalization, reshaping, integrity gates, ts helpers

Validates that all data quality gates are enforced (not warnings).
"""

import numpy as np
import pandas as pd
import pytest
import requests

from src.series import ingest as ingest_module
from src.series.config import load_settings
from src.series.ingest import pull_sales_csv
from src.series.objects import (assert_tsibble_contract, future_index,
                                holdout_split, to_ts_series, to_tsibble,
                                to_wide)
from src.series.prepare import normalize_time, prepare_for_forecasting
from src.series.validate import format_validation_report, validate_time_index


class _FakeResponse:
    def __init__(self, text, status=200):
        self.text = text
        self.status = status

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.HTTPError(f"{self.status} error")


class TestIngest:

    def test_local_csv_loads_unchanged(self, sales_csv, wide_sales):
        df = pull_sales_csv(sales_csv)
        assert list(df.columns) == ["date", "sales", "red"]
        assert len(df) == len(wide_sales)

    @pytest.mark.fail_loud
    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            pull_sales_csv(tmp_path / "nope.csv")

    @pytest.mark.fail_loud
    def test_header_only_csv_raises(self, tmp_path):
        path = tmp_path / "empty.csv"
        path.write_text("date,sales\n")
        with pytest.raises(ValueError):
            pull_sales_csv(path)

    def test_remote_csv_uses_requests(self, monkeypatch):
        calls = []

        def fake_get(url, timeout):
            calls.append((url, timeout))
            return _FakeResponse("date,sales\n1980-01,15136\n1980-02,16733\n")

        monkeypatch.setattr(ingest_module.requests, "get", fake_get)
        df = pull_sales_csv("https://example.org/wine.csv", timeout=5)

        assert calls == [("https://example.org/wine.csv", 5)]
        assert df["sales"].tolist() == [15136, 16733]

    @pytest.mark.fail_loud
    def test_remote_http_error_propagates(self, monkeypatch):
        monkeypatch.setattr(
            ingest_module.requests, "get",
            lambda url, timeout: _FakeResponse("", status=404),
        )
        with pytest.raises(requests.HTTPError):
            pull_sales_csv("https://example.org/missing.csv")

    @pytest.mark.fail_loud
    def test_remote_empty_body_raises(self, monkeypatch):
        monkeypatch.setattr(
            ingest_module.requests, "get",
            lambda url, timeout: _FakeResponse("   "),
        )
        with pytest.raises(ValueError, match="Empty response"):
            pull_sales_csv("http://example.org/wine.csv")


class TestSettings:

    def test_env_values(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("WINE_DATA_SOURCE", "data/wine.csv")
        monkeypatch.setenv("WINE_DATE_COL", "month")
        monkeypatch.setenv("WINE_VALUE_COLS", "sales, red")

        settings = load_settings()

        assert settings.source == "data/wine.csv"
        assert settings.date_col == "month"
        assert settings.value_cols == ("sales", "red")
        assert settings.target_col == "sales"

    def test_explicit_arguments_win(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("WINE_DATA_SOURCE", "from_env.csv")
        settings = load_settings(source="explicit.csv", value_cols=("total",))
        assert settings.source == "explicit.csv"
        assert settings.value_cols == ("total",)
        assert settings.date_col == "date"

    @pytest.mark.fail_loud
    def test_missing_source_raises(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("WINE_DATA_SOURCE", raising=False)
        with pytest.raises(ValueError, match="WINE_DATA_SOURCE"):
            load_settings()

    def test_optional_source_still_reads_columns(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("WINE_DATA_SOURCE", raising=False)
        monkeypatch.setenv("WINE_VALUE_COLS", "red,sales")
        settings = load_settings(require_source=False)
        assert settings.source == ""
        assert settings.value_cols == ("red", "sales")


class TestNormalizeTime:

    def test_mid_month_dates_snap_to_month_start(self):
        df = pd.DataFrame({"date": ["1980-02-15", "1980-01-31"], "sales": [2.0, 1.0]})
        out = normalize_time(df)
        assert out["date"].tolist() == [pd.Timestamp("1980-01-01"), pd.Timestamp("1980-02-01")]
        assert out["sales"].tolist() == [1.0, 2.0]

    def test_month_names_parse(self):
        df = pd.DataFrame({"date": ["Jan 1980", "Feb 1980"], "sales": [1.0, 2.0]})
        out = normalize_time(df)
        assert out["date"].iloc[1] == pd.Timestamp("1980-02-01")

    def test_timezone_is_dropped(self):
        df = pd.DataFrame({"date": ["1980-01-01T00:00:00+00:00"], "sales": [1.0]})
        out = normalize_time(df)
        assert out["date"].dt.tz is None

    def test_quarterly_frequency(self):
        df = pd.DataFrame({"date": ["1980-02-10", "1980-05-20"], "sales": [1.0, 2.0]})
        out = normalize_time(df, freq="QS")
        assert out["date"].tolist() == [pd.Timestamp("1980-01-01"), pd.Timestamp("1980-04-01")]

    @pytest.mark.fail_loud
    def test_invalid_date_raises(self):
        df = pd.DataFrame({"date": ["1980-01", "INVALID"], "sales": [1.0, 2.0]})
        with pytest.raises((ValueError, TypeError)):
            normalize_time(df)

    @pytest.mark.fail_loud
    def test_missing_date_column_raises(self):
        with pytest.raises(ValueError, match="date column"):
            normalize_time(pd.DataFrame({"month": ["1980-01"]}))


class TestPrepareForForecasting:

    def test_wide_to_long(self, wide_sales):
        df = normalize_time(wide_sales)
        out = prepare_for_forecasting(df, value_cols=("sales", "red"))

        assert list(out.columns) == ["unique_id", "ds", "y"]
        assert sorted(out["unique_id"].unique()) == ["wine_red", "wine_sales"]
        assert len(out) == 2 * len(wide_sales)
        assert out["y"].dtype == float

    @pytest.mark.fail_loud
    def test_non_numeric_raises(self):
        df = normalize_time(pd.DataFrame({
            "date": ["1980-01", "1980-02"],
            "sales": ["100", "NOT_A_NUMBER"],
        }))
        with pytest.raises((ValueError, TypeError)):
            prepare_for_forecasting(df)

    @pytest.mark.fail_loud
    def test_missing_value_column_raises(self, wide_sales):
        with pytest.raises(ValueError, match="Missing required columns"):
            prepare_for_forecasting(normalize_time(wide_sales), value_cols=("rose",))


@pytest.mark.fail_loud
class TestValidateTimeIndex:

    def test_clean_series_passes(self, long_sales):
        result = validate_time_index(long_sales)
        assert result.is_valid
        assert result.n_rows == len(long_sales)
        assert "PASS" in format_validation_report(result)

    def test_gap_detected(self, target_sales):
        gappy = target_sales.drop(index=10)
        result = validate_time_index(gappy)
        assert not result.is_valid
        assert result.n_missing_periods == 1
        assert result.missing_periods == [target_sales.loc[10, "ds"]]

    def test_duplicates_detected(self, target_sales):
        dup = pd.concat([target_sales, target_sales.iloc[[5]]]).sort_values("ds")
        result = validate_time_index(dup)
        assert not result.is_valid
        assert result.n_duplicates == 2

    def test_nulls_detected(self, target_sales):
        df = target_sales.copy()
        df.loc[3, "y"] = np.nan
        result = validate_time_index(df)
        assert not result.is_valid
        assert result.n_nulls == 1

    def test_unsorted_detected(self, target_sales):
        result = validate_time_index(target_sales.iloc[::-1])
        assert not result.is_monotonic
        assert not result.is_valid

    def test_missing_columns_raise(self):
        with pytest.raises(ValueError):
            validate_time_index(pd.DataFrame({"ds": [], "y": []}))


class TestObjects:

    def test_to_tsibble_renames_and_sorts(self):
        df = pd.DataFrame({
            "series": ["a", "a"],
            "month": ["1980-02-01", "1980-01-01"],
            "value": [2.0, 1.0],
        })
        out = to_tsibble(df, unique_id_col="series", ds_col="month", y_col="value")
        assert list(out.columns) == ["unique_id", "ds", "y"]
        assert out["y"].tolist() == [1.0, 2.0]

    def test_to_ts_series_has_monthly_frequency(self, target_sales):
        series = to_ts_series(target_sales)
        assert series.index.freqstr == "MS"
        assert series.name == "wine_sales"
        assert len(series) == len(target_sales)

    @pytest.mark.fail_loud
    def test_to_ts_series_needs_id_for_several_series(self, long_sales):
        with pytest.raises(ValueError, match="unique_id required"):
            to_ts_series(long_sales)
        with pytest.raises(ValueError, match="Unknown series"):
            to_ts_series(long_sales, unique_id="wine_rose")

    def test_to_wide(self, long_sales):
        wide = to_wide(long_sales)
        assert list(wide.columns) == ["wine_red", "wine_sales"]
        assert len(wide) == 120

    @pytest.mark.fail_loud
    def test_contract_violation_raises(self, target_sales):
        with pytest.raises(ValueError, match="Invalid tsibble"):
            assert_tsibble_contract(target_sales.drop(index=20))

    def test_holdout_split_per_series(self, long_sales):
        train, test = holdout_split(long_sales, 24)
        assert len(test) == 48
        assert len(train) == 192
        for uid in ("wine_sales", "wine_red"):
            assert train[train["unique_id"] == uid]["ds"].max() < test[test["unique_id"] == uid]["ds"].min()

    @pytest.mark.fail_loud
    def test_holdout_split_rejects_bad_horizon(self, target_sales):
        with pytest.raises(ValueError):
            holdout_split(target_sales, 0)
        with pytest.raises(ValueError, match="too short"):
            holdout_split(target_sales, len(target_sales))

    def test_future_index(self):
        idx = future_index(pd.Timestamp("1994-08-01"), 3)
        assert list(idx) == [
            pd.Timestamp("1994-09-01"),
            pd.Timestamp("1994-10-01"),
            pd.Timestamp("1994-11-01"),
        ]
