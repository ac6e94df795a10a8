"""
Pipeline: idempotent tasks end to end and the typer CLI

Runs on a small model subset so the full chain stays fast.
"""

import dataclasses
import json

import pandas as pd
import pytest
from typer.testing import CliRunner

from src.pipeline import cli as cli_module
from src.pipeline.cli import _strip_ipykernel_args, app
from src.pipeline.config import ALL_MODELS, PipelineConfig
from src.pipeline.tasks import (cross_validate_task, evaluate_holdout_task,
                                ingest_sales, prepare_clean,
                                run_full_pipeline, validate_clean)

FAST_MODELS = ("mean", "naive", "drift", "var")


@pytest.fixture
def cfg(tmp_path, sales_csv):
    return PipelineConfig(
        source=str(sales_csv),
        value_cols=("sales", "red"),
        models=FAST_MODELS,
        data_dir=str(tmp_path / "data"),
        artifacts_dir=str(tmp_path / "artifacts"),
        site_dir=str(tmp_path / "public"),
    )


class TestConfig:

    def test_defaults(self):
        cfg = PipelineConfig()
        assert (cfg.horizon, cfg.init, cfg.step, cfg.season_length, cfg.level) == (24, 60, 12, 12, 95)
        assert cfg.models == ALL_MODELS
        assert cfg.target_id() == "wine_sales"
        assert str(cfg.leaderboard_path()).endswith("artifacts/leaderboard.parquet")

    def test_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            PipelineConfig().horizon = 12


class TestTasks:

    def test_ingest_prepare_validate(self, cfg):
        raw = ingest_sales(cfg)
        clean = prepare_clean(raw, cfg)
        report = validate_clean(clean, cfg)

        df = pd.read_parquet(clean)
        metadata = json.loads(cfg.metadata_path().read_text())

        assert report["status"] == "valid"
        assert report["n_rows"] == 240
        assert list(df.columns) == ["unique_id", "ds", "y"]
        assert metadata["target"] == "wine_sales"
        assert metadata["series"] == ["wine_red", "wine_sales"]

    def test_ingest_is_idempotent(self, cfg, sales_csv):
        ingest_sales(cfg)
        sales_csv.unlink()

        # existing raw snapshot is reused
        assert ingest_sales(cfg) == str(cfg.raw_path())

        with pytest.raises(FileNotFoundError):
            ingest_sales(dataclasses.replace(cfg, overwrite=True))

    @pytest.mark.fail_loud
    def test_ingest_without_source_raises(self, cfg):
        with pytest.raises(ValueError, match="No data source"):
            ingest_sales(dataclasses.replace(cfg, source=""))

    @pytest.mark.fail_loud
    def test_validate_rejects_gap(self, cfg, long_sales):
        path = cfg.clean_path()
        path.parent.mkdir(parents=True)
        long_sales.drop(index=7).to_parquet(path, index=False)

        with pytest.raises(ValueError, match="1 missing periods"):
            validate_clean(str(path), cfg)

    def test_holdout_and_cv_artifacts(self, cfg):
        clean = prepare_clean(ingest_sales(cfg), cfg)

        holdout = evaluate_holdout_task(clean, cfg)
        leaderboard = cross_validate_task(clean, cfg)

        assert sorted(holdout["model_name"]) == sorted(FAST_MODELS)
        assert sorted(leaderboard["model_name"]) == sorted(FAST_MODELS)
        for path in (
            cfg.holdout_forecasts_path(),
            cfg.cv_results_path(),
            cfg.cv_forecasts_path(),
            cfg.cv_accuracy_path(),
            cfg.cv_splits_path(),
        ):
            assert path.exists()

        horizon = pd.read_parquet(cfg.horizon_accuracy_path())
        assert len(horizon) == 24 * len(FAST_MODELS)
        assert set(horizon["step"]) == set(range(1, 25))

        splits = json.loads(cfg.cv_splits_path().read_text())
        assert splits["n_splits"] == 4
        assert splits["splits"][0]["origin"] == "1984-12-01"

    @pytest.mark.smoke
    def test_full_pipeline(self, cfg):
        summary = run_full_pipeline(cfg)

        assert summary["integrity"] == "valid"
        assert summary["holdout_best_model"] in FAST_MODELS
        assert summary["cv_best_model"] in FAST_MODELS

        predictions = pd.read_parquet(summary["predictions_path"])
        assert len(predictions) == 24 * len(FAST_MODELS)
        assert predictions["ds"].min() == pd.Timestamp("1990-01-01")
        assert {"yhat_lo_95", "yhat_hi_95"} <= set(predictions.columns)

        assert cfg.index_path().exists()
        assert (cfg.figures_path() / "mape_by_horizon.png").exists()
        assert (cfg.site_path() / "img" / "forecasts.png").exists()


class TestCLI:

    runner = CliRunner()

    def test_strip_ipykernel_args(self):
        argv = ["cli.py", "-f", "kernel.json", "run", "--f=x", "--horizon", "12"]
        assert _strip_ipykernel_args(argv) == ["cli.py", "run", "--horizon", "12"]

    @pytest.mark.smoke
    def test_run_then_accuracy(self, tmp_path, sales_csv, monkeypatch):
        monkeypatch.chdir(tmp_path)
        artifacts = tmp_path / "artifacts"

        result = self.runner.invoke(app, [
            "run",
            "--source", str(sales_csv),
            "--value-cols", "sales,red",
            "--models", "mean,naive",
            "--horizon", "12",
            "--data-dir", str(tmp_path / "data"),
            "--artifacts-dir", str(artifacts),
            "--site-dir", str(tmp_path / "public"),
        ])
        assert result.exit_code == 0, result.output
        assert "Pipeline Results" in result.output
        assert (tmp_path / "public" / "index.html").exists()

        result = self.runner.invoke(app, ["accuracy", "--artifacts-dir", str(artifacts)])
        assert result.exit_code == 0, result.output
        assert "Leaderboard" in result.output

    def test_accuracy_without_artifacts_fails(self, tmp_path):
        result = self.runner.invoke(app, ["accuracy", "--artifacts-dir", str(tmp_path)])
        assert result.exit_code == 1

    @pytest.mark.fail_loud
    def test_run_without_source_fails(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("WINE_DATA_SOURCE", raising=False)
        result = self.runner.invoke(app, ["run", "--data-dir", str(tmp_path / "data")])
        assert result.exit_code != 0
        assert isinstance(result.exception, ValueError)

    def test_rerun_without_source_uses_env_columns(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("WINE_DATA_SOURCE", raising=False)
        monkeypatch.setenv("WINE_VALUE_COLS", "red,sales")
        monkeypatch.setenv("WINE_DATE_COL", "month")
        data_dir = tmp_path / "data"
        data_dir.mkdir()
        pd.DataFrame({"month": ["1980-01"], "red": [1.0], "sales": [2.0]}).to_parquet(
            data_dir / "raw.parquet", index=False
        )
        captured = []
        monkeypatch.setattr(cli_module, "run_full_pipeline", lambda cfg: captured.append(cfg) or {})

        result = self.runner.invoke(app, ["run", "--data-dir", str(data_dir)])

        assert result.exit_code == 0, result.output
        cfg = captured[0]
        assert cfg.source == ""
        assert cfg.value_cols == ("red", "sales")
        assert cfg.date_col == "month"
        assert cfg.target_id() == "wine_red"

    def test_deploy_exit_status(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("DEPLOY_USER", "wine")
        monkeypatch.setenv("DEPLOY_HOST", "example.org")
        monkeypatch.setenv("DEPLOY_DIR", "www")
        calls = []

        def fake_sync(config, dry_run=False):
            calls.append((config.destination(), dry_run))
            return 23

        monkeypatch.setattr(cli_module, "sync_site", fake_sync)
        result = self.runner.invoke(app, ["deploy", "--dry-run", "--local-dir", "site"])

        assert result.exit_code == 23
        assert calls == [("wine@example.org:~/www", True)]
