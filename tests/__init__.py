"""
Winecast Test Suite

Tests organized by package:
- test_series.py: ingest, time normalization, fail-loud integrity gates
- test_metrics.py: accuracy metrics (sign convention, NaN handling)
- test_backtesting.py: rolling-origin split correctness
- test_models.py: the seven forecasting models
- test_training.py: holdout, cross-validation, leaderboard
- test_reporting.py: plots and rendered site
- test_deploy.py: rsync mirroring
- test_pipeline.py: idempotent tasks and CLI (smoke)
"""
