"""
Series: Monthly sales tables

Simple, step-by-step functions:
1. config - Load data source settings (.env / environment)
2. ingest - Read the sales CSV from disk or over HTTP
3. prepare - Snap dates to month starts, reshape to [unique_id, ds, y]
4. validate - Check time series integrity
5. objects - tsibble-style helpers (contract, wide pivot, holdout split)
"""

from .config import Settings, load_settings
from .ingest import pull_sales_csv
from .objects import (assert_tsibble_contract, future_index, holdout_split,
                      to_ts_series, to_tsibble, to_wide)
from .prepare import normalize_time, prepare_for_forecasting
from .validate import (ValidationResult, format_validation_report,
                       print_validation_report, validate_time_index)

__all__ = [
    "Settings",
    "load_settings",
    "pull_sales_csv",
    "normalize_time",
    "prepare_for_forecasting",
    "ValidationResult",
    "validate_time_index",
    "format_validation_report",
    "print_validation_report",
    "to_tsibble",
    "to_ts_series",
    "to_wide",
    "assert_tsibble_contract",
    "holdout_split",
    "future_index",
]
