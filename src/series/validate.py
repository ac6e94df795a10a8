"""
Series Step 4: Validate Time Series Integrity

Hard gates for data quality:
- Uniqueness: no duplicates on [unique_id, ds]
- Frequency: expected regular index vs observed (per series)
- Monotonic: increasing time
- Values: nulls, min/max bounds
"""

from dataclasses import dataclass
from typing import List

import pandas as pd


@dataclass
class ValidationResult:
    """Results of time series validation"""
    is_valid: bool
    n_rows: int
    n_duplicates: int
    n_missing_periods: int
    missing_periods: List[pd.Timestamp]
    n_nulls: int
    value_min: float
    value_max: float
    is_monotonic: bool


def validate_time_index(df: pd.DataFrame, freq: str = "MS") -> ValidationResult:
    """
    Validate time series integrity for forecasting.

    Checks:
    1. No duplicates on [unique_id, ds]
    2. Expected frequency vs observed (missing periods, per series)
    3. Monotonic increasing time within each series
    4. Value sanity (nulls, bounds)

    Args:
        df: DataFrame with columns [unique_id, ds, y]
        freq: Expected pandas frequency ("MS" for monthly)

    Returns:
        ValidationResult with detailed findings
    """
    missing_cols = [c for c in ("unique_id", "ds", "y") if c not in df.columns]
    if missing_cols:
        raise ValueError(f"Expected unique_id/ds/y, missing {missing_cols}")

    # Check 1: Duplicates
    duplicates = df.duplicated(subset=["unique_id", "ds"], keep=False)
    n_duplicates = int(duplicates.sum())

    missing_periods: List[pd.Timestamp] = []
    is_monotonic = True

    for _, sub in df.groupby("unique_id", sort=False):
        # Check 3: Monotonic (as stored, not after sorting)
        if not sub["ds"].is_monotonic_increasing:
            is_monotonic = False

        # Check 2: Missing periods
        if sub.empty:
            continue
        expected_range = pd.date_range(
            start=sub["ds"].min(),
            end=sub["ds"].max(),
            freq=freq,
        )
        missing_periods.extend(sorted(set(expected_range) - set(sub["ds"])))

    # Check 4: Value checks
    n_nulls = int(df["y"].isna().sum())
    value_min = float(df["y"].min()) if len(df) else float("nan")
    value_max = float(df["y"].max()) if len(df) else float("nan")

    is_valid = (
        n_duplicates == 0
        and len(missing_periods) == 0
        and n_nulls == 0
        and is_monotonic
    )

    return ValidationResult(
        is_valid=is_valid,
        n_rows=len(df),
        n_duplicates=n_duplicates,
        n_missing_periods=len(missing_periods),
        missing_periods=missing_periods[:10],  # First 10 only
        n_nulls=n_nulls,
        value_min=value_min,
        value_max=value_max,
        is_monotonic=is_monotonic,
    )


def format_validation_report(result: ValidationResult) -> str:
    """Human-readable validation report"""
    status = "PASS" if result.is_valid else "FAIL"
    lines = [
        f"=== Validation Report: {status} ===",
        f"Rows: {result.n_rows}",
        f"Duplicates: {result.n_duplicates}",
        f"Missing periods: {result.n_missing_periods}",
    ]
    if result.missing_periods:
        lines.append(f"  First missing: {result.missing_periods[:5]}")
    lines.extend([
        f"Null values: {result.n_nulls}",
        f"Value range: {result.value_min:.0f} to {result.value_max:.0f}",
        f"Monotonic: {result.is_monotonic}",
    ])
    return "\n".join(lines)


def print_validation_report(result: ValidationResult) -> None:
    print("\n" + format_validation_report(result))
