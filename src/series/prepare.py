"""
Series Step 3: Prepare / Normalize Time

Standardize dates to period starts and create canonical columns:
- unique_id: series identifier
- ds: period start (timezone-naive)
- y: numeric value
"""

import logging
from typing import Sequence

import pandas as pd

logger = logging.getLogger(__name__)

# Timestamp frequency -> Period frequency (period starts drop the "S" anchor)
_PERIOD_ALIASES = {
    "MS": "M",
    "ME": "M",
    "QS": "Q",
    "QE": "Q",
    "YS": "Y",
    "AS": "Y",
    "YE": "Y",
}


def normalize_time(df: pd.DataFrame, date_col: str = "date", freq: str = "MS") -> pd.DataFrame:
    """
    Parse the date column and snap every date to the start of its period.

    "1980-01", "1980-01-15" and "Jan 1980" all become 1980-01-01 for the
    default monthly frequency. Unparseable dates raise.

    Args:
        df: Raw DataFrame from pull_sales_csv
        date_col: Name of the date column
        freq: Pandas frequency of the series ("MS" = month start)

    Returns:
        Copy of df with a parsed, snapped, sorted date column
    """
    if date_col not in df.columns:
        raise ValueError(f"Missing required date column: {date_col}")

    df = df.copy()

    parsed = pd.to_datetime(df[date_col], errors="raise")
    if getattr(parsed.dt, "tz", None) is not None:
        parsed = parsed.dt.tz_localize(None)

    df[date_col] = parsed.dt.to_period(_PERIOD_ALIASES.get(freq, freq)).dt.to_timestamp()

    df = df.sort_values(date_col).reset_index(drop=True)

    logger.info(f"Normalized: {len(df)} rows, {df[date_col].min()} to {df[date_col].max()}")

    return df


def prepare_for_forecasting(
    df: pd.DataFrame,
    date_col: str = "date",
    value_cols: Sequence[str] = ("sales",),
    unique_id_prefix: str = "wine",
) -> pd.DataFrame:
    """
    Reshape a wide sales table to long [unique_id, ds, y] format.

    Each value column becomes one series named "{prefix}_{column}". Values
    must be numeric; anything else raises (no silent NaN coercion).

    Args:
        df: DataFrame from normalize_time
        date_col: Name of the date column
        value_cols: Value columns to keep (target first)
        unique_id_prefix: Prefix for series identifiers

    Returns:
        DataFrame with columns [unique_id, ds, y], sorted by unique_id, ds
    """
    value_cols = list(value_cols)
    missing = [col for col in [date_col] + value_cols if col not in df.columns]
    if missing:
        raise ValueError(f"Missing required columns: {missing}")

    frames = []
    for col in value_cols:
        frames.append(pd.DataFrame({
            "unique_id": f"{unique_id_prefix}_{col}",
            "ds": df[date_col].values,
            "y": pd.to_numeric(df[col], errors="raise").astype(float).values,
        }))

    df_forecast = pd.concat(frames, ignore_index=True)
    df_forecast["ds"] = pd.to_datetime(df_forecast["ds"])
    df_forecast = df_forecast.sort_values(["unique_id", "ds"]).reset_index(drop=True)

    logger.info(
        f"Forecast format: {len(df_forecast)} rows, "
        f"series={df_forecast['unique_id'].unique().tolist()}"
    )

    return df_forecast
