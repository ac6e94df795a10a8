# file: src/series/objects.py
"""
Python equivalents for the ts / tsibble helpers used by the forecasts.
"""

from __future__ import annotations

from typing import Optional, Tuple

import pandas as pd

from src.series.validate import validate_time_index


def to_tsibble(
    df: pd.DataFrame,
    unique_id_col: str = "unique_id",
    ds_col: str = "ds",
    y_col: str = "y",
) -> pd.DataFrame:
    """
    Create a tidy time-series table with columns [unique_id, ds, y].
    """
    missing = [col for col in (unique_id_col, ds_col, y_col) if col not in df.columns]
    if missing:
        raise ValueError(f"Missing required columns: {missing}")

    tidy = df[[unique_id_col, ds_col, y_col]].copy()
    tidy.columns = ["unique_id", "ds", "y"]
    ds = pd.to_datetime(tidy["ds"], errors="raise")
    if getattr(ds.dt, "tz", None) is not None:
        ds = ds.dt.tz_convert("UTC").dt.tz_localize(None)
    tidy["ds"] = ds
    return tidy.sort_values(["unique_id", "ds"]).reset_index(drop=True)


def to_ts_series(
    df: pd.DataFrame,
    unique_id: Optional[str] = None,
    freq: str = "MS",
) -> pd.Series:
    """
    Create a single-series ts object: pd.Series with a regular DatetimeIndex.

    With several series in df, unique_id selects one.
    """
    if unique_id is None:
        ids = df["unique_id"].unique()
        if len(ids) != 1:
            raise ValueError(f"unique_id required, table holds {len(ids)} series")
        unique_id = ids[0]

    sub = df[df["unique_id"] == unique_id].sort_values("ds")
    if sub.empty:
        raise ValueError(f"Unknown series: {unique_id}")

    series = pd.Series(sub["y"].to_numpy(), index=pd.DatetimeIndex(sub["ds"]), name=unique_id)
    return series.asfreq(freq)


def assert_tsibble_contract(df: pd.DataFrame, freq: str = "MS") -> None:
    """
    Raise a ValueError if the tsibble contract is violated.
    """
    result = validate_time_index(df, freq=freq)
    if not result.is_valid:
        raise ValueError(
            f"Invalid tsibble: duplicates={result.n_duplicates}, "
            f"missing_periods={result.n_missing_periods}, "
            f"nulls={result.n_nulls}, "
            f"monotonic={result.is_monotonic}"
        )


def to_wide(df: pd.DataFrame) -> pd.DataFrame:
    """
    One column per unique_id, indexed by ds (the tsbox-style wide view).
    """
    return df.pivot(index="ds", columns="unique_id", values="y").sort_index()


def holdout_split(df: pd.DataFrame, horizon: int) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Withhold the last `horizon` periods of every series.

    Returns:
        (train_df, test_df) tuple
    """
    if horizon < 1:
        raise ValueError(f"horizon must be >= 1, got {horizon}")

    df = df.sort_values(["unique_id", "ds"])
    sizes = df.groupby("unique_id").size()
    too_short = sizes[sizes <= horizon]
    if len(too_short):
        raise ValueError(
            f"Series too short for holdout of {horizon}: {too_short.to_dict()}"
        )

    position = df.groupby("unique_id").cumcount(ascending=False)
    test_df = df[position < horizon].reset_index(drop=True)
    train_df = df[position >= horizon].reset_index(drop=True)
    return train_df, test_df


def future_index(last_ds: pd.Timestamp, horizon: int, freq: str = "MS") -> pd.DatetimeIndex:
    """
    The next `horizon` period starts after last_ds.
    """
    return pd.date_range(start=pd.Timestamp(last_ds), periods=horizon + 1, freq=freq)[1:]
