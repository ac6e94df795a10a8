"""
Shared fixtures: synthetic monthly sales (trend + 12-month season + noise).

No network or real dataset is needed; every table is generated here.
"""

import numpy as np
import pandas as pd
import pytest


def make_monthly_sales(n_months=120, start="1980-01-01", seed=0):
    """Wide table as it would arrive in a CSV: date, sales, red"""
    rng = np.random.default_rng(seed)
    t = np.arange(n_months)
    season = np.sin(2 * np.pi * t / 12)

    sales = 25000 + 40 * t + 6000 * season + rng.normal(0, 800, n_months)
    red = 1500 + 5 * t + 300 * season + rng.normal(0, 60, n_months)

    return pd.DataFrame({
        "date": pd.date_range(start, periods=n_months, freq="MS").strftime("%Y-%m"),
        "sales": sales.round(0),
        "red": red.round(0),
    })


def to_long(wide, value_cols=("sales", "red"), prefix="wine"):
    frames = [
        pd.DataFrame({
            "unique_id": f"{prefix}_{col}",
            "ds": pd.to_datetime(wide["date"]),
            "y": wide[col].astype(float),
        })
        for col in value_cols
    ]
    return pd.concat(frames, ignore_index=True).sort_values(["unique_id", "ds"]).reset_index(drop=True)


@pytest.fixture
def wide_sales():
    return make_monthly_sales()


@pytest.fixture
def long_sales(wide_sales):
    return to_long(wide_sales)


@pytest.fixture
def target_sales(long_sales):
    return long_sales[long_sales["unique_id"] == "wine_sales"].reset_index(drop=True)


@pytest.fixture
def sales_csv(tmp_path, wide_sales):
    path = tmp_path / "wine.csv"
    wide_sales.to_csv(path, index=False)
    return path
