"""
Forecasting: Rolling-Origin Splits

Cross-validation on a "stretched" table: every fold trains from the first
month up to a forecast origin and tests on the next `test_size` months.
The origin advances by `step_size`; origins whose test window would run past
the data are dropped. `window_size` turns the stretch into a sliding window.

Splits are checked before any model is fitted (check_splits) and can be
written out as JSON (describe_splits) next to the cross-validation results.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BacktestSplit:
    """One fold: positions into the sorted series plus their dates"""
    split_id: int
    train_start: pd.Timestamp
    train_end: pd.Timestamp
    test_start: pd.Timestamp
    test_end: pd.Timestamp
    train_indices: np.ndarray
    test_indices: np.ndarray

    def __post_init__(self):
        if self.train_end >= self.test_start:
            raise ValueError(
                f"Train/test leakage in split {self.split_id}: "
                f"origin {self.train_end} is not before {self.test_start}"
            )

    @property
    def origin(self) -> pd.Timestamp:
        """Last training month; forecasts are made from here"""
        return self.train_end

    @property
    def train_size(self) -> int:
        return len(self.train_indices)

    @property
    def test_size(self) -> int:
        return len(self.test_indices)

    def to_dict(self) -> Dict:
        return {
            "split_id": self.split_id,
            "train_start": self.train_start.date().isoformat(),
            "origin": self.train_end.date().isoformat(),
            "test_start": self.test_start.date().isoformat(),
            "test_end": self.test_end.date().isoformat(),
            "train_size": self.train_size,
            "test_size": self.test_size,
        }


def _series(data: pd.DataFrame, unique_id: str) -> pd.DataFrame:
    series = data[data["unique_id"] == unique_id].sort_values("ds").reset_index(drop=True)
    if series.empty:
        raise ValueError(f"Unknown series: {unique_id}")
    return series


class RollingOriginBacktest:
    """Rolling-origin cross-validation folds for one series"""

    def __init__(
        self,
        min_train_size: int = 60,
        test_size: int = 24,
        step_size: int = 12,
        window_size: Optional[int] = None,
    ):
        """
        Args:
            min_train_size: Months before the first origin (init)
            test_size: Months forecast from every origin (horizon)
            step_size: Months between consecutive origins (step)
            window_size: Fixed training length; None trains from the first month
        """
        if min_train_size < 1 or test_size < 1 or step_size < 1:
            raise ValueError("min_train_size, test_size and step_size must be >= 1")
        if window_size is not None and window_size < 1:
            raise ValueError(f"window_size must be >= 1, got {window_size}")

        self.min_train_size = min_train_size
        self.test_size = test_size
        self.step_size = step_size
        self.window_size = window_size

    def origins(self, n_obs: int) -> np.ndarray:
        """Training lengths of every complete fold for a series of n_obs months"""
        last = n_obs - self.test_size
        if last < self.min_train_size:
            raise ValueError(
                f"Series too short: {n_obs} months < "
                f"init {self.min_train_size} + horizon {self.test_size}"
            )
        return np.arange(self.min_train_size, last + 1, self.step_size)

    def generate_splits(self, data: pd.DataFrame, unique_id: str) -> List[BacktestSplit]:
        """
        Folds for one series of a [unique_id, ds, y] table.

        Returns:
            BacktestSplit per origin, earliest first
        """
        ds = _series(data, unique_id)["ds"].reset_index(drop=True)

        splits = []
        for split_id, n_train in enumerate(self.origins(len(ds))):
            start = 0 if self.window_size is None else max(0, n_train - self.window_size)
            test_indices = np.arange(n_train, n_train + self.test_size)
            splits.append(BacktestSplit(
                split_id=split_id,
                train_start=ds.iloc[start],
                train_end=ds.iloc[n_train - 1],
                test_start=ds.iloc[n_train],
                test_end=ds.iloc[test_indices[-1]],
                train_indices=np.arange(start, n_train),
                test_indices=test_indices,
            ))

        logger.info(
            f"{unique_id}: {len(splits)} rolling origins "
            f"({splits[0].origin.date()} .. {splits[-1].origin.date()}, step {self.step_size})"
        )
        return splits

    def split_frames(
        self,
        data: pd.DataFrame,
        unique_id: str,
        split: BacktestSplit,
    ) -> Tuple[pd.DataFrame, pd.DataFrame]:
        """(train_df, test_df) rows of one series for a fold"""
        series = _series(data, unique_id)
        return series.iloc[split.train_indices].copy(), series.iloc[split.test_indices].copy()


def check_splits(
    splits: List[BacktestSplit],
    n_obs: int,
    min_train_size: int,
    test_size: int,
) -> List[str]:
    """
    Problems with a set of folds; an empty list means they are usable.

    Checks temporal order, disjoint and in-range positions, minimum training
    length, full test windows and strictly increasing origins.
    """
    problems = []
    for split in splits:
        tag = f"split {split.split_id}"
        if split.train_end >= split.test_start:
            problems.append(f"{tag}: origin not before test start")
        if np.intersect1d(split.train_indices, split.test_indices).size:
            problems.append(f"{tag}: train and test positions overlap")
        if split.test_indices.max() >= n_obs:
            problems.append(f"{tag}: test window runs past the data")
        if split.train_size < min(min_train_size, n_obs):
            problems.append(f"{tag}: {split.train_size} training months < {min_train_size}")
        if split.test_size != test_size:
            problems.append(f"{tag}: {split.test_size} test months != {test_size}")

    origins = [split.origin for split in splits]
    if any(later <= earlier for earlier, later in zip(origins, origins[1:])):
        problems.append("origins are not strictly increasing")
    return problems


def describe_splits(
    backtest: RollingOriginBacktest,
    unique_id: str,
    splits: List[BacktestSplit],
) -> Dict:
    """JSON-ready summary of the folds and the settings that produced them"""
    return {
        "unique_id": unique_id,
        "init": backtest.min_train_size,
        "horizon": backtest.test_size,
        "step": backtest.step_size,
        "window_size": backtest.window_size,
        "n_splits": len(splits),
        "splits": [split.to_dict() for split in splits],
    }
