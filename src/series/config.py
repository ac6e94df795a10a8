"""
Series Step 1: Data Source Settings

Keep the dataset location in env (prod) / .env (local).
Use a Settings object so every run logs the same config.
"""

import os
from dataclasses import dataclass
from typing import Optional, Tuple

from dotenv import load_dotenv


@dataclass
class Settings:
    """Configuration for the wine sales dataset"""
    source: str
    date_col: str = "date"
    value_cols: Tuple[str, ...] = ("sales",)
    unique_id: str = "wine"
    freq: str = "MS"

    @property
    def target_col(self) -> str:
        return self.value_cols[0]


def _split_cols(raw: Optional[str]) -> Tuple[str, ...]:
    if not raw:
        return ()
    return tuple(col.strip() for col in raw.split(",") if col.strip())


def load_settings(
    source: Optional[str] = None,
    date_col: Optional[str] = None,
    value_cols: Optional[Tuple[str, ...]] = None,
    unique_id: str = "wine",
    freq: str = "MS",
    require_source: bool = True,
) -> Settings:
    """
    Load settings from environment.

    Explicit arguments win; otherwise reads WINE_DATA_SOURCE, WINE_DATE_COL
    and WINE_VALUE_COLS (comma separated, target first) from .env or the
    environment. With require_source=False a missing source resolves to ""
    (an existing raw snapshot is reused).
    """
    load_dotenv()

    source = source or os.getenv("WINE_DATA_SOURCE") or ""
    if not source and require_source:
        raise ValueError("WINE_DATA_SOURCE not found. Set it in .env or environment.")

    date_col = date_col or os.getenv("WINE_DATE_COL") or "date"
    value_cols = tuple(value_cols or ()) or _split_cols(os.getenv("WINE_VALUE_COLS")) or ("sales",)

    return Settings(
        source=source,
        date_col=date_col,
        value_cols=value_cols,
        unique_id=unique_id,
        freq=freq,
    )
