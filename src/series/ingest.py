"""
Series Step 2: Ingest

Read the raw sales CSV. Sources are either a local path or an http(s) URL;
remote files are fetched with requests so HTTP failures raise instead of
producing an empty frame.
"""

import io
import logging
from pathlib import Path
from typing import Union

import pandas as pd
import requests

logger = logging.getLogger(__name__)


def _is_remote(source: str) -> bool:
    return source.startswith(("http://", "https://"))


def pull_sales_csv(source: Union[str, Path], timeout: int = 30) -> pd.DataFrame:
    """
    Load the raw sales table.

    Args:
        source: Local CSV path or http(s) URL
        timeout: Request timeout in seconds (remote sources only)

    Returns:
        Raw DataFrame exactly as stored in the CSV
    """
    source = str(source)

    if _is_remote(source):
        logger.info(f"Downloading sales data: {source}")
        response = requests.get(source, timeout=timeout)
        response.raise_for_status()
        if not response.text.strip():
            raise ValueError(f"Empty response body from {source}")
        df = pd.read_csv(io.StringIO(response.text))
    else:
        path = Path(source)
        if not path.exists():
            raise FileNotFoundError(f"Sales data not found: {path}")
        df = pd.read_csv(path)

    if df.empty:
        raise ValueError(f"No rows in sales data: {source}")

    logger.info(f"Loaded {len(df)} rows, columns={df.columns.tolist()}")
    return df
