# file: src/pipeline/cli.py
from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional, Tuple

import pandas as pd
import typer
from rich.console import Console
from rich.table import Table

from src.deploy.config import DeployConfig
from src.deploy.sync import sync_site
from src.pipeline.config import ALL_MODELS, PipelineConfig
from src.pipeline.tasks import run_full_pipeline
from src.series.config import load_settings

logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)s | %(message)s")
app = typer.Typer(add_completion=False)
console = Console()


def _strip_ipykernel_args(argv: list[str]) -> list[str]:
    """Jupyter/ipykernel injects `-f <connection_file>` into sys.argv."""
    out = [argv[0]]
    i = 1
    while i < len(argv):
        a = argv[i]
        if a in ("-f", "--f"):
            i += 2  # skip flag + value
            continue
        if a.startswith("--f="):
            i += 1
            continue
        out.append(a)
        i += 1
    return out


def _split(raw: Optional[str]) -> Tuple[str, ...]:
    if not raw:
        return ()
    return tuple(part.strip() for part in raw.split(",") if part.strip())


def _print_frame(df: pd.DataFrame, title: str, digits: int = 3) -> None:
    table = Table(title=title)
    for col in df.columns:
        table.add_column(str(col), style="cyan" if df[col].dtype == object else "green")
    for _, row in df.iterrows():
        table.add_row(*[
            f"{v:.{digits}f}" if isinstance(v, float) else str(v)
            for v in row.tolist()
        ])
    console.print(table)


@app.command()
def run(
    source: str = typer.Option("", help="CSV path or URL (falls back to WINE_DATA_SOURCE)"),
    date_col: str = typer.Option("", help="Date column (falls back to WINE_DATE_COL)"),
    value_cols: str = typer.Option("", help="Comma separated value columns, target first"),
    models: str = typer.Option(",".join(ALL_MODELS), help="Comma separated model names"),
    horizon: int = 24,
    init: int = 60,
    step: int = 12,
    season_length: int = 12,
    level: int = 95,
    nnetar_repeats: int = 20,
    data_dir: str = "data",
    artifacts_dir: str = "artifacts",
    site_dir: str = "public",
    overwrite: bool = False,
):
    """Ingest, validate, evaluate, forecast and render the site."""
    cols = _split(value_cols)
    raw_exists = (Path(data_dir) / "raw.parquet").exists()

    # An existing raw snapshot is reused without a source unless overwriting
    settings = load_settings(
        source=source or None,
        date_col=date_col or None,
        value_cols=cols or None,
        require_source=overwrite or not raw_exists,
    )

    cfg = PipelineConfig(
        source=settings.source,
        date_col=settings.date_col,
        value_cols=settings.value_cols,
        models=_split(models) or ALL_MODELS,
        horizon=horizon,
        init=init,
        step=step,
        season_length=season_length,
        level=level,
        nnetar_repeats=nnetar_repeats,
        data_dir=data_dir,
        artifacts_dir=artifacts_dir,
        site_dir=site_dir,
        overwrite=overwrite,
    )

    results = run_full_pipeline(cfg)

    table = Table(title="Pipeline Results")
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="green")

    for k, v in results.items():
        table.add_row(str(k), str(v))

    console.print(table)


@app.command()
def accuracy(artifacts_dir: str = "artifacts"):
    """Print the saved holdout, cross-validation and leaderboard tables."""
    cfg = PipelineConfig(artifacts_dir=artifacts_dir)
    tables = [
        (cfg.holdout_accuracy_path(), "Holdout accuracy"),
        (cfg.cv_accuracy_path(), "Cross-validation accuracy"),
        (cfg.leaderboard_path(), "Leaderboard"),
    ]

    found = 0
    for path, title in tables:
        if not path.exists():
            console.print(f"[yellow]missing:[/yellow] {path}")
            continue
        _print_frame(pd.read_parquet(path), title)
        found += 1

    if not found:
        raise typer.Exit(code=1)


@app.command()
def deploy(
    dry_run: bool = typer.Option(False, help="Show what rsync would change"),
    local_dir: Optional[str] = typer.Option(None, help="Directory to mirror (default DEPLOY_LOCAL_DIR or public/)"),
):
    """Mirror the rendered site to the web host with rsync."""
    cfg = DeployConfig.from_env(local_dir=local_dir)
    status = sync_site(cfg, dry_run=dry_run)
    if status != 0:
        console.print(f"[red]rsync failed with status {status}[/red]")
    raise typer.Exit(code=status)


if __name__ == "__main__":
    sys.argv = _strip_ipykernel_args(sys.argv)
    app(standalone_mode=False)  # <-- prevents SystemExit in Jupyter
