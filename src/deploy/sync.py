"""
Deploy: Mirror the site with rsync

One operation: copy the local build to the remote host and delete remote
files that no longer exist locally. The return value is rsync's own exit
status; there are no retries.
"""

import logging
import shlex
import subprocess
from typing import Callable, List

from .config import DeployConfig

logger = logging.getLogger(__name__)


def build_rsync_command(config: DeployConfig, dry_run: bool = False) -> List[str]:
    """
    rsync -avz [--exclude-from FILE] --delete [--dry-run] <local>/ <user>@<host>:~/<dir>
    """
    command = [config.rsync_bin, "-avz"]
    if config.exclude_from:
        command += ["--exclude-from", config.exclude_from]
    command.append("--delete")
    if dry_run:
        command.append("--dry-run")
    command += [config.source(), config.destination()]
    return command


def sync_site(
    config: DeployConfig,
    dry_run: bool = False,
    runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
) -> int:
    """
    Run rsync in the foreground.

    Args:
        config: Deploy settings
        dry_run: Show what would change without transferring
        runner: subprocess.run compatible callable

    Returns:
        rsync's exit status (0 = success, 127 = rsync not installed)
    """
    command = build_rsync_command(config, dry_run=dry_run)
    logger.info(f"[deploy] {shlex.join(command)}")

    try:
        completed = runner(command, check=False)
    except FileNotFoundError as e:
        logger.error(f"[deploy] rsync binary not found: {config.rsync_bin} ({e})")
        return 127

    if completed.returncode == 0:
        logger.info(f"[deploy] synced {config.source()} -> {config.destination()}")
    else:
        logger.error(f"[deploy] rsync exited with status {completed.returncode}")

    return completed.returncode
