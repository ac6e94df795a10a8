"""
Deploy: rsync mirror of the rendered site

Usage (Python):
    from src.deploy import DeployConfig, sync_site
    status = sync_site(DeployConfig.from_env())
"""

from .config import DeployConfig
from .sync import build_rsync_command, sync_site

__all__ = [
    "DeployConfig",
    "build_rsync_command",
    "sync_site",
]
