"""
Deploy: Remote Host Settings

Keep the host and account in env (prod) / .env (local), never in code.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


@dataclass(frozen=True)
class DeployConfig:
    """Where the rendered site is mirrored to"""
    user: str
    host: str
    remote_dir: str
    local_dir: str = "public/"
    exclude_from: Optional[str] = None
    rsync_bin: str = "rsync"

    def source(self) -> str:
        """Local directory with a trailing slash: mirror its contents"""
        return self.local_dir.rstrip("/") + "/"

    def destination(self) -> str:
        return f"{self.user}@{self.host}:~/{self.remote_dir}"

    @classmethod
    def from_env(cls, local_dir: Optional[str] = None) -> "DeployConfig":
        """
        Load deploy settings from environment.

        Reads DEPLOY_USER, DEPLOY_HOST, DEPLOY_DIR (required) and
        DEPLOY_LOCAL_DIR, DEPLOY_EXCLUDE_FROM (optional) from .env or the
        environment.
        """
        load_dotenv()

        values = {key: os.getenv(key) for key in ("DEPLOY_USER", "DEPLOY_HOST", "DEPLOY_DIR")}
        missing = [key for key, value in values.items() if not value]
        if missing:
            raise ValueError(f"{', '.join(missing)} not found. Set it in .env or environment.")

        return cls(
            user=values["DEPLOY_USER"],
            host=values["DEPLOY_HOST"],
            remote_dir=values["DEPLOY_DIR"],
            local_dir=local_dir or os.getenv("DEPLOY_LOCAL_DIR") or "public/",
            exclude_from=os.getenv("DEPLOY_EXCLUDE_FROM") or None,
        )
