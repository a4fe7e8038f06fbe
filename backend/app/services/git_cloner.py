"""
Git Cloner - materializes a remote repository on local disk

Runs `git clone` as a subprocess (no shell, so the URL is never interpreted)
with prompts disabled and a deadline. Any failure raises CloneError.
"""

import asyncio
import os
from pathlib import Path
from typing import Optional

from app.core.config import settings
from app.core.exceptions import CloneError
from app.core.logging_config import logger


class GitCloner:

    def __init__(
        self,
        git_binary: Optional[str] = None,
        timeout_seconds: Optional[int] = None,
        depth: Optional[int] = None,
    ):
        self.git_binary = git_binary or settings.GIT_BINARY
        self.timeout_seconds = timeout_seconds or settings.CLONE_TIMEOUT_SECONDS
        self.depth = settings.CLONE_DEPTH if depth is None else depth

    def build_args(self, repo_url: str, destination: Path) -> list:
        args = [self.git_binary, "clone"]
        if self.depth:
            args += ["--depth", str(self.depth)]
        args += ["--", repo_url, str(destination)]
        return args

    async def clone(self, repo_url: str, destination: Path) -> Path:
        """Clone repo_url into destination (which must not exist yet)."""
        destination.parent.mkdir(parents=True, exist_ok=True)
        logger.info(f"[GitCloner] Cloning {repo_url} into {destination}")

        try:
            process = await asyncio.create_subprocess_exec(
                *self.build_args(repo_url, destination),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env={**os.environ, "GIT_TERMINAL_PROMPT": "0"},
            )
        except OSError as e:
            raise CloneError(repo_url, f"could not start git: {e}")

        try:
            _, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise CloneError(repo_url, f"timed out after {self.timeout_seconds}s")

        if process.returncode != 0:
            message = stderr.decode("utf-8", errors="replace").strip() if stderr else ""
            raise CloneError(repo_url, message or f"git exited with code {process.returncode}")

        logger.info(f"[GitCloner] Cloned {repo_url}")
        return destination
