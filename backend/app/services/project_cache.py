"""
Project Cache

Ingestion of remote repositories into persisted projects, plus direct
read/write of files inside a project's working copy.

Ingestion flow (cache miss):
    lookup (email, repoUrl) -> git clone -> FileTreeBuilder -> persist

A hit returns the stored project without cloning or walking again.
Concurrent ingest calls for the same (email, repoUrl) share one in-flight
operation, so a key is cloned and persisted at most once per process.
"""

import asyncio
import re
import shutil
import time
import uuid
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import aiofiles
import aiofiles.os

from app.core.config import settings
from app.core.exceptions import (
    CloneError,
    CodeSyncError,
    FileAccessError,
    PathOutsideProjectError,
    ValidationError,
)
from app.core.logging_config import logger
from app.models.project import Project
from app.schemas.project import FileWriteResult
from app.services.file_tree_builder import FileTreeBuilder
from app.services.git_cloner import GitCloner
from app.services.project_store import ProjectRepository


FILE_NOT_FOUND_PLACEHOLDER = "// File not found"


def project_name_from_url(repo_url: str) -> str:
    """
    Last path segment of repo_url without a trailing `.git`.

    https://github.com/acme/widgets.git -> widgets
    git@github.com:acme/widgets.git     -> widgets
    """
    segment = re.split(r"[/:]", repo_url.strip().rstrip("/"))[-1]
    if segment.endswith(".git"):
        segment = segment[:-4]
    return segment or "project"


def _safe_segment(value: str) -> str:
    return re.sub(r"[^A-Za-z0-9._-]+", "_", value).strip("._") or "user"


class ProjectCache:
    """Owner-scoped project ingestion with single-flight deduplication."""

    def __init__(
        self,
        repository: ProjectRepository,
        cloner: GitCloner,
        tree_builder: FileTreeBuilder,
        projects_root: Optional[Union[str, Path]] = None,
    ):
        self.repository = repository
        self.cloner = cloner
        self.tree_builder = tree_builder
        self.projects_root = Path(projects_root) if projects_root else settings.PROJECTS_DIR
        # (email, repo_url) -> in-flight ingestion
        self._inflight: Dict[Tuple[str, str], "asyncio.Task[Project]"] = {}

    @property
    def inflight_count(self) -> int:
        return len(self._inflight)

    # ========== Ingestion ==========

    async def ingest(
        self,
        email: str,
        repo_url: str,
        local_root: Optional[Union[str, Path]] = None
    ) -> Project:
        """
        Return the project for (email, repo_url), cloning it on first request.

        Raises:
            ValidationError: email or repo_url missing
            CloneError: git clone failed; nothing was persisted
            StorageError: lookup or insert failed
        """
        if not email or not email.strip():
            raise ValidationError("email is required", field="email")
        if not repo_url or not repo_url.strip():
            raise ValidationError("repoUrl is required", field="repoUrl")

        key = (email, repo_url)
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.create_task(self._lookup_or_ingest(email, repo_url, local_root))
            self._inflight[key] = task
            task.add_done_callback(lambda t: self._forget(key, t))
        else:
            logger.info(f"[ProjectCache] Joining in-flight ingestion of {repo_url} for {email}")

        # A cancelled caller must not abort the shared ingestion
        return await asyncio.shield(task)

    def _forget(self, key: Tuple[str, str], task: "asyncio.Task[Project]"):
        if self._inflight.get(key) is task:
            del self._inflight[key]
        if not task.cancelled() and task.exception() is not None:
            logger.debug(f"[ProjectCache] Ingestion of {key[1]} ended with {task.exception()!r}")

    async def _lookup_or_ingest(
        self,
        email: str,
        repo_url: str,
        local_root: Optional[Union[str, Path]]
    ) -> Project:
        existing = await self.repository.find_by_origin(email, repo_url)
        if existing is not None:
            logger.info(f"[ProjectCache] Cache hit: {repo_url} for {email}")
            return existing

        start_time = time.perf_counter()
        name = project_name_from_url(repo_url)
        destination = self._destination(email, name, local_root)

        try:
            await self.cloner.clone(repo_url, destination)
        except CloneError:
            await self._discard(destination)
            raise

        files = await asyncio.to_thread(self.tree_builder.build, destination)

        project = Project(
            email=email,
            name=name,
            repo_url=repo_url,
            path=str(destination),
            files=[node.model_dump(exclude_none=True) for node in files],
        )
        try:
            project = await self.repository.add(project)
        except CodeSyncError:
            await self._discard(destination)
            raise

        logger.log_performance(
            f"ingest {repo_url}",
            (time.perf_counter() - start_time) * 1000,
            threshold_ms=30000,
            project_id=project.id,
        )
        return project

    def _destination(self, email: str, name: str, local_root: Optional[Union[str, Path]]) -> Path:
        root = Path(local_root) if local_root else self.projects_root / _safe_segment(email)
        return root / f"{_safe_segment(name)}-{uuid.uuid4().hex[:8]}"

    async def _discard(self, destination: Path):
        if destination.exists():
            await asyncio.to_thread(shutil.rmtree, destination, ignore_errors=True)

    # ========== Listing ==========

    async def list_by_owner(self, email: str) -> List[Project]:
        """All projects owned by email. Raises StorageError on lookup failure."""
        if not email or not email.strip():
            raise ValidationError("email is required", field="email")
        return await self.repository.list_by_email(email)

    # ========== Live file access ==========

    def resolve(self, project_root: Union[str, Path], relative_path: str) -> Path:
        """Absolute path of relative_path, refusing anything outside project_root."""
        root = Path(project_root).resolve()
        target = (root / relative_path.lstrip("/\\")).resolve()
        if target != root and root not in target.parents:
            raise PathOutsideProjectError(relative_path)
        return target

    async def read_file(self, project_root: Union[str, Path], relative_path: str) -> str:
        """
        Current text of a project file.

        A missing file yields FILE_NOT_FOUND_PLACEHOLDER; other failures raise
        FileAccessError.
        """
        try:
            target = self.resolve(project_root, relative_path)
            async with aiofiles.open(target, "r", encoding="utf-8", errors="replace", newline="") as f:
                return await f.read()
        except FileNotFoundError:
            return FILE_NOT_FOUND_PLACEHOLDER
        # ValueError: paths the OS cannot represent, e.g. an embedded NUL byte
        except (OSError, ValueError) as e:
            logger.error(f"[ProjectCache] Failed to read {relative_path!r} under {project_root}: {e}")
            raise FileAccessError(relative_path, str(e))

    async def write_file(
        self,
        project_root: Union[str, Path],
        relative_path: str,
        text: str
    ) -> FileWriteResult:
        """Write text to a project file, creating parent folders. Never raises."""
        try:
            target = self.resolve(project_root, relative_path)
            await aiofiles.os.makedirs(target.parent, exist_ok=True)
            async with aiofiles.open(target, "w", encoding="utf-8", newline="") as f:
                await f.write(text)
        except CodeSyncError as e:
            return FileWriteResult(success=False, relativePath=relative_path, error=e.message)
        except (OSError, ValueError) as e:
            logger.error(f"[ProjectCache] Failed to write {relative_path!r} under {project_root}: {e}")
            return FileWriteResult(success=False, relativePath=relative_path, error=str(e))

        logger.info(f"[ProjectCache] Wrote {relative_path} ({len(text)} chars)")
        return FileWriteResult(success=True, relativePath=relative_path)
