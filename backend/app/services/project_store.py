"""
Project Store - persistence for projects and users

Thin async SQLAlchemy repositories. Each call opens its own session from the
injected session factory so callers never share a session across awaits.
Driver errors are re-raised as StorageError.
"""

from typing import Callable, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import StorageError
from app.core.logging_config import logger
from app.models.project import Project
from app.models.user import User


SessionFactory = Callable[[], AsyncSession]


class ProjectRepository:
    """Key-based find/insert over persisted projects."""

    def __init__(self, session_factory: SessionFactory):
        self.session_factory = session_factory

    async def find_by_origin(self, email: str, repo_url: str) -> Optional[Project]:
        """Oldest project for (email, repo_url), if any."""
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(Project)
                    .where(Project.email == email, Project.repo_url == repo_url)
                    .order_by(Project.created_at)
                    .limit(1)
                )
                return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"[ProjectRepository] Lookup failed for {email} {repo_url}: {e}")
            raise StorageError(f"Project lookup failed: {e}")

    async def list_by_email(self, email: str) -> List[Project]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(Project)
                    .where(Project.email == email)
                    .order_by(Project.created_at)
                )
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"[ProjectRepository] Listing failed for {email}: {e}")
            raise StorageError(f"Project listing failed: {e}")

    async def add(self, project: Project) -> Project:
        try:
            async with self.session_factory() as session:
                session.add(project)
                await session.commit()
                await session.refresh(project)
                return project
        except SQLAlchemyError as e:
            logger.error(f"[ProjectRepository] Insert failed for {project.name}: {e}")
            raise StorageError(f"Failed to save project: {e}")


class UserRepository:
    """Get-or-create over users keyed by email."""

    def __init__(self, session_factory: SessionFactory):
        self.session_factory = session_factory

    async def get_by_email(self, email: str) -> Optional[User]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(select(User).where(User.email == email))
                return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StorageError(f"User lookup failed: {e}")

    async def get_or_create(self, user: User) -> User:
        """
        Return the stored user for user.email, inserting `user` if none exists.

        Existing rows are returned unchanged.
        """
        existing = await self.get_by_email(user.email)
        if existing:
            return existing

        try:
            async with self.session_factory() as session:
                session.add(user)
                await session.commit()
                await session.refresh(user)
                return user
        except IntegrityError:
            # Lost a race with another login for the same email
            existing = await self.get_by_email(user.email)
            if existing:
                return existing
            raise StorageError(f"Failed to create user {user.email}")
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to create user: {e}")
