"""
Unit Tests for ProjectRepository, UserRepository and IdentityService
"""
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from app.core.exceptions import StorageError
from app.models.project import Project
from app.models.user import User
from app.services.identity_service import IdentityService
from app.services.project_store import ProjectRepository, UserRepository


def make_project(email, repo_url="https://github.com/acme/widgets.git", name="widgets"):
    return Project(
        email=email,
        name=name,
        repo_url=repo_url,
        path=f"/tmp/{name}",
        files=[{"name": "a.txt", "path": "a.txt", "type": "file", "content": "A"}],
    )


class TestProjectRepository:

    @pytest.mark.asyncio
    async def test_add_and_find(self, session_factory, user_email):
        repository = ProjectRepository(session_factory)

        saved = await repository.add(make_project(user_email))
        found = await repository.find_by_origin(user_email, saved.repo_url)

        assert found.id == saved.id
        assert found.files == saved.files
        assert found.created_at is not None

    @pytest.mark.asyncio
    async def test_find_is_scoped_to_owner(self, session_factory, user_email):
        repository = ProjectRepository(session_factory)
        await repository.add(make_project(user_email))

        assert await repository.find_by_origin("other@example.com", "https://github.com/acme/widgets.git") is None

    @pytest.mark.asyncio
    async def test_find_returns_oldest(self, session_factory, user_email):
        """Test duplicate rows for one key resolve to the first one stored"""
        repository = ProjectRepository(session_factory)
        first = make_project(user_email, name="first")
        first.created_at = datetime(2024, 1, 1)
        second = make_project(user_email, name="second")
        second.created_at = datetime(2024, 6, 1)
        await repository.add(second)
        await repository.add(first)

        found = await repository.find_by_origin(user_email, "https://github.com/acme/widgets.git")

        assert found.name == "first"

    @pytest.mark.asyncio
    async def test_list_by_email(self, session_factory, user_email):
        repository = ProjectRepository(session_factory)
        await repository.add(make_project(user_email, repo_url="https://x/a.git", name="a"))
        await repository.add(make_project(user_email, repo_url="https://x/b.git", name="b"))
        await repository.add(make_project("other@example.com"))

        projects = await repository.list_by_email(user_email)

        assert sorted(project.name for project in projects) == ["a", "b"]

    @pytest.mark.asyncio
    async def test_driver_errors_become_storage_errors(self):
        session = MagicMock()
        session.__aenter__.side_effect = OperationalError("SELECT", {}, Exception("db down"))
        repository = ProjectRepository(lambda: session)

        with pytest.raises(StorageError):
            await repository.find_by_origin("a@b.c", "https://x/a.git")

    def test_to_dict_uses_wire_names(self, user_email):
        project = make_project(user_email)
        project.id = "p1"
        project.created_at = datetime(2024, 1, 1)

        data = project.to_dict()

        assert data["repoUrl"] == project.repo_url
        assert data["createdAt"] == "2024-01-01T00:00:00"
        assert data["files"][0]["name"] == "a.txt"
        assert "files" not in project.to_dict(include_files=False)


class TestIdentity:
    """Tests for get-or-create identity"""

    @pytest.fixture
    def identity(self, session_factory):
        return IdentityService(UserRepository(session_factory))

    @pytest.mark.asyncio
    async def test_first_assertion_creates_user(self, identity, user_email):
        expires = datetime(2030, 1, 1, tzinfo=timezone.utc)

        user = await identity.assert_identity(user_email, "Ada", "https://img/ada.png", expires)

        assert user.id
        assert user.email == user_email
        assert user.name == "Ada"
        assert user.picture == "https://img/ada.png"
        assert user.expires_at == datetime(2030, 1, 1)

    @pytest.mark.asyncio
    async def test_repeat_assertion_returns_stored_user(self, identity, user_email):
        """Test later logins do not overwrite what the first login stored"""
        first = await identity.assert_identity(user_email, "Ada", None, None)
        again = await identity.assert_identity(
            user_email, "Someone Else", "https://img/new.png", datetime.now(timezone.utc) + timedelta(days=1)
        )

        assert again.id == first.id
        assert again.name == "Ada"
        assert again.picture is None
        assert again.expires_at is None

    @pytest.mark.asyncio
    async def test_one_row_per_email(self, session_factory, identity, user_email):
        await identity.assert_identity(user_email)
        await identity.assert_identity(user_email)

        users = UserRepository(session_factory)
        stored = await users.get_by_email(user_email)
        assert stored is not None
        assert stored.to_dict()["email"] == user_email

    @pytest.mark.asyncio
    async def test_get_or_create_returns_existing_row(self, session_factory, user_email):
        users = UserRepository(session_factory)
        created = await users.get_or_create(User(email=user_email, name="A"))

        again = await users.get_or_create(User(email=user_email, name="B"))

        assert again.id == created.id
        assert again.name == "A"
