"""Identity assertion: get-or-create a User by email"""

from datetime import datetime, timezone
from typing import Optional

from app.core.logging_config import logger
from app.models.user import User
from app.services.project_store import UserRepository


def _as_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class IdentityService:

    def __init__(self, users: UserRepository):
        self.users = users

    async def assert_identity(
        self,
        email: str,
        name: Optional[str] = None,
        picture: Optional[str] = None,
        expires_at: Optional[datetime] = None,
    ) -> User:
        # First login wins: name/picture/expiry are not refreshed on repeat logins
        user = await self.users.get_or_create(User(
            email=email,
            name=name,
            picture=picture,
            expires_at=_as_naive_utc(expires_at),
        ))
        logger.info(f"Identity asserted for {email}")
        return user
