"""Repository for user accounts."""

from typing import List, Optional

from accuscene.domain.validation import normalize_email
from accuscene.models import User
from accuscene.models.enums import UserRole
from accuscene.repositories.base_repository import BaseRepository
from accuscene.storage.base import Storage


class UserRepository(BaseRepository[User]):
    """Repository for User records."""

    def __init__(self, storage: Storage, **kwargs):
        super().__init__(storage, User, **kwargs)

    async def get_by_email(self, email: str) -> Optional[User]:
        """Get a user by email, ignoring case and surrounding whitespace."""
        wanted = normalize_email(email)
        return await self.find_one(lambda user: normalize_email(user.email) == wanted)

    async def list_active(self) -> List[User]:
        return await self.list(lambda user: user.is_active)

    async def list_by_role(self, role: UserRole) -> List[User]:
        role = UserRole(role)
        return await self.list(lambda user: user.role == role)
