"""User record."""

from datetime import datetime
from typing import ClassVar, Optional

from pydantic import Field

from accuscene.models.base import Record, utc_now
from accuscene.models.enums import EntityKind, UserRole


class User(Record):
    """Platform account. Users are deactivated, never deleted."""

    kind: ClassVar[EntityKind] = EntityKind.USER

    email: str = Field(..., description="Unique, compared case-insensitively")
    password_hash: str = Field(..., description="Opaque hash produced by the auth layer")
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: UserRole = UserRole.VIEWER
    is_active: bool = True
    department: Optional[str] = None
    phone_number: Optional[str] = None
    failed_login_attempts: int = 0
    locked_until: Optional[datetime] = None
    last_login_at: Optional[datetime] = None

    @property
    def full_name(self) -> str:
        parts = [part for part in (self.first_name, self.last_name) if part]
        return " ".join(parts) if parts else self.email

    @property
    def is_locked(self) -> bool:
        return self.locked_until is not None and self.locked_until > utc_now()
