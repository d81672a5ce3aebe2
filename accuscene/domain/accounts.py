"""User account state: login lockout and deactivation."""

from datetime import datetime, timedelta
from typing import Optional

from accuscene.models import User, utc_now


def record_failed_login(
    user: User,
    max_attempts: int,
    lockout_minutes: int,
    now: Optional[datetime] = None,
) -> User:
    """Count a failed login, locking the account once the limit is reached.

    Locking resets the counter so the next window starts from zero.
    """
    now = now or utc_now()
    attempts = user.failed_login_attempts + 1
    if attempts >= max_attempts:
        return user.touched(
            now,
            failed_login_attempts=0,
            locked_until=now + timedelta(minutes=lockout_minutes),
        )
    return user.touched(now, failed_login_attempts=attempts)


def record_successful_login(user: User, now: Optional[datetime] = None) -> User:
    now = now or utc_now()
    return user.touched(now, failed_login_attempts=0, locked_until=None, last_login_at=now)


def deactivate_user(user: User, now: Optional[datetime] = None) -> User:
    if not user.is_active:
        return user
    return user.touched(now, is_active=False)
