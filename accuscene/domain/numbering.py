"""Generators for human readable record numbers."""

import random
from datetime import datetime
from typing import Optional

from accuscene.models import utc_now


def generate_case_number(prefix: str = "ACC", now: Optional[datetime] = None) -> str:
    """Build a case number such as ``ACC-2026-04817``."""
    year = (now or utc_now()).year
    return f"{prefix}-{year}-{random.randint(0, 99999):05d}"


def generate_evidence_number(prefix: str = "EV", now: Optional[datetime] = None) -> str:
    """Build an evidence number such as ``EV-2026-482913-007``.

    The middle block is the last six digits of the epoch time in
    milliseconds, the last block a random three digit suffix.
    """
    moment = now or utc_now()
    millis = str(int(moment.timestamp() * 1000))
    return f"{prefix}-{moment.year}-{millis[-6:]}-{random.randint(0, 999):03d}"
