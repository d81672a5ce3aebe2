"""SQLAlchemy persistence adapter."""

from accuscene.database.base import Base, DatabaseClient, create_engine_from_settings, create_session_maker
from accuscene.database.models import RecordRow
from accuscene.database.storage import SQLAlchemyStorage

__all__ = [
    "Base",
    "DatabaseClient",
    "RecordRow",
    "SQLAlchemyStorage",
    "create_engine_from_settings",
    "create_session_maker",
]
