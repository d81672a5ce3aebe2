"""SQLAlchemy table definitions."""

import uuid
from datetime import datetime
from typing import Any, Dict

from sqlalchemy import JSON, TIMESTAMP, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from accuscene.database.base import Base


class RecordRow(Base):
    """One stored record of any kind, serialized as a JSON document."""

    __tablename__ = "records"

    kind: Mapped[str] = mapped_column(String(32), primary_key=True)
    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    payload: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_records_kind_updated_at", "kind", "updated_at"),
    )
