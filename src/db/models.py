"""ORM models for application persistence."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, DateTime, Index, Integer, String, Text

from src.db.base import Base


class ApplicationColumnsMixin:
    """Submitter-provided columns shared by the active and archive tables."""

    id = Column(String(64), primary_key=True)
    timestamp = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    username = Column(String(128), nullable=False)
    age = Column(Integer, nullable=False)
    steam_id = Column(String(17), nullable=False, index=True)
    discord_id = Column(String(128), nullable=True)
    cfx_account = Column(String(2048), nullable=False)
    experience = Column(Text, nullable=False)
    character = Column(Text, nullable=False)
    discord_json = Column("discord", Text, nullable=True)


class ApplicationModel(ApplicationColumnsMixin, Base):
    """Pending whitelist application awaiting an admin decision."""

    __tablename__ = "applications"


class ArchivedApplicationModel(ApplicationColumnsMixin, Base):
    """Decided whitelist application."""

    __tablename__ = "archived_applications"

    status = Column(String(16), nullable=False)
    status_reason = Column(Text, nullable=False, default="")
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_archived_applications_status_updated_at", "status", "updated_at"),
    )
