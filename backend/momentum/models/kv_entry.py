from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, String

from momentum.db.base import Base


class KeyValueEntry(Base):
    __tablename__ = "kv_entries"

    key = Column(String(128), primary_key=True)
    # Whole collections are stored under one key as JSON documents
    value = Column(JSON, nullable=True)
    updated_at = Column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )
