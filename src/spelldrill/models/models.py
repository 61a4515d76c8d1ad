"""Database models for the spelling drill."""
from sqlalchemy import Column, Integer, String, Text

from spelldrill.models.base import Base, TimestampMixin


class SnapshotRecord(Base, TimestampMixin):
    """Serialized session snapshot stored under a key."""

    __tablename__ = "session_snapshots"

    id = Column(Integer, primary_key=True)
    key = Column(String, unique=True, nullable=False, index=True)
    payload = Column(Text, nullable=False)  # JSON document
