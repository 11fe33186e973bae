"""
Persisted engine snapshot.
"""

from typing import Any, Dict

from sqlalchemy import JSON, CheckConstraint, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class EventSnapshotRecord(Base):
    """
    One serialized snapshot per key.

    ``version`` increases by one on every successful save; writers update the
    row only while it still carries the version they loaded.
    """

    __tablename__ = "event_snapshots"

    key: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    payload: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False)

    __table_args__ = (
        CheckConstraint("version > 0", name="version_positive"),
    )

    def __repr__(self) -> str:
        return f"<EventSnapshotRecord(key={self.key}, version={self.version})>"
