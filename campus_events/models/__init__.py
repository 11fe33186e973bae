"""
Database models for the Campus Events engine.
"""

from .base import Base
from .snapshot import EventSnapshotRecord

__all__ = [
    "Base",
    "EventSnapshotRecord",
]
