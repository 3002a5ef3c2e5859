# school_app/models/counter.py
from datetime import datetime

from beanie import Document
from pydantic import Field
from pymongo import IndexModel, ASCENDING


class Counter(Document):
    """Holds the current value of a named sequence (e.g. ``studentId:2025-2026``)."""
    key: str
    seq: int = 0 # Last value handed out; the next allocation returns seq + 1
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    class Settings:
        name = "counters"
        indexes = [
            IndexModel([("key", ASCENDING)], name="counter_key_unique_index", unique=True),
        ]
