"""Notification feed model.

Poll-based notifications stored per session, auto-deleted after 48 hours
via a TTL index on ``created_at``.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_serializer

from pokerledger.models.common import utcnow


class Notification(BaseModel):
    """A ledger event as seen by clients polling the feed."""

    model_config = {"populate_by_name": True}

    id: Optional[str] = Field(default=None, alias="_id")
    session_id: str
    event_type: str
    message: str
    player: Optional[str] = None
    amount: Optional[int] = None
    created_at: datetime = Field(default_factory=utcnow)

    @field_serializer("id")
    def serialize_id(self, value: Optional[str], _info) -> Optional[str]:
        if value is not None:
            return str(value)
        return value

    def to_mongo_dict(self) -> dict:
        """Convert model to a MongoDB-insertable dict, excluding None id."""
        data = self.model_dump(by_alias=True, mode="python")
        if data.get("_id") is None:
            data.pop("_id", None)
        return data
