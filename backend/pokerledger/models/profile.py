"""Player profile: settings that follow a player name across sessions."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from pokerledger.models.common import utcnow


def profile_key(name: str) -> str:
    """Profiles match player names the way a session does: trimmed, any case."""
    return name.strip().lower()


class PlayerProfile(BaseModel):
    model_config = {"populate_by_name": True}

    key: str = Field(alias="_id")
    name: str
    promptpay_id: Optional[str] = None
    is_quick_add: bool = False
    updated_at: datetime = Field(default_factory=utcnow)
