"""Player profile route handlers.

Endpoints:
    GET  /api/profiles/quick-add          -- Names offered as one-tap guests.
    POST /api/profiles/{name}/quick-add   -- Toggle a name's quick-add flag.
"""

import logging

from fastapi import APIRouter, Path
from pydantic import BaseModel

from pokerledger.config import settings
from pokerledger.dal.database import get_database
from pokerledger.dal.profiles_dal import PlayerProfileDAL

logger = logging.getLogger("pokerledger.routes.profiles")

router = APIRouter(prefix="/profiles", tags=["Profiles"])


class QuickAddListResponse(BaseModel):
    names: list[str]
    buy_in: int


class QuickAddToggleResponse(BaseModel):
    name: str
    is_quick_add: bool


@router.get("/quick-add", response_model=QuickAddListResponse)
async def list_quick_add() -> QuickAddListResponse:
    dal = PlayerProfileDAL(get_database())
    return QuickAddListResponse(
        names=await dal.list_quick_add(),
        buy_in=settings.DEFAULT_BUY_IN,
    )


@router.post("/{name}/quick-add", response_model=QuickAddToggleResponse)
async def toggle_quick_add(name: str = Path(..., min_length=1, max_length=30)) -> QuickAddToggleResponse:
    dal = PlayerProfileDAL(get_database())
    profile = await dal.toggle_quick_add(name.strip())
    return QuickAddToggleResponse(name=profile.name, is_quick_add=profile.is_quick_add)
