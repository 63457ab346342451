"""Session route handlers.

Endpoints:
    POST /api/sessions                                  -- Start a new session.
    GET  /api/sessions                                  -- Recent session ids.
    GET  /api/sessions/{session_id}                     -- Full session document.
    GET  /api/sessions/{session_id}/log                 -- Transaction log and box totals.
    GET  /api/sessions/{session_id}/notifications       -- Notification feed.
    POST /api/sessions/{session_id}/players             -- Add a guest player.
    POST /api/sessions/{session_id}/players/join        -- Join as the calling identity.
    POST /api/sessions/{session_id}/players/{pid}/claim -- Claim a guest row.
    PATCH /api/sessions/{session_id}/players/{pid}      -- Update payment details.
    POST /api/sessions/{session_id}/buy-in              -- Buy chips (box or player).
    POST /api/sessions/{session_id}/cash-out            -- Return chips to the box.
    PUT  /api/sessions/{session_id}/chip-value          -- Set the chip exchange rate.
    POST /api/sessions/{session_id}/end                 -- End play, await counts.
    POST /api/sessions/{session_id}/settle              -- Submit final counts and settle.
    POST /api/sessions/{session_id}/resume              -- Back to play from the summary.
    GET  /api/sessions/{session_id}/settlement/{index}/qr -- Payment QR for a transaction.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Response, status
from pydantic import BaseModel, Field

from pokerledger.auth.dependencies import get_identity
from pokerledger.auth.identity import Identity
from pokerledger.config import settings
from pokerledger.models.session import Session
from pokerledger.services.ledger import compute_totals
from pokerledger.services.qr_service import generate_payment_qr
from pokerledger.services.session_registry import get_session_registry
from pokerledger.services.session_service import SessionService

logger = logging.getLogger("pokerledger.routes.sessions")

router = APIRouter(prefix="/sessions", tags=["Sessions"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _get_service(session_id: str) -> SessionService:
    return await get_session_registry().get(session_id)


def _session_payload(session: Session) -> dict[str, Any]:
    data = session.model_dump(by_alias=True, mode="json")
    data["session_id"] = data.pop("_id")
    return data


# ---------------------------------------------------------------------------
# Pydantic request / response schemas
# ---------------------------------------------------------------------------

class SessionListResponse(BaseModel):
    sessions: list[str]


class AddPlayerRequest(BaseModel):
    """Request body for POST /api/sessions/{session_id}/players."""
    name: str = Field(..., description="Display name, unique within the session.")
    buy_in: int = Field(0, description="Chips bought from the box on entry.")


class JoinRequest(BaseModel):
    buy_in: int = 0


class UpdatePlayerRequest(BaseModel):
    promptpay_id: str


class BuyInRequest(BaseModel):
    """Request body for POST /api/sessions/{session_id}/buy-in."""
    buyer_id: str
    amount: int
    source: Optional[str] = Field(
        None,
        description="Seller player id, or omitted/'Central Box' to buy from the box.",
    )


class CashOutRequest(BaseModel):
    player_id: str
    amount: int


class ChipValueRequest(BaseModel):
    chip_value: float


class SettleRequest(BaseModel):
    """Request body for POST /api/sessions/{session_id}/settle."""
    final_counts: dict[str, int] = Field(
        ..., description="Final chip count per player id."
    )


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------

@router.post("", status_code=status.HTTP_201_CREATED, summary="Start a new session")
async def create_session() -> dict[str, Any]:
    service = await get_session_registry().create_session()
    return _session_payload(service.session)


@router.get("", response_model=SessionListResponse, summary="List recent sessions")
async def list_sessions() -> SessionListResponse:
    return SessionListResponse(sessions=await get_session_registry().list_recent())


@router.get("/{session_id}", summary="Get a session")
async def get_session(session_id: str = Path(...)) -> dict[str, Any]:
    service = await _get_service(session_id)
    return _session_payload(service.session)


@router.get("/{session_id}/log", summary="Get the transaction log")
async def get_log(session_id: str = Path(...)) -> dict[str, Any]:
    service = await _get_service(session_id)
    totals = compute_totals(service.session.transaction_log)
    return {
        "session_id": session_id,
        "entries": [
            entry.model_dump(by_alias=True, mode="json")
            for entry in service.session.transaction_log
        ],
        "totals": {
            "issued_from_box": totals.issued_from_box,
            "cashed_out": totals.cashed_out,
            "outstanding": totals.outstanding,
        },
        "reconciled": service.ledger.is_reconciled(),
    }


@router.get("/{session_id}/notifications", summary="Poll the notification feed")
async def get_notifications(session_id: str = Path(...)) -> dict[str, Any]:
    registry = get_session_registry()
    await registry.get(session_id)
    notifications = await registry.notification_dal.list_for_session(session_id)
    return {
        "notifications": [
            n.model_dump(mode="json", exclude={"id"}) for n in notifications
        ],
    }


# ---------------------------------------------------------------------------
# Players
# ---------------------------------------------------------------------------

@router.post(
    "/{session_id}/players",
    status_code=status.HTTP_201_CREATED,
    summary="Add a guest player",
)
async def add_player(body: AddPlayerRequest, session_id: str = Path(...)) -> dict[str, Any]:
    service = await _get_service(session_id)
    player = await service.add_player(body.name, body.buy_in)
    return player.model_dump(mode="json")


@router.post(
    "/{session_id}/players/join",
    status_code=status.HTTP_201_CREATED,
    summary="Join the session as yourself",
)
async def join_session(
    body: JoinRequest,
    session_id: str = Path(...),
    identity: Identity = Depends(get_identity),
) -> dict[str, Any]:
    service = await _get_service(session_id)
    player = await service.join(identity, body.buy_in)
    return player.model_dump(mode="json")


@router.post("/{session_id}/players/{player_id}/claim", summary="Claim a guest player")
async def claim_guest(
    body: JoinRequest,
    session_id: str = Path(...),
    player_id: str = Path(...),
    identity: Identity = Depends(get_identity),
) -> dict[str, Any]:
    service = await _get_service(session_id)
    player = await service.claim_guest(player_id, identity, body.buy_in)
    return player.model_dump(mode="json")


@router.patch("/{session_id}/players/{player_id}", summary="Update a player")
async def update_player(
    body: UpdatePlayerRequest,
    session_id: str = Path(...),
    player_id: str = Path(...),
) -> dict[str, Any]:
    service = await _get_service(session_id)
    player = await service.update_player(player_id, body.promptpay_id)
    return player.model_dump(mode="json")


# ---------------------------------------------------------------------------
# Chip movements
# ---------------------------------------------------------------------------

@router.post("/{session_id}/buy-in", summary="Buy chips")
async def buy_in(body: BuyInRequest, session_id: str = Path(...)) -> dict[str, Any]:
    service = await _get_service(session_id)
    session = await service.buy_in(body.buyer_id, body.amount, body.source)
    return _session_payload(session)


@router.post("/{session_id}/cash-out", summary="Cash chips out to the box")
async def cash_out(body: CashOutRequest, session_id: str = Path(...)) -> dict[str, Any]:
    service = await _get_service(session_id)
    session = await service.cash_out(body.player_id, body.amount)
    return _session_payload(session)


@router.put("/{session_id}/chip-value", summary="Set the chip exchange rate")
async def set_chip_value(body: ChipValueRequest, session_id: str = Path(...)) -> dict[str, Any]:
    service = await _get_service(session_id)
    session = await service.set_chip_value(body.chip_value)
    return _session_payload(session)


# ---------------------------------------------------------------------------
# Game state
# ---------------------------------------------------------------------------

@router.post("/{session_id}/end", summary="End play and collect final counts")
async def end_game(session_id: str = Path(...)) -> dict[str, Any]:
    service = await _get_service(session_id)
    return _session_payload(await service.end_game())


@router.post("/{session_id}/settle", summary="Submit final chip counts and settle")
async def settle(body: SettleRequest, session_id: str = Path(...)) -> dict[str, Any]:
    service = await _get_service(session_id)
    return _session_payload(await service.settle(body.final_counts))


@router.post("/{session_id}/resume", summary="Resume play from the summary")
async def resume(session_id: str = Path(...)) -> dict[str, Any]:
    service = await _get_service(session_id)
    return _session_payload(await service.resume())


@router.get(
    "/{session_id}/settlement/{index}/qr",
    summary="Payment QR code for a settlement transaction",
    responses={200: {"content": {"image/png": {}}}},
)
async def settlement_qr(
    session_id: str = Path(...),
    index: int = Path(..., ge=0),
) -> Response:
    service = await _get_service(session_id)
    session = service.session
    result = session.final_calculations
    if result is None or index >= len(result.transactions):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Settlement transaction not found",
        )

    transaction = result.transactions[index]
    recipient = session.find_player_by_name(transaction.to_player)
    if recipient is None or not recipient.promptpay_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=(
                f"No PromptPay ID for {transaction.to_player}; "
                f"{transaction.from_player} must transfer manually"
            ),
        )

    png = generate_payment_qr(
        recipient.promptpay_id,
        transaction.amount * session.chip_value,
        settings.PROMPTPAY_BASE_URL,
    )
    return Response(content=png, media_type="image/png")
