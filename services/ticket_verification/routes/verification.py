"""Ticket verification routes"""
from fastapi import APIRouter, Depends, Request

from services.ticket_verification.models.ticket import (
    TicketVerificationRequest,
    TicketVerificationResponse,
)
from services.ticket_verification.services.verification_engine import VerificationEngine
from shared.cache.dependencies import get_cache_store
from shared.cache.store import CacheStore
from shared.core.config import settings
from shared.utils.exceptions import MissingParameters
from shared.utils.rate_limiter import limiter

router = APIRouter()


def get_verification_engine(store: CacheStore = Depends(get_cache_store)) -> VerificationEngine:
    return VerificationEngine(store)


@router.post("/verify-ticket", response_model=TicketVerificationResponse)
@limiter.limit(settings.RATE_LIMIT_VERIFY)
async def verify_ticket(
    request: Request,
    payload: TicketVerificationRequest,
    engine: VerificationEngine = Depends(get_verification_engine),
):
    """
    Verify a QR code scanned by a turnstile

    Rejections are returned as 400 with the rejection kind and message.
    """
    if not payload.deviceKey or not payload.time or not payload.qrcode:
        raise MissingParameters()

    record = await engine.verify(payload.qrcode, payload.deviceKey, payload.time)

    return TicketVerificationResponse(
        code=payload.deviceKey,
        data=record.model_dump(mode="json"),
    )
