"""Decoding and verification of signed ticket tokens (QR payloads)"""
from datetime import datetime, timezone
from typing import Dict, Optional, Sequence

from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from shared.utils.exceptions import TokenExpired, TokenInvalid


class TicketClaims(BaseModel):
    """Verified payload of a ticket token"""

    model_config = ConfigDict(extra="allow")

    ticket_id: str = Field(..., min_length=1)
    event_id: str = Field(..., min_length=1)
    issuer: str = Field(..., validation_alias=AliasChoices("issuer", "iss"))
    valid_until: datetime

    @field_validator("ticket_id", "event_id", mode="before")
    @classmethod
    def coerce_identifier(cls, value):
        # Issuers sometimes encode numeric ids
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("valid_until")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def extra_claims(self) -> Dict:
        return dict(self.model_extra or {})


def verify_ticket_token(
    token: str,
    secret: str,
    algorithms: Optional[Sequence[str]] = None,
) -> TicketClaims:
    """
    Verify the signature of a ticket token and return its claims

    Args:
        token: Encoded JWT read from the QR code
        secret: Shared secret used by the ticket issuer
        algorithms: Accepted signing algorithms (default HS256)

    Raises:
        TokenExpired: the token's ``exp`` claim has passed
        TokenInvalid: bad signature, malformed token or missing claims
    """
    if not isinstance(token, str) or not token:
        raise TokenInvalid()

    try:
        payload = jwt.decode(token, secret, algorithms=list(algorithms or ["HS256"]))
    except ExpiredSignatureError:
        raise TokenExpired()
    except JWTError:
        raise TokenInvalid()

    try:
        return TicketClaims.model_validate(payload)
    except ValidationError:
        raise TokenInvalid("Invalid token: missing or malformed ticket claims")


def create_ticket_token(claims: Dict, secret: str, algorithm: str = "HS256") -> str:
    """Sign a ticket payload (used by dev scripts and tests)"""
    to_encode = dict(claims)
    for key, value in to_encode.items():
        if isinstance(value, datetime) and key not in ("exp", "iat", "nbf"):
            to_encode[key] = value.isoformat()
    return jwt.encode(to_encode, secret, algorithm=algorithm)
