"""Pydantic models for ticket verification"""
import json
from datetime import datetime
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from shared.auth.ticket_token import TicketClaims

TicketStatus = Literal["valid", "invalid", "revoked"]
EntryStatus = Literal["in", "out"]


class TicketRecord(BaseModel):
    """Server-side entry record of a ticket, stored as the ``ticket:<id>`` hash"""

    model_config = ConfigDict(extra="allow")

    ticket_id: str
    event_id: str
    issuer: Optional[str] = None
    valid_until: Optional[datetime] = None
    status: TicketStatus = "valid"
    entry_status: EntryStatus = "out"
    entry_count: int = Field(0, ge=0)
    device_id: Optional[str] = None
    scanned: Optional[datetime] = None

    @classmethod
    def first_entry(cls, claims: TicketClaims, device_id: str, scanned: datetime) -> "TicketRecord":
        data = claims.extra_claims()
        data.update(
            ticket_id=claims.ticket_id,
            event_id=claims.event_id,
            issuer=claims.issuer,
            valid_until=claims.valid_until,
            status="valid",
            entry_status="in",
            entry_count=1,
            device_id=device_id,
            scanned=scanned,
        )
        return cls(**data)

    def to_hash(self) -> Dict[str, str]:
        """
        Flatten to string fields; None values are not stored.

        Extra token claims are JSON-encoded so lists, numbers and booleans
        come back with their types.
        """
        fields = type(self).model_fields
        data = {}
        for key, value in self.model_dump(mode="json").items():
            if value is None:
                continue
            data[key] = str(value) if key in fields else json.dumps(value)
        return data

    @classmethod
    def from_hash(cls, data: Dict[str, str]) -> "TicketRecord":
        decoded = {}
        for key, value in data.items():
            if key not in cls.model_fields:
                try:
                    value = json.loads(value)
                except ValueError:
                    # Written by hand, keep the raw string
                    pass
            decoded[key] = value
        return cls.model_validate(decoded)


class TicketVerificationRequest(BaseModel):
    """Scan sent by a turnstile; presence of fields is checked by the route"""
    deviceKey: Optional[str] = None
    time: Optional[datetime] = None
    qrcode: Optional[str] = None


class TicketVerificationResponse(BaseModel):
    success: bool = True
    code: str
    data: Dict[str, Any]
    result: int = 1
    msg: str = "success"
