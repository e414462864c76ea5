"""Rejections and faults raised while verifying a ticket at the gate"""
from typing import Optional


class VerificationRejected(Exception):
    """Base class for every business-rule rejection.

    A rejection is a normal terminal outcome of a verification attempt: the
    ticket is denied and no state was mutated. Each subclass carries a stable
    ``kind`` used by callers (HTTP layer, Celery tasks) and a default,
    human-readable message.
    """

    kind = "VerificationRejected"
    default_message = "Ticket verification failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message}


class MissingParameters(VerificationRejected):
    kind = "MissingParameters"
    default_message = "Missing required parameters"


class NoActiveEvent(VerificationRejected):
    kind = "NoActiveEvent"
    default_message = "No current event found"


class TokenExpired(VerificationRejected):
    kind = "TokenExpired"
    default_message = "Token has expired"


class TokenInvalid(VerificationRejected):
    kind = "TokenInvalid"
    default_message = "Invalid token"


class IssuerMismatch(VerificationRejected):
    kind = "IssuerMismatch"
    default_message = "Ticket was not issued by a trusted issuer"


class TicketExpired(VerificationRejected):
    kind = "TicketExpired"
    default_message = "Ticket has expired"


class EventMismatch(VerificationRejected):
    kind = "EventMismatch"
    default_message = "The event ID does not match the current event"


class Blacklisted(VerificationRejected):
    kind = "Blacklisted"
    default_message = "Ticket has been blacklisted"


class Revoked(VerificationRejected):
    kind = "Revoked"
    default_message = "This ticket has been revoked"


class ConcurrentProcessing(VerificationRejected):
    kind = "ConcurrentProcessing"
    default_message = "Ticket is being processed, please wait"


class EventFull(VerificationRejected):
    kind = "EventFull"
    default_message = "Event is at full capacity"


class AlreadyInside(VerificationRejected):
    kind = "AlreadyInside"
    default_message = (
        "Ticket has already been used for entry. "
        "The client is still inside the event center"
    )


class MaxEntriesReached(VerificationRejected):
    kind = "MaxEntriesReached"
    default_message = "Ticket has reached the maximum number of allowed entries"


class TicketInvalidOrRevoked(VerificationRejected):
    kind = "TicketInvalidOrRevoked"
    default_message = "Ticket is invalid or has been revoked"


class StoreUnavailable(Exception):
    """The shared cache store could not be reached or failed a command"""

    kind = "StoreUnavailable"
