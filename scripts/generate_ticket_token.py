#!/usr/bin/env python3
"""Script to sign test ticket tokens for the turnstiles"""
import os
import sys
from datetime import datetime, timedelta, timezone

from dotenv import load_dotenv

# Add the repository root to the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

load_dotenv()

from shared.auth.ticket_token import create_ticket_token
from shared.core.config import settings


def generate_ticket_token(ticket_id: str, event_id: str, hours: int = 12, issuer: str = None) -> str:
    """Sign a ticket valid for ``hours`` from now"""
    valid_until = datetime.now(timezone.utc) + timedelta(hours=hours)
    claims = {
        "ticket_id": ticket_id,
        "event_id": event_id,
        "issuer": issuer or settings.TICKET_ISSUER,
        "valid_until": valid_until,
        "exp": valid_until,
        "iat": datetime.now(timezone.utc),
    }
    return create_ticket_token(claims, settings.JWT_SECRET, settings.JWT_ALGORITHM)


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Generate a test ticket token")
    parser.add_argument("--ticket-id", required=True, help="Ticket ID")
    parser.add_argument("--event-id", required=True, help="Event ID the ticket admits to")
    parser.add_argument("--hours", type=int, default=12, help="Hours until the ticket expires")
    parser.add_argument("--issuer", help="Issuer claim (default TICKET_ISSUER)")

    args = parser.parse_args()

    token = generate_ticket_token(args.ticket_id, args.event_id, args.hours, args.issuer)
    print("\nTicket token:")
    print(token)
    print("\nTo scan with curl:")
    print(
        "curl -X POST -H 'Content-Type: application/json' "
        f"-d '{{\"deviceKey\": \"dev-1\", \"time\": \"{datetime.now(timezone.utc).isoformat()}\", \"qrcode\": \"{token}\"}}' "
        "http://localhost:9000/turnstile-callback/verify-ticket"
    )
    print()
