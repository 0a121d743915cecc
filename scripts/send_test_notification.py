"""Send a test WhatsApp message or email through the production adapters.

Usage:
    TWILIO_ACCOUNT_SID=... TWILIO_AUTH_TOKEN=... TWILIO_WHATSAPP_FROM=... \
        python scripts/send_test_notification.py whatsapp +6281234567890
    RESEND_API_KEY=... python scripts/send_test_notification.py email tenant@example.com

Prints the resulting notification outcome as JSON. Exit code 1 when the send
did not succeed.
"""

from __future__ import annotations

import argparse
import json
import sys
from datetime import datetime


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Send a test notification")
    parser.add_argument("channel", choices=["whatsapp", "email"])
    parser.add_argument("recipient", help="Phone number (any local format) or email address")
    parser.add_argument("--message", help="WhatsApp text (default: timestamped test message)")
    args = parser.parse_args(argv)

    # Import after argument parsing so --help works without configuration
    from kostly.notifications.email import EmailAdapter
    from kostly.notifications.whatsapp import WhatsAppAdapter

    if args.channel == "whatsapp":
        adapter = WhatsAppAdapter.from_env()
        if not adapter.configured:
            print("ERROR: TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN and TWILIO_WHATSAPP_FROM must be set")
            return 1
        text = args.message or f"Test WhatsApp dari Kost Pak Trisno - {datetime.now():%d/%m/%Y %H:%M}"
        outcome = adapter.send(args.recipient, text)
    else:
        adapter = EmailAdapter.from_env()
        if not adapter.configured:
            print("ERROR: RESEND_API_KEY not set")
            return 1
        outcome = adapter.send(
            args.recipient,
            "payment_accepted",
            {"tenant_name": "Penghuni Uji", "month": "Test", "room_number": "-"},
        )

    print(json.dumps(outcome.to_dict(), indent=2))
    return 0 if outcome.success else 1


if __name__ == "__main__":
    sys.exit(main())
