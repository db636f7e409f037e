#!/usr/bin/env python3
"""
Send the welcome email to every waitlist signup from the command line.

    python scripts/blast.py            # asks for confirmation
    python scripts/blast.py --yes --delay 1.0
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from backend.blast import run_email_blast
from backend.config import get_settings
from backend.db.connection import connect
from backend.waitlist import list_entries


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Email every waitlist signup.")
    parser.add_argument("--yes", action="store_true", help="skip the confirmation prompt")
    parser.add_argument("--delay", type=float, default=None, help="seconds between sends")
    args = parser.parse_args(argv)

    load_dotenv()
    logging.basicConfig(level=logging.INFO, format='%(asctime)s [%(levelname)s] %(message)s')

    settings = get_settings()
    if not settings.email_enabled:
        print("❌ RESEND_API_KEY environment variable not set")
        return 1

    conn = connect()
    try:
        if not args.yes:
            print("\n--- WAITLIST EMAIL BLAST ---\n")
            print(f"Total recipients: {len(list_entries(conn))}")
            choice = input("\nSend to all of them now? (y/n): ").strip().lower()
            if choice != "y":
                print("Aborting. No emails sent.\n")
                return 1

        result = run_email_blast(conn, settings, delay=args.delay)
    finally:
        conn.close()

    print(f"\n--- BLAST COMPLETE ---")
    print(f"Sent: {result['sent']} / {result['total']}  Failed: {result['failed']}")
    for failure in result["failures"]:
        print(f"  {failure['email']}: {failure['error']}")
    return 0 if result["failed"] == 0 else 2


if __name__ == "__main__":
    sys.exit(main())
