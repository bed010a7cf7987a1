"""
🏷️ BRACELET CODE MANAGEMENT HELPER
Quick script to inspect codes and reconcile accounts in the database.

Usage:
    python manage_codes.py --status "ab12cd34"
    python manage_codes.py --orphans
    python manage_codes.py --generate 50
"""

import sys
import os

# Add the project directory to the path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from qyou.database import SessionLocal, init_db
from qyou.models.account import Account
from qyou.models.profile import Profile
from qyou.services.claims import ClaimLedger, generate_code
from qyou.services.errors import ValidationError


def code_status(code):
    """Show whether a code is claimed and by whom"""
    db = SessionLocal()

    try:
        ledger = ClaimLedger(db)
        try:
            status = ledger.check_status(code)
        except ValidationError:
            print(f"❌ '{code}' is not a valid code")
            return False

        if not status.claimed:
            print(f"🟢 '{code}' is unclaimed")
            return True

        profile = ledger.profile_for_code(code)
        print(f"\n📊 CODE: {profile.code}\n")
        print(f"Status:          🔴 Claimed")
        print(f"Claimed by:      {profile.account_id}")
        print(f"Email:           {profile.email or '-'}")
        print(f"Name:            {profile.name or '-'}")
        print(f"Claimed at:      {profile.claimed_at.strftime('%Y-%m-%d %H:%M:%S') if profile.claimed_at else '-'}")
        print()
        return True
    finally:
        db.close()


def list_orphans():
    """List accounts that were created but never got a code (failed registrations)"""
    db = SessionLocal()

    try:
        orphans = (
            db.query(Account)
            .outerjoin(Profile, Profile.account_id == Account.id)
            .filter(Profile.id.is_(None))
            .order_by(Account.created_at.asc())
            .all()
        )

        if not orphans:
            print("✅ No unbound accounts.")
            return []

        print(f"\n⚠️ UNBOUND ACCOUNTS ({len(orphans)}):\n")
        print(f"{'Account':<38} {'Email':<35} {'Created':<20}")
        print("-" * 93)

        for a in orphans:
            created = a.created_at.strftime("%Y-%m-%d %H:%M") if a.created_at else "-"
            print(f"{a.id:<38} {a.email:<35} {created:<20}")

        print()
        return orphans
    finally:
        db.close()


def generate_codes(count):
    """Print fresh codes that are unclaimed right now, for printing on bracelets"""
    db = SessionLocal()

    try:
        ledger = ClaimLedger(db)
        codes = set()
        while len(codes) < count:
            code = generate_code()
            # not a reservation: the code can still be taken before it is printed
            if not ledger.check_status(code).claimed:
                codes.add(code)

        for code in sorted(codes):
            print(code)
        return sorted(codes)
    finally:
        db.close()


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)

    init_db()
    command = sys.argv[1]

    if command == "--status":
        if len(sys.argv) < 3:
            print("Usage: python manage_codes.py --status <code>")
            sys.exit(1)
        code_status(sys.argv[2])

    elif command == "--orphans":
        list_orphans()

    elif command == "--generate":
        count = int(sys.argv[2]) if len(sys.argv) > 2 else 10
        generate_codes(count)

    else:
        print(f"Unknown command: {command}")
        print(__doc__)
        sys.exit(1)
