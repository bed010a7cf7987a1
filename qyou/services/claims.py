"""
Claim ledger: which bracelet codes are taken, and by whom.

A code is UNCLAIMED until a profile row carries it, then CLAIMED for good
(there is no release). ``check_status`` is a read-only early answer for the
UI. The unique index on ``profiles.code`` is what actually decides a race:
two callers can both see "unclaimed", but only one insert can commit.
"""

import enum
import logging
import re
import secrets
import string
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from qyou.models.account import Account
from qyou.models.profile import Profile
from qyou.services.errors import (
    AccountAlreadyBound,
    AlreadyClaimed,
    StoreError,
    ValidationError,
)

logger = logging.getLogger(__name__)

CODE_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")
GENERATED_CODE_LENGTH = 8
GENERATED_CODE_ALPHABET = string.digits + string.ascii_lowercase


class ClaimState(str, enum.Enum):
    UNCLAIMED = "unclaimed"
    CLAIMED = "claimed"


@dataclass
class ClaimStatus:
    code: str
    state: ClaimState
    reason: str | None = None

    @property
    def claimed(self) -> bool:
        return self.state is ClaimState.CLAIMED

    def to_dict(self) -> dict:
        if self.claimed:
            return {"claimed": True, "reason": self.reason}
        return {"claimed": False}


def validate_code(code: str | None) -> str:
    code = (code or "").strip()
    if not CODE_PATTERN.match(code):
        raise ValidationError("Invalid code")
    return code


def generate_code() -> str:
    """Random 8-char code. Not checked against the table here; the insert decides."""
    return "".join(secrets.choice(GENERATED_CODE_ALPHABET) for _ in range(GENERATED_CODE_LENGTH))


class ClaimLedger:
    def __init__(self, db: Session):
        self.db = db

    def check_status(self, code: str) -> ClaimStatus:
        code = validate_code(code)
        exists = self.db.query(Profile.id).filter(Profile.code == code).first() is not None
        if exists:
            return ClaimStatus(code, ClaimState.CLAIMED, reason="This code has already been claimed")
        return ClaimStatus(code, ClaimState.UNCLAIMED)

    def claim(self, code: str, account_id: str, email: str | None = None) -> Profile:
        """
        UNCLAIMED -> CLAIMED for ``account_id``.

        Raises AlreadyClaimed if the code is taken (either seen up front or
        rejected by the unique index), AccountAlreadyBound if the account
        already owns a code.
        """
        code = validate_code(code)
        if not account_id:
            raise ValidationError("account_id is required")

        # early answer only; the insert below is authoritative
        if self.check_status(code).claimed:
            raise AlreadyClaimed(code)

        account = self.db.query(Account).filter(Account.id == account_id).first()
        if not account:
            raise ValidationError("Unknown account")

        profile = Profile(account_id=account_id, email=email or account.email, code=code)
        self.db.add(profile)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise self._classify_conflict(code, account_id, e) from e
        except Exception as e:
            self.db.rollback()
            logger.error("claim insert failed for code %s: %s", code, e)
            raise StoreError() from e

        self.db.refresh(profile)
        logger.info("code %s claimed by account %s", code, account_id)
        return profile

    def _classify_conflict(self, code: str, account_id: str, error: IntegrityError) -> Exception:
        if self.db.query(Profile.id).filter(Profile.code == code).first() is not None:
            logger.info("claim race lost on code %s by account %s", code, account_id)
            return AlreadyClaimed(code)
        if self.db.query(Profile.id).filter(Profile.account_id == account_id).first() is not None:
            return AccountAlreadyBound()
        logger.error("unexpected integrity error claiming %s: %s", code, error)
        return StoreError()

    def profile_for_code(self, code: str) -> Profile | None:
        return self.db.query(Profile).filter(Profile.code == validate_code(code)).first()
