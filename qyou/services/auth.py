import logging
import os
import secrets
import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from werkzeug.security import generate_password_hash, check_password_hash

from qyou.models.account import Account, AuthSession
from qyou.services.errors import AuthenticationFailed, StoreError, ValidationError

logger = logging.getLogger(__name__)

SESSION_TTL_HOURS = int(os.getenv("SESSION_TTL_HOURS", str(24 * 7)))
MIN_PASSWORD_LENGTH = 6


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands timezone-aware columns back naive
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def validate_credentials(email: str | None, password: str | None) -> str:
    """Check email/password shape before anything is written. Returns the normalized email."""
    email = normalize_email(email)
    if not email or "@" not in email:
        raise ValidationError("A valid email address is required")
    validate_password(password)
    return email


def validate_password(password: str | None):
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")


class AuthService:
    """Accounts and bearer sessions. Every method takes its identity explicitly."""

    def __init__(self, db: Session):
        self.db = db

    def create_account(self, email: str, password: str) -> str:
        email = validate_credentials(email, password)

        if self.db.query(Account).filter(Account.email == email).first():
            raise ValidationError("This email is already registered")

        account = Account(
            id=str(uuid.uuid4()),
            email=email,
            password_hash=generate_password_hash(password),
        )
        self.db.add(account)
        try:
            self.db.commit()
        except IntegrityError as e:
            # lost a race with a concurrent sign-up for the same email
            self.db.rollback()
            raise ValidationError("This email is already registered") from e

        logger.info("account created: %s", account.id)
        return account.id

    def sign_in(self, email: str, password: str) -> AuthSession:
        account = self.db.query(Account).filter(Account.email == normalize_email(email)).first()
        if not account or not check_password_hash(account.password_hash, password or ""):
            raise AuthenticationFailed()

        session = AuthSession(
            token=secrets.token_urlsafe(32),
            account_id=account.id,
            expires_at=utcnow() + timedelta(hours=SESSION_TTL_HOURS),
        )
        self.db.add(session)
        self.db.commit()
        self.db.refresh(session)
        return session

    def current_user(self, token: str | None) -> str | None:
        if not token:
            return None
        session = self.db.query(AuthSession).filter(AuthSession.token == token).first()
        if not session or _as_utc(session.expires_at) < utcnow():
            return None
        return session.account_id

    def sign_out(self, token: str):
        self.db.query(AuthSession).filter(AuthSession.token == token).delete()
        self.db.commit()

    def change_password(self, account_id: str, new_password: str):
        validate_password(new_password)
        account = self.db.query(Account).filter(Account.id == account_id).first()
        if not account:
            raise AuthenticationFailed("Account not found")

        account.password_hash = generate_password_hash(new_password)
        try:
            # every existing session is signed out
            self.db.query(AuthSession).filter(AuthSession.account_id == account_id).delete()
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            raise StoreError() from e

    def get_account(self, account_id: str) -> Account | None:
        return self.db.query(Account).filter(Account.id == account_id).first()

    def account_exists(self, account_id: str) -> bool:
        return self.get_account(account_id) is not None
