import logging

from sqlalchemy.exc import SQLAlchemyError

from qyou.models.profile import Profile
from qyou.services.auth import AuthService, validate_credentials
from qyou.services.claims import ClaimLedger, generate_code, validate_code
from qyou.services.errors import AlreadyClaimed, PartialRegistration, QyouError

logger = logging.getLogger(__name__)

# collisions on a generated code get a fresh code; a supplied code never does
CODE_GENERATION_ATTEMPTS = 3


class ProfileBinder:
    """Sign-up flow: create the account, then claim a code for it."""

    def __init__(self, auth: AuthService, ledger: ClaimLedger):
        self.auth = auth
        self.ledger = ledger

    def register_and_bind(self, email: str, password: str, code: str | None = None) -> Profile:
        email = validate_credentials(email, password)
        if code:
            code = validate_code(code)
            # fail fast before an account exists; not a guarantee
            if self.ledger.check_status(code).claimed:
                raise AlreadyClaimed(code)

        account_id = self.auth.create_account(email, password)

        try:
            return self._bind(account_id, email, code)
        except (QyouError, SQLAlchemyError) as e:
            if isinstance(e, SQLAlchemyError):
                self.ledger.db.rollback()
            # the account stays; nothing here deletes it
            logger.warning(
                "PARTIAL REGISTRATION account=%s email=%s code=%s cause=%s: needs reconciliation",
                account_id, email, code, e,
            )
            raise PartialRegistration(account_id, e) from e

    def _bind(self, account_id: str, email: str, code: str | None) -> Profile:
        if code:
            return self.ledger.claim(code, account_id, email)

        for attempt in range(1, CODE_GENERATION_ATTEMPTS + 1):
            candidate = generate_code()
            try:
                return self.ledger.claim(candidate, account_id, email)
            except AlreadyClaimed:
                logger.info("generated code %s collided (attempt %d)", candidate, attempt)
                if attempt == CODE_GENERATION_ATTEMPTS:
                    raise
