# qyou/dependencies.py
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from qyou.database import get_db
from qyou.services.auth import AuthService
from qyou.services.binder import ProfileBinder
from qyou.services.claims import ClaimLedger
from qyou.services.editor import ProfileEditor
from qyou.services.errors import AuthenticationFailed
from qyou.services.media import MediaUploadCoordinator
from qyou.services.storage import get_object_store

# Security scheme
bearer = HTTPBearer(description="Session token from /api/auth/login", auto_error=False)


def get_auth(db: Session = Depends(get_db)) -> AuthService:
    return AuthService(db)


def get_ledger(db: Session = Depends(get_db)) -> ClaimLedger:
    return ClaimLedger(db)


def get_binder(auth: AuthService = Depends(get_auth), ledger: ClaimLedger = Depends(get_ledger)) -> ProfileBinder:
    return ProfileBinder(auth, ledger)


def get_media(store=Depends(get_object_store)) -> MediaUploadCoordinator:
    return MediaUploadCoordinator(store)


def get_editor(db: Session = Depends(get_db), media: MediaUploadCoordinator = Depends(get_media)) -> ProfileEditor:
    return ProfileEditor(db, media)


def get_token(credentials: HTTPAuthorizationCredentials | None = Depends(bearer)) -> str:
    if not credentials or not credentials.credentials:
        raise AuthenticationFailed("Please sign in first")
    return credentials.credentials


def get_current_account(token: str = Depends(get_token), auth: AuthService = Depends(get_auth)) -> str:
    """
    Resolve the bearer token to an account id.
    🔒 SECURITY: account id always comes from the session, never from the request body.
    """
    account_id = auth.current_user(token)
    if not account_id:
        raise AuthenticationFailed("Your session has expired. Please sign in again.")
    return account_id
