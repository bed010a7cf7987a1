from fastapi import APIRouter, Depends
from pydantic import BaseModel

from qyou.api.profile import serialize_profile
from qyou.dependencies import get_auth, get_binder, get_current_account, get_token
from qyou.services.auth import AuthService, normalize_email
from qyou.services.binder import ProfileBinder
from qyou.services.errors import ValidationError
from qyou.services.guard import registrations

router = APIRouter(prefix="/api", tags=["auth"])


class RegisterRequest(BaseModel):
    email: str
    password: str
    code: str | None = None  # from the scanned bracelet; generated when missing


class LoginRequest(BaseModel):
    email: str
    password: str


class PasswordRequest(BaseModel):
    password: str
    confirm_password: str


@router.post("/auth/register")
def register(
    data: RegisterRequest,
    binder: ProfileBinder = Depends(get_binder),
    auth: AuthService = Depends(get_auth),
):
    """Create an account and link it to a bracelet code in one go."""
    with registrations.hold(normalize_email(data.email)):
        profile = binder.register_and_bind(data.email, data.password, data.code)

    session = auth.sign_in(data.email, data.password)

    return {
        "message": "Registration successful",
        "profile": serialize_profile(profile),
        "token": session.token,
    }


@router.post("/auth/login")
def login(data: LoginRequest, auth: AuthService = Depends(get_auth)):
    session = auth.sign_in(data.email, data.password)
    return {
        "token": session.token,
        "account_id": session.account_id,
        "expires_at": session.expires_at.isoformat(),
    }


@router.post("/auth/logout")
def logout(token: str = Depends(get_token), auth: AuthService = Depends(get_auth)):
    auth.sign_out(token)
    return {"message": "Signed out"}


@router.post("/auth/password")
def change_password(
    data: PasswordRequest,
    account_id: str = Depends(get_current_account),
    auth: AuthService = Depends(get_auth),
):
    if data.password != data.confirm_password:
        raise ValidationError("Passwords do not match")
    auth.change_password(account_id, data.password)
    return {"message": "Password updated. Please sign in again."}


@router.get("/me")
def me(account_id: str = Depends(get_current_account), auth: AuthService = Depends(get_auth)):
    account = auth.get_account(account_id)
    return {"account_id": account.id, "email": account.email}
