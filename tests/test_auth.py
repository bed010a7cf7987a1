from datetime import timedelta

import pytest

from qyou.models.account import AuthSession
from qyou.services.auth import AuthService, utcnow


@pytest.fixture
def auth(db):
    return AuthService(db)


def test_sign_in_session_resolves_to_account(auth, make_account):
    account_id = make_account()
    session = auth.sign_in("USER@example.com", "secret123")

    assert auth.current_user(session.token) == account_id


def test_expired_session_is_ignored(auth, db, make_account):
    make_account()
    session = auth.sign_in("user@example.com", "secret123")
    session.expires_at = utcnow() - timedelta(minutes=1)
    db.commit()

    assert auth.current_user(session.token) is None


def test_change_password_signs_out_every_session(auth, db, make_account):
    account_id = make_account()
    first = auth.sign_in("user@example.com", "secret123").token
    second = auth.sign_in("user@example.com", "secret123").token

    auth.change_password(account_id, "newpass1")

    assert auth.current_user(first) is None
    assert auth.current_user(second) is None
    assert db.query(AuthSession).filter(AuthSession.account_id == account_id).count() == 0
