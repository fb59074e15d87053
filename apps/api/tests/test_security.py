import uuid

import jwt
import pytest

from casa.core.config import settings
from casa.core.security import (
    create_session_token,
    decode_session_token,
    get_password_hash,
    verify_password,
)


def test_verify_password():
    hashed = get_password_hash("abc123")
    assert verify_password("abc123", hashed) is True
    assert verify_password("def456", hashed) is False
    assert verify_password("", hashed) is False
    assert verify_password(None, hashed) is False
    assert verify_password("abc123", None) is False


def test_session_token_carries_true_user_only_when_impersonating():
    user_id, admin_id, org_id = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()

    plain = decode_session_token(create_session_token(user_id, org_id, "volunteer", 1))
    assert plain["sub"] == str(user_id)
    assert "true_sub" not in plain

    same = decode_session_token(create_session_token(user_id, org_id, "volunteer", 1, true_user_id=user_id))
    assert "true_sub" not in same

    impersonating = decode_session_token(
        create_session_token(user_id, org_id, "volunteer", 3, true_user_id=admin_id)
    )
    assert impersonating["true_sub"] == str(admin_id)
    assert impersonating["token_version"] == 3


def test_previous_secret_still_decodes(monkeypatch):
    token = create_session_token(uuid.uuid4(), uuid.uuid4(), "supervisor", 1)

    monkeypatch.setattr(settings, "JWT_SECRET_PREVIOUS", settings.JWT_SECRET)
    monkeypatch.setattr(settings, "JWT_SECRET", "rotated-secret")

    assert decode_session_token(token)["role"] == "supervisor"


def test_unknown_secret_rejected(monkeypatch):
    token = create_session_token(uuid.uuid4(), uuid.uuid4(), "supervisor", 1)

    monkeypatch.setattr(settings, "JWT_SECRET", "rotated-secret")
    monkeypatch.setattr(settings, "JWT_SECRET_PREVIOUS", "")

    with pytest.raises(jwt.InvalidTokenError):
        decode_session_token(token)
