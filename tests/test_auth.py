import base64
import time

import pytest
from jose import jwt

from livelist import auth
from livelist.errors import AuthenticationError

SECRET = "super-secret-signing-key"
JWK = {
    "kty": "oct",
    "kid": "test-key",
    "alg": "HS256",
    "k": base64.urlsafe_b64encode(SECRET.encode()).decode().rstrip("="),
}


@pytest.fixture(autouse=True)
def jwks(monkeypatch):
    monkeypatch.setattr(auth, "get_supabase_jwks", lambda: {"keys": [JWK]})


def make_token(claims, kid="test-key"):
    return jwt.encode(claims, SECRET, algorithm="HS256", headers={"kid": kid})


def test_valid_token_resolves_user():
    token = make_token({
        "sub": "u1",
        "email": "Ann@Example.com",
        "exp": int(time.time()) + 60,
        "user_metadata": {"name": "Ann"},
    })
    user = auth.verify_access_token(token)
    assert (user.id, user.email, user.full_name) == ("u1", "ann@example.com", "Ann")


def test_expired_token():
    token = make_token({"sub": "u1", "email": "a@x.com", "exp": int(time.time()) - 60})
    with pytest.raises(AuthenticationError) as exc_info:
        auth.verify_access_token(token)
    assert exc_info.value.message == "Token has expired"


def test_unknown_key_id():
    token = make_token({"sub": "u1", "email": "a@x.com"}, kid="other")
    with pytest.raises(AuthenticationError):
        auth.verify_access_token(token)


def test_garbage_and_empty_tokens():
    for token in ("", "not-a-jwt"):
        with pytest.raises(AuthenticationError):
            auth.verify_access_token(token)


def test_claims_without_email_are_rejected():
    with pytest.raises(AuthenticationError):
        auth.user_from_claims({"sub": "u1"})
