"""
Tests for token issuing/verification and password hashing.
"""

import time

import pytest
from jose import jwt

from menu_api.core.security import (
    TokenExpiredError,
    TokenMalformedError,
    TokenNotYetValidError,
    TokenService,
    hash_password,
    verify_password,
)

SECRET = "unit-test-secret"
USER = {"id": "65f0c0ffee0000000000abcd", "email": "ada@example.com", "role": "user"}


@pytest.fixture
def tokens() -> TokenService:
    return TokenService(secret=SECRET)


class TestTokenService:

    def test_round_trip_claims(self, tokens):
        now = time.time()
        claims = tokens.verify(tokens.issue(USER, now=now))

        assert claims.user_id == USER["id"]
        assert claims.email == USER["email"]
        assert claims.role == "user"
        assert claims.expires_at - claims.issued_at == 7 * 24 * 3600

    def test_expired_token_is_unauthorized(self, tokens):
        token = tokens.issue(USER)

        with pytest.raises(TokenExpiredError) as exc_info:
            tokens.verify(token, now=time.time() + 8 * 24 * 3600)

        assert exc_info.value.status_code == 401
        assert exc_info.value.message == "Token expired. Please login again."

    def test_token_past_expiry_by_signature_check(self, tokens):
        token = tokens.issue(USER, now=time.time() - 8 * 24 * 3600)

        with pytest.raises(TokenExpiredError):
            tokens.verify(token)

    def test_future_issued_at_is_forbidden(self, tokens):
        token = tokens.issue(USER, now=time.time() + 3600)

        with pytest.raises(TokenNotYetValidError) as exc_info:
            tokens.verify(token)

        assert exc_info.value.status_code == 403
        assert exc_info.value.message == "Token not active yet"

    def test_leeway_tolerates_small_clock_skew(self):
        tokens = TokenService(secret=SECRET, leeway_seconds=30)
        token = tokens.issue(USER, now=time.time() + 10)

        assert tokens.verify(token).user_id == USER["id"]

    @pytest.mark.parametrize("token", ["", "not-a-token", "a.b.c"])
    def test_garbage_is_malformed(self, tokens, token):
        with pytest.raises(TokenMalformedError) as exc_info:
            tokens.verify(token)

        assert exc_info.value.status_code == 403
        assert exc_info.value.message == "Invalid token"

    def test_wrong_secret_is_malformed(self, tokens):
        token = TokenService(secret="someone-else").issue(USER)

        with pytest.raises(TokenMalformedError):
            tokens.verify(token)

    def test_missing_claims_are_malformed(self, tokens):
        now = int(time.time())
        token = jwt.encode({"email": "x@y.io", "iat": now, "exp": now + 60}, SECRET, algorithm="HS256")

        with pytest.raises(TokenMalformedError):
            tokens.verify(token)


class TestPasswords:

    def test_hash_is_not_plaintext_and_verifies(self):
        hashed = hash_password("s3cret-pass")

        assert hashed != "s3cret-pass"
        assert hashed.startswith("$2")
        assert verify_password("s3cret-pass", hashed)
        assert not verify_password("wrong-pass", hashed)

    def test_same_password_hashes_differently(self):
        assert hash_password("s3cret-pass") != hash_password("s3cret-pass")

    def test_corrupt_hash_does_not_verify(self):
        assert not verify_password("s3cret-pass", "not-a-bcrypt-hash")
