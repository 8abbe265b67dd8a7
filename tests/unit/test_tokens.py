"""
Unit tests for bearer token validation.
"""

from datetime import timedelta
from uuid import uuid4

import pytest
from jose import jwt

from tubely.infrastructure.auth.tokens import (
    ALGORITHM,
    AuthError,
    TokenValidator,
    make_jwt,
    validate_jwt,
)

SECRET = "test-secret"


class TestValidateJwt:
    def test_round_trips_user_id(self):
        user_id = uuid4()
        token = make_jwt(user_id, SECRET)

        assert validate_jwt(token, SECRET) == user_id

    def test_expired_token(self):
        token = make_jwt(uuid4(), SECRET, expires_in=timedelta(seconds=-10))

        with pytest.raises(AuthError, match="expired"):
            validate_jwt(token, SECRET)

    def test_wrong_secret(self):
        token = make_jwt(uuid4(), "other-secret")

        with pytest.raises(AuthError, match="Invalid token"):
            validate_jwt(token, SECRET)

    def test_wrong_issuer(self):
        token = make_jwt(uuid4(), SECRET, issuer="someone-else")

        with pytest.raises(AuthError, match="claims"):
            validate_jwt(token, SECRET)

    def test_subject_must_be_a_uuid(self):
        token = jwt.encode({"iss": "tubely-access", "sub": "alice"}, SECRET, algorithm=ALGORITHM)

        with pytest.raises(AuthError, match="not a user id"):
            validate_jwt(token, SECRET)

    def test_garbage_token(self):
        with pytest.raises(AuthError):
            validate_jwt("not.a.jwt", SECRET)

    def test_unconfigured_secret_rejects_everything(self):
        token = make_jwt(uuid4(), SECRET)

        with pytest.raises(AuthError, match="not configured"):
            validate_jwt(token, "")


class TestTokenValidator:
    def test_uses_configured_issuer(self):
        user_id = uuid4()
        validator = TokenValidator(SECRET, issuer="custom")

        assert validator.validate(make_jwt(user_id, SECRET, issuer="custom")) == user_id

        with pytest.raises(AuthError):
            validator.validate(make_jwt(user_id, SECRET))
