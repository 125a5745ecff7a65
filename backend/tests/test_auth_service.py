"""
EcoCodeAI Backend - Auth Service Unit Tests
=============================================

What we test:
    ✅ Password hashes never equal the plaintext and verify correctly
    ✅ Tokens carry the username and reject tampering, expiry, wrong keys
    ✅ Tokens without a subject are rejected
"""

from datetime import timedelta

import pytest
from jose import jwt

from ecocode.exceptions import AuthenticationError
from ecocode.services.auth_service import AuthService


@pytest.fixture
def service():
    return AuthService(secret_key="unit-test-secret", algorithm="HS256", expire_minutes=5)


class TestPasswordHashing:

    def test_hash_is_not_plaintext(self, service):
        hashed = service.hash_password("correct horse")
        assert hashed != "correct horse"
        assert "correct horse" not in hashed
        assert hashed.startswith("$2")

    def test_hash_is_salted(self, service):
        assert service.hash_password("same-password") != service.hash_password("same-password")

    def test_verify_correct_password(self, service):
        hashed = service.hash_password("s3cret!")
        assert service.verify_password("s3cret!", hashed) is True

    def test_verify_wrong_password(self, service):
        hashed = service.hash_password("s3cret!")
        assert service.verify_password("S3cret!", hashed) is False

    def test_verify_against_plaintext_value_is_false(self, service):
        """A row holding a plaintext password must never authenticate."""
        assert service.verify_password("s3cret!", "s3cret!") is False

    def test_dummy_verify_runs_a_real_hash(self, service):
        # Must not raise; it burns the same work factor as verify_password
        assert service.dummy_verify() is None


class TestAccessTokens:

    def test_round_trip_returns_subject(self, service):
        token = service.create_access_token("ada")
        assert service.decode_access_token(token) == "ada"

    def test_expires_in_matches_configuration(self, service):
        assert service.expires_in == 300

    def test_expired_token_rejected(self, service):
        token = service.create_access_token("ada", expires_delta=timedelta(seconds=-10))
        with pytest.raises(AuthenticationError):
            service.decode_access_token(token)

    def test_token_signed_with_other_key_rejected(self, service):
        other = AuthService(secret_key="another-secret")
        token = other.create_access_token("ada")
        with pytest.raises(AuthenticationError):
            service.decode_access_token(token)

    def test_tampered_token_rejected(self, service):
        token = service.create_access_token("ada")
        header, payload, signature = token.split(".")
        tampered = ".".join([header, payload, signature[::-1]])
        with pytest.raises(AuthenticationError):
            service.decode_access_token(tampered)

    def test_garbage_token_rejected(self, service):
        with pytest.raises(AuthenticationError):
            service.decode_access_token("not-a-jwt")

    def test_token_without_subject_rejected(self, service):
        token = jwt.encode({"role": "admin"}, "unit-test-secret", algorithm="HS256")
        with pytest.raises(AuthenticationError):
            service.decode_access_token(token)

    def test_missing_secret_generates_ephemeral_key(self, monkeypatch):
        from ecocode.services import auth_service as module

        monkeypatch.setattr(module.settings, "jwt_secret_key", "")
        first = AuthService()
        second = AuthService()
        token = first.create_access_token("ada")

        assert first.decode_access_token(token) == "ada"
        with pytest.raises(AuthenticationError):
            second.decode_access_token(token)
