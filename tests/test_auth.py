"""Tests for Stuller request signing."""

import base64

import httpx
import pytest
from pydantic import ValidationError

from ringbuilder.config import Settings
from ringbuilder.upstream.auth import (
    AuthConfigError,
    BasicAuthenticator,
    BearerAuthenticator,
    OAuth1Authenticator,
    build_authenticator,
)


def _signed(auth) -> httpx.Request:
    request = httpx.Request("POST", "https://api.stuller.com/v2/products", json={"Series": ["1"]})
    return next(auth.auth_flow(request))


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


class TestAuthenticators:
    def test_basic(self):
        header = _signed(BasicAuthenticator("jeweler", "s3cret")).headers["Authorization"]
        expected = base64.b64encode(b"jeweler:s3cret").decode()
        assert header == f"Basic {expected}"

    def test_basic_matches_httpx_basic_auth(self):
        """Passwords containing a colon are encoded the same way httpx does."""
        ours = _signed(BasicAuthenticator("jeweler", "pass:word"))
        theirs = _signed(httpx.BasicAuth("jeweler", "pass:word"))
        assert ours.headers["Authorization"] == theirs.headers["Authorization"]

    def test_bearer(self):
        header = _signed(BearerAuthenticator("tok-123")).headers["Authorization"]
        assert header == "Bearer tok-123"

    def test_oauth1_header(self):
        auth = OAuth1Authenticator("ckey", "csecret", "tkey", "tsecret")
        header = _signed(auth).headers["Authorization"]
        assert header.startswith("OAuth ")
        assert 'oauth_signature_method="HMAC-SHA1"' in header
        assert 'oauth_consumer_key="ckey"' in header
        assert 'oauth_token="tkey"' in header
        assert "oauth_signature=" in header

    def test_oauth1_nonce_changes_per_request(self):
        auth = OAuth1Authenticator("ckey", "csecret", "tkey", "tsecret")
        first = _signed(auth).headers["Authorization"]
        second = _signed(auth).headers["Authorization"]
        assert first != second


class TestBuildAuthenticator:
    def test_basic_mode(self):
        auth = build_authenticator(
            _settings(stuller_auth_mode="basic", stuller_username="u", stuller_password="p")
        )
        assert isinstance(auth, BasicAuthenticator)

    def test_bearer_mode(self):
        auth = build_authenticator(
            _settings(stuller_auth_mode="bearer", stuller_bearer_token="t")
        )
        assert isinstance(auth, BearerAuthenticator)

    def test_oauth1_mode(self):
        auth = build_authenticator(
            _settings(
                stuller_auth_mode="oauth1",
                stuller_consumer_key="a",
                stuller_consumer_secret="b",
                stuller_token="c",
                stuller_token_secret="d",
            )
        )
        assert isinstance(auth, OAuth1Authenticator)

    @pytest.mark.parametrize(
        "overrides",
        [
            {"stuller_auth_mode": "basic", "stuller_username": "u", "stuller_password": ""},
            {"stuller_auth_mode": "bearer", "stuller_bearer_token": ""},
            {"stuller_auth_mode": "oauth1", "stuller_consumer_key": "a"},
        ],
    )
    def test_missing_credentials(self, overrides):
        with pytest.raises(AuthConfigError):
            build_authenticator(_settings(**overrides))


class TestSettings:
    def test_batch_size_must_be_positive(self):
        with pytest.raises(ValidationError):
            _settings(catalog_batch_size=0)

    def test_batch_size_default(self):
        assert _settings().catalog_batch_size == 10
