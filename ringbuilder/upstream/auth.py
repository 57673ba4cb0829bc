"""Authentication strategies for the Stuller API.

Depending on the account, Stuller accepts HTTP Basic, a Bearer token, or
OAuth 1.0a (HMAC-SHA1) signed requests. Each strategy is an ``httpx.Auth``
so the supplier client stays auth-agnostic: it just passes ``auth=`` to
its ``AsyncClient``.
"""

from __future__ import annotations

from collections.abc import Generator

import httpx
from oauthlib.oauth1 import SIGNATURE_HMAC_SHA1
from oauthlib.oauth1 import Client as OAuth1Client

from ringbuilder.config import Settings


class AuthConfigError(ValueError):
    """Raised when the selected auth mode is missing credentials."""


class Authenticator(httpx.Auth):
    """Signs outgoing requests. Subclasses implement ``sign``."""

    def sign(self, request: httpx.Request) -> httpx.Request:
        raise NotImplementedError

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        yield self.sign(request)


class BasicAuthenticator(Authenticator):
    def __init__(self, username: str, password: str) -> None:
        self._basic = httpx.BasicAuth(username, password)

    def sign(self, request: httpx.Request) -> httpx.Request:
        return next(self._basic.auth_flow(request))


class BearerAuthenticator(Authenticator):
    def __init__(self, token: str) -> None:
        self._header = f"Bearer {token}"

    def sign(self, request: httpx.Request) -> httpx.Request:
        request.headers["Authorization"] = self._header
        return request


class OAuth1Authenticator(Authenticator):
    """OAuth 1.0a header signing via oauthlib.

    JSON bodies are not part of the OAuth 1.0 signature base string, so
    only the method, URL and query parameters are signed.
    """

    def __init__(
        self,
        consumer_key: str,
        consumer_secret: str,
        token: str,
        token_secret: str,
    ) -> None:
        self._client = OAuth1Client(
            consumer_key,
            client_secret=consumer_secret,
            resource_owner_key=token,
            resource_owner_secret=token_secret,
            signature_method=SIGNATURE_HMAC_SHA1,
        )

    def sign(self, request: httpx.Request) -> httpx.Request:
        _, headers, _ = self._client.sign(str(request.url), http_method=request.method)
        request.headers["Authorization"] = headers["Authorization"]
        return request


def build_authenticator(settings: Settings) -> Authenticator:
    """Pick the strategy named by ``STULLER_AUTH_MODE``."""
    mode = settings.stuller_auth_mode
    if mode == "basic":
        if not settings.stuller_username or not settings.stuller_password:
            raise AuthConfigError(
                "STULLER_USERNAME and STULLER_PASSWORD are required for basic auth"
            )
        return BasicAuthenticator(settings.stuller_username, settings.stuller_password)
    if mode == "bearer":
        if not settings.stuller_bearer_token:
            raise AuthConfigError("STULLER_BEARER_TOKEN is required for bearer auth")
        return BearerAuthenticator(settings.stuller_bearer_token)
    if mode == "oauth1":
        required = (
            settings.stuller_consumer_key,
            settings.stuller_consumer_secret,
            settings.stuller_token,
            settings.stuller_token_secret,
        )
        if not all(required):
            raise AuthConfigError(
                "STULLER_CONSUMER_KEY, STULLER_CONSUMER_SECRET, STULLER_TOKEN and "
                "STULLER_TOKEN_SECRET are required for oauth1 auth"
            )
        return OAuth1Authenticator(*required)
    raise AuthConfigError(f"Unknown STULLER_AUTH_MODE: {mode!r}")
