"""Caller identity lookup for bearer-authenticated endpoints."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional

import requests
from pydantic import BaseModel, ValidationError

LOGGER = logging.getLogger(__name__)


class AuthenticationRequired(PermissionError):
    """Raised when a caller identity or mail credential is missing or invalid."""


class _IdentityPayload(BaseModel):
    id: str
    email: Optional[str] = None


def bearer_token_from_header(authorization: Optional[str]) -> str:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""

    if not authorization:
        raise AuthenticationRequired("Missing Authorization header")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationRequired("Authorization header must be a bearer token")
    return token.strip()


class IdentityProvider(ABC):
    """Resolve a bearer token to a user id."""

    @abstractmethod
    def resolve_user_id(self, token: str) -> str:
        """Return the user id for ``token`` or raise :class:`AuthenticationRequired`."""


class RemoteIdentityProvider(IdentityProvider):
    """Look the token up against the auth service's ``user`` endpoint."""

    def __init__(self, identity_url: Optional[str], api_key: Optional[str] = None, timeout_seconds: float = 10.0) -> None:
        self.identity_url = identity_url
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds

    def resolve_user_id(self, token: str) -> str:
        if not self.identity_url:
            raise AuthenticationRequired("Identity service is not configured")

        headers = {"Authorization": f"Bearer {token}"}
        if self.api_key:
            headers["apikey"] = self.api_key
        try:
            response = requests.get(self.identity_url, headers=headers, timeout=self.timeout_seconds)
        except requests.RequestException as exc:
            LOGGER.warning("Identity lookup failed", extra={"error": str(exc)})
            raise AuthenticationRequired("Identity service unreachable") from exc

        if response.status_code != 200:
            raise AuthenticationRequired("Invalid or expired bearer token")
        try:
            return _IdentityPayload.model_validate(response.json()).id
        except (ValueError, ValidationError) as exc:
            raise AuthenticationRequired("Identity service returned no user id") from exc


class MockIdentityProvider(IdentityProvider):
    """Static token-to-user mapping for local runs and tests."""

    def __init__(self, tokens: Optional[Dict[str, str]] = None) -> None:
        self.tokens = dict(tokens or {})

    def resolve_user_id(self, token: str) -> str:
        try:
            return self.tokens[token]
        except KeyError:
            raise AuthenticationRequired("Invalid or expired bearer token") from None


__all__ = [
    "AuthenticationRequired",
    "IdentityProvider",
    "MockIdentityProvider",
    "RemoteIdentityProvider",
    "bearer_token_from_header",
]
