"""Mail credential lifecycle: account connection and access token refresh."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import requests
from google.auth.exceptions import RefreshError, TransportError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from pydantic import BaseModel, ValidationError

from fits_app.config import DEFAULT_TOKEN_URI
from fits_app.logging_config import log_event
from models.credentials import GMAIL_READONLY_SCOPE, MailCredential
from tools.gmail_client import MailProviderError
from tools.identity_provider import AuthenticationRequired
from tools.ingestion_store import IngestionStore
from tools.observability import instrument_tool

LOGGER = logging.getLogger(__name__)


class MailAccountNotConnected(AuthenticationRequired):
    """Raised when the user has no stored mail credential."""


class AccountDisconnected(AuthenticationRequired):
    """Raised when the provider rejects the refresh token; the user must reconnect."""

    def __init__(self, message: str = "account disconnected, reconnect required") -> None:
        super().__init__(message)


class _TokenExchangeResponse(BaseModel):
    access_token: str
    expires_in: int = 3600
    refresh_token: Optional[str] = None
    scope: Optional[str] = None


class TokenManager:
    """Hand out a valid access token per user, refreshing it when expired.

    Two concurrent scans may both see an expired token and both refresh;
    the store upsert keeps whichever write lands last, and both tokens are
    valid with the provider.
    """

    def __init__(
        self,
        store: IngestionStore,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        token_uri: str = DEFAULT_TOKEN_URI,
        redirect_uri: Optional[str] = None,
        timeout_seconds: float = 10.0,
    ) -> None:
        self.store = store
        self.client_id = client_id
        self.client_secret = client_secret
        self.token_uri = token_uri
        self.redirect_uri = redirect_uri
        self.timeout_seconds = timeout_seconds

    def get_valid_token(self, user_id: str, now: datetime | None = None) -> str:
        credential = self.store.get_credential(user_id)
        if credential is None:
            raise MailAccountNotConnected("Mail account not connected")

        now = now or datetime.now(timezone.utc)
        if not credential.is_expired(now):
            return credential.access_token

        refreshed = self._refresh(credential)
        self.store.upsert_credential(refreshed)
        log_event(LOGGER, logging.INFO, "mail_token_refreshed", user_id=user_id)
        return refreshed.access_token

    @instrument_tool("refresh_mail_token")
    def _refresh(self, credential: MailCredential) -> MailCredential:
        google_credentials = Credentials(
            token=credential.access_token,
            refresh_token=credential.refresh_token,
            token_uri=self.token_uri,
            client_id=self.client_id,
            client_secret=self.client_secret,
        )
        try:
            google_credentials.refresh(Request())
        except RefreshError as exc:
            log_event(
                LOGGER,
                logging.WARNING,
                "mail_token_refresh_rejected",
                user_id=credential.user_id,
                error=str(exc),
            )
            raise AccountDisconnected() from exc
        except TransportError as exc:
            raise MailProviderError(f"Token refresh could not reach the token endpoint: {exc}") from exc

        expiry = google_credentials.expiry or (datetime.now(timezone.utc) + timedelta(hours=1))
        return MailCredential(
            user_id=credential.user_id,
            access_token=google_credentials.token,
            refresh_token=google_credentials.refresh_token or credential.refresh_token,
            expires_at=expiry,
            scope=credential.scope,
            account_address=credential.account_address,
        )

    @instrument_tool("connect_mail_account")
    def connect_account(
        self, user_id: str, code: str, account_address: Optional[str] = None
    ) -> MailCredential:
        """Exchange an OAuth authorization code and store the resulting credential."""

        data = {
            "code": code,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "redirect_uri": self.redirect_uri,
            "grant_type": "authorization_code",
        }
        try:
            response = requests.post(self.token_uri, data=data, timeout=self.timeout_seconds)
        except requests.RequestException as exc:
            raise AuthenticationRequired(f"Token exchange failed: {exc}") from exc
        if response.status_code != 200:
            raise AuthenticationRequired(f"Token exchange rejected: HTTP {response.status_code}")

        try:
            payload = _TokenExchangeResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise AuthenticationRequired("Token exchange returned an unexpected payload") from exc
        if not payload.refresh_token:
            raise AuthenticationRequired("Token exchange returned no refresh token; offline access is required")

        credential = MailCredential(
            user_id=user_id,
            access_token=payload.access_token,
            refresh_token=payload.refresh_token,
            expires_at=datetime.now(timezone.utc) + timedelta(seconds=payload.expires_in),
            scope=payload.scope or GMAIL_READONLY_SCOPE,
            account_address=account_address,
        )
        self.store.upsert_credential(credential)
        log_event(LOGGER, logging.INFO, "mail_account_connected", user_id=user_id)
        return credential


__all__ = ["AccountDisconnected", "MailAccountNotConnected", "TokenManager"]
