"""Mail provider abstractions and the Gmail REST implementation."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List

import requests
from pydantic import BaseModel, ValidationError

from fits_app.config import DEFAULT_GMAIL_API_BASE
from tools.observability import instrument_tool

LOGGER = logging.getLogger(__name__)


class MailProviderError(RuntimeError):
    """Raised when the mail provider cannot be reached or rejects a call."""


class _MessageRef(BaseModel):
    id: str
    threadId: str | None = None


class _MessageListResponse(BaseModel):
    messages: List[_MessageRef] = []
    resultSizeEstimate: int | None = None


class MailProvider(ABC):
    """Search a mailbox and fetch individual messages."""

    @abstractmethod
    def list_message_ids(self, access_token: str, query: str, max_results: int) -> List[str]:
        """Return up to ``max_results`` message identifiers matching ``query``."""

    @abstractmethod
    def get_message(self, access_token: str, message_id: str) -> Dict[str, Any]:
        """Return the full provider payload for one message."""


class GmailClient(MailProvider):
    """Gmail REST client authenticated with a user's bearer access token."""

    def __init__(self, api_base: str = DEFAULT_GMAIL_API_BASE, timeout_seconds: float = 10.0) -> None:
        self.api_base = api_base.rstrip("/")
        self.timeout_seconds = timeout_seconds

    def _get(self, path: str, access_token: str, params: Dict[str, Any] | None = None) -> Dict[str, Any]:
        headers = {"Authorization": f"Bearer {access_token}"}
        url = f"{self.api_base}{path}"
        try:
            response = requests.get(url, headers=headers, params=params, timeout=self.timeout_seconds)
        except requests.RequestException as exc:
            raise MailProviderError(f"Network error calling mail provider: {exc}") from exc

        if not 200 <= response.status_code < 300:
            LOGGER.warning(
                "Mail provider returned non-success status",
                extra={"path": path, "status_code": response.status_code},
            )
            raise MailProviderError(f"Mail provider call failed: HTTP {response.status_code}")

        try:
            return response.json()
        except ValueError as exc:
            raise MailProviderError("Mail provider returned a non-JSON body") from exc

    @instrument_tool("list_messages")
    def list_message_ids(self, access_token: str, query: str, max_results: int) -> List[str]:
        if max_results <= 0:
            return []
        payload = self._get(
            "/messages", access_token, params={"q": query, "maxResults": max_results}
        )
        try:
            parsed = _MessageListResponse.model_validate(payload)
        except ValidationError as exc:
            raise MailProviderError(f"Unexpected message list payload: {exc}") from exc
        return [ref.id for ref in parsed.messages][:max_results]

    @instrument_tool("get_message")
    def get_message(self, access_token: str, message_id: str) -> Dict[str, Any]:
        return self._get(f"/messages/{message_id}", access_token, params={"format": "full"})


__all__ = ["GmailClient", "MailProvider", "MailProviderError"]
