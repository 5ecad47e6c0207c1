"""Mail account credential model."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

GMAIL_READONLY_SCOPE = "https://www.googleapis.com/auth/gmail.readonly"


@dataclass
class MailCredential:
    """OAuth credential needed to query one user's mailbox.

    ``expires_at`` always describes ``access_token``; only the token manager
    replaces either of them.
    """

    user_id: str
    access_token: str
    refresh_token: str
    expires_at: datetime
    scope: str = GMAIL_READONLY_SCOPE
    account_address: Optional[str] = None

    def __post_init__(self) -> None:
        if self.expires_at.tzinfo is None:
            self.expires_at = self.expires_at.replace(tzinfo=timezone.utc)

    def is_expired(self, now: datetime | None = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return now >= self.expires_at


__all__ = ["GMAIL_READONLY_SCOPE", "MailCredential"]
