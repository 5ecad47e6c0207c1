"""Records produced by the mail ingestion pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from models.taxonomy import validate_message_category, validate_message_source


@dataclass
class IngestedMessage:
    """A fashion-relevant message persisted for one user.

    ``(user_id, provider_message_id)`` identifies a message; the store
    enforces it as a unique key.
    """

    id: str
    user_id: str
    provider_message_id: str
    sender_email: str
    sender_name: str
    brand_name: str
    subject: str
    snippet: str
    received_at: datetime
    category: str
    source: str
    expires_at: Optional[datetime] = None
    is_expired: bool = False
    order_number: Optional[str] = None
    order_total: Optional[str] = None
    order_item_count: Optional[int] = None
    thread_id: Optional[str] = None
    labels: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.user_id or not self.provider_message_id:
            raise ValueError("IngestedMessage requires user_id and provider_message_id")
        self.category = validate_message_category(self.category)
        self.source = validate_message_source(self.source)
        self.labels = [str(label) for label in self.labels or []]

    def with_expiry_evaluated(self, now: datetime | None = None) -> "IngestedMessage":
        """Return self with ``is_expired`` derived against ``now``."""

        now = now or datetime.now(timezone.utc)
        if not self.is_expired and self.expires_at is not None:
            self.is_expired = self.expires_at < now
        return self

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["received_at"] = self.received_at.isoformat()
        payload["expires_at"] = self.expires_at.isoformat() if self.expires_at else None
        return payload


@dataclass(frozen=True)
class SuppressedBrand:
    """A brand the user opted out of; its messages are never persisted."""

    user_id: str
    brand_name: str


__all__ = ["IngestedMessage", "SuppressedBrand"]
