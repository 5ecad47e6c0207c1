"""Turn a raw provider message payload into the fields the pipeline reads."""

from __future__ import annotations

import base64
import html
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Dict, Iterable, List, Optional

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

_ANGLE_ADDRESS = re.compile(r"^\s*\"?([^\"<]*?)\"?\s*<([^>]+)>\s*$")
_WHITESPACE = re.compile(r"\s+")


@dataclass
class ParsedMessage:
    provider_message_id: str
    sender_email: str
    sender_name: str
    subject: str
    snippet: str
    received_at: datetime
    body_text: str = ""
    thread_id: Optional[str] = None
    labels: List[str] = field(default_factory=list)

    @property
    def sender_domain(self) -> str:
        return self.sender_email.rpartition("@")[2].lower() if "@" in self.sender_email else ""


def parse_sender(raw: str) -> tuple[str, str]:
    """Split ``Name <addr@host>`` into ``(email, name)``.

    A bare address yields an empty name.
    """

    raw = (raw or "").strip()
    matched = _ANGLE_ADDRESS.match(raw)
    if matched:
        name, email = matched.group(1).strip(), matched.group(2).strip()
        return email.lower(), name
    return raw.lower(), ""


def _header(headers: Iterable[Dict[str, Any]], name: str) -> str:
    for header in headers:
        if str(header.get("name", "")).lower() == name.lower():
            return str(header.get("value") or "")
    return ""


def _decode_body(data: Optional[str]) -> str:
    if not data:
        return ""
    padded = data + "=" * (-len(data) % 4)
    try:
        return base64.urlsafe_b64decode(padded).decode("utf-8", errors="replace")
    except (ValueError, TypeError):
        logger.debug("Could not decode message body part")
        return ""


def _collect_parts(part: Dict[str, Any], mime_type: str) -> List[str]:
    found: List[str] = []
    if part.get("mimeType") == mime_type:
        text = _decode_body((part.get("body") or {}).get("data"))
        if text:
            found.append(text)
    for child in part.get("parts") or []:
        found.extend(_collect_parts(child, mime_type))
    return found


def html_to_text(markup: str) -> str:
    soup = BeautifulSoup(markup, "html.parser")
    for tag in soup(["style", "script", "head"]):
        tag.decompose()
    return _WHITESPACE.sub(" ", soup.get_text(" ")).strip()


def extract_body_text(payload: Dict[str, Any]) -> str:
    """Return the plain-text body, falling back to the visible text of the HTML part."""

    plain = _collect_parts(payload, "text/plain")
    if plain:
        return _WHITESPACE.sub(" ", "\n".join(plain)).strip()
    rich = _collect_parts(payload, "text/html")
    if rich:
        return html_to_text("\n".join(rich))
    return ""


def _received_at(message: Dict[str, Any], headers: List[Dict[str, Any]]) -> datetime:
    internal = message.get("internalDate")
    if internal:
        try:
            return datetime.fromtimestamp(int(internal) / 1000, tz=timezone.utc)
        except (TypeError, ValueError):
            logger.debug("Invalid internalDate on message", extra={"internal_date": internal})

    date_header = _header(headers, "Date")
    if date_header:
        try:
            parsed = parsedate_to_datetime(date_header)
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
        except (TypeError, ValueError):
            logger.debug("Invalid Date header on message")
    return datetime.now(timezone.utc)


def parse_message(message: Dict[str, Any]) -> ParsedMessage:
    """Parse a full-format Gmail message resource."""

    if not message.get("id"):
        raise ValueError("Message payload has no id")
    payload = message.get("payload") or {}
    headers = payload.get("headers") or []
    sender_email, sender_name = parse_sender(_header(headers, "From"))

    return ParsedMessage(
        provider_message_id=str(message["id"]),
        thread_id=message.get("threadId"),
        sender_email=sender_email,
        sender_name=sender_name,
        subject=_header(headers, "Subject").strip(),
        snippet=html.unescape(message.get("snippet") or "").strip(),
        received_at=_received_at(message, headers),
        body_text=extract_body_text(payload),
        labels=[str(label) for label in message.get("labelIds") or []],
    )


__all__ = ["ParsedMessage", "extract_body_text", "parse_message", "parse_sender"]
