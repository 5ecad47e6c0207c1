"""Mail scan agent: turns a user's mailbox into fashion-relevant message records."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fits_app.logging_config import get_logger, log_event, operation_context
from logic.brands import brand_from_sender
from logic.classification import classify_message
from logic.expiration import extract_expiration
from logic.order_info import extract_order_info
from logic.relevance import evaluate_relevance
from models.ingested_message import IngestedMessage
from models.quota import QuotaPolicy
from tools.gmail_client import MailProvider
from tools.ingestion_store import DuplicateMessageError, IngestionStore, PersistenceError
from tools.mail_query import MailQueryEngine, MessageRef
from tools.message_parser import parse_message
from tools.token_manager import TokenManager

logger = get_logger(__name__)

ORDER_CATEGORIES = {"order_confirmation", "shipping"}


class MailScanAgent:
    """Runs one bounded, sequential scan of a user's mailbox.

    Query, credential and storage failures abort the scan. A failure on a
    single message is logged and the batch continues.
    """

    def __init__(
        self,
        store: IngestionStore,
        token_manager: TokenManager,
        provider: MailProvider,
        quota: QuotaPolicy | None = None,
        query_engine: MailQueryEngine | None = None,
    ) -> None:
        self.store = store
        self.token_manager = token_manager
        self.provider = provider
        self.quota = quota or QuotaPolicy()
        self.query_engine = query_engine or MailQueryEngine(provider)

    def _quota_for(self, max_results: Optional[int]) -> QuotaPolicy:
        if max_results is None:
            return self.quota
        return QuotaPolicy(
            max_messages=max_results,
            max_brands=self.quota.max_brands,
            max_messages_per_brand=self.quota.max_messages_per_brand,
        )

    def scan(self, user_id: str, max_results: Optional[int] = None, now: datetime | None = None) -> Dict[str, Any]:
        """Scan the mailbox and persist new relevant messages.

        Returns ``{"processed_count": n, "messages": [...]}`` listing only the
        messages stored by this run.
        """

        with operation_context("agent:mail_scan.scan") as correlation_id:
            access_token = self.token_manager.get_valid_token(user_id)
            quota = self._quota_for(max_results)
            suppressed = [entry.brand_name for entry in self.store.list_suppressed_brands(user_id)]
            refs = self.query_engine.collect(
                access_token, quota, self.store.list_brands_for_user(user_id), suppressed_brands=suppressed
            )

            stored: List[IngestedMessage] = []
            skipped: Dict[str, int] = {}
            failed = 0
            for ref in refs:
                try:
                    message, outcome = self._process(user_id, ref, access_token, now)
                except PersistenceError:
                    raise
                except Exception as exc:
                    failed += 1
                    logger.warning(
                        "Failed to process message, skipping",
                        extra={"error": str(exc), "error_type": type(exc).__name__, "correlation_id": correlation_id},
                    )
                    continue
                if message is not None:
                    stored.append(message)
                else:
                    skipped[outcome] = skipped.get(outcome, 0) + 1

            log_event(
                logger,
                level=logging.INFO,
                event="agent_call_completed",
                agent="mail_scan",
                method="scan",
                correlation_id=correlation_id,
                candidates=len(refs),
                stored=len(stored),
                skipped=skipped,
                failed=failed,
            )
            return {"processed_count": len(stored), "messages": [message.to_dict() for message in stored]}

    def _process(
        self, user_id: str, ref: MessageRef, access_token: str, now: datetime | None
    ) -> tuple[Optional[IngestedMessage], str]:
        if self.store.message_exists(user_id, ref.message_id):
            return None, "duplicate"

        parsed = parse_message(self.provider.get_message(access_token, ref.message_id))
        brand_name = brand_from_sender(parsed.sender_email, parsed.sender_name)

        decision = evaluate_relevance(parsed.subject, parsed.snippet, parsed.sender_domain, brand_name)
        if not decision.accepted:
            logger.debug(
                "Message rejected by relevance filter",
                extra={"stage": decision.stage, "reason": decision.reason},
            )
            return None, f"irrelevant:{decision.stage}"

        processed_at = now or datetime.now(timezone.utc)
        category = classify_message(parsed.subject, parsed.snippet)
        expires_at = extract_expiration(parsed.subject, parsed.snippet, now=processed_at)
        order = extract_order_info(" ".join((parsed.subject, parsed.snippet, parsed.body_text)))
        if category not in ORDER_CATEGORIES:
            order = None

        if self.store.is_brand_suppressed(user_id, brand_name):
            return None, "suppressed"

        message = IngestedMessage(
            id=str(uuid.uuid4()),
            user_id=user_id,
            provider_message_id=parsed.provider_message_id,
            sender_email=parsed.sender_email,
            sender_name=parsed.sender_name,
            brand_name=brand_name,
            subject=parsed.subject,
            snippet=parsed.snippet,
            received_at=parsed.received_at,
            category=category,
            source=ref.source,
            expires_at=expires_at,
            is_expired=bool(expires_at and expires_at < processed_at),
            order_number=order.order_number if order else None,
            order_total=order.order_total if order else None,
            order_item_count=order.order_item_count if order else None,
            thread_id=parsed.thread_id,
            labels=parsed.labels,
        )
        try:
            self.store.insert_message(message)
        except DuplicateMessageError:
            return None, "duplicate"
        return message, "stored"


__all__ = ["MailScanAgent"]
