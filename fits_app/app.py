"""Fits ingestion app bootstrap."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from agents.catalog_ingestion import CatalogIngestionAgent
from agents.mail_scan import MailScanAgent
from fits_app.config import IngestionConfig
from fits_app.logging_config import configure_logging, get_logger, log_event
from logic.validation import ConnectRequest, ItemSubmission, ScanRequest
from models.quota import QuotaPolicy
from tools.blob_store import LocalBlobStore
from tools.extraction_chain import ExtractionChain, default_chain
from tools.extraction_service import ExtractionServiceClient
from tools.gmail_client import GmailClient, MailProvider
from tools.identity_provider import (
    IdentityProvider,
    MockIdentityProvider,
    RemoteIdentityProvider,
    bearer_token_from_header,
)
from tools.ingestion_store import IngestionStore, SQLiteIngestionStore
from tools.token_manager import TokenManager

LOGGER = get_logger(__name__)


class FitsIngestionApp:
    """Wires together the store, external collaborators and the two pipelines."""

    def __init__(
        self,
        config: IngestionConfig | None = None,
        *,
        store: IngestionStore | None = None,
        identity_provider: IdentityProvider | None = None,
        mail_provider: MailProvider | None = None,
        extraction_chain: ExtractionChain | None = None,
    ) -> None:
        self.config = config or IngestionConfig.from_env()
        configure_logging()

        self.store = store or SQLiteIngestionStore(self.config.database_path)
        self.identity_provider = identity_provider or self._build_identity_provider()
        self.mail_provider = mail_provider or GmailClient(
            api_base=self.config.gmail_api_base, timeout_seconds=self.config.http_timeout_seconds
        )
        self.token_manager = TokenManager(
            store=self.store,
            client_id=self.config.google_client_id,
            client_secret=self.config.google_client_secret,
            token_uri=self.config.google_token_uri,
            redirect_uri=self.config.google_redirect_uri,
            timeout_seconds=self.config.http_timeout_seconds,
        )
        self.blob_store = LocalBlobStore(self.config.blob_dir, base_url=self.config.blob_base_url)
        self.extraction_client = ExtractionServiceClient(
            api_key=self.config.extraction_service_api_key,
            service_url=self.config.extraction_service_url,
            timeout_seconds=self.config.http_timeout_seconds,
        )
        self.extraction_chain = extraction_chain or default_chain(
            self.extraction_client, timeout_seconds=self.config.http_timeout_seconds
        )

        self.mail_scan = MailScanAgent(
            store=self.store,
            token_manager=self.token_manager,
            provider=self.mail_provider,
            quota=QuotaPolicy(
                max_messages=self.config.default_max_results,
                max_brands=self.config.max_brands,
                max_messages_per_brand=self.config.max_messages_per_brand,
            ),
        )
        self.catalog_ingestion = CatalogIngestionAgent(
            store=self.store, chain=self.extraction_chain, blob_store=self.blob_store
        )

    def _build_identity_provider(self) -> IdentityProvider:
        if self.config.identity_url:
            return RemoteIdentityProvider(
                self.config.identity_url,
                api_key=self.config.identity_api_key,
                timeout_seconds=self.config.http_timeout_seconds,
            )
        LOGGER.warning("No identity service configured; bearer-authenticated calls will be rejected")
        return MockIdentityProvider()

    def authenticate(self, authorization: Optional[str]) -> str:
        """Resolve an ``Authorization`` header to a user id."""

        return self.identity_provider.resolve_user_id(bearer_token_from_header(authorization))

    def scan_mail(self, request: ScanRequest) -> Dict[str, Any]:
        log_event(LOGGER, logging.INFO, "app_call_started", method="scan_mail", user_id=request.user_id)
        return self.mail_scan.scan(request.user_id, max_results=request.max_results)

    def connect_mail(self, user_id: str, request: ConnectRequest) -> Dict[str, Any]:
        credential = self.token_manager.connect_account(
            user_id=user_id, code=request.code, account_address=request.account_address
        )
        return {
            "success": True,
            "account_address": credential.account_address,
            "expires_at": credential.expires_at.isoformat(),
        }

    def ingest_item(self, user_id: str, submission: ItemSubmission) -> Dict[str, Any]:
        log_event(LOGGER, logging.INFO, "app_call_started", method="ingest_item", user_id=user_id)
        return self.catalog_ingestion.ingest(user_id, submission)

    def list_items(self, user_id: str) -> Dict[str, Any]:
        return {"items": [item.to_dict() for item in self.store.list_catalog_items(user_id)]}

    def list_messages(self, user_id: str, category: Optional[str] = None) -> Dict[str, Any]:
        messages = self.store.list_messages(user_id, category=category)
        return {"messages": [message.to_dict() for message in messages]}

    def brand_promotions(self, user_id: str, brand_name: str) -> Dict[str, Any]:
        promotions = self.store.active_promotions_for_brand(user_id, brand_name)
        return {"brand_name": brand_name, "promotions": [message.to_dict() for message in promotions]}

    def suppress_brand(self, user_id: str, brand_name: str) -> Dict[str, Any]:
        suppressed = self.store.add_suppressed_brand(user_id, brand_name)
        log_event(LOGGER, logging.INFO, "brand_suppressed", user_id=user_id, brand_name=brand_name)
        return {"success": True, "brand_name": suppressed.brand_name}

    def unsuppress_brand(self, user_id: str, brand_name: str) -> Dict[str, Any]:
        removed = self.store.remove_suppressed_brand(user_id, brand_name)
        return {"success": True, "removed": removed}


__all__ = ["FitsIngestionApp"]
