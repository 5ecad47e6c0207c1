"""Catalog ingestion agent for turning URLs, photos and manual entries into CatalogItems."""

from __future__ import annotations

import logging
from typing import Any, Dict

from fits_app.logging_config import get_logger, log_event, operation_context
from logic.validation import ItemSubmission
from models.ingestion_mapping import map_extracted_fields_to_catalog_item
from tools.blob_store import BlobStoreError, LocalBlobStore
from tools.extraction_chain import ExtractionChain, missing_fields
from tools.ingestion_store import IngestionStore

logger = get_logger(__name__)


class CatalogIngestionAgent:
    """Resolve as many product fields as possible, then store the item.

    Extraction is best effort: missing fields end up as placeholders and
    never fail the submission. Only a storage failure does.
    """

    def __init__(self, store: IngestionStore, chain: ExtractionChain, blob_store: LocalBlobStore) -> None:
        self.store = store
        self.chain = chain
        self.blob_store = blob_store

    def _store_upload(self, user_id: str, payload: str, fields: Dict[str, Any]) -> None:
        try:
            blob = self.blob_store.store_image(user_id, payload)
        except BlobStoreError as exc:
            logger.warning("Failed to store uploaded image, continuing without it", extra={"error": str(exc)})
            return
        fields["stored_image_path"] = blob.path
        if blob.public_url:
            fields["image_url"] = blob.public_url

    def ingest(self, user_id: str, submission: ItemSubmission) -> Dict[str, Any]:
        with operation_context("agent:catalog_ingestion.ingest") as correlation_id:
            fields = submission.provided_fields()

            if submission.uploaded_image:
                self._store_upload(user_id, submission.uploaded_image, fields)

            if submission.url and missing_fields(fields):
                fields = self.chain.run(submission.url, fields)

            item = map_extracted_fields_to_catalog_item(user_id, fields)
            self.store.create_catalog_item(item)

            log_event(
                logger,
                level=logging.INFO,
                event="agent_call_completed",
                agent="catalog_ingestion",
                method="ingest",
                correlation_id=correlation_id,
                item_id=item.id,
                category=item.category,
                unresolved=missing_fields(fields),
            )
            return {"success": True, "item": item.to_dict()}


__all__ = ["CatalogIngestionAgent"]
