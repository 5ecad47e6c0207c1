"""Model package exports."""

from models.taxonomy import *  # noqa: F401,F403
from models.catalog_item import CatalogItem
from models.credentials import MailCredential
from models.ingested_message import IngestedMessage, SuppressedBrand
from models.quota import QuotaPolicy

__all__ = ["CatalogItem", "IngestedMessage", "MailCredential", "QuotaPolicy", "SuppressedBrand"]
