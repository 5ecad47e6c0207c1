"""Ingestion storage abstractions and SQLite implementation."""
from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from models.catalog_item import CatalogItem
from models.credentials import MailCredential
from models.ingested_message import IngestedMessage, SuppressedBrand
from models.taxonomy import UNKNOWN_BRAND


class PersistenceError(RuntimeError):
    """Raised when a write to the store fails."""


class DuplicateMessageError(PersistenceError):
    """Raised when ``(user_id, provider_message_id)`` is already stored."""


class IngestionStore:
    """Persistence interface for credentials, messages, suppressions and catalog items."""

    def get_credential(self, user_id: str) -> Optional[MailCredential]:
        raise NotImplementedError

    def upsert_credential(self, credential: MailCredential) -> MailCredential:
        raise NotImplementedError

    def message_exists(self, user_id: str, provider_message_id: str) -> bool:
        raise NotImplementedError

    def insert_message(self, message: IngestedMessage) -> IngestedMessage:
        raise NotImplementedError

    def list_messages(
        self, user_id: str, category: Optional[str] = None, now: Optional[datetime] = None
    ) -> List[IngestedMessage]:
        raise NotImplementedError

    def list_brands_for_user(self, user_id: str) -> List[str]:
        raise NotImplementedError

    def active_promotions_for_brand(
        self, user_id: str, brand_name: str, now: Optional[datetime] = None
    ) -> List[IngestedMessage]:
        raise NotImplementedError

    def add_suppressed_brand(self, user_id: str, brand_name: str) -> SuppressedBrand:
        raise NotImplementedError

    def remove_suppressed_brand(self, user_id: str, brand_name: str) -> bool:
        raise NotImplementedError

    def is_brand_suppressed(self, user_id: str, brand_name: str) -> bool:
        raise NotImplementedError

    def list_suppressed_brands(self, user_id: str) -> List[SuppressedBrand]:
        raise NotImplementedError

    def create_catalog_item(self, item: CatalogItem) -> CatalogItem:
        raise NotImplementedError

    def list_catalog_items(self, user_id: str) -> List[CatalogItem]:
        raise NotImplementedError


_DEDUP_CONSTRAINT = "ingested_messages.user_id, ingested_messages.provider_message_id"


def _to_text(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _from_text(raw: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(raw) if raw else None


class SQLiteIngestionStore(IngestionStore):
    """Local SQLite-backed store.

    Message dedup is enforced by a unique index on
    ``(user_id, provider_message_id)`` so concurrent scans cannot insert the
    same message twice. Credentials are keyed by ``user_id`` and written with
    ``INSERT OR REPLACE``, so the last refresh to finish wins.
    """

    def __init__(self, database_path: str | Path = "data/fits.db") -> None:
        self.database_path = Path(database_path)
        if self.database_path.parent and not self.database_path.parent.exists():
            self.database_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_tables()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.database_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_tables(self) -> None:
        with self._connect() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS mail_credentials (
                    user_id TEXT PRIMARY KEY,
                    access_token TEXT NOT NULL,
                    refresh_token TEXT NOT NULL,
                    expires_at TEXT NOT NULL,
                    scope TEXT,
                    account_address TEXT
                );
                CREATE TABLE IF NOT EXISTS ingested_messages (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    provider_message_id TEXT NOT NULL,
                    sender_email TEXT,
                    sender_name TEXT,
                    brand_name TEXT,
                    subject TEXT,
                    snippet TEXT,
                    received_at TEXT NOT NULL,
                    category TEXT NOT NULL,
                    source TEXT NOT NULL,
                    expires_at TEXT,
                    is_expired INTEGER NOT NULL DEFAULT 0,
                    order_number TEXT,
                    order_total TEXT,
                    order_item_count INTEGER,
                    thread_id TEXT,
                    labels TEXT,
                    UNIQUE (user_id, provider_message_id)
                );
                CREATE TABLE IF NOT EXISTS suppressed_brands (
                    user_id TEXT NOT NULL,
                    brand_name TEXT NOT NULL COLLATE NOCASE,
                    PRIMARY KEY (user_id, brand_name)
                );
                CREATE TABLE IF NOT EXISTS catalog_items (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    brand_name TEXT NOT NULL,
                    category TEXT NOT NULL,
                    product_name TEXT,
                    description TEXT,
                    image_url TEXT,
                    stored_image_path TEXT,
                    price TEXT,
                    size TEXT,
                    color TEXT,
                    source_url TEXT,
                    purchase_date TEXT,
                    created_at TEXT NOT NULL
                );
                """
            )

    # Credentials -------------------------------------------------------
    def get_credential(self, user_id: str) -> Optional[MailCredential]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM mail_credentials WHERE user_id = ?", (user_id,)
            ).fetchone()
        if not row:
            return None
        return MailCredential(
            user_id=row["user_id"],
            access_token=row["access_token"],
            refresh_token=row["refresh_token"],
            expires_at=_from_text(row["expires_at"]),
            scope=row["scope"],
            account_address=row["account_address"],
        )

    def upsert_credential(self, credential: MailCredential) -> MailCredential:
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT OR REPLACE INTO mail_credentials (
                        user_id, access_token, refresh_token, expires_at, scope, account_address
                    ) VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        credential.user_id,
                        credential.access_token,
                        credential.refresh_token,
                        _to_text(credential.expires_at),
                        credential.scope,
                        credential.account_address,
                    ),
                )
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to store credential: {exc}") from exc
        return credential

    # Messages ----------------------------------------------------------
    def message_exists(self, user_id: str, provider_message_id: str) -> bool:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT 1 FROM ingested_messages WHERE user_id = ? AND provider_message_id = ?",
                (user_id, provider_message_id),
            ).fetchone()
        return row is not None

    def insert_message(self, message: IngestedMessage) -> IngestedMessage:
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO ingested_messages (
                        id, user_id, provider_message_id, sender_email, sender_name, brand_name,
                        subject, snippet, received_at, category, source, expires_at, is_expired,
                        order_number, order_total, order_item_count, thread_id, labels
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        message.id,
                        message.user_id,
                        message.provider_message_id,
                        message.sender_email,
                        message.sender_name,
                        message.brand_name,
                        message.subject,
                        message.snippet,
                        _to_text(message.received_at),
                        message.category,
                        message.source,
                        _to_text(message.expires_at),
                        int(message.is_expired),
                        message.order_number,
                        message.order_total,
                        message.order_item_count,
                        message.thread_id,
                        json.dumps(message.labels),
                    ),
                )
        except sqlite3.IntegrityError as exc:
            if _DEDUP_CONSTRAINT not in str(exc):
                raise PersistenceError(f"Failed to store message: {exc}") from exc
            raise DuplicateMessageError(
                f"Message {message.provider_message_id} already ingested for user"
            ) from exc
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to store message: {exc}") from exc
        return message

    @staticmethod
    def _row_to_message(row: sqlite3.Row) -> IngestedMessage:
        return IngestedMessage(
            id=row["id"],
            user_id=row["user_id"],
            provider_message_id=row["provider_message_id"],
            sender_email=row["sender_email"] or "",
            sender_name=row["sender_name"] or "",
            brand_name=row["brand_name"] or UNKNOWN_BRAND,
            subject=row["subject"] or "",
            snippet=row["snippet"] or "",
            received_at=_from_text(row["received_at"]),
            category=row["category"],
            source=row["source"],
            expires_at=_from_text(row["expires_at"]),
            is_expired=bool(row["is_expired"]),
            order_number=row["order_number"],
            order_total=row["order_total"],
            order_item_count=row["order_item_count"],
            thread_id=row["thread_id"],
            labels=json.loads(row["labels"]) if row["labels"] else [],
        )

    def list_messages(
        self, user_id: str, category: Optional[str] = None, now: Optional[datetime] = None
    ) -> List[IngestedMessage]:
        query = "SELECT * FROM ingested_messages WHERE user_id = ?"
        params: list = [user_id]
        if category:
            query += " AND category = ?"
            params.append(category)
        query += " ORDER BY received_at DESC"
        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_message(row).with_expiry_evaluated(now) for row in rows]

    def list_brands_for_user(self, user_id: str) -> List[str]:
        """Brands already seen for the user, most recently received first."""

        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT brand_name, MAX(received_at) AS last_seen
                FROM ingested_messages
                WHERE user_id = ? AND brand_name IS NOT NULL AND brand_name != ?
                GROUP BY brand_name
                ORDER BY last_seen DESC
                """,
                (user_id, UNKNOWN_BRAND),
            ).fetchall()
        return [row["brand_name"] for row in rows]

    def active_promotions_for_brand(
        self, user_id: str, brand_name: str, now: Optional[datetime] = None
    ) -> List[IngestedMessage]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM ingested_messages
                WHERE user_id = ? AND brand_name = ? COLLATE NOCASE AND category = 'promotion'
                ORDER BY received_at DESC
                """,
                (user_id, brand_name),
            ).fetchall()
        messages = [self._row_to_message(row).with_expiry_evaluated(now) for row in rows]
        return [message for message in messages if not message.is_expired]

    # Suppressed brands -------------------------------------------------
    def add_suppressed_brand(self, user_id: str, brand_name: str) -> SuppressedBrand:
        try:
            with self._connect() as conn:
                conn.execute(
                    "INSERT OR IGNORE INTO suppressed_brands (user_id, brand_name) VALUES (?, ?)",
                    (user_id, brand_name),
                )
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to suppress brand: {exc}") from exc
        return SuppressedBrand(user_id=user_id, brand_name=brand_name)

    def remove_suppressed_brand(self, user_id: str, brand_name: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM suppressed_brands WHERE user_id = ? AND brand_name = ?",
                (user_id, brand_name),
            )
            return cursor.rowcount > 0

    def is_brand_suppressed(self, user_id: str, brand_name: str) -> bool:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT 1 FROM suppressed_brands WHERE user_id = ? AND brand_name = ?",
                (user_id, brand_name),
            ).fetchone()
        return row is not None

    def list_suppressed_brands(self, user_id: str) -> List[SuppressedBrand]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT user_id, brand_name FROM suppressed_brands WHERE user_id = ? ORDER BY brand_name",
                (user_id,),
            ).fetchall()
        return [SuppressedBrand(user_id=row["user_id"], brand_name=row["brand_name"]) for row in rows]

    # Catalog items -----------------------------------------------------
    def create_catalog_item(self, item: CatalogItem) -> CatalogItem:
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO catalog_items (
                        id, user_id, brand_name, category, product_name, description, image_url,
                        stored_image_path, price, size, color, source_url, purchase_date, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        item.id,
                        item.user_id,
                        item.brand_name,
                        item.category,
                        item.product_name,
                        item.description,
                        item.image_url,
                        item.stored_image_path,
                        item.price,
                        item.size,
                        item.color,
                        item.source_url,
                        _to_text(item.purchase_date),
                        datetime.now(timezone.utc).isoformat(),
                    ),
                )
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to store catalog item: {exc}") from exc
        return item

    def list_catalog_items(self, user_id: str) -> List[CatalogItem]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM catalog_items WHERE user_id = ? ORDER BY created_at DESC",
                (user_id,),
            ).fetchall()
        return [
            CatalogItem(
                id=row["id"],
                user_id=row["user_id"],
                brand_name=row["brand_name"],
                category=row["category"],
                product_name=row["product_name"],
                description=row["description"],
                image_url=row["image_url"],
                stored_image_path=row["stored_image_path"],
                price=row["price"],
                size=row["size"],
                color=row["color"],
                source_url=row["source_url"],
                purchase_date=_from_text(row["purchase_date"]),
            )
            for row in rows
        ]


__all__ = [
    "DuplicateMessageError",
    "IngestionStore",
    "PersistenceError",
    "SQLiteIngestionStore",
]
