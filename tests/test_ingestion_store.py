from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from models.catalog_item import CatalogItem
from models.credentials import MailCredential
from models.ingested_message import IngestedMessage
from tools.ingestion_store import DuplicateMessageError, PersistenceError, SQLiteIngestionStore

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def _message(provider_id: str, brand: str = "Nike", category: str = "promotion", **overrides) -> IngestedMessage:
    fields = dict(
        id=f"id-{provider_id}",
        user_id="user-1",
        provider_message_id=provider_id,
        sender_email="news@nike.com",
        sender_name="Nike",
        brand_name=brand,
        subject="20% off",
        snippet="Shop now",
        received_at=NOW,
        category=category,
        source="promotional_query",
    )
    fields.update(overrides)
    return IngestedMessage(**fields)


def test_duplicate_provider_message_is_rejected(tmp_path: Path) -> None:
    store = SQLiteIngestionStore(tmp_path / "fits.db")
    store.insert_message(_message("m1"))

    with pytest.raises(DuplicateMessageError):
        store.insert_message(_message("m1", id="another-row"))

    assert issubclass(DuplicateMessageError, PersistenceError)
    assert store.message_exists("user-1", "m1")
    assert not store.message_exists("user-2", "m1")


def test_other_integrity_errors_are_not_treated_as_duplicates(tmp_path: Path) -> None:
    store = SQLiteIngestionStore(tmp_path / "fits.db")
    store.insert_message(_message("m1"))

    with pytest.raises(PersistenceError) as excinfo:
        store.insert_message(_message("m2", id="id-m1"))

    assert not isinstance(excinfo.value, DuplicateMessageError)
    assert not store.message_exists("user-1", "m2")


def test_same_provider_id_allowed_for_other_user(tmp_path: Path) -> None:
    store = SQLiteIngestionStore(tmp_path / "fits.db")
    store.insert_message(_message("m1"))
    store.insert_message(_message("m1", id="other", user_id="user-2"))
    assert len(store.list_messages("user-2")) == 1


def test_is_expired_is_derived_when_read(tmp_path: Path) -> None:
    store = SQLiteIngestionStore(tmp_path / "fits.db")
    store.insert_message(_message("m1", expires_at=NOW + timedelta(days=1)))

    assert store.list_messages("user-1", now=NOW)[0].is_expired is False
    assert store.list_messages("user-1", now=NOW + timedelta(days=2))[0].is_expired is True


def test_list_messages_filters_by_category_newest_first(tmp_path: Path) -> None:
    store = SQLiteIngestionStore(tmp_path / "fits.db")
    store.insert_message(_message("old", received_at=NOW - timedelta(days=1)))
    store.insert_message(_message("new"))
    store.insert_message(_message("order", category="order_confirmation"))

    promotions = store.list_messages("user-1", category="promotion")

    assert [m.provider_message_id for m in promotions] == ["new", "old"]


def test_active_promotions_for_brand(tmp_path: Path) -> None:
    store = SQLiteIngestionStore(tmp_path / "fits.db")
    store.insert_message(_message("live", expires_at=NOW + timedelta(days=3)))
    store.insert_message(_message("open-ended"))
    store.insert_message(_message("gone", expires_at=NOW - timedelta(days=1)))
    store.insert_message(_message("order", category="order_confirmation"))
    store.insert_message(_message("zara", brand="Zara"))

    active = store.active_promotions_for_brand("user-1", "nike", now=NOW)

    assert sorted(m.provider_message_id for m in active) == ["live", "open-ended"]


def test_brands_seen_most_recent_first(tmp_path: Path) -> None:
    store = SQLiteIngestionStore(tmp_path / "fits.db")
    store.insert_message(_message("a", brand="Zara", received_at=NOW - timedelta(days=2)))
    store.insert_message(_message("b", brand="Nike", received_at=NOW))
    store.insert_message(_message("c", brand="Unknown Brand", received_at=NOW))

    assert store.list_brands_for_user("user-1") == ["Nike", "Zara"]


def test_suppressed_brands_are_case_insensitive(tmp_path: Path) -> None:
    store = SQLiteIngestionStore(tmp_path / "fits.db")
    store.add_suppressed_brand("user-1", "Nike")
    store.add_suppressed_brand("user-1", "NIKE")

    assert store.is_brand_suppressed("user-1", "nike")
    assert not store.is_brand_suppressed("user-2", "Nike")
    assert len(store.list_suppressed_brands("user-1")) == 1
    assert store.remove_suppressed_brand("user-1", "nike") is True
    assert store.remove_suppressed_brand("user-1", "nike") is False


def test_credential_upsert_last_writer_wins(tmp_path: Path) -> None:
    store = SQLiteIngestionStore(tmp_path / "fits.db")
    for token in ("first", "second"):
        store.upsert_credential(
            MailCredential(user_id="user-1", access_token=token, refresh_token="r", expires_at=NOW)
        )

    credential = store.get_credential("user-1")
    assert credential.access_token == "second"
    assert credential.expires_at == NOW
    assert store.get_credential("user-2") is None


def test_catalog_items_round_trip(tmp_path: Path) -> None:
    store = SQLiteIngestionStore(tmp_path / "fits.db")
    store.create_catalog_item(
        CatalogItem(
            id="item-1",
            user_id="user-1",
            brand_name="Patagonia",
            category="jackets",
            product_name="Torrentshell",
            price="$179.00",
            purchase_date=datetime(2024, 11, 2, tzinfo=timezone.utc),
        )
    )

    items = store.list_catalog_items("user-1")
    assert len(items) == 1
    assert items[0].product_name == "Torrentshell"
    assert items[0].purchase_date == datetime(2024, 11, 2, tzinfo=timezone.utc)
    assert store.list_catalog_items("user-2") == []
