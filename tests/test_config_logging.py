import json
import logging
from pathlib import Path

import pytest

from fits_app.config import DEFAULT_TOKEN_URI, IngestionConfig
from fits_app.logging_config import (
    CORRELATION_ID,
    JsonFormatter,
    log_event,
    operation_context,
    redact_for_log,
)

_CONFIG_ENV = (
    "APP_ENV",
    "APP_CONFIG_PATH",
    "FITS_CONFIG_DIR",
    "DATABASE_PATH",
    "MAX_BRANDS",
    "IDENTITY_URL",
    "HTTP_TIMEOUT_SECONDS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in _CONFIG_ENV:
        monkeypatch.delenv(key, raising=False)


def test_defaults_without_environment() -> None:
    config = IngestionConfig.from_env()

    assert config.database_path == "data/fits.db"
    assert config.google_token_uri == DEFAULT_TOKEN_URI
    assert config.default_max_results == 50
    assert config.max_brands == 8
    assert config.identity_url is None
    assert config.environment is None


def test_environment_variables_are_read(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_PATH", "/tmp/fits-test.db")
    monkeypatch.setenv("MAX_BRANDS", "3")
    monkeypatch.setenv("HTTP_TIMEOUT_SECONDS", "2.5")

    config = IngestionConfig.from_env()

    assert config.database_path == "/tmp/fits-test.db"
    assert config.max_brands == 3
    assert config.http_timeout_seconds == 2.5


def test_yaml_file_is_merged_under_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    config_file = tmp_path / "staging.yaml"
    config_file.write_text(
        "# staging\n"
        "max_brands: 4\n"
        "identity_url: \"https://id.example.test/user\"\n"
        "database_path: data/staging.db\n"
    )
    monkeypatch.setenv("APP_CONFIG_PATH", str(config_file))
    monkeypatch.setenv("DATABASE_PATH", "/srv/override.db")

    config = IngestionConfig.from_env()

    assert config.max_brands == 4
    assert config.identity_url == "https://id.example.test/user"
    assert config.database_path == "/srv/override.db"


def test_named_environment_reads_config_dir(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    (tmp_path / "prod.yaml").write_text("max_messages_per_brand: 2\n")
    monkeypatch.setenv("APP_ENV", "prod")
    monkeypatch.setenv("FITS_CONFIG_DIR", str(tmp_path))

    config = IngestionConfig.from_env()

    assert config.environment == "prod"
    assert config.max_messages_per_brand == 2


def test_non_numeric_value_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MAX_BRANDS", "lots")
    with pytest.raises(ValueError, match="max_brands"):
        IngestionConfig.from_env()


def test_redact_for_log_masks_sensitive_values() -> None:
    scrubbed = redact_for_log(
        {
            "access_token": "ya29.secret",
            "note": "mail from shopper@example.com",
            "target": "https://www.nike.com/t/air-max-90",
            "nested": [{"refresh_token": "1//abc"}, 3],
            "count": 2,
        }
    )

    assert scrubbed["access_token"] == "[redacted]"
    assert scrubbed["note"] == "mail from [redacted-email]"
    assert scrubbed["target"] == "[redacted-url]"
    assert scrubbed["nested"] == [{"refresh_token": "[redacted]"}, 3]
    assert scrubbed["count"] == 2


def test_log_event_attaches_event_and_redacted_fields(caplog: pytest.LogCaptureFixture) -> None:
    logger = logging.getLogger("tests.fits")
    caplog.set_level(logging.INFO, logger="tests.fits")

    with operation_context("mail_scan") as correlation_id:
        log_event(logger, logging.INFO, "message_stored", user_id="user-1", sender_email="news@nike.com")

    record = caplog.records[-1]
    assert record.event == "message_stored"
    assert record.user_id == "user-1"
    assert record.sender_email == "[redacted]"
    assert record.correlation_id == correlation_id

    payload = json.loads(JsonFormatter().format(record))
    assert payload["event"] == "message_stored"
    assert payload["correlation_id"] == correlation_id
    assert payload["sender_email"] == "[redacted]"


def test_operation_context_restores_previous_correlation_id() -> None:
    token = CORRELATION_ID.set("outer")
    try:
        with operation_context("catalog_ingestion") as inner:
            assert CORRELATION_ID.get() == inner
            assert inner != "outer"
        assert CORRELATION_ID.get() == "outer"
    finally:
        CORRELATION_ID.reset(token)
