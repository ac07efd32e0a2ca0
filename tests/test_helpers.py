"""Tests for helper utilities and configuration access."""

from datetime import datetime, timedelta, timezone

import pytest

from config import ConfigurationManager, get_config
from invoice_composer.utils.helpers import (
    decode_data_uri,
    encode_data_uri,
    format_file_size,
    is_data_uri,
    parse_iso_timestamp,
    safe_filename,
    to_camel_case,
    to_iso_timestamp,
    to_snake_case,
)


@pytest.mark.parametrize("snake,camel", [
    ("company_tax_id", "companyTaxId"),
    ("unit_price", "unitPrice"),
    ("notes", "notes"),
])
def test_case_conversion(snake, camel):
    assert to_camel_case(snake) == camel
    assert to_snake_case(camel) == snake


def test_iso_timestamps():
    """Timestamps are UTC with millisecond precision and a Z suffix."""
    moment = datetime(2026, 1, 21, 15, 30, 0, 123456, tzinfo=timezone(timedelta(hours=1)))
    text = to_iso_timestamp(moment)

    assert text == "2026-01-21T14:30:00.123Z"
    assert parse_iso_timestamp(text) == moment.replace(microsecond=123000)
    assert parse_iso_timestamp("yesterday-ish") is None
    assert parse_iso_timestamp(None) is None


def test_data_uri():
    uri = encode_data_uri("image/png", b"\x89PNG")

    assert is_data_uri(uri)
    assert not is_data_uri("logo.png")
    assert decode_data_uri(uri) == ("image/png", b"\x89PNG")
    assert decode_data_uri("data:,hello%20world") == ("text/plain", b"hello world")
    with pytest.raises(ValueError):
        decode_data_uri("logo.png")


@pytest.mark.parametrize("name,expected", [
    ("invoice-INV/001.pdf", "invoice-INV_001.pdf"),
    ('a<b>:c"d.json', "a_b__c_d.json"),
    ("...", "unnamed"),
])
def test_safe_filename(name, expected):
    assert safe_filename(name) == expected


def test_format_file_size():
    assert format_file_size(512) == "512.0 B"
    assert format_file_size(5 * 1024 * 1024) == "5.0 MB"


def test_config_dot_notation():
    assert get_config("autosave.delay_seconds") == 2.0
    assert get_config("storage.keys.invoice_templates") == "invoice_composer_invoice_templates"
    assert get_config("missing.key", "fallback") == "fallback"


def test_config_from_environment(tmp_path, monkeypatch):
    """INVOICE_COMPOSER_CONFIG points at an alternative settings file."""
    settings = tmp_path / "settings.yaml"
    settings.write_text("autosave:\n  delay_seconds: 0.5\n", encoding="utf-8")
    monkeypatch.setenv("INVOICE_COMPOSER_CONFIG", str(settings))
    ConfigurationManager.reset()

    assert get_config("autosave.delay_seconds") == 0.5
    assert get_config("export.pdf.margin_mm", 20) == 20


def test_config_missing_file(tmp_path):
    ConfigurationManager.reset()
    with pytest.raises(FileNotFoundError):
        ConfigurationManager(str(tmp_path / "absent.yaml"))
