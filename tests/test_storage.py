"""Tests for key-value backends and the persistence stores."""

import json
from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from invoice_composer.models import CompanyProfile, InvoiceTemplate, apply_template
from invoice_composer.storage import (
    CompanyProfileStore,
    MemoryStore,
    SQLiteStore,
    SessionStore,
    TemplateStore,
    clear_all_data,
    is_storage_available,
    storage_key,
)
from invoice_composer.utils.exceptions import StorageError


class BrokenStore(MemoryStore):
    """Backend whose every operation fails."""

    def get(self, key):
        raise StorageError("get", "backend offline")

    def set(self, key, value):
        raise StorageError("set", "backend offline")

    def delete(self, key):
        raise StorageError("delete", "backend offline")


class Ticker:
    """Callable returning a time that moves forward one minute per call."""

    def __init__(self):
        self.current = datetime(2026, 1, 21, 9, 0, tzinfo=timezone.utc)

    def __call__(self):
        value = self.current
        self.current += timedelta(minutes=1)
        return value


def test_storage_keys_come_from_config():
    assert storage_key("company_profile") == "invoice_composer_company_profile"
    assert storage_key("auto_save_timestamp") == "invoice_composer_auto_save_timestamp"


def test_memory_store_quota():
    """Writes beyond the quota raise StorageError."""
    store = MemoryStore(quota_bytes=10)
    store.set("a", "12345")
    with pytest.raises(StorageError):
        store.set("b", "1234567")
    store.set("a", "1234567890")
    assert store.get("a") == "1234567890"


def test_sqlite_store_persists(tmp_path):
    """Values survive reopening the database."""
    db_path = tmp_path / "store.db"
    SQLiteStore(db_path).set("key", "first")
    store = SQLiteStore(db_path)
    store.set("key", "second")

    assert store.get("key") == "second"
    assert store.keys() == ["key"]
    store.delete("key")
    assert store.get("key") is None


def test_profile_save_and_load(local_store):
    """The single profile slot is overwritten on save."""
    profiles = CompanyProfileStore(local_store)
    assert profiles.load() is None

    assert profiles.save(CompanyProfile(company_name="Acme"))
    assert profiles.save(CompanyProfile(company_name="Initech", payment_methods=["Cash"]))

    loaded = profiles.load()
    assert loaded.company_name == "Initech"
    assert loaded.payment_methods == ["Cash"]
    record = json.loads(local_store.get(storage_key("company_profile")))
    assert record['companyName'] == "Initech"


def test_profile_save_failure_returns_false():
    """Quota errors are reported as False, not raised."""
    profiles = CompanyProfileStore(MemoryStore(quota_bytes=8))
    assert profiles.save(CompanyProfile(company_name="Acme")) is False
    assert profiles.load() is None


def test_profile_load_tolerates_corrupt_json(local_store):
    local_store.set(storage_key("company_profile"), "{not json")
    assert CompanyProfileStore(local_store).load() is None


def test_template_save_appends_and_replaces(local_store):
    """Saving an existing id moves it to the end and keeps created_at."""
    templates = TemplateStore(local_store, now=Ticker())

    first = InvoiceTemplate.create("First", template_id="t1")
    second = InvoiceTemplate.create("Second", template_id="t2")
    assert templates.save(first)
    assert templates.save(second)
    created_at = templates.get("t1").created_at

    renamed = InvoiceTemplate.create("First (v2)", template_id="t1")
    assert templates.save(renamed)

    stored = templates.load_all()
    assert [t.id for t in stored] == ["t2", "t1"]
    assert stored[1].name == "First (v2)"
    assert stored[1].created_at == created_at
    assert stored[1].updated_at == "2026-01-21T09:02:00.000Z"
    assert renamed.updated_at != stored[1].updated_at


def test_template_delete(local_store):
    """Deleting removes one template; unknown ids are not an error."""
    templates = TemplateStore(local_store)
    templates.save(InvoiceTemplate.create("Keep", template_id="keep"))
    templates.save(InvoiceTemplate.create("Drop", template_id="drop"))

    assert templates.delete("drop")
    assert templates.delete("missing")
    assert [t.id for t in templates.load_all()] == ["keep"]
    assert templates.get("drop") is None


def test_template_store_failures():
    """Backend failures become False or an empty list."""
    templates = TemplateStore(BrokenStore())
    assert templates.save(InvoiceTemplate.create("x")) is False
    assert templates.load_all() == []
    assert templates.delete("x") is False


def test_session_store_uses_two_keys(session_backend, invoice, clock):
    """The snapshot and its timestamp are stored separately."""
    session = SessionStore(session_backend, now=clock.now)
    assert session.save(invoice)

    assert sorted(session_backend.keys()) == sorted([
        storage_key("current_invoice"),
        storage_key("auto_save_timestamp"),
    ])
    data, timestamp = session.load()
    assert data == invoice
    assert timestamp == "2026-01-21T14:30:00.000Z"
    assert session.get_timestamp() == timestamp
    assert session.load_snapshot().saved_at == timestamp


@pytest.fixture(params=["items", "empty"])
def stored_invoice(request, invoice):
    """The shared invoice, with its items or with an empty items list."""
    return invoice if request.param == "items" else replace(invoice, items=[])


def test_session_store_round_trip(session_backend, stored_invoice):
    session = SessionStore(session_backend)
    assert session.save(stored_invoice)

    data, _ = session.load()
    assert data == stored_invoice
    assert data.items == stored_invoice.items


def test_template_store_round_trip(local_store, stored_invoice):
    """A template holding a full invoice record loads back unchanged."""
    moment = datetime(2026, 1, 21, 9, 0, tzinfo=timezone.utc)
    templates = TemplateStore(local_store, now=lambda: moment)
    template = InvoiceTemplate.create("Snapshot", data=stored_invoice.to_dict(), now=moment, template_id="t1")
    assert templates.save(template)

    loaded = templates.get("t1")
    assert loaded == template
    assert apply_template(stored_invoice, loaded) == stored_invoice


def test_session_store_clear(session_backend, invoice):
    session = SessionStore(session_backend)
    session.save(invoice)

    assert session.clear()
    assert session.load() == (None, None)
    assert session.load_snapshot() is None


def test_session_store_failure(invoice):
    session = SessionStore(BrokenStore())
    assert session.save(invoice) is False
    assert session.load() == (None, None)
    assert session.get_timestamp() is None


def test_clear_all_data_keeps_session_keys(local_store):
    """Only the profile, templates and app settings are removed."""
    for name in ("company_profile", "invoice_templates", "app_settings", "current_invoice"):
        local_store.set(storage_key(name), "{}")

    assert clear_all_data(local_store)
    assert local_store.keys() == [storage_key("current_invoice")]


def test_is_storage_available(local_store):
    assert is_storage_available(local_store)
    assert local_store.keys() == []
    assert is_storage_available(BrokenStore()) is False
