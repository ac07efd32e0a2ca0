"""
Persistence Stores Module.

Three stores with distinct lifetimes, all serializing JSON text into an
injected KeyValueStore:

    CompanyProfileStore  single persistent slot for the company profile
    TemplateStore        persistent list of named invoice templates
    SessionStore         ephemeral snapshot of the invoice being edited

Stores never raise. Every failure (backend error, quota, malformed JSON)
is logged and reported as False / None / an empty list.

Usage:
    store = SQLiteStore()
    profiles = CompanyProfileStore(store)
    profiles.save(CompanyProfile.from_invoice(invoice))

Author: Invoice Composer Team
"""

import json
from dataclasses import replace
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from config import get_config
from invoice_composer.models.invoice import InvoiceData
from invoice_composer.models.profile import CompanyProfile
from invoice_composer.models.template import InvoiceTemplate, SessionSnapshot
from invoice_composer.utils.helpers import to_iso_timestamp, utc_now
from invoice_composer.utils.logger import get_logger
from .backends import KeyValueStore

# Initialize module logger
logger = get_logger(__name__)

Now = Callable[[], datetime]

# Persistent keys removed by clear_all_data
PERSISTENT_KEY_NAMES = ('company_profile', 'invoice_templates', 'app_settings')

STORAGE_TEST_KEY = "__storage_test__"


def storage_key(name: str) -> str:
    """
    Configured storage key for a logical slot.

    Example:
        >>> storage_key("company_profile")
        'invoice_composer_company_profile'
    """
    return get_config(f"storage.keys.{name}", f"invoice_composer_{name}")


class CompanyProfileStore:
    """
    Single-slot persistent company profile.

    Example:
        >>> profiles = CompanyProfileStore(SQLiteStore())
        >>> profiles.save(CompanyProfile(company_name="Acme"))
        True
    """

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store
        self.key = storage_key("company_profile")

    def save(self, profile: CompanyProfile) -> bool:
        """Overwrite the stored profile."""
        try:
            self.store.set(self.key, json.dumps(profile.to_dict()))
            logger.info(f"Company profile saved ({profile.company_name or 'unnamed'})")
            return True
        except Exception as e:
            logger.error(f"Failed to save company profile: {e}")
            return False

    def load(self) -> Optional[CompanyProfile]:
        """Stored profile, or None if absent or unreadable."""
        try:
            stored = self.store.get(self.key)
            return CompanyProfile.from_dict(json.loads(stored)) if stored else None
        except Exception as e:
            logger.error(f"Failed to load company profile: {e}")
            return None

    def clear(self) -> bool:
        try:
            self.store.delete(self.key)
            return True
        except Exception as e:
            logger.error(f"Failed to clear company profile: {e}")
            return False


class TemplateStore:
    """
    Persistent, ordered list of invoice templates.

    Saving a template removes any stored template with the same id and
    appends the new version, so the list stays free of duplicate ids and
    the most recently saved template is last.

    Attributes:
        store: Backend key-value store.
        now: Callable returning the current time, used for ``updated_at``.
    """

    def __init__(self, store: KeyValueStore, now: Optional[Now] = None) -> None:
        self.store = store
        self.now = now or utc_now
        self.key = storage_key("invoice_templates")

    def save(self, template: InvoiceTemplate) -> bool:
        """
        Insert or replace a template.

        ``updated_at`` is refreshed; ``created_at`` is kept from the stored
        version when the template already exists.
        """
        try:
            templates = self._read()
            previous = next((t for t in templates if t.id == template.id), None)
            remaining = [t for t in templates if t.id != template.id]

            updated_at = to_iso_timestamp(self.now())
            created_at = template.created_at or updated_at
            if previous is not None and previous.created_at:
                created_at = previous.created_at
            template = replace(template, created_at=created_at, updated_at=updated_at)

            remaining.append(template)
            self._write(remaining)
            logger.info(f"Template saved: {template.name} ({template.id})")
            return True
        except Exception as e:
            logger.error(f"Failed to save invoice template: {e}")
            return False

    def load_all(self) -> List[InvoiceTemplate]:
        """All stored templates in insertion order."""
        try:
            return self._read()
        except Exception as e:
            logger.error(f"Failed to load invoice templates: {e}")
            return []

    def get(self, template_id: str) -> Optional[InvoiceTemplate]:
        return next((t for t in self.load_all() if t.id == template_id), None)

    def delete(self, template_id: str) -> bool:
        """Remove a template; deleting an unknown id still succeeds."""
        try:
            templates = [t for t in self._read() if t.id != template_id]
            self._write(templates)
            logger.info(f"Template deleted: {template_id}")
            return True
        except Exception as e:
            logger.error(f"Failed to delete invoice template: {e}")
            return False

    def _read(self) -> List[InvoiceTemplate]:
        stored = self.store.get(self.key)
        if not stored:
            return []
        return [InvoiceTemplate.from_dict(record) for record in json.loads(stored)]

    def _write(self, templates: List[InvoiceTemplate]) -> None:
        self.store.set(self.key, json.dumps([t.to_dict() for t in templates]))


class SessionStore:
    """
    Ephemeral snapshot of the invoice being edited.

    The invoice record and its save timestamp live under two keys.
    """

    def __init__(self, store: KeyValueStore, now: Optional[Now] = None) -> None:
        self.store = store
        self.now = now or utc_now
        self.invoice_key = storage_key("current_invoice")
        self.timestamp_key = storage_key("auto_save_timestamp")

    def save(self, data: InvoiceData) -> bool:
        """Write the invoice and the current timestamp."""
        try:
            self.store.set(self.invoice_key, json.dumps(data.to_dict()))
            self.store.set(self.timestamp_key, to_iso_timestamp(self.now()))
            logger.debug(f"Session snapshot saved ({data.invoice_number})")
            return True
        except Exception as e:
            logger.error(f"Failed to save current invoice: {e}")
            return False

    def load(self) -> Tuple[Optional[InvoiceData], Optional[str]]:
        """
        Stored snapshot.

        Returns:
            Tuple of (invoice or None, timestamp or None).
        """
        try:
            stored = self.store.get(self.invoice_key)
            timestamp = self.store.get(self.timestamp_key)
            data = InvoiceData.from_dict(json.loads(stored)) if stored else None
            return data, timestamp
        except Exception as e:
            logger.error(f"Failed to load current invoice: {e}")
            return None, None

    def load_snapshot(self) -> Optional[SessionSnapshot]:
        data, timestamp = self.load()
        return SessionSnapshot(data, timestamp) if data is not None else None

    def clear(self) -> bool:
        try:
            self.store.delete(self.invoice_key)
            self.store.delete(self.timestamp_key)
            return True
        except Exception as e:
            logger.error(f"Failed to clear current invoice: {e}")
            return False

    def get_timestamp(self) -> Optional[str]:
        try:
            return self.store.get(self.timestamp_key)
        except Exception as e:
            logger.error(f"Failed to read auto-save timestamp: {e}")
            return None


def clear_all_data(store: KeyValueStore) -> bool:
    """
    Remove the company profile, templates and app settings.

    Returns:
        True if every key was removed.
    """
    try:
        for name in PERSISTENT_KEY_NAMES:
            store.delete(storage_key(name))
        logger.info("All persistent data cleared")
        return True
    except Exception as e:
        logger.error(f"Failed to clear persistent data: {e}")
        return False


def is_storage_available(store: KeyValueStore) -> bool:
    """Probe the store with a write/delete round trip."""
    try:
        store.set(STORAGE_TEST_KEY, "test")
        store.delete(STORAGE_TEST_KEY)
        return True
    except Exception as e:
        logger.warning(f"Storage unavailable: {e}")
        return False
