"""
Storage Module for Invoice Composer.

Layered persistence:
    - KeyValueStore backends (MemoryStore, SQLiteStore)
    - CompanyProfileStore, TemplateStore, SessionStore

Author: Invoice Composer Team
"""

from .backends import KeyValueStore, MemoryStore, SQLiteStore
from .stores import (
    CompanyProfileStore,
    SessionStore,
    TemplateStore,
    clear_all_data,
    is_storage_available,
    storage_key,
)

__all__ = [
    'KeyValueStore',
    'MemoryStore',
    'SQLiteStore',
    'CompanyProfileStore',
    'SessionStore',
    'TemplateStore',
    'clear_all_data',
    'is_storage_available',
    'storage_key',
]
