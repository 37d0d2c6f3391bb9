"""
Procureman store loader — Resolves the configured DocumentStore.

Usage:
    from procureman.adapters import get_document_store

    store = get_document_store()
    store.query('suppliers')

Settings:
    PROCUREMAN = {
        "STORE_BACKEND": "procureman.adapters.django_store.DjangoDocumentStore",
    }
"""

from __future__ import annotations

import logging
import threading

from django.core.exceptions import ImproperlyConfigured
from django.utils.module_loading import import_string

from procureman.conf import procureman_settings
from procureman.protocols.store import DocumentStore

logger = logging.getLogger(__name__)


# Cached store instance
_lock = threading.Lock()
_document_store: DocumentStore | None = None


def get_document_store() -> DocumentStore:
    """
    Return the configured document store.

    Raises:
        ImproperlyConfigured: If STORE_BACKEND is empty, fails to import, or
            does not implement DocumentStore
    """
    global _document_store

    if _document_store is None:
        with _lock:
            if _document_store is None:  # double-checked
                backend_path = procureman_settings.STORE_BACKEND

                if not backend_path:
                    raise ImproperlyConfigured(
                        "PROCUREMAN['STORE_BACKEND'] must be configured. "
                        "Example: 'procureman.adapters.django_store.DjangoDocumentStore'"
                    )

                try:
                    backend_class = import_string(backend_path)
                except ImportError as e:
                    raise ImproperlyConfigured(
                        f"Failed to import document store '{backend_path}': {e}"
                    ) from e

                store = backend_class()
                if not isinstance(store, DocumentStore):
                    raise ImproperlyConfigured(
                        f"'{backend_path}' does not implement the DocumentStore protocol"
                    )
                _document_store = store
                logger.debug("Loaded document store: %s", backend_path)

    return _document_store


def reset_document_store() -> None:
    """Reset the cached store. Useful for testing."""
    global _document_store
    _document_store = None
