"""
Procureman Adapters.

Implementations of protocols for external systems.
"""

from procureman.adapters.django_store import DjangoDocumentStore
from procureman.adapters.loader import get_document_store, reset_document_store

__all__ = [
    "DjangoDocumentStore",
    "get_document_store",
    "reset_document_store",
]
