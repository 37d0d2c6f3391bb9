"""
Procureman Protocols.

Defines interfaces for external system integration.
"""

from procureman.protocols.store import (
    BatchOperation,
    Document,
    DocumentStore,
    WhereClause,
)

__all__ = [
    "BatchOperation",
    "Document",
    "DocumentStore",
    "WhereClause",
]
