"""
Document Store Protocol — Interface for collection-oriented persistence.

Procureman's services talk to the ORM directly; this protocol is the
collection-level surface offered to UIs and integrations that work with
plain documents (dicts) and live snapshots.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Protocol, runtime_checkable

# (field, operator, value); operators: ==, !=, <, <=, >, >=, in
WhereClause = tuple[str, str, Any]

Document = dict[str, Any]

Unsubscribe = Callable[[], None]


@dataclass(frozen=True)
class BatchOperation:
    """One write inside an atomic batch."""

    kind: str  # "add", "update", "delete"
    collection: str
    id: Any = None
    data: dict = field(default_factory=dict)


@runtime_checkable
class DocumentStore(Protocol):
    """
    Protocol for a document store.

    Collections:
        materials, purchaseRequests, purchaseOrders, suppliers, lots,
        stockMovements, materialRequests, returnRequests

    Writes to collections whose lifecycle is owned by the purchasing
    services (purchaseRequests, materials, purchaseOrders, stockMovements,
    lots) are refused; use the Purchasing facade for those.
    """

    def subscribe(
        self,
        collection: str,
        callback: Callable[[list[Document]], None],
        order_by: str | None = None,
    ) -> Unsubscribe:
        """
        Push the full collection snapshot to ``callback`` now and after
        every committed change.

        Returns:
            Function that stops the subscription
        """
        ...

    def get_document(self, collection: str, id: Any) -> Document:
        """
        Raises:
            NotFoundError('DOCUMENT_NOT_FOUND')
        """
        ...

    def query(
        self,
        collection: str,
        where: list[WhereClause] | None = None,
        order_by: str | None = None,
    ) -> list[Document]:
        ...

    def add_document(self, collection: str, data: dict) -> Any:
        """Returns the new document id."""
        ...

    def update_document(self, collection: str, id: Any, data: dict) -> None:
        ...

    def delete_document(self, collection: str, id: Any) -> None:
        ...

    def atomic_batch(self, operations: list[BatchOperation]) -> list[Any]:
        """
        Apply all operations or none.

        Returns:
            Per operation: the new id for "add", None otherwise
        """
        ...
