"""
Procureman Django Store Adapter — DocumentStore over the Django ORM.

Collections map to models; documents are plain dicts built from each
model's concrete fields (foreign keys as ``<name>_id``).

Usage:
    from procureman.adapters import get_document_store

    store = get_document_store()
    unsubscribe = store.subscribe('purchaseRequests', render, order_by='-created_at')
    store.query('materials', where=[('archived', '==', False), ('stock', '<', 5)])
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable

from django.apps import apps
from django.core.exceptions import FieldDoesNotExist
from django.db import transaction
from django.db.models.signals import post_delete, post_save

from procureman.db import atomic_batch as store_batch
from procureman.exceptions import NotFoundError, ValidationError
from procureman.protocols.store import BatchOperation, Document, WhereClause
from procureman.signals import documents_changed

logger = logging.getLogger('procureman')

COLLECTIONS = {
    'materials': 'procureman.Material',
    'purchaseRequests': 'procureman.PurchaseRequest',
    'purchaseOrders': 'procureman.PurchaseOrder',
    'suppliers': 'procureman.Supplier',
    'lots': 'procureman.Lot',
    'stockMovements': 'procureman.StockMovement',
    'materialRequests': 'procureman.MaterialRequest',
    'returnRequests': 'procureman.ReturnRequest',
}

# Changed only through the Purchasing services
PROTECTED_COLLECTIONS = frozenset({
    'purchaseRequests',
    'materials',
    'purchaseOrders',
    'stockMovements',
    'lots',
})

LOOKUPS = {
    '==': 'exact',
    '<': 'lt',
    '<=': 'lte',
    '>': 'gt',
    '>=': 'gte',
    'in': 'in',
}

BATCH_KINDS = ('add', 'update', 'delete')


def to_document(instance) -> Document:
    """Plain dict of an instance's concrete fields, plus ``id``."""
    doc = {'id': instance.pk}
    for field in instance._meta.concrete_fields:
        doc[field.attname] = field.value_from_object(instance)
    if instance._meta.label == COLLECTIONS['purchaseOrders']:
        doc['items'] = [
            {
                'material_name': item.material_name,
                'unit': item.unit,
                'category': item.category,
                'total_quantity': item.total_quantity,
            }
            for item in instance.items.all()
        ]
        doc['request_ids'] = instance.request_ids
    return doc


class DjangoDocumentStore:
    """DocumentStore implementation backed by the configured database."""

    def __init__(self):
        self._lock = threading.Lock()
        self._subscriptions: dict[int, Callable[[], None]] = {}

    # ── Reads ─────────────────────────────────────────────────────

    def get_document(self, collection: str, id: Any) -> Document:
        model = self._model(collection)
        instance = model.objects.filter(pk=id).first()
        if instance is None:
            raise NotFoundError('DOCUMENT_NOT_FOUND', collection=collection, id=id)
        return to_document(instance)

    def query(self, collection: str, where: list[WhereClause] | None = None,
              order_by: str | None = None) -> list[Document]:
        model = self._model(collection)
        qs = model.objects.all()

        for clause in where or []:
            try:
                field, op, value = clause
            except (TypeError, ValueError):
                raise ValidationError('INVALID_FILTER', clause=clause) from None
            self._check_field(model, field)
            if op == '!=':
                qs = qs.exclude(**{field: value})
            elif op in LOOKUPS:
                qs = qs.filter(**{f"{field}__{LOOKUPS[op]}": value})
            else:
                raise ValidationError('INVALID_FILTER', field=field, op=op)

        if order_by:
            self._check_field(model, order_by.lstrip('-'))
            qs = qs.order_by(order_by, 'pk')

        if model._meta.label == COLLECTIONS['purchaseOrders']:
            qs = qs.prefetch_related('items')
        return [to_document(instance) for instance in qs]

    # ── Writes ────────────────────────────────────────────────────

    def add_document(self, collection: str, data: dict) -> Any:
        return self.atomic_batch([BatchOperation('add', collection, data=data)])[0]

    def update_document(self, collection: str, id: Any, data: dict) -> None:
        self.atomic_batch([BatchOperation('update', collection, id=id, data=data)])

    def delete_document(self, collection: str, id: Any) -> None:
        self.atomic_batch([BatchOperation('delete', collection, id=id)])

    def atomic_batch(self, operations: list[BatchOperation]) -> list[Any]:
        """
        Apply every operation or none.

        All operations are validated before any write.

        Raises:
            ValidationError: Unknown kind/collection/field, or protected collection
            NotFoundError('DOCUMENT_NOT_FOUND'): Update/delete of a missing id
            StoreError: Database failure (nothing applied)
        """
        plan = []
        for op in operations:
            if op.kind not in BATCH_KINDS:
                raise ValidationError('INVALID_OPERATION', kind=op.kind)
            model = self._writable_model(op.collection)
            if op.kind != 'delete':
                self._check_data(model, op.data)
            plan.append((op, model))

        results = []
        with store_batch():
            for op, model in plan:
                results.append(self._apply(op, model))

        logger.info(
            "store.batch.applied",
            extra={"operations": [(op.kind, op.collection, op.id) for op in operations]},
        )
        return results

    def _apply(self, op: BatchOperation, model) -> Any:
        if op.kind == 'add':
            return model.objects.create(**op.data).pk

        instance = model.objects.select_for_update().filter(pk=op.id).first()
        if instance is None:
            raise NotFoundError('DOCUMENT_NOT_FOUND', collection=op.collection, id=op.id)

        if op.kind == 'delete':
            instance.delete()
        else:
            for name, value in op.data.items():
                setattr(instance, name, value)
            instance.save(update_fields=list(op.data))
        return None

    # ── Subscriptions ─────────────────────────────────────────────

    def subscribe(self, collection: str, callback: Callable[[list[Document]], None],
                  order_by: str | None = None) -> Callable[[], None]:
        """
        Deliver the collection snapshot now and after each committed change.

        Changes within one transaction produce a single snapshot. Changes
        rolled back never produce one.
        """
        model = self._model(collection)
        # Per thread: on_commit callbacks run in the committing thread
        state = threading.local()

        def flush():
            state.dirty = False
            callback(self.query(collection, order_by=order_by))

        def flush_if_dirty():
            if getattr(state, 'dirty', False):
                flush()

        def on_change(sender, **kwargs):
            state.dirty = True
            transaction.on_commit(flush_if_dirty)

        post_save.connect(on_change, sender=model, weak=False)
        post_delete.connect(on_change, sender=model, weak=False)
        documents_changed.connect(on_change, sender=model, weak=False)

        key = id(on_change)

        def unsubscribe():
            post_save.disconnect(on_change, sender=model)
            post_delete.disconnect(on_change, sender=model)
            documents_changed.disconnect(on_change, sender=model)
            with self._lock:
                self._subscriptions.pop(key, None)

        with self._lock:
            self._subscriptions[key] = unsubscribe

        flush()
        return unsubscribe

    def close(self) -> None:
        """Drop every subscription opened on this store."""
        with self._lock:
            pending = list(self._subscriptions.values())
        for unsubscribe in pending:
            unsubscribe()

    @property
    def subscription_count(self) -> int:
        return len(self._subscriptions)

    # ── Internals ─────────────────────────────────────────────────

    def _model(self, collection: str):
        label = COLLECTIONS.get(collection)
        if label is None:
            raise ValidationError('UNKNOWN_COLLECTION', collection=collection)
        return apps.get_model(label)

    def _writable_model(self, collection: str):
        model = self._model(collection)
        if collection in PROTECTED_COLLECTIONS:
            raise ValidationError('PROTECTED_COLLECTION', collection=collection)
        return model

    def _check_field(self, model, name: str) -> None:
        try:
            field = model._meta.get_field(name)
        except FieldDoesNotExist:
            raise ValidationError('INVALID_FILTER', field=name) from None
        if not field.concrete:
            raise ValidationError('INVALID_FILTER', field=name)

    def _check_data(self, model, data: dict) -> None:
        allowed = set()
        for field in model._meta.concrete_fields:
            if not field.primary_key:
                allowed.update({field.name, field.attname})
        unknown = sorted(set(data) - allowed)
        if unknown:
            raise ValidationError('INVALID_DOCUMENT', fields=unknown)
