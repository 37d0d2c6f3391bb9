"""
Order service — Generating and cancelling purchase orders.
"""

import logging

from procureman import transitions
from procureman.conf import CANCEL_TARGETS, get_choice
from procureman.db import after_commit, atomic_batch
from procureman.exceptions import (
    ConcurrentModificationError,
    EmptyLotError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from procureman.models.enums import LotStatus, RequestStatus
from procureman.models.lot import Lot
from procureman.models.purchase_order import PurchaseOrder, PurchaseOrderItem
from procureman.models.purchase_request import PurchaseRequest
from procureman.models.supplier import Supplier
from procureman.signals import purchase_order_cancelled, purchase_order_generated
from procureman.services.requests import write_request

logger = logging.getLogger('procureman')


def aggregate_items(requests) -> list[dict]:
    """
    Sum quantities per (material_name, unit).

    Items keep the order in which each key first appears; category comes
    from the first request carrying the key.
    """
    items: dict[tuple[str, str], dict] = {}
    for request in requests:
        key = (request.material_name, request.unit)
        item = items.get(key)
        if item is None:
            items[key] = {
                'material_name': request.material_name,
                'unit': request.unit,
                'category': request.category,
                'total_quantity': request.quantity,
            }
        else:
            item['total_quantity'] += request.quantity
    return list(items.values())


def _read_versions(entries) -> dict:
    """Map request id to the version the caller read (None for bare ids)."""
    versions = {}
    for entry in entries:
        if isinstance(entry, PurchaseRequest):
            versions[entry.pk] = entry.version
        else:
            versions.setdefault(entry, None)
    return versions


def _lock_requests(ids) -> dict:
    locked = {
        r.pk: r
        for r in PurchaseRequest.objects.select_for_update().filter(pk__in=list(ids))
    }
    for request_id in ids:
        if request_id not in locked:
            raise NotFoundError('REQUEST_NOT_FOUND', request_id=request_id)
    return locked


class Orders:
    """Purchase order generation and cancellation."""

    @classmethod
    def generate_order(cls, requests, supplier_id, user=None, returned=()) -> PurchaseOrder:
        """
        Cut one purchase order from a set of approved or batched requests.

        Args:
            requests: Request ids or PurchaseRequest instances to consume.
                Instances are written only if unchanged since they were read.
            supplier_id: Supplier receiving the order
            user: Who generated it
            returned: Members of the same lot left out of the order; they go
                back to the pool in the same atomic batch.

        Returns:
            The new PurchaseOrder

        Raises:
            EmptyLotError: No requests
            ValidationError('DUPLICATE_REQUEST'): Id both consumed and returned
            NotFoundError: Supplier or request missing
            InvalidStateError('INVALID_STATUS'): Request not approved/batched
            ConcurrentModificationError: A request changed since it was read
        """
        versions = _read_versions(requests)
        if not versions:
            raise EmptyLotError()

        returned_versions = _read_versions(returned)
        overlap = sorted(set(versions) & set(returned_versions))
        if overlap:
            raise ValidationError('DUPLICATE_REQUEST', request_ids=overlap)

        with atomic_batch():
            supplier = Supplier.objects.filter(pk=supplier_id).first()
            if supplier is None:
                raise NotFoundError('SUPPLIER_NOT_FOUND', supplier_id=supplier_id)

            locked = _lock_requests([*versions, *returned_versions])
            consumed = [locked[pk] for pk in versions]

            for request in consumed:
                expected = versions[request.pk]
                if expected is not None and request.version != expected:
                    raise ConcurrentModificationError(
                        request_id=request.pk, expected_version=expected,
                    )
                transitions.require(request.status, *transitions.OPEN_STATUSES)

            source_lots = {r.lot_id for r in consumed if r.lot_id is not None}
            order = PurchaseOrder.objects.create(
                supplier=supplier,
                lot_id=next(iter(source_lots)) if len(source_lots) == 1 else None,
                created_by=user,
            )
            PurchaseOrderItem.objects.bulk_create([
                PurchaseOrderItem(order=order, position=position, **item)
                for position, item in enumerate(aggregate_items(consumed))
            ])

            for request in consumed:
                write_request(
                    request,
                    expected_version=versions[request.pk],
                    status=RequestStatus.ORDERED,
                    lot=None,
                    purchase_order=order,
                )

            for pk, expected in returned_versions.items():
                request = locked[pk]
                transitions.require(request.status, *transitions.OPEN_STATUSES)
                if request.lot_id is not None:
                    source_lots.add(request.lot_id)
                write_request(
                    request,
                    expected_version=expected,
                    status=RequestStatus.APPROVED,
                    lot=None,
                )

            cls._close_exhausted_lots(source_lots)
            after_commit(purchase_order_generated.send, sender=PurchaseOrder, order=order)

        logger.info(
            "purchase.order.generated",
            extra={
                "order_id": order.pk,
                "supplier_id": supplier.pk,
                "lot_id": order.lot_id,
                "requests": list(versions),
                "returned": list(returned_versions),
            },
        )
        return order

    @classmethod
    def _close_exhausted_lots(cls, lot_ids) -> None:
        for lot in Lot.objects.select_for_update().filter(pk__in=lot_ids, status=LotStatus.OPEN):
            if not PurchaseRequest.objects.filter(lot=lot, status=RequestStatus.BATCHED).exists():
                lot.status = LotStatus.ORDERED
                lot.save(update_fields=['status'])

    @classmethod
    def cancel_order(cls, order_id) -> list[int]:
        """
        Cancel a purchase order that has not been received.

        The order and its items are deleted. Linked requests return to
        CANCEL_ORDER_TARGET_STATUS: "approved" puts them in the pool;
        "batched" puts them back in the order's lot and reopens it (or in
        the pool when the order had no lot).

        Returns:
            Ids of the requests released

        Raises:
            NotFoundError('ORDER_NOT_FOUND')
            InvalidStateError('ORDER_HAS_RECEIPTS')
        """
        target = get_choice('CANCEL_ORDER_TARGET_STATUS', CANCEL_TARGETS)

        with atomic_batch():
            order = (
                PurchaseOrder.objects.select_for_update()
                .filter(pk=order_id)
                .first()
            )
            if order is None:
                raise NotFoundError('ORDER_NOT_FOUND', order_id=order_id)

            requests = list(order.requests.select_for_update().order_by('pk'))
            received = [r.pk for r in requests if r.status == RequestStatus.RECEIVED]
            if received:
                raise InvalidStateError('ORDER_HAS_RECEIPTS', order_id=order.pk, request_ids=received)

            lot = order.lot if target == RequestStatus.BATCHED else None
            if lot is not None and lot.status != LotStatus.OPEN:
                lot.status = LotStatus.OPEN
                lot.save(update_fields=['status'])

            for request in requests:
                if lot is not None:
                    write_request(request, status=RequestStatus.BATCHED, lot=lot, purchase_order=None)
                else:
                    write_request(request, status=RequestStatus.APPROVED, purchase_order=None)

            request_ids = [r.pk for r in requests]
            order.delete()
            after_commit(
                purchase_order_cancelled.send,
                sender=PurchaseOrder,
                order_id=order_id,
                request_ids=request_ids,
            )

        logger.info(
            "purchase.order.cancelled",
            extra={"order_id": order_id, "requests": request_ids, "target": target},
        )
        return request_ids
