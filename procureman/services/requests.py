"""
Purchase request lifecycle — create, approve, reject, lot membership, delete.

All state-changing methods run inside atomic_batch() with the request row
locked, and every write is conditional on the request's version.
"""

import logging

from django.db.models import F
from django.utils import timezone

from procureman import transitions
from procureman.db import after_commit, atomic_batch
from procureman.exceptions import (
    ConcurrentModificationError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from procureman.models.enums import LotStatus, RequestStatus
from procureman.models.lot import Lot
from procureman.models.purchase_request import PurchaseRequest
from procureman.signals import documents_changed, request_status_changed

logger = logging.getLogger('procureman')

REQUIRED_TEXT_FIELDS = ('material_name', 'unit', 'justification', 'category', 'area')
APPROVAL_EDITABLE_FIELDS = ('quantity', 'material_name', 'unit', 'category', 'notes')


def validate_quantity(quantity, field: str = 'quantity') -> int:
    """Quantities are positive integers."""
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValidationError('INVALID_QUANTITY', field=field, requested=quantity)
    return quantity


def validate_text(value, field: str) -> str:
    text = (value or '').strip() if isinstance(value, str) or value is None else None
    if not text:
        raise ValidationError('REQUIRED_FIELD', field=field)
    return text


def get_request(request_id, lock: bool = False) -> PurchaseRequest:
    """
    Load a purchase request.

    Raises:
        NotFoundError('REQUEST_NOT_FOUND')
    """
    qs = PurchaseRequest.objects.all()
    if lock:
        qs = qs.select_for_update()
    try:
        return qs.get(pk=request_id)
    except (PurchaseRequest.DoesNotExist, ValueError, TypeError):
        raise NotFoundError('REQUEST_NOT_FOUND', request_id=request_id) from None


def get_open_lot(lot_id, lock: bool = False) -> Lot:
    """
    Load a lot that still accepts requests.

    Raises:
        NotFoundError('LOT_NOT_FOUND')
        InvalidStateError('LOT_CLOSED')
    """
    qs = Lot.objects.all()
    if lock:
        qs = qs.select_for_update()
    try:
        lot = qs.get(pk=lot_id)
    except (Lot.DoesNotExist, ValueError, TypeError):
        raise NotFoundError('LOT_NOT_FOUND', lot_id=lot_id) from None
    if lot.status != LotStatus.OPEN:
        raise InvalidStateError('LOT_CLOSED', lot_id=lot.pk, current=lot.status)
    return lot


def write_request(request: PurchaseRequest, expected_version: int | None = None,
                  **fields) -> PurchaseRequest:
    """
    Conditional write of a purchase request.

    Applies ``fields`` only if the stored version still equals the version
    the caller read, and bumps it. A status change must be an edge of the
    state graph.

    Raises:
        InvalidStateError('INVALID_TRANSITION'): Illegal status change
        ConcurrentModificationError: The request changed since it was read
    """
    version = request.version if expected_version is None else expected_version
    previous = request.status
    target = fields.get('status', previous)
    if target != previous:
        transitions.check(previous, target)

    updated = PurchaseRequest.objects.filter(pk=request.pk, version=version).update(
        version=F('version') + 1,
        **fields,
    )
    if not updated:
        logger.warning(
            "purchase.request.conflict",
            extra={"request_id": request.pk, "expected_version": version},
        )
        raise ConcurrentModificationError(request_id=request.pk, expected_version=version)

    for name, value in fields.items():
        setattr(request, name, value)
    request.version = version + 1

    after_commit(documents_changed.send, sender=PurchaseRequest, ids=[request.pk])
    if target != previous:
        after_commit(
            request_status_changed.send,
            sender=PurchaseRequest,
            request=request,
            previous=previous,
            current=target,
        )
    return request


class RequestLifecycle:
    """Purchase request state machine methods."""

    @classmethod
    def create_request(cls, material_name, quantity, unit, justification,
                       category, area, supervisor, notes='') -> PurchaseRequest:
        """
        Create a purchase request in PENDING.

        Raises:
            ValidationError('INVALID_QUANTITY'): quantity <= 0
            ValidationError('REQUIRED_FIELD'): Empty required text field
        """
        validate_quantity(quantity)
        values = {
            'material_name': material_name,
            'unit': unit,
            'justification': justification,
            'category': category,
            'area': area,
        }
        cleaned = {field: validate_text(values[field], field) for field in REQUIRED_TEXT_FIELDS}
        if supervisor is None:
            raise ValidationError('REQUIRED_FIELD', field='supervisor')

        request = PurchaseRequest.objects.create(
            quantity=quantity,
            supervisor=supervisor,
            notes=notes or '',
            status=RequestStatus.PENDING,
            **cleaned,
        )
        logger.info(
            "purchase.request.created",
            extra={
                "request_id": request.pk,
                "material": request.material_name,
                "qty": request.quantity,
                "category": request.category,
            },
        )
        after_commit(documents_changed.send, sender=PurchaseRequest, ids=[request.pk])
        return request

    @classmethod
    def approve(cls, request_id, user=None, **edits) -> PurchaseRequest:
        """
        Approve a pending request, optionally editing it.

        Transition: PENDING -> APPROVED

        If the quantity changes, the requested quantity is kept in
        original_quantity (first edit only). Stock is not touched.

        Raises:
            NotFoundError('REQUEST_NOT_FOUND')
            InvalidStateError('INVALID_STATUS'): Not PENDING
            ValidationError('INVALID_EDIT'): Edit of a non-editable field
        """
        unknown = sorted(set(edits) - set(APPROVAL_EDITABLE_FIELDS))
        if unknown:
            raise ValidationError('INVALID_EDIT', fields=unknown)
        if 'quantity' in edits:
            validate_quantity(edits['quantity'])
        for field in ('material_name', 'unit', 'category'):
            if field in edits:
                edits[field] = validate_text(edits[field], field)

        with atomic_batch():
            request = get_request(request_id, lock=True)
            transitions.require(request.status, RequestStatus.PENDING)

            fields = {
                'status': RequestStatus.APPROVED,
                'approved_by': user,
                'approved_at': timezone.now(),
            }
            if 'quantity' in edits and edits['quantity'] != request.quantity:
                if request.original_quantity is None:
                    fields['original_quantity'] = request.quantity
            fields.update(edits)

            write_request(request, **fields)

        logger.info(
            "purchase.request.approved",
            extra={
                "request_id": request.pk,
                "qty": request.quantity,
                "modified": request.is_modified,
            },
        )
        return request

    @classmethod
    def reject(cls, request_id, notes='', user=None) -> PurchaseRequest:
        """
        Reject a pending request.

        Transition: PENDING -> REJECTED (terminal)
        """
        with atomic_batch():
            request = get_request(request_id, lock=True)
            transitions.require(request.status, RequestStatus.PENDING)

            fields = {
                'status': RequestStatus.REJECTED,
                'rejected_by': user,
                'rejected_at': timezone.now(),
            }
            if notes:
                fields['notes'] = notes
            write_request(request, **fields)

        logger.info(
            "purchase.request.rejected",
            extra={"request_id": request.pk, "notes": notes},
        )
        return request

    @classmethod
    def assign_to_lot(cls, request_id, lot_id) -> PurchaseRequest:
        """
        Put an approved request into an open lot.

        Transition: APPROVED -> BATCHED

        Raises:
            NotFoundError: Request or lot missing
            InvalidStateError('ALREADY_IN_LOT' | 'INVALID_STATUS' | 'LOT_CLOSED')
            ValidationError('CATEGORY_MISMATCH'): Lot has another category
        """
        with atomic_batch():
            request = get_request(request_id, lock=True)
            lot = get_open_lot(lot_id, lock=True)

            if request.lot_id is not None:
                raise InvalidStateError('ALREADY_IN_LOT', request_id=request.pk, lot_id=request.lot_id)
            transitions.require(request.status, RequestStatus.APPROVED)
            if lot.category and lot.category != request.category:
                raise ValidationError(
                    'CATEGORY_MISMATCH',
                    lot_category=lot.category,
                    request_category=request.category,
                )

            write_request(request, lot=lot, status=RequestStatus.BATCHED)

        logger.info(
            "purchase.request.batched",
            extra={"request_id": request.pk, "lot_id": lot.pk},
        )
        return request

    @classmethod
    def remove_from_lot(cls, request_id) -> PurchaseRequest:
        """
        Take a request out of its lot and back into the pool.

        Transition: BATCHED -> APPROVED
        """
        with atomic_batch():
            request = get_request(request_id, lock=True)
            if request.lot_id is None:
                raise InvalidStateError('NOT_IN_LOT', request_id=request.pk)
            lot_id = request.lot_id

            write_request(request, lot=None, status=RequestStatus.APPROVED)

        logger.info(
            "purchase.request.unbatched",
            extra={"request_id": request.pk, "lot_id": lot_id},
        )
        return request

    @classmethod
    def delete_request(cls, request_id) -> None:
        """Delete a request that never entered the purchasing flow."""
        with atomic_batch():
            request = get_request(request_id, lock=True)
            transitions.require(request.status, RequestStatus.PENDING, RequestStatus.REJECTED)
            request.delete()

        logger.info("purchase.request.deleted", extra={"request_id": request_id})
