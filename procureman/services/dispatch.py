"""
Dispatch service — Material requests served from stock, and returns.

Material requests are IMMEDIATE: approval deducts every item's quantity
in one atomic batch, or nothing at all.
"""

import logging

from django.utils import timezone

from procureman import transitions
from procureman.db import atomic_batch
from procureman.exceptions import InsufficientStockError, NotFoundError, ValidationError
from procureman.models.dispatch import MaterialRequest, MaterialRequestItem, ReturnRequest
from procureman.models.enums import (
    FulfillmentMode,
    MaterialRequestStatus,
    MovementKind,
    ReturnStatus,
)
from procureman.models.material import Material
from procureman.models.movement import StockMovement
from procureman.services.inventory import get_material
from procureman.services.requests import validate_quantity, validate_text

logger = logging.getLogger('procureman')


def _normalize_items(items) -> list[tuple]:
    """Accept (material_id, quantity) pairs or {'material_id', 'quantity'} dicts."""
    pairs = []
    for item in items:
        if isinstance(item, dict):
            pairs.append((item.get('material_id'), item.get('quantity')))
        else:
            material_id, quantity = item
            pairs.append((material_id, quantity))
    return pairs


def _get_material_request(request_id) -> MaterialRequest:
    request = MaterialRequest.objects.select_for_update().filter(pk=request_id).first()
    if request is None:
        raise NotFoundError('MATERIAL_REQUEST_NOT_FOUND', request_id=request_id)
    return request


def _get_return(return_id) -> ReturnRequest:
    request = ReturnRequest.objects.select_for_update().filter(pk=return_id).first()
    if request is None:
        raise NotFoundError('RETURN_NOT_FOUND', return_id=return_id)
    return request


class Dispatch:
    """Material requests and returns."""

    @classmethod
    def create_material_request(cls, items, area, supervisor) -> MaterialRequest:
        """
        Ask for materials already in stock.

        Args:
            items: (material_id, quantity) pairs
            area: Work area receiving the material
            supervisor: Requesting user

        Raises:
            ValidationError('EMPTY_ITEMS' | 'INVALID_QUANTITY' | 'REQUIRED_FIELD' | 'MATERIAL_ARCHIVED')
            NotFoundError('MATERIAL_NOT_FOUND')
        """
        pairs = _normalize_items(items)
        if not pairs:
            raise ValidationError('EMPTY_ITEMS')
        area = validate_text(area, 'area')
        if supervisor is None:
            raise ValidationError('REQUIRED_FIELD', field='supervisor')
        for _, quantity in pairs:
            validate_quantity(quantity)

        with atomic_batch():
            materials = Material.objects.in_bulk([material_id for material_id, _ in pairs])
            for material_id, _ in pairs:
                material = materials.get(material_id)
                if material is None:
                    raise NotFoundError('MATERIAL_NOT_FOUND', material_id=material_id)
                if material.archived:
                    raise ValidationError('MATERIAL_ARCHIVED', material_id=material_id)

            request = MaterialRequest.objects.create(area=area, supervisor=supervisor)
            MaterialRequestItem.objects.bulk_create([
                MaterialRequestItem(request=request, material=materials[material_id], quantity=quantity)
                for material_id, quantity in pairs
            ])

        logger.info(
            "dispatch.request.created",
            extra={"request_id": request.pk, "area": area, "items": len(pairs)},
        )
        return request

    @classmethod
    def approve_material_request(cls, request_id, user=None) -> MaterialRequest:
        """
        Approve and deliver a material request.

        Every item produces a REQUEST_DELIVERY movement. If any material
        lacks stock, nothing is deducted.

        Raises:
            NotFoundError('MATERIAL_REQUEST_NOT_FOUND')
            InvalidStateError('INVALID_STATUS'): Not PENDING
            InsufficientStockError: Some item exceeds available stock
        """
        with atomic_batch():
            request = _get_material_request(request_id)
            transitions.require(request.status, MaterialRequestStatus.PENDING)

            items = request.items.select_related('material').order_by('material_id', 'pk')
            for item in items:
                try:
                    StockMovement.objects.create(
                        material=item.material,
                        delta=-item.quantity,
                        kind=MovementKind.REQUEST_DELIVERY,
                        fulfillment_mode=FulfillmentMode.IMMEDIATE,
                        reference=request,
                        reason=f"Entrega solicitud de material {request.pk} ({request.area})",
                        user=user,
                    )
                except InsufficientStockError as exc:
                    logger.warning(
                        "dispatch.request.insufficient",
                        extra={"request_id": request.pk, "material_id": item.material_id},
                    )
                    raise InsufficientStockError(material=item.material.name, **exc.data) from exc

            request.status = MaterialRequestStatus.APPROVED
            request.approved_by = user
            request.approved_at = timezone.now()
            request.save(update_fields=['status', 'approved_by', 'approved_at'])

        logger.info(
            "dispatch.request.approved",
            extra={"request_id": request.pk, "items": len(items)},
        )
        return request

    @classmethod
    def reject_material_request(cls, request_id, user=None) -> MaterialRequest:
        with atomic_batch():
            request = _get_material_request(request_id)
            transitions.require(request.status, MaterialRequestStatus.PENDING)
            request.status = MaterialRequestStatus.REJECTED
            request.approved_by = user
            request.rejected_at = timezone.now()
            request.save(update_fields=['status', 'approved_by', 'rejected_at'])

        logger.info("dispatch.request.rejected", extra={"request_id": request.pk})
        return request

    @classmethod
    def create_return(cls, material_id, quantity, supervisor, notes='') -> ReturnRequest:
        """Register unused material coming back. Stock changes on completion."""
        validate_quantity(quantity)
        if supervisor is None:
            raise ValidationError('REQUIRED_FIELD', field='supervisor')
        material = get_material(material_id)

        request = ReturnRequest.objects.create(
            material=material,
            quantity=quantity,
            supervisor=supervisor,
            notes=notes or '',
        )
        logger.info(
            "dispatch.return.created",
            extra={"return_id": request.pk, "material_id": material.pk, "qty": quantity},
        )
        return request

    @classmethod
    def complete_return(cls, return_id, user=None) -> ReturnRequest:
        """
        Put returned material back into stock.

        Transition: PENDING -> COMPLETED, with a RETURN_REENTRY movement.
        """
        with atomic_batch():
            request = _get_return(return_id)
            transitions.require(request.status, ReturnStatus.PENDING)

            StockMovement.objects.create(
                material_id=request.material_id,
                delta=request.quantity,
                kind=MovementKind.RETURN_REENTRY,
                reference=request,
                reason=f"Devolución {request.pk}",
                user=user,
            )
            request.status = ReturnStatus.COMPLETED
            request.resolved_at = timezone.now()
            request.save(update_fields=['status', 'resolved_at'])

        logger.info(
            "dispatch.return.completed",
            extra={"return_id": request.pk, "material_id": request.material_id, "qty": request.quantity},
        )
        return request

    @classmethod
    def reject_return(cls, return_id) -> ReturnRequest:
        with atomic_batch():
            request = _get_return(return_id)
            transitions.require(request.status, ReturnStatus.PENDING)
            request.status = ReturnStatus.REJECTED
            request.resolved_at = timezone.now()
            request.save(update_fields=['status', 'resolved_at'])

        logger.info("dispatch.return.rejected", extra={"return_id": request.pk})
        return request
