"""
Receiving service — Reconciling stock when ordered material arrives.
"""

import logging

from django.utils import timezone

from procureman import transitions
from procureman.conf import procureman_settings
from procureman.db import after_commit, atomic_batch
from procureman.models.enums import FulfillmentMode, MovementKind, OrderStatus, RequestStatus
from procureman.models.material import Material
from procureman.models.movement import StockMovement
from procureman.models.purchase_order import PurchaseOrder
from procureman.models.purchase_request import PurchaseRequest
from procureman.services.inventory import Inventory, get_material
from procureman.services.requests import get_request, validate_quantity, write_request
from procureman.signals import documents_changed

logger = logging.getLogger('procureman')


class Receiving:
    """Receipt of ordered purchase requests."""

    @classmethod
    def receive(cls, request_id, received_quantity, existing_material_id=None,
                user=None) -> PurchaseRequest:
        """
        Receive an ordered request and add the quantity to stock.

        The material is the one given by ``existing_material_id``, else the
        one matching the request's material name, else a new material
        created from the request. Stock update and status change commit
        together.

        When less than the requested quantity arrives (and
        ALLOW_PARTIAL_RECEIPT is on), the request is received for what
        arrived, keeping the ordered quantity in ``original_quantity``, and
        the remainder goes back to the pool as a new APPROVED request.

        Returns:
            The request that became RECEIVED

        Raises:
            ValidationError('INVALID_QUANTITY')
            NotFoundError: Request or existing material missing
            InvalidStateError('INVALID_STATUS'): Request not ORDERED
        """
        validate_quantity(received_quantity, 'received_quantity')

        with atomic_batch():
            request = get_request(request_id, lock=True)
            transitions.require(request.status, RequestStatus.ORDERED)

            if existing_material_id is not None:
                material = get_material(existing_material_id, lock=True)
            else:
                material = Inventory.match_material(request.material_name)
            created = material is None
            if created:
                material = Material.objects.create(
                    name=request.material_name,
                    unit=request.unit,
                    category=request.category,
                )
            elif material.archived:
                material.archived = False
                material.save(update_fields=['archived', 'updated_at'])

            now = timezone.now()
            requested = request.quantity
            if received_quantity < requested and procureman_settings.ALLOW_PARTIAL_RECEIPT:
                received_request = cls._receive_part(request, received_quantity, now)
            else:
                received_request = write_request(
                    request, status=RequestStatus.RECEIVED, received_at=now,
                )

            StockMovement.objects.create(
                material=material,
                delta=received_quantity,
                kind=MovementKind.PURCHASE_RECEIPT,
                fulfillment_mode=FulfillmentMode.DEFERRED,
                reference=received_request,
                reason=f"Recepción OC-{request.purchase_order_id}, solicitud {request.pk}",
                user=user,
            )

            cls._close_order(request.purchase_order_id)

        logger.info(
            "purchase.request.received",
            extra={
                "request_id": received_request.pk,
                "material_id": material.pk,
                "material_created": created,
                "qty": received_quantity,
                "requested": requested,
            },
        )
        return received_request

    @classmethod
    def _receive_part(cls, request, received_quantity, now) -> PurchaseRequest:
        remaining = request.quantity - received_quantity
        note = f"Recepción parcial: {received_quantity} de {request.quantity}, pendiente {remaining}."
        write_request(
            request,
            status=RequestStatus.RECEIVED,
            received_at=now,
            quantity=received_quantity,
            original_quantity=request.quantity,
            notes=f"{request.notes}\n{note}".strip(),
        )
        remainder = PurchaseRequest.objects.create(
            material_name=request.material_name,
            quantity=remaining,
            unit=request.unit,
            category=request.category,
            justification=request.justification,
            area=request.area,
            supervisor_id=request.supervisor_id,
            status=RequestStatus.APPROVED,
            notes=f"Saldo pendiente de la solicitud {request.pk}.",
            approved_by_id=request.approved_by_id,
            approved_at=request.approved_at,
        )
        logger.info(
            "purchase.request.split",
            extra={"request_id": request.pk, "remainder_id": remainder.pk, "remaining": remaining},
        )
        return request

    @classmethod
    def _close_order(cls, order_id) -> None:
        if order_id is None:
            return
        pending = PurchaseRequest.objects.filter(purchase_order_id=order_id).exclude(
            status=RequestStatus.RECEIVED,
        )
        if not pending.exists():
            PurchaseOrder.objects.filter(pk=order_id).update(status=OrderStatus.RECEIVED)
            after_commit(documents_changed.send, sender=PurchaseOrder, ids=[order_id])
