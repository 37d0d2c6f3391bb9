"""
Enums for Procureman models.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class RequestStatus(models.TextChoices):
    """Purchase request lifecycle status."""
    PENDING = 'pending', _('Pendiente')      # Created, awaiting approval
    APPROVED = 'approved', _('Aprobada')     # In the pool, ready to batch or order
    REJECTED = 'rejected', _('Rechazada')    # Terminal
    BATCHED = 'batched', _('En lote')        # Grouped into an open lot
    ORDERED = 'ordered', _('Ordenada')       # Consumed by a purchase order
    RECEIVED = 'received', _('Recibida')     # Stock reconciled, terminal


class LotStatus(models.TextChoices):
    """Lot lifecycle status."""
    OPEN = 'open', _('Abierto')
    ORDERED = 'ordered', _('Ordenado')


class OrderStatus(models.TextChoices):
    """Purchase order status."""
    GENERATED = 'generated', _('Generada')
    RECEIVED = 'received', _('Recibida')


class MaterialRequestStatus(models.TextChoices):
    """Direct material request status."""
    PENDING = 'pending', _('Pendiente')
    APPROVED = 'approved', _('Aprobada')
    REJECTED = 'rejected', _('Rechazada')


class ReturnStatus(models.TextChoices):
    """Material return status."""
    PENDING = 'pending', _('Pendiente')
    COMPLETED = 'completed', _('Completada')
    REJECTED = 'rejected', _('Rechazada')


class FulfillmentMode(models.TextChoices):
    """
    When approving a request touches stock.

    IMMEDIATE: stock is deducted at approval (material requests).
    DEFERRED:  stock only changes when the purchase is received (purchase requests).
    """
    IMMEDIATE = 'immediate', _('Descuento inmediato')
    DEFERRED = 'deferred', _('Al recibir')


class MovementKind(models.TextChoices):
    """Origin of a stock movement."""
    INITIAL = 'initial', _('Inicial')
    MANUAL_ENTRY = 'manual-entry', _('Ingreso manual')
    ADJUSTMENT = 'adjustment', _('Ajuste')
    REQUEST_DELIVERY = 'request-delivery', _('Entrega de solicitud')
    PURCHASE_RECEIPT = 'purchase-receipt', _('Recepción de compra')
    RETURN_REENTRY = 'return-reentry', _('Reingreso por devolución')
    MERGE = 'merge', _('Fusión de materiales')
