"""
Dispatch models — Material handed out from stock, and material returned to it.
"""

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from procureman.models.enums import FulfillmentMode, MaterialRequestStatus, ReturnStatus


class MaterialRequest(models.Model):
    """
    Request to dispatch materials from existing stock to a work area.

    Unlike a PurchaseRequest, approval deducts stock immediately
    (FulfillmentMode.IMMEDIATE), for every item or for none.
    """

    fulfillment_mode = FulfillmentMode.IMMEDIATE

    area = models.CharField(max_length=100, verbose_name=_('Área'))
    supervisor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='+',
        verbose_name=_('Solicitante'),
    )
    status = models.CharField(
        max_length=20,
        choices=MaterialRequestStatus.choices,
        default=MaterialRequestStatus.PENDING,
        db_index=True,
        verbose_name=_('Estado'),
    )
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Resuelto por'),
    )
    approved_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Aprobado en'))
    rejected_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Rechazado en'))
    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        verbose_name = _('Solicitud de material')
        verbose_name_plural = _('Solicitudes de material')
        ordering = ['-created_at', '-id']

    def __str__(self) -> str:
        return f"Solicitud de material #{self.pk} ({self.area}) [{self.status}]"


class MaterialRequestItem(models.Model):
    request = models.ForeignKey(
        'procureman.MaterialRequest',
        on_delete=models.CASCADE,
        related_name='items',
        verbose_name=_('Solicitud'),
    )
    material = models.ForeignKey(
        'procureman.Material',
        on_delete=models.PROTECT,
        related_name='+',
        verbose_name=_('Material'),
    )
    quantity = models.PositiveIntegerField(verbose_name=_('Cantidad'))

    class Meta:
        verbose_name = _('Ítem de solicitud de material')
        verbose_name_plural = _('Ítems de solicitud de material')
        constraints = [
            models.CheckConstraint(
                condition=Q(quantity__gt=0),
                name='procureman_material_request_item_quantity_positive',
            ),
        ]

    def __str__(self) -> str:
        return f"{self.quantity} x {self.material.name}"


class ReturnRequest(models.Model):
    """Unused material coming back from a work area into stock."""

    material = models.ForeignKey(
        'procureman.Material',
        on_delete=models.PROTECT,
        related_name='returns',
        verbose_name=_('Material'),
    )
    quantity = models.PositiveIntegerField(verbose_name=_('Cantidad'))
    supervisor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='+',
        verbose_name=_('Solicitante'),
    )
    notes = models.TextField(blank=True, verbose_name=_('Notas'))
    status = models.CharField(
        max_length=20,
        choices=ReturnStatus.choices,
        default=ReturnStatus.PENDING,
        db_index=True,
        verbose_name=_('Estado'),
    )
    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    resolved_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Resuelto en'))

    class Meta:
        verbose_name = _('Devolución')
        verbose_name_plural = _('Devoluciones')
        ordering = ['-created_at', '-id']
        constraints = [
            models.CheckConstraint(
                condition=Q(quantity__gt=0),
                name='procureman_return_quantity_positive',
            ),
        ]

    def __str__(self) -> str:
        return f"Devolución {self.quantity} x {self.material.name} [{self.status}]"
