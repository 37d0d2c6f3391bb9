"""
PurchaseOrder model — One supplier order cut from a set of purchase requests.
"""

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from procureman.models.enums import OrderStatus


class PurchaseOrder(models.Model):
    """
    Order sent to a supplier.

    Created in the same atomic batch that flips its requests to ORDERED.
    Cancellation deletes it and returns the requests to the pool (or to
    their lot, depending on CANCEL_ORDER_TARGET_STATUS).
    """

    supplier = models.ForeignKey(
        'procureman.Supplier',
        on_delete=models.PROTECT,
        related_name='purchase_orders',
        verbose_name=_('Proveedor'),
    )
    lot = models.ForeignKey(
        'procureman.Lot',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='purchase_orders',
        verbose_name=_('Lote de origen'),
    )
    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.GENERATED,
        db_index=True,
        verbose_name=_('Estado'),
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Creado por'),
    )
    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        verbose_name = _('Orden de compra')
        verbose_name_plural = _('Órdenes de compra')
        ordering = ['-created_at', '-id']

    @property
    def request_ids(self) -> list[int]:
        """Ids of the purchase requests consumed by this order."""
        return list(self.requests.order_by('pk').values_list('pk', flat=True))

    def item_for(self, material_name: str, unit: str):
        return self.items.filter(material_name=material_name, unit=unit).first()

    def __str__(self) -> str:
        return f"OC-{self.pk} {self.supplier} [{self.status}]"


class PurchaseOrderItem(models.Model):
    """Aggregated line: total quantity per (material_name, unit)."""

    order = models.ForeignKey(
        'procureman.PurchaseOrder',
        on_delete=models.CASCADE,
        related_name='items',
        verbose_name=_('Orden de compra'),
    )
    material_name = models.CharField(max_length=200, verbose_name=_('Material'))
    unit = models.CharField(max_length=30, verbose_name=_('Unidad'))
    category = models.CharField(max_length=100, blank=True, verbose_name=_('Categoría'))
    total_quantity = models.PositiveIntegerField(verbose_name=_('Cantidad total'))
    position = models.PositiveIntegerField(default=0, verbose_name=_('Posición'))

    class Meta:
        verbose_name = _('Ítem de orden')
        verbose_name_plural = _('Ítems de orden')
        ordering = ['order', 'position']
        constraints = [
            models.UniqueConstraint(
                fields=['order', 'material_name', 'unit'],
                name='procureman_unique_order_item',
            ),
            models.CheckConstraint(
                condition=Q(total_quantity__gt=0),
                name='procureman_order_item_quantity_positive',
            ),
        ]

    def __str__(self) -> str:
        return f"{self.total_quantity} {self.unit} {self.material_name}"
