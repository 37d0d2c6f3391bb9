"""
StockMovement model — Immutable ledger of material stock changes.
"""

from django.conf import settings
from django.contrib.contenttypes.fields import GenericForeignKey
from django.contrib.contenttypes.models import ContentType
from django.db import models, transaction
from django.db.models import F
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from procureman.models.enums import FulfillmentMode, MovementKind


class StockMovementQuerySet(models.QuerySet):

    def for_reference(self, obj):
        ct = ContentType.objects.get_for_model(obj)
        return self.filter(reference_type=ct, reference_id=obj.pk)


class StockMovement(models.Model):
    """
    Immutable record of a stock change.

    Rules:
    - NEVER update() or delete()
    - Corrections are new movements with inverse delta
    - Updates Material.stock atomically on save()
    - A decrement that would go below zero is refused

    This is the ONLY model that changes stock.
    """

    material = models.ForeignKey(
        'procureman.Material',
        on_delete=models.PROTECT,
        related_name='movements',
        verbose_name=_('Material'),
    )
    delta = models.IntegerField(
        verbose_name=_('Variación'),
        help_text=_('Positivo = entrada, Negativo = salida'),
    )
    stock_after = models.PositiveIntegerField(
        default=0,
        verbose_name=_('Stock resultante'),
    )
    kind = models.CharField(
        max_length=30,
        choices=MovementKind.choices,
        verbose_name=_('Tipo'),
    )
    fulfillment_mode = models.CharField(
        max_length=20,
        choices=FulfillmentMode.choices,
        blank=True,
        verbose_name=_('Modo de abastecimiento'),
    )

    # External reference (purchase request, material request, return)
    reference_type = models.ForeignKey(
        ContentType,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Tipo de referencia'),
    )
    reference_id = models.PositiveIntegerField(null=True, blank=True, verbose_name=_('ID de referencia'))
    reference = GenericForeignKey('reference_type', 'reference_id')

    reason = models.CharField(
        max_length=255,
        verbose_name=_('Motivo'),
        help_text=_('Obligatorio. Ej: "Recepción OC-12", "Entrega solicitud 7"'),
    )
    timestamp = models.DateTimeField(default=timezone.now, db_index=True, verbose_name=_('Fecha/Hora'))
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Usuario'),
    )

    objects = StockMovementQuerySet.as_manager()

    class Meta:
        verbose_name = _('Movimiento de stock')
        verbose_name_plural = _('Movimientos de stock')
        ordering = ['timestamp', 'id']
        indexes = [
            models.Index(fields=['material', 'timestamp']),
            models.Index(fields=['reference_type', 'reference_id']),
        ]

    def save(self, *args, **kwargs):
        """Save movement and update the material's stock atomically."""
        if self.pk:
            raise ValueError(
                "Los movimientos son inmutables. "
                "Para corregir, cree un nuevo movimiento con variación inversa."
            )

        if not self.reason:
            raise ValueError("El motivo es obligatorio")
        if not self.delta:
            raise ValueError("La variación no puede ser cero")

        from procureman.exceptions import InsufficientStockError, NotFoundError
        from procureman.models.material import Material
        from procureman.signals import documents_changed, stock_changed

        with transaction.atomic():
            materials = Material.objects.filter(pk=self.material_id)
            if self.delta < 0:
                materials = materials.filter(stock__gte=-self.delta)

            updated = materials.update(
                stock=F('stock') + self.delta,
                updated_at=timezone.now(),
            )
            if not updated:
                available = (
                    Material.objects.filter(pk=self.material_id)
                    .values_list('stock', flat=True)
                    .first()
                )
                if available is None:
                    raise NotFoundError('MATERIAL_NOT_FOUND', material_id=self.material_id)
                raise InsufficientStockError(
                    material_id=self.material_id,
                    available=available,
                    requested=-self.delta,
                )

            self.stock_after = Material.objects.values_list('stock', flat=True).get(pk=self.material_id)
            if StockMovement.material.is_cached(self):
                self.material.stock = self.stock_after
            super().save(*args, **kwargs)

            transaction.on_commit(
                lambda: stock_changed.send(sender=StockMovement, material=self.material, movement=self)
            )
            transaction.on_commit(
                lambda: documents_changed.send(sender=Material, ids=[self.material_id])
            )

    def delete(self, *args, **kwargs):
        """Prevent deletion — movements are immutable."""
        raise ValueError(
            "Los movimientos son inmutables. "
            "Para revertir, cree un nuevo movimiento con variación inversa."
        )

    def __str__(self) -> str:
        sign = '+' if self.delta > 0 else ''
        return f"{sign}{self.delta} | {self.reason}"
