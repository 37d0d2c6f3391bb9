"""
Material model — Inventory record with a stock cache.
"""

from django.db import models, transaction
from django.db.models import Q, Sum
from django.db.models.functions import Coalesce
from django.utils.translation import gettext_lazy as _

from procureman.naming import normalize_name


class MaterialQuerySet(models.QuerySet):
    """Helper filters for Material queries."""

    def active(self):
        return self.filter(archived=False)

    def named(self, name: str):
        """Exact, case-sensitive name match."""
        return self.filter(name=name)

    def normalized(self, name: str):
        """Case- and accent-insensitive name match."""
        return self.filter(normalized_name=normalize_name(name))


class Material(models.Model):
    """
    A material held in inventory.

    Names are not unique: duplicates are tolerated and resolved by lowest id
    at reconciliation time. MaterialAlias records merged names.

    Performance:
    - stock is a cache updated atomically by StockMovement
    - Use recalculate() for audit/correction
    """

    name = models.CharField(
        max_length=200,
        db_index=True,
        verbose_name=_('Nombre'),
    )
    normalized_name = models.CharField(
        max_length=200,
        db_index=True,
        editable=False,
        verbose_name=_('Nombre normalizado'),
    )
    unit = models.CharField(
        max_length=30,
        verbose_name=_('Unidad'),
        help_text=_('Ej: "unidad", "kg", "saco"'),
    )
    category = models.CharField(
        max_length=100,
        blank=True,
        verbose_name=_('Categoría'),
    )
    stock = models.PositiveIntegerField(
        default=0,
        verbose_name=_('Stock'),
        help_text=_('Solo cambia mediante movimientos de stock'),
    )
    supplier = models.ForeignKey(
        'procureman.Supplier',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='materials',
        verbose_name=_('Proveedor preferido'),
    )
    archived = models.BooleanField(
        default=False,
        verbose_name=_('Archivado'),
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = MaterialQuerySet.as_manager()

    class Meta:
        verbose_name = _('Material')
        verbose_name_plural = _('Materiales')
        ordering = ['name', 'id']
        constraints = [
            models.CheckConstraint(
                condition=Q(stock__gte=0),
                name='procureman_material_stock_non_negative',
            ),
        ]

    def save(self, *args, **kwargs):
        self.normalized_name = normalize_name(self.name)
        update_fields = kwargs.get('update_fields')
        if update_fields is not None and 'name' in update_fields:
            kwargs['update_fields'] = {*update_fields, 'normalized_name'}
        super().save(*args, **kwargs)

    def recalculate(self) -> int:
        """
        Recalculate stock from the movement ledger.

        Returns:
            Ledger total
        """
        import logging

        from procureman.signals import documents_changed

        total = self.movements.aggregate(t=Coalesce(Sum('delta'), 0))['t']

        if total != self.stock:
            old = self.stock
            Material.objects.filter(pk=self.pk).update(stock=total)
            self.stock = total
            transaction.on_commit(lambda: documents_changed.send(sender=Material, ids=[self.pk]))

            logger = logging.getLogger('procureman')
            logger.warning(
                "stock.recalculated",
                extra={"material_id": self.pk, "old": old, "new": total, "diff": total - old},
            )

        return total

    def __str__(self) -> str:
        return f"{self.name} ({self.stock} {self.unit})"


class MaterialAlias(models.Model):
    """
    Alternative name that resolves to a canonical material.

    Created by merge: the merged material's name keeps matching future
    receipts, which now land on the surviving material.
    """

    name = models.CharField(
        max_length=200,
        unique=True,
        verbose_name=_('Nombre alternativo'),
    )
    material = models.ForeignKey(
        'procureman.Material',
        on_delete=models.CASCADE,
        related_name='aliases',
        verbose_name=_('Material'),
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _('Alias de material')
        verbose_name_plural = _('Alias de materiales')
        ordering = ['name']

    def __str__(self) -> str:
        return f"{self.name} → {self.material.name}"
