"""
Lot model — Batch of approved purchase requests ordered together.
"""

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from procureman.models.enums import LotStatus


class Lot(models.Model):
    """
    A named group of batched purchase requests.

    Identity is the lot id, never the category: two open lots may share a
    category and are still distinct lots.

    LIFECYCLE:
        OPEN ──(order generated / closed)──► ORDERED
        ORDERED ──(order cancelled with "batched" policy)──► OPEN
    """

    name = models.CharField(
        max_length=100,
        verbose_name=_('Nombre'),
    )
    category = models.CharField(
        max_length=100,
        blank=True,
        verbose_name=_('Categoría'),
        help_text=_('Vacío = lote mixto; si se indica, todas las solicitudes deben coincidir'),
    )
    status = models.CharField(
        max_length=20,
        choices=LotStatus.choices,
        default=LotStatus.OPEN,
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
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        verbose_name = _('Lote')
        verbose_name_plural = _('Lotes')
        ordering = ['category', 'name']
        constraints = [
            models.UniqueConstraint(
                fields=['name'],
                condition=Q(status='open'),
                name='procureman_unique_open_lot_name',
            ),
        ]

    @property
    def is_open(self) -> bool:
        return self.status == LotStatus.OPEN

    def __str__(self) -> str:
        return self.name
