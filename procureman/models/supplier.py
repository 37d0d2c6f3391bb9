"""
Supplier model — Who fulfills purchase orders.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class Supplier(models.Model):
    """
    A vendor that can fulfill purchase orders.

    Examples:
        Supplier.objects.create(name='Ferretería Central', categories=['Ferretería'])
    """

    name = models.CharField(
        max_length=150,
        verbose_name=_('Nombre'),
    )
    categories = models.JSONField(
        default=list,
        blank=True,
        verbose_name=_('Categorías'),
        help_text=_('Categorías de material que puede abastecer'),
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _('Proveedor')
        verbose_name_plural = _('Proveedores')
        ordering = ['name']

    def supplies(self, category: str) -> bool:
        """Can this supplier fulfill the given category?"""
        return category in (self.categories or [])

    def __str__(self) -> str:
        return self.name
