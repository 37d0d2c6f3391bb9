"""
PurchaseRequest model — A need for a material to be bought.
"""

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from procureman.models.enums import FulfillmentMode, RequestStatus


class PurchaseRequestQuerySet(models.QuerySet):
    """Helper filters for PurchaseRequest queries."""

    def open(self):
        """Approved and not yet ordered."""
        return self.filter(status__in=[RequestStatus.APPROVED, RequestStatus.BATCHED])

    def pool(self):
        """Open requests not assigned to any lot."""
        return self.open().filter(lot__isnull=True)

    def in_lot(self, lot):
        return self.open().filter(lot=lot)


class PurchaseRequest(models.Model):
    """
    A request to buy a material.

    LIFECYCLE:

        PENDING ──approve()──► APPROVED ──assign_to_lot()──► BATCHED
           │                     │  ▲                          │
           │ reject()            │  └──remove_from_lot()───────┤
           ▼                     │                             │
        REJECTED                 └──generate_order()──► ORDERED ◄┘
                                                          │
                                                receive() │
                                                          ▼
                                                      RECEIVED

    Approval never touches stock (FulfillmentMode.DEFERRED): stock only
    changes at receipt.

    Every write goes through a conditional update on ``version``, so a
    request read by two operators can only be consumed once.
    """

    fulfillment_mode = FulfillmentMode.DEFERRED

    material_name = models.CharField(
        max_length=200,
        verbose_name=_('Material'),
        help_text=_('Texto libre; se concilia por nombre al recibir'),
    )
    quantity = models.PositiveIntegerField(verbose_name=_('Cantidad'))
    unit = models.CharField(max_length=30, verbose_name=_('Unidad'))
    category = models.CharField(max_length=100, verbose_name=_('Categoría'))
    justification = models.TextField(verbose_name=_('Justificación'))
    area = models.CharField(max_length=100, verbose_name=_('Área'))
    supervisor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='+',
        verbose_name=_('Solicitante'),
    )

    status = models.CharField(
        max_length=20,
        choices=RequestStatus.choices,
        default=RequestStatus.PENDING,
        db_index=True,
        verbose_name=_('Estado'),
    )
    lot = models.ForeignKey(
        'procureman.Lot',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='requests',
        verbose_name=_('Lote'),
    )
    purchase_order = models.ForeignKey(
        'procureman.PurchaseOrder',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='requests',
        verbose_name=_('Orden de compra'),
    )

    original_quantity = models.PositiveIntegerField(
        null=True,
        blank=True,
        verbose_name=_('Cantidad original'),
        help_text=_('Se registra si el aprobador modifica la cantidad'),
    )
    notes = models.TextField(blank=True, verbose_name=_('Notas'))

    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Aprobado por'),
    )
    approved_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Aprobado en'))
    rejected_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Rechazado por'),
    )
    rejected_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Rechazado en'))

    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    received_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Recibido en'))

    version = models.PositiveIntegerField(default=1, editable=False)

    objects = PurchaseRequestQuerySet.as_manager()

    class Meta:
        verbose_name = _('Solicitud de compra')
        verbose_name_plural = _('Solicitudes de compra')
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['status', 'category']),
            models.Index(fields=['lot', 'status']),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(quantity__gt=0),
                name='procureman_request_quantity_positive',
            ),
            models.CheckConstraint(
                condition=(
                    Q(status='received', received_at__isnull=False)
                    | (~Q(status='received') & Q(received_at__isnull=True))
                ),
                name='procureman_request_received_at_iff_received',
            ),
            models.CheckConstraint(
                condition=Q(lot__isnull=True) | Q(status='batched'),
                name='procureman_request_lot_only_when_batched',
            ),
        ]

    @property
    def is_modified(self) -> bool:
        """Did the approver change the requested quantity?"""
        return self.original_quantity is not None

    def __str__(self) -> str:
        return f"{self.quantity} {self.unit} {self.material_name} [{self.status}]"
