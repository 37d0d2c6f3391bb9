"""
Lot service — Grouping approved requests for ordering.

A lot is a first-class record: its identity is its id, and its category
(when set) constrains what may join it.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass

from procureman.conf import procureman_settings
from procureman.db import atomic_batch
from procureman.exceptions import InvalidStateError, NotFoundError, ValidationError
from procureman.models.enums import LotStatus, RequestStatus
from procureman.models.lot import Lot
from procureman.models.material import Material
from procureman.models.purchase_request import PurchaseRequest
from procureman.services.requests import get_open_lot, write_request

logger = logging.getLogger('procureman')

BATCH_MODES = ('category', 'supplier')


@dataclass(frozen=True)
class LotSummary:
    """Aggregated view of one open lot."""

    lot_id: int
    name: str
    category: str
    requests: tuple
    total_quantity: int

    @property
    def display_category(self) -> str:
        """Mixed lots are listed under their own name."""
        return self.category or self.name


def unique_lot_name(base: str) -> str:
    """First of ``base``, ``base (2)``, ``base (3)``... not used by an open lot."""
    taken = set(
        Lot.objects.filter(status=LotStatus.OPEN, name__startswith=base)
        .values_list('name', flat=True)
    )
    if base not in taken:
        return base
    n = 2
    while f"{base} ({n})" in taken:
        n += 1
    return f"{base} ({n})"


class Lots:
    """Lot management and lot-grouped views."""

    @classmethod
    def create_lot(cls, name, category='', user=None) -> Lot:
        """
        Create an empty open lot.

        Raises:
            ValidationError('LOT_NAME_TOO_SHORT' | 'LOT_NAME_TAKEN')
        """
        name = (name or '').strip()
        min_length = procureman_settings.LOT_NAME_MIN_LENGTH
        if len(name) < min_length:
            raise ValidationError('LOT_NAME_TOO_SHORT', name=name, min_length=min_length)

        with atomic_batch():
            if Lot.objects.filter(name=name, status=LotStatus.OPEN).exists():
                raise ValidationError('LOT_NAME_TAKEN', name=name)
            lot = Lot.objects.create(name=name, category=(category or '').strip(), created_by=user)

        logger.info(
            "purchase.lot.created",
            extra={"lot_id": lot.pk, "lot_name": lot.name, "category": lot.category},
        )
        return lot

    @classmethod
    def batch_approved(cls, request_ids, mode='category', user=None) -> list[Lot]:
        """
        Fold approved pool requests into new lots.

        mode='category': one lot per request category.
        mode='supplier': one lot per preferred supplier of the request's
        material (matched by exact name, lowest id). Requests whose material
        has no supplier stay in the pool.

        Returns:
            The lots created, in creation order.

        Raises:
            ValidationError('INVALID_MODE')
            NotFoundError('REQUEST_NOT_FOUND')
            InvalidStateError('INVALID_STATUS' | 'ALREADY_IN_LOT')
        """
        if mode not in BATCH_MODES:
            raise ValidationError('INVALID_MODE', mode=mode, expected=list(BATCH_MODES))

        request_ids = list(dict.fromkeys(request_ids))
        created = []

        with atomic_batch():
            locked = {
                r.pk: r
                for r in PurchaseRequest.objects.select_for_update().filter(pk__in=request_ids)
            }
            requests = []
            for request_id in request_ids:
                request = locked.get(request_id)
                if request is None:
                    raise NotFoundError('REQUEST_NOT_FOUND', request_id=request_id)
                if request.lot_id is not None:
                    raise InvalidStateError('ALREADY_IN_LOT', request_id=request.pk, lot_id=request.lot_id)
                if request.status != RequestStatus.APPROVED:
                    raise InvalidStateError(
                        'INVALID_STATUS', current=request.status, expected=RequestStatus.APPROVED,
                    )
                requests.append(request)

            groups = defaultdict(list)
            if mode == 'category':
                for request in requests:
                    groups[(request.category, request.category)].append(request)
            else:
                suppliers = cls._preferred_suppliers({r.material_name for r in requests})
                for request in requests:
                    supplier = suppliers.get(request.material_name)
                    if supplier is not None:
                        groups[(supplier.name, '')].append(request)

            for (base_name, category), members in groups.items():
                lot = Lot.objects.create(
                    name=unique_lot_name(base_name),
                    category=category,
                    created_by=user,
                )
                for request in members:
                    write_request(request, lot=lot, status=RequestStatus.BATCHED)
                created.append(lot)

        logger.info(
            "purchase.lot.batched",
            extra={
                "mode": mode,
                "lots": [lot.pk for lot in created],
                "requests": len(request_ids),
            },
        )
        return created

    @classmethod
    def _preferred_suppliers(cls, names) -> dict:
        suppliers = {}
        materials = (
            Material.objects.filter(name__in=names, supplier__isnull=False)
            .select_related('supplier')
            .order_by('pk')
        )
        for material in materials:
            suppliers.setdefault(material.name, material.supplier)
        return suppliers

    @classmethod
    def close_lot(cls, lot_id) -> Lot:
        """
        Close an open lot without ordering it.

        Members still batched go back to the pool.
        """
        with atomic_batch():
            lot = get_open_lot(lot_id, lock=True)
            members = list(
                PurchaseRequest.objects.select_for_update()
                .filter(lot=lot, status=RequestStatus.BATCHED)
                .order_by('pk')
            )
            for request in members:
                write_request(request, lot=None, status=RequestStatus.APPROVED)
            lot.status = LotStatus.ORDERED
            lot.save(update_fields=['status'])

        logger.info(
            "purchase.lot.closed",
            extra={"lot_id": lot.pk, "returned": [r.pk for r in members]},
        )
        return lot

    @classmethod
    def lots(cls) -> list[LotSummary]:
        """
        Open lots with their members and total quantity.

        Sorted by category, then name.
        """
        members = defaultdict(list)
        requests = (
            PurchaseRequest.objects.open()
            .filter(lot__status=LotStatus.OPEN)
            .order_by('created_at', 'pk')
        )
        for request in requests:
            members[request.lot_id].append(request)

        summaries = [
            LotSummary(
                lot_id=lot.pk,
                name=lot.name,
                category=lot.category,
                requests=tuple(members[lot.pk]),
                total_quantity=sum(r.quantity for r in members[lot.pk]),
            )
            for lot in Lot.objects.filter(status=LotStatus.OPEN)
        ]
        return sorted(summaries, key=lambda s: (s.category, s.name, s.lot_id))

    @classmethod
    def unbatched(cls) -> list[PurchaseRequest]:
        """Approved requests in no lot, by category then age."""
        return list(PurchaseRequest.objects.pool().order_by('category', 'created_at', 'pk'))

    @classmethod
    def by_category(cls) -> dict[str, list[LotSummary]]:
        """Open lots grouped for display; mixed lots use their name."""
        grouped = defaultdict(list)
        for summary in cls.lots():
            grouped[summary.display_category].append(summary)
        return dict(grouped)
