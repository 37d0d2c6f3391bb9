"""
Purchasing queries — read-only operations.

All methods are classmethod on Purchasing and use no locking.
"""

from procureman.models.dispatch import MaterialRequest, ReturnRequest
from procureman.models.enums import RequestStatus
from procureman.models.material import Material
from procureman.models.movement import StockMovement
from procureman.models.purchase_order import PurchaseOrder
from procureman.models.purchase_request import PurchaseRequest
from procureman.services.requests import get_request


class PurchasingQueries:
    """Read-only purchasing and inventory query methods."""

    @classmethod
    def get(cls, request_id) -> PurchaseRequest:
        """Purchase request by id (NotFoundError if missing)."""
        return get_request(request_id)

    @classmethod
    def requests(cls, status: str | None = None, category: str | None = None):
        """
        Purchase requests, newest first.

        Args:
            status: Filter by RequestStatus
            category: Filter by category
        """
        qs = PurchaseRequest.objects.select_related('lot', 'purchase_order')
        if status:
            qs = qs.filter(status=status)
        if category:
            qs = qs.filter(category=category)
        return qs

    @classmethod
    def pending_approval(cls):
        """Requests awaiting an approver, oldest first."""
        return PurchaseRequest.objects.filter(status=RequestStatus.PENDING).order_by('created_at', 'pk')

    @classmethod
    def awaiting_receipt(cls):
        """Ordered requests, grouped by order."""
        return (
            PurchaseRequest.objects.filter(status=RequestStatus.ORDERED)
            .select_related('purchase_order__supplier')
            .order_by('purchase_order_id', 'pk')
        )

    @classmethod
    def orders(cls, status: str | None = None):
        qs = PurchaseOrder.objects.select_related('supplier', 'lot').prefetch_related('items')
        if status:
            qs = qs.filter(status=status)
        return qs

    @classmethod
    def materials(cls, include_archived: bool = False):
        qs = Material.objects.select_related('supplier')
        if not include_archived:
            qs = qs.active()
        return qs

    @classmethod
    def movements(cls, material=None):
        """
        Ledger entries, oldest first.

        Args:
            material: Material or material id (None = all)
        """
        qs = StockMovement.objects.select_related('material')
        if material is not None:
            qs = qs.filter(material=material)
        return qs

    @classmethod
    def material_requests(cls, status: str | None = None):
        qs = MaterialRequest.objects.prefetch_related('items__material')
        if status:
            qs = qs.filter(status=status)
        return qs

    @classmethod
    def returns(cls, status: str | None = None):
        qs = ReturnRequest.objects.select_related('material')
        if status:
            qs = qs.filter(status=status)
        return qs
