"""
Procureman Models.

Core models for purchasing and inventory:
- Supplier: Who fulfills orders
- Material: Inventory record with stock cache
- StockMovement: Immutable ledger of stock changes
- PurchaseRequest: Need for a material to be bought
- Lot: Batch of approved requests ordered together
- PurchaseOrder: Supplier order cut from requests
- MaterialRequest / ReturnRequest: Dispatch from and return to stock
"""

from procureman.models.dispatch import MaterialRequest, MaterialRequestItem, ReturnRequest
from procureman.models.enums import (
    FulfillmentMode,
    LotStatus,
    MaterialRequestStatus,
    MovementKind,
    OrderStatus,
    RequestStatus,
    ReturnStatus,
)
from procureman.models.lot import Lot
from procureman.models.material import Material, MaterialAlias
from procureman.models.movement import StockMovement
from procureman.models.purchase_order import PurchaseOrder, PurchaseOrderItem
from procureman.models.purchase_request import PurchaseRequest
from procureman.models.supplier import Supplier

__all__ = [
    'RequestStatus',
    'LotStatus',
    'OrderStatus',
    'MaterialRequestStatus',
    'ReturnStatus',
    'FulfillmentMode',
    'MovementKind',
    'Supplier',
    'Material',
    'MaterialAlias',
    'StockMovement',
    'PurchaseRequest',
    'Lot',
    'PurchaseOrder',
    'PurchaseOrderItem',
    'MaterialRequest',
    'MaterialRequestItem',
    'ReturnRequest',
]
