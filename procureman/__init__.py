"""
Django Procureman — Purchase request lifecycle and lot-batching engine.

Usage:
    from procureman import purchasing, ProcurementError

    purchasing.approve(request_id, user=approver)
    purchasing.batch_approved([request_id], mode='category')
    purchasing.generate_order([request_id], supplier_id)
    purchasing.receive(request_id, 10)
"""


def __getattr__(name):
    """Lazy import to avoid circular imports during app loading."""
    if name == 'purchasing':
        from procureman.service import Purchasing
        return Purchasing
    elif name == 'Purchasing':
        from procureman.service import Purchasing
        return Purchasing
    elif name in (
        'ProcurementError',
        'ValidationError',
        'EmptyLotError',
        'NotFoundError',
        'InvalidStateError',
        'ConcurrentModificationError',
        'InsufficientStockError',
        'StoreError',
        'user_message',
    ):
        from procureman import exceptions
        return getattr(exceptions, name)
    elif name in (
        'PurchaseRequest',
        'Lot',
        'PurchaseOrder',
        'Material',
        'Supplier',
        'StockMovement',
        'RequestStatus',
    ):
        from procureman import models
        return getattr(models, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    'purchasing',
    'Purchasing',
    'ProcurementError',
    'ValidationError',
    'EmptyLotError',
    'NotFoundError',
    'InvalidStateError',
    'ConcurrentModificationError',
    'InsufficientStockError',
    'StoreError',
    'user_message',
    'PurchaseRequest',
    'Lot',
    'PurchaseOrder',
    'Material',
    'Supplier',
    'StockMovement',
    'RequestStatus',
]

__version__ = '0.1.0'
