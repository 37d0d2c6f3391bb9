"""
Purchasing Service — The single public interface for procurement operations.

Usage:
    from procureman import purchasing, ProcurementError

    request = purchasing.create_request('Cemento', 10, 'saco', 'Obra norte',
                                        'Construcción', 'Bodega', supervisor)
    purchasing.approve(request.pk, user=approver)
    lot = purchasing.create_lot('Construcción marzo', category='Construcción')
    purchasing.assign_to_lot(request.pk, lot.pk)
    order = purchasing.generate_order([request.pk], supplier.pk)
    purchasing.receive(request.pk, 10)
"""

from procureman.services.dispatch import Dispatch
from procureman.services.inventory import Inventory
from procureman.services.lots import Lots
from procureman.services.orders import Orders
from procureman.services.queries import PurchasingQueries
from procureman.services.receiving import Receiving
from procureman.services.requests import RequestLifecycle


class Purchasing(
    RequestLifecycle,
    Lots,
    Orders,
    Receiving,
    Inventory,
    Dispatch,
    PurchasingQueries,
):
    """
    Single interface for all procurement operations.

    Parameter convention: ids first, acting user last (user=None).

    IMPORTANT: All state-changing methods run in one atomic batch with the
    affected rows locked, and purchase request writes are conditional on
    the request's version. See each method's docstring.
    """
