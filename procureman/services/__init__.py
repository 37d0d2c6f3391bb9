"""
Purchasing services — modular organization of procurement operations.

Re-exports all service classes composed by the Purchasing facade:
    from procureman.services import RequestLifecycle, Lots, Orders, Receiving
"""

from procureman.services.dispatch import Dispatch
from procureman.services.inventory import Inventory
from procureman.services.lots import Lots, LotSummary
from procureman.services.orders import Orders, aggregate_items
from procureman.services.queries import PurchasingQueries
from procureman.services.receiving import Receiving
from procureman.services.requests import RequestLifecycle

__all__ = [
    'RequestLifecycle',
    'Lots',
    'LotSummary',
    'Orders',
    'aggregate_items',
    'Receiving',
    'Inventory',
    'Dispatch',
    'PurchasingQueries',
]
