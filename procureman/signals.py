"""
Procurement change notifications.

Sent after the surrounding transaction commits, so receivers always see
committed state:

    from procureman.signals import request_status_changed

    @receiver(request_status_changed)
    def notify(sender, request, previous, current, **kwargs):
        ...
"""

from django.dispatch import Signal

# request, previous, current
request_status_changed = Signal()

# order
purchase_order_generated = Signal()

# order_id, request_ids
purchase_order_cancelled = Signal()

# material, movement
stock_changed = Signal()

# ids; sender is the model class whose rows changed without a post_save
documents_changed = Signal()
