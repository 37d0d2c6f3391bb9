"""
Atomic batch helper.

Every multi-document operation runs inside ``atomic_batch()``: either all
writes commit or none is visible. Database failures surface as StoreError.
"""

import logging
from contextlib import contextmanager

from django.db import DatabaseError, transaction

from procureman.exceptions import StoreError

logger = logging.getLogger('procureman')


@contextmanager
def atomic_batch():
    """transaction.atomic() that converts DatabaseError into StoreError."""
    try:
        with transaction.atomic():
            yield
    except DatabaseError as exc:
        logger.warning(
            "procurement.store.failure",
            extra={"error": str(exc), "error_type": type(exc).__name__},
        )
        raise StoreError(detail=str(exc)) from exc


def after_commit(func, *args, **kwargs) -> None:
    """Run ``func`` once the surrounding transaction commits."""
    transaction.on_commit(lambda: func(*args, **kwargs))
