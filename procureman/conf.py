"""
Procureman configuration.

Usage in settings.py:
    PROCUREMAN = {
        "STORE_BACKEND": "procureman.adapters.django_store.DjangoDocumentStore",
        "CANCEL_ORDER_TARGET_STATUS": "approved",
        "MATERIAL_MATCH": "exact",
        "ALLOW_PARTIAL_RECEIPT": True,
        "LOT_NAME_MIN_LENGTH": 3,
    }
"""

from dataclasses import dataclass
from typing import Any

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

CANCEL_TARGETS = ('approved', 'batched')
MATERIAL_MATCH_MODES = ('exact', 'normalized')


@dataclass
class ProcuremanSettings:
    """Procureman configuration settings."""

    # Document store backend (dotted path)
    STORE_BACKEND: str = "procureman.adapters.django_store.DjangoDocumentStore"

    # Status requests return to when their purchase order is cancelled
    CANCEL_ORDER_TARGET_STATUS: str = "approved"

    # How reconciliation matches a request's material name: "exact" or "normalized"
    MATERIAL_MATCH: str = "exact"

    # Split the request when less than the requested quantity arrives
    ALLOW_PARTIAL_RECEIPT: bool = True

    # Minimum length of a manual lot name
    LOT_NAME_MIN_LENGTH: int = 3


def get_procureman_settings() -> ProcuremanSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "PROCUREMAN", {})
    return ProcuremanSettings(**{
        k: v for k, v in user_settings.items()
        if k in ProcuremanSettings.__dataclass_fields__
    })


def get_choice(name: str, allowed: tuple) -> str:
    """Read a policy setting, failing loudly on values outside ``allowed``."""
    value = getattr(get_procureman_settings(), name)
    if value not in allowed:
        raise ImproperlyConfigured(
            f"PROCUREMAN['{name}'] must be one of {allowed}, got {value!r}"
        )
    return value


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_procureman_settings(), name)


procureman_settings = _LazySettings()
