"""Django app configuration for Procureman."""

from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class ProcuremanConfig(AppConfig):
    """Configuration for Procureman app."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "procureman"
    verbose_name = _("Compras y Bodega")
