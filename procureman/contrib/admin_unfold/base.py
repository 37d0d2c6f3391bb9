"""
Base classes for Unfold admin in Procureman.

Provides BaseModelAdmin and BaseTabularInline with compact textareas,
ReadOnlyAdminMixin for service-owned models, and quantity formatting.
"""

from django import forms
from django.contrib.admin.widgets import AdminTextareaWidget
from unfold.admin import ModelAdmin, TabularInline
from unfold.widgets import UnfoldAdminTextareaWidget

TEXTAREA_WIDGETS = (forms.Textarea, AdminTextareaWidget, UnfoldAdminTextareaWidget)


def format_quantity(value, unit: str = '') -> str:
    """
    Format an integer quantity with thousands separator and unit.

    Returns:
        Formatted string (e.g., "1.250 kg")
    """
    if value is None:
        return "-"
    text = f"{value:,}".replace(",", ".")
    return f"{text} {unit}".strip()


def compact_textareas(fields) -> None:
    """Halve textarea rows and cap their width to match other inputs."""
    for field in fields.values():
        widget = field.widget
        if not isinstance(widget, TEXTAREA_WIDGETS):
            continue
        try:
            rows = int(widget.attrs.get("rows", 4))
        except (ValueError, TypeError):
            rows = 4
        widget.attrs["rows"] = max(1, rows // 2)
        widget.attrs["style"] = "width: 100%; max-width: 42rem;"


class ReadOnlyAdminMixin:
    """Models whose rows only change through the purchasing services."""

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class BaseTabularInline(TabularInline):
    """TabularInline base with compact textareas."""

    def get_formset(self, request, obj=None, **kwargs):
        formset = super().get_formset(request, obj, **kwargs)
        compact_textareas(formset.form.base_fields)
        return formset


class BaseModelAdmin(ModelAdmin):
    """ModelAdmin base with compact textareas and Unfold defaults."""

    compressed_fields = True

    def get_form(self, request, obj=None, **kwargs):
        form = super().get_form(request, obj, **kwargs)
        compact_textareas(form.base_fields)
        return form
