"""
Procureman Admin with Unfold theme.

This module provides Unfold-styled admin classes for Procureman models.
To use, add 'procureman.contrib.admin_unfold' to INSTALLED_APPS after 'procureman'.

The admins will automatically register the Unfold versions.
"""

import logging

from django.contrib import admin, messages
from django.utils.translation import gettext_lazy as _
from unfold.decorators import display

from procureman.contrib.admin_unfold.base import (
    BaseModelAdmin,
    BaseTabularInline,
    ReadOnlyAdminMixin,
    format_quantity,
)
from procureman.exceptions import ProcurementError, user_message
from procureman.models import (
    Lot,
    LotStatus,
    Material,
    MaterialAlias,
    MaterialRequest,
    MaterialRequestItem,
    MaterialRequestStatus,
    OrderStatus,
    PurchaseOrder,
    PurchaseOrderItem,
    PurchaseRequest,
    RequestStatus,
    ReturnRequest,
    ReturnStatus,
    StockMovement,
    Supplier,
)

logger = logging.getLogger(__name__)

REQUEST_STATUS_COLORS = {
    RequestStatus.PENDING: 'warning',
    RequestStatus.APPROVED: 'info',
    RequestStatus.REJECTED: 'danger',
    RequestStatus.BATCHED: 'info',
    RequestStatus.ORDERED: 'warning',
    RequestStatus.RECEIVED: 'success',
}


# =============================================================================
# HELPERS
# =============================================================================


def _format_datetime(dt):
    """Format datetime as DD/MM/AA · HH:MM."""
    if dt:
        return dt.strftime('%d/%m/%y · %H:%M')
    return '-'


# =============================================================================
# SUPPLIER ADMIN
# =============================================================================


@admin.register(Supplier)
class SupplierAdmin(BaseModelAdmin):
    """Admin for Supplier model."""

    list_display = ['name', 'categories_display', 'created_at']
    search_fields = ['name']
    readonly_fields = ['created_at']
    warn_unsaved_form = True

    @display(description=_('Categorías'))
    def categories_display(self, obj):
        return ', '.join(obj.categories or []) or '-'


# =============================================================================
# MATERIAL ADMIN
# =============================================================================


class MaterialAliasInline(ReadOnlyAdminMixin, BaseTabularInline):
    model = MaterialAlias
    extra = 0
    readonly_fields = ['name', 'created_at']


@admin.register(Material)
class MaterialAdmin(ReadOnlyAdminMixin, BaseModelAdmin):
    """Admin for Material model (read-only).

    Materials change only through purchasing: receive(), add_stock(),
    merge_materials()... The actions below call those services.
    """

    list_display = ['name', 'category', 'stock_display', 'supplier', 'archived_display']
    list_filter = ['archived', 'category', 'supplier']
    search_fields = ['name', 'normalized_name']
    inlines = [MaterialAliasInline]
    actions = ['archive_materials', 'unarchive_materials', 'recalculate_stock']

    @display(description=_('Stock'), label={'sin stock': 'danger'})
    def stock_display(self, obj):
        if obj.stock == 0:
            return 'sin stock'
        return format_quantity(obj.stock, obj.unit)

    @display(description=_('Estado'), label={'ARCHIVADO': 'danger', 'ACTIVO': 'success'})
    def archived_display(self, obj):
        return 'ARCHIVADO' if obj.archived else 'ACTIVO'

    def _apply(self, request, queryset, operation, done_message):
        from procureman import purchasing

        count = 0
        for material in queryset:
            try:
                getattr(purchasing, operation)(material.pk)
                count += 1
            except ProcurementError as exc:
                logger.warning("%s: failed for %s: %s", operation, material.pk, exc.code)
                self.message_user(request, f"{material.name}: {user_message(exc)}", level=messages.WARNING)

        self.message_user(request, done_message.format(count=count))

    @admin.action(description=_('Archivar materiales seleccionados'))
    def archive_materials(self, request, queryset):
        self._apply(request, queryset.filter(archived=False), 'archive_material',
                    _('{count} material(es) archivado(s).'))

    @admin.action(description=_('Reactivar materiales seleccionados'))
    def unarchive_materials(self, request, queryset):
        self._apply(request, queryset.filter(archived=True), 'unarchive_material',
                    _('{count} material(es) reactivado(s).'))

    @admin.action(description=_('Recalcular stock desde movimientos'))
    def recalculate_stock(self, request, queryset):
        self._apply(request, queryset, 'recalculate_stock', _('{count} material(es) recalculado(s).'))


# =============================================================================
# STOCK MOVEMENT ADMIN
# =============================================================================


@admin.register(StockMovement)
class StockMovementAdmin(ReadOnlyAdminMixin, BaseModelAdmin):
    """Admin for StockMovement model (read-only ledger)."""

    list_display = ['timestamp_display', 'material', 'delta_display', 'stock_after', 'kind', 'reason', 'user']
    list_filter = ['kind', 'fulfillment_mode', 'timestamp']
    search_fields = ['reason', 'material__name']
    readonly_fields = ['material', 'delta', 'stock_after', 'kind', 'fulfillment_mode',
                       'reference_type', 'reference_id', 'reason', 'timestamp', 'user']

    @display(description=_('Fecha y hora'))
    def timestamp_display(self, obj):
        return _format_datetime(obj.timestamp)

    @display(description=_('Variación'), label=True)
    def delta_display(self, obj):
        sign = '+' if obj.delta > 0 else '-'
        return f"{sign}{format_quantity(abs(obj.delta))}"


# =============================================================================
# PURCHASE REQUEST ADMIN
# =============================================================================


@admin.register(PurchaseRequest)
class PurchaseRequestAdmin(ReadOnlyAdminMixin, BaseModelAdmin):
    """Admin for PurchaseRequest model (read-only).

    Requests move through their lifecycle via the purchasing service;
    admin actions approve or reject pending ones.
    """

    list_display = ['id', 'material_name', 'quantity_display', 'category', 'area',
                    'status_display', 'modified_display', 'lot', 'purchase_order', 'created_at_display']
    list_filter = ['status', 'category', 'area']
    search_fields = ['material_name', 'justification', 'area']
    readonly_fields = [f.name for f in PurchaseRequest._meta.concrete_fields]
    actions = ['approve_requests', 'reject_requests']

    @display(description=_('Cantidad'))
    def quantity_display(self, obj):
        return format_quantity(obj.quantity, obj.unit)

    @display(description=_('Estado'), label=REQUEST_STATUS_COLORS)
    def status_display(self, obj):
        return obj.status

    @display(description=_('Modificada'), boolean=True)
    def modified_display(self, obj):
        return obj.is_modified

    @display(description=_('Creada'))
    def created_at_display(self, obj):
        return _format_datetime(obj.created_at)

    def _apply(self, request, queryset, operation):
        from procureman import purchasing

        count = 0
        for obj in queryset.filter(status=RequestStatus.PENDING):
            try:
                getattr(purchasing, operation)(obj.pk, user=request.user)
                count += 1
            except ProcurementError as exc:
                logger.warning("%s: failed for request %s: %s", operation, obj.pk, exc.code)
                self.message_user(request, user_message(exc), level=messages.WARNING)
        return count

    @admin.action(description=_('Aprobar solicitudes seleccionadas'))
    def approve_requests(self, request, queryset):
        count = self._apply(request, queryset, 'approve')
        self.message_user(request, _('{count} solicitud(es) aprobada(s).').format(count=count))

    @admin.action(description=_('Rechazar solicitudes seleccionadas'))
    def reject_requests(self, request, queryset):
        count = self._apply(request, queryset, 'reject')
        self.message_user(request, _('{count} solicitud(es) rechazada(s).').format(count=count))


# =============================================================================
# LOT ADMIN
# =============================================================================


@admin.register(Lot)
class LotAdmin(ReadOnlyAdminMixin, BaseModelAdmin):
    """Admin for Lot model (read-only)."""

    list_display = ['name', 'category', 'status_display', 'created_by', 'created_at']
    list_filter = ['status', 'category']
    search_fields = ['name']

    @display(description=_('Estado'), label={LotStatus.OPEN: 'info', LotStatus.ORDERED: 'success'})
    def status_display(self, obj):
        return obj.status


# =============================================================================
# PURCHASE ORDER ADMIN
# =============================================================================


class PurchaseOrderItemInline(ReadOnlyAdminMixin, BaseTabularInline):
    model = PurchaseOrderItem
    extra = 0
    fields = ['position', 'material_name', 'unit', 'category', 'total_quantity']
    readonly_fields = fields


@admin.register(PurchaseOrder)
class PurchaseOrderAdmin(ReadOnlyAdminMixin, BaseModelAdmin):
    """Admin for PurchaseOrder model (read-only). Cancel via purchasing.cancel_order()."""

    list_display = ['id', 'supplier', 'lot', 'status_display', 'created_by', 'created_at_display']
    list_filter = ['status', 'supplier']
    inlines = [PurchaseOrderItemInline]

    @display(description=_('Estado'), label={OrderStatus.GENERATED: 'warning', OrderStatus.RECEIVED: 'success'})
    def status_display(self, obj):
        return obj.status

    @display(description=_('Creada'))
    def created_at_display(self, obj):
        return _format_datetime(obj.created_at)


# =============================================================================
# DISPATCH ADMINS
# =============================================================================


class MaterialRequestItemInline(ReadOnlyAdminMixin, BaseTabularInline):
    model = MaterialRequestItem
    extra = 0
    readonly_fields = ['material', 'quantity']


@admin.register(MaterialRequest)
class MaterialRequestAdmin(ReadOnlyAdminMixin, BaseModelAdmin):
    """Admin for MaterialRequest model (read-only)."""

    list_display = ['id', 'area', 'supervisor', 'status_display', 'created_at']
    list_filter = ['status', 'area']
    inlines = [MaterialRequestItemInline]

    @display(description=_('Estado'), label={
        MaterialRequestStatus.PENDING: 'warning',
        MaterialRequestStatus.APPROVED: 'success',
        MaterialRequestStatus.REJECTED: 'danger',
    })
    def status_display(self, obj):
        return obj.status


@admin.register(ReturnRequest)
class ReturnRequestAdmin(ReadOnlyAdminMixin, BaseModelAdmin):
    """Admin for ReturnRequest model (read-only)."""

    list_display = ['id', 'material', 'quantity', 'supervisor', 'status_display', 'created_at']
    list_filter = ['status']

    @display(description=_('Estado'), label={
        ReturnStatus.PENDING: 'warning',
        ReturnStatus.COMPLETED: 'success',
        ReturnStatus.REJECTED: 'danger',
    })
    def status_display(self, obj):
        return obj.status
