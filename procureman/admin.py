"""
Procureman Admin — basic fallback (works without Unfold).

For the Unfold-styled version, add 'procureman.contrib.admin_unfold' to INSTALLED_APPS.
When the Unfold contrib is loaded, this module does nothing (avoids double registration).

Only suppliers are editable here; everything else changes only through the
purchasing services.
"""

import logging

from django.apps import apps
from django.contrib import admin, messages
from django.utils.translation import gettext_lazy as _

logger = logging.getLogger(__name__)

# Skip registration if the Unfold contrib is installed (it will register its own admins)
if not apps.is_installed('procureman.contrib.admin_unfold'):
    from procureman.exceptions import ProcurementError, user_message
    from procureman.models import (
        Lot,
        Material,
        MaterialAlias,
        MaterialRequest,
        MaterialRequestItem,
        PurchaseOrder,
        PurchaseOrderItem,
        PurchaseRequest,
        RequestStatus,
        ReturnRequest,
        StockMovement,
        Supplier,
    )

    class ReadOnlyMixin:
        def has_add_permission(self, request, obj=None):
            return False

        def has_change_permission(self, request, obj=None):
            return False

        def has_delete_permission(self, request, obj=None):
            return False

    # =========================================================================
    # SUPPLIER ADMIN
    # =========================================================================

    @admin.register(Supplier)
    class SupplierAdmin(admin.ModelAdmin):
        """Supplier admin — editable."""

        list_display = ['name', 'categories', 'created_at']
        search_fields = ['name']
        readonly_fields = ['created_at']

    # =========================================================================
    # MATERIAL ADMIN
    # =========================================================================

    class MaterialAliasInline(ReadOnlyMixin, admin.TabularInline):
        model = MaterialAlias
        extra = 0
        readonly_fields = ['name', 'created_at']

    @admin.register(Material)
    class MaterialAdmin(ReadOnlyMixin, admin.ModelAdmin):
        """Material admin — read-only; catalog changes go through purchasing."""

        list_display = ['name', 'unit', 'category', 'stock', 'supplier', 'archived']
        list_filter = ['archived', 'category', 'supplier']
        search_fields = ['name', 'normalized_name']
        inlines = [MaterialAliasInline]
        actions = ['archive_materials', 'unarchive_materials', 'recalculate_stock']

        def _apply(self, request, queryset, operation, done_message):
            from procureman import purchasing

            count = 0
            for material in queryset:
                try:
                    getattr(purchasing, operation)(material.pk)
                    count += 1
                except ProcurementError as exc:
                    logger.warning("%s: failed for material %s: %s", operation, material.pk, exc.code)
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

    # =========================================================================
    # STOCK MOVEMENT ADMIN (read-only ledger)
    # =========================================================================

    @admin.register(StockMovement)
    class StockMovementAdmin(ReadOnlyMixin, admin.ModelAdmin):
        """Stock movement admin — read-only. Immutable ledger."""

        list_display = ['timestamp', 'material', 'delta', 'stock_after', 'kind', 'reason', 'user']
        list_filter = ['kind', 'fulfillment_mode', 'timestamp']
        search_fields = ['reason', 'material__name']
        readonly_fields = ['material', 'delta', 'stock_after', 'kind', 'fulfillment_mode',
                           'reference_type', 'reference_id', 'reason', 'timestamp', 'user']
        date_hierarchy = 'timestamp'

    # =========================================================================
    # PURCHASE REQUEST ADMIN (read-only with approve/reject actions)
    # =========================================================================

    @admin.register(PurchaseRequest)
    class PurchaseRequestAdmin(ReadOnlyMixin, admin.ModelAdmin):
        """Purchase request admin — read-only with approve/reject actions."""

        list_display = ['id', 'material_name', 'quantity', 'unit', 'category', 'area',
                        'status', 'lot', 'purchase_order', 'created_at']
        list_filter = ['status', 'category']
        search_fields = ['material_name', 'justification', 'area']
        readonly_fields = [f.name for f in PurchaseRequest._meta.concrete_fields]
        actions = ['approve_requests', 'reject_requests']

        def _apply(self, request, queryset, operation, done_message):
            from procureman import purchasing

            count = 0
            for obj in queryset.filter(status=RequestStatus.PENDING):
                try:
                    getattr(purchasing, operation)(obj.pk, user=request.user)
                    count += 1
                except ProcurementError as exc:
                    logger.warning("%s: failed for request %s: %s", operation, obj.pk, exc.code)
                    self.message_user(request, user_message(exc), level=messages.WARNING)
            self.message_user(request, done_message.format(count=count))

        @admin.action(description=_('Aprobar solicitudes seleccionadas'))
        def approve_requests(self, request, queryset):
            self._apply(request, queryset, 'approve', _('{count} solicitud(es) aprobada(s).'))

        @admin.action(description=_('Rechazar solicitudes seleccionadas'))
        def reject_requests(self, request, queryset):
            self._apply(request, queryset, 'reject', _('{count} solicitud(es) rechazada(s).'))

    # =========================================================================
    # LOT ADMIN
    # =========================================================================

    @admin.register(Lot)
    class LotAdmin(ReadOnlyMixin, admin.ModelAdmin):
        """Lot admin — read-only."""

        list_display = ['name', 'category', 'status', 'created_by', 'created_at']
        list_filter = ['status', 'category']
        search_fields = ['name']

    # =========================================================================
    # PURCHASE ORDER ADMIN
    # =========================================================================

    class PurchaseOrderItemInline(ReadOnlyMixin, admin.TabularInline):
        model = PurchaseOrderItem
        extra = 0
        fields = ['position', 'material_name', 'unit', 'category', 'total_quantity']
        readonly_fields = fields

    @admin.register(PurchaseOrder)
    class PurchaseOrderAdmin(ReadOnlyMixin, admin.ModelAdmin):
        """Purchase order admin — read-only. Cancel via purchasing.cancel_order()."""

        list_display = ['id', 'supplier', 'lot', 'status', 'created_by', 'created_at']
        list_filter = ['status', 'supplier']
        inlines = [PurchaseOrderItemInline]

    # =========================================================================
    # DISPATCH ADMINS
    # =========================================================================

    class MaterialRequestItemInline(ReadOnlyMixin, admin.TabularInline):
        model = MaterialRequestItem
        extra = 0
        readonly_fields = ['material', 'quantity']

    @admin.register(MaterialRequest)
    class MaterialRequestAdmin(ReadOnlyMixin, admin.ModelAdmin):
        list_display = ['id', 'area', 'supervisor', 'status', 'created_at']
        list_filter = ['status', 'area']
        inlines = [MaterialRequestItemInline]

    @admin.register(ReturnRequest)
    class ReturnRequestAdmin(ReadOnlyMixin, admin.ModelAdmin):
        list_display = ['id', 'material', 'quantity', 'supervisor', 'status', 'created_at']
        list_filter = ['status']
