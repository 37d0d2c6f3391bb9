"""
Initial migration for Procureman models.
"""

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    """Create Procureman models: suppliers, materials, ledger, requests, lots, orders, dispatch."""

    initial = True

    dependencies = [
        ('contenttypes', '0002_remove_content_type_name'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Supplier',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=150, verbose_name='Nombre')),
                ('categories', models.JSONField(blank=True, default=list, help_text='Categorías de material que puede abastecer', verbose_name='Categorías')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'verbose_name': 'Proveedor',
                'verbose_name_plural': 'Proveedores',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Lot',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100, verbose_name='Nombre')),
                ('category', models.CharField(blank=True, help_text='Vacío = lote mixto; si se indica, todas las solicitudes deben coincidir', max_length=100, verbose_name='Categoría')),
                ('status', models.CharField(choices=[('open', 'Abierto'), ('ordered', 'Ordenado')], db_index=True, default='open', max_length=20, verbose_name='Estado')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Creado por')),
            ],
            options={
                'verbose_name': 'Lote',
                'verbose_name_plural': 'Lotes',
                'ordering': ['category', 'name'],
            },
        ),
        migrations.CreateModel(
            name='Material',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(db_index=True, max_length=200, verbose_name='Nombre')),
                ('normalized_name', models.CharField(db_index=True, editable=False, max_length=200, verbose_name='Nombre normalizado')),
                ('unit', models.CharField(help_text='Ej: "unidad", "kg", "saco"', max_length=30, verbose_name='Unidad')),
                ('category', models.CharField(blank=True, max_length=100, verbose_name='Categoría')),
                ('stock', models.PositiveIntegerField(default=0, help_text='Solo cambia mediante movimientos de stock', verbose_name='Stock')),
                ('archived', models.BooleanField(default=False, verbose_name='Archivado')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('supplier', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='materials', to='procureman.supplier', verbose_name='Proveedor preferido')),
            ],
            options={
                'verbose_name': 'Material',
                'verbose_name_plural': 'Materiales',
                'ordering': ['name', 'id'],
            },
        ),
        migrations.CreateModel(
            name='MaterialAlias',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200, unique=True, verbose_name='Nombre alternativo')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('material', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='aliases', to='procureman.material', verbose_name='Material')),
            ],
            options={
                'verbose_name': 'Alias de material',
                'verbose_name_plural': 'Alias de materiales',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='PurchaseOrder',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('status', models.CharField(choices=[('generated', 'Generada'), ('received', 'Recibida')], db_index=True, default='generated', max_length=20, verbose_name='Estado')),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Creado por')),
                ('lot', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='purchase_orders', to='procureman.lot', verbose_name='Lote de origen')),
                ('supplier', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='purchase_orders', to='procureman.supplier', verbose_name='Proveedor')),
            ],
            options={
                'verbose_name': 'Orden de compra',
                'verbose_name_plural': 'Órdenes de compra',
                'ordering': ['-created_at', '-id'],
            },
        ),
        migrations.CreateModel(
            name='PurchaseOrderItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('material_name', models.CharField(max_length=200, verbose_name='Material')),
                ('unit', models.CharField(max_length=30, verbose_name='Unidad')),
                ('category', models.CharField(blank=True, max_length=100, verbose_name='Categoría')),
                ('total_quantity', models.PositiveIntegerField(verbose_name='Cantidad total')),
                ('position', models.PositiveIntegerField(default=0, verbose_name='Posición')),
                ('order', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='procureman.purchaseorder', verbose_name='Orden de compra')),
            ],
            options={
                'verbose_name': 'Ítem de orden',
                'verbose_name_plural': 'Ítems de orden',
                'ordering': ['order', 'position'],
            },
        ),
        migrations.CreateModel(
            name='PurchaseRequest',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('material_name', models.CharField(help_text='Texto libre; se concilia por nombre al recibir', max_length=200, verbose_name='Material')),
                ('quantity', models.PositiveIntegerField(verbose_name='Cantidad')),
                ('unit', models.CharField(max_length=30, verbose_name='Unidad')),
                ('category', models.CharField(max_length=100, verbose_name='Categoría')),
                ('justification', models.TextField(verbose_name='Justificación')),
                ('area', models.CharField(max_length=100, verbose_name='Área')),
                ('status', models.CharField(choices=[('pending', 'Pendiente'), ('approved', 'Aprobada'), ('rejected', 'Rechazada'), ('batched', 'En lote'), ('ordered', 'Ordenada'), ('received', 'Recibida')], db_index=True, default='pending', max_length=20, verbose_name='Estado')),
                ('original_quantity', models.PositiveIntegerField(blank=True, help_text='Se registra si el aprobador modifica la cantidad', null=True, verbose_name='Cantidad original')),
                ('notes', models.TextField(blank=True, verbose_name='Notas')),
                ('approved_at', models.DateTimeField(blank=True, null=True, verbose_name='Aprobado en')),
                ('rejected_at', models.DateTimeField(blank=True, null=True, verbose_name='Rechazado en')),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('received_at', models.DateTimeField(blank=True, null=True, verbose_name='Recibido en')),
                ('version', models.PositiveIntegerField(default=1, editable=False)),
                ('approved_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Aprobado por')),
                ('lot', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='requests', to='procureman.lot', verbose_name='Lote')),
                ('purchase_order', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='requests', to='procureman.purchaseorder', verbose_name='Orden de compra')),
                ('rejected_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Rechazado por')),
                ('supervisor', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Solicitante')),
            ],
            options={
                'verbose_name': 'Solicitud de compra',
                'verbose_name_plural': 'Solicitudes de compra',
                'ordering': ['-created_at', '-id'],
            },
        ),
        migrations.CreateModel(
            name='StockMovement',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('delta', models.IntegerField(help_text='Positivo = entrada, Negativo = salida', verbose_name='Variación')),
                ('stock_after', models.PositiveIntegerField(default=0, verbose_name='Stock resultante')),
                ('kind', models.CharField(choices=[('initial', 'Inicial'), ('manual-entry', 'Ingreso manual'), ('adjustment', 'Ajuste'), ('request-delivery', 'Entrega de solicitud'), ('purchase-receipt', 'Recepción de compra'), ('return-reentry', 'Reingreso por devolución'), ('merge', 'Fusión de materiales')], max_length=30, verbose_name='Tipo')),
                ('fulfillment_mode', models.CharField(blank=True, choices=[('immediate', 'Descuento inmediato'), ('deferred', 'Al recibir')], max_length=20, verbose_name='Modo de abastecimiento')),
                ('reference_id', models.PositiveIntegerField(blank=True, null=True, verbose_name='ID de referencia')),
                ('reason', models.CharField(help_text='Obligatorio. Ej: "Recepción OC-12", "Entrega solicitud 7"', max_length=255, verbose_name='Motivo')),
                ('timestamp', models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name='Fecha/Hora')),
                ('material', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='movements', to='procureman.material', verbose_name='Material')),
                ('reference_type', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='contenttypes.contenttype', verbose_name='Tipo de referencia')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Usuario')),
            ],
            options={
                'verbose_name': 'Movimiento de stock',
                'verbose_name_plural': 'Movimientos de stock',
                'ordering': ['timestamp', 'id'],
            },
        ),
        migrations.CreateModel(
            name='MaterialRequest',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('area', models.CharField(max_length=100, verbose_name='Área')),
                ('status', models.CharField(choices=[('pending', 'Pendiente'), ('approved', 'Aprobada'), ('rejected', 'Rechazada')], db_index=True, default='pending', max_length=20, verbose_name='Estado')),
                ('approved_at', models.DateTimeField(blank=True, null=True, verbose_name='Aprobado en')),
                ('rejected_at', models.DateTimeField(blank=True, null=True, verbose_name='Rechazado en')),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('approved_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Resuelto por')),
                ('supervisor', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Solicitante')),
            ],
            options={
                'verbose_name': 'Solicitud de material',
                'verbose_name_plural': 'Solicitudes de material',
                'ordering': ['-created_at', '-id'],
            },
        ),
        migrations.CreateModel(
            name='MaterialRequestItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('quantity', models.PositiveIntegerField(verbose_name='Cantidad')),
                ('material', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='+', to='procureman.material', verbose_name='Material')),
                ('request', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='procureman.materialrequest', verbose_name='Solicitud')),
            ],
            options={
                'verbose_name': 'Ítem de solicitud de material',
                'verbose_name_plural': 'Ítems de solicitud de material',
            },
        ),
        migrations.CreateModel(
            name='ReturnRequest',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('quantity', models.PositiveIntegerField(verbose_name='Cantidad')),
                ('notes', models.TextField(blank=True, verbose_name='Notas')),
                ('status', models.CharField(choices=[('pending', 'Pendiente'), ('completed', 'Completada'), ('rejected', 'Rechazada')], db_index=True, default='pending', max_length=20, verbose_name='Estado')),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('resolved_at', models.DateTimeField(blank=True, null=True, verbose_name='Resuelto en')),
                ('material', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='returns', to='procureman.material', verbose_name='Material')),
                ('supervisor', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Solicitante')),
            ],
            options={
                'verbose_name': 'Devolución',
                'verbose_name_plural': 'Devoluciones',
                'ordering': ['-created_at', '-id'],
            },
        ),
        # Indexes
        migrations.AddIndex(
            model_name='purchaserequest',
            index=models.Index(fields=['status', 'category'], name='procureman__status_5b1c2e_idx'),
        ),
        migrations.AddIndex(
            model_name='purchaserequest',
            index=models.Index(fields=['lot', 'status'], name='procureman__lot_id_8d4f7a_idx'),
        ),
        migrations.AddIndex(
            model_name='stockmovement',
            index=models.Index(fields=['material', 'timestamp'], name='procureman__materia_3e9b12_idx'),
        ),
        migrations.AddIndex(
            model_name='stockmovement',
            index=models.Index(fields=['reference_type', 'reference_id'], name='procureman__referen_c7a640_idx'),
        ),
        # Constraints
        migrations.AddConstraint(
            model_name='material',
            constraint=models.CheckConstraint(condition=models.Q(('stock__gte', 0)), name='procureman_material_stock_non_negative'),
        ),
        migrations.AddConstraint(
            model_name='lot',
            constraint=models.UniqueConstraint(condition=models.Q(('status', 'open')), fields=('name',), name='procureman_unique_open_lot_name'),
        ),
        migrations.AddConstraint(
            model_name='purchaseorderitem',
            constraint=models.UniqueConstraint(fields=('order', 'material_name', 'unit'), name='procureman_unique_order_item'),
        ),
        migrations.AddConstraint(
            model_name='purchaseorderitem',
            constraint=models.CheckConstraint(condition=models.Q(('total_quantity__gt', 0)), name='procureman_order_item_quantity_positive'),
        ),
        migrations.AddConstraint(
            model_name='purchaserequest',
            constraint=models.CheckConstraint(condition=models.Q(('quantity__gt', 0)), name='procureman_request_quantity_positive'),
        ),
        migrations.AddConstraint(
            model_name='purchaserequest',
            constraint=models.CheckConstraint(condition=models.Q(models.Q(('received_at__isnull', False), ('status', 'received')), models.Q(models.Q(('status', 'received'), _negated=True), ('received_at__isnull', True)), _connector='OR'), name='procureman_request_received_at_iff_received'),
        ),
        migrations.AddConstraint(
            model_name='purchaserequest',
            constraint=models.CheckConstraint(condition=models.Q(('lot__isnull', True), ('status', 'batched'), _connector='OR'), name='procureman_request_lot_only_when_batched'),
        ),
        migrations.AddConstraint(
            model_name='materialrequestitem',
            constraint=models.CheckConstraint(condition=models.Q(('quantity__gt', 0)), name='procureman_material_request_item_quantity_positive'),
        ),
        migrations.AddConstraint(
            model_name='returnrequest',
            constraint=models.CheckConstraint(condition=models.Q(('quantity__gt', 0)), name='procureman_return_quantity_positive'),
        ),
    ]
