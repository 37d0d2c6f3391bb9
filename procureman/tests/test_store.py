"""
Tests for the DocumentStore adapter and its loader.
"""

import pytest
from django.core.exceptions import ImproperlyConfigured
from django.db import transaction

from procureman import NotFoundError, ValidationError, purchasing
from procureman.adapters import DjangoDocumentStore, get_document_store, reset_document_store
from procureman.models import Supplier
from procureman.protocols import BatchOperation, DocumentStore


pytestmark = pytest.mark.django_db


@pytest.fixture
def store():
    store = DjangoDocumentStore()
    yield store
    store.close()


class TestReads:
    """Tests for get_document() and query()."""

    def test_get_document(self, store, supplier):
        doc = store.get_document('suppliers', supplier.pk)

        assert doc['id'] == supplier.pk
        assert doc['name'] == 'Ferretería Central'
        assert doc['categories'] == ['Cemento', 'Ferretería']

    def test_foreign_keys_as_ids(self, store, make_request, supervisor):
        request = make_request()

        doc = store.get_document('purchaseRequests', request.pk)

        assert doc['supervisor_id'] == supervisor.pk
        assert doc['lot_id'] is None
        assert doc['status'] == 'pending'

    def test_missing_document(self, store):
        with pytest.raises(NotFoundError) as exc:
            store.get_document('suppliers', 9999)

        assert exc.value.code == 'DOCUMENT_NOT_FOUND'

    def test_unknown_collection(self, store):
        with pytest.raises(ValidationError) as exc:
            store.query('widgets')

        assert exc.value.code == 'UNKNOWN_COLLECTION'

    def test_query_operators(self, store, cement):
        purchasing.create_material('Clavos', 'kg', stock=3)
        purchasing.create_material('Tornillos', 'caja', stock=0)

        low = store.query('materials', where=[('stock', '<', 5), ('stock', '!=', 0)])
        named = store.query('materials', where=[('name', 'in', ['Cemento', 'Tornillos'])], order_by='-name')

        assert [d['name'] for d in low] == ['Clavos']
        assert [d['name'] for d in named] == ['Tornillos', 'Cemento']

    def test_invalid_operator(self, store):
        with pytest.raises(ValidationError) as exc:
            store.query('materials', where=[('stock', '~', 1)])

        assert exc.value.code == 'INVALID_FILTER'

    def test_invalid_field(self, store):
        with pytest.raises(ValidationError):
            store.query('materials', where=[('price', '==', 1)])

    def test_order_document(self, store, ordered_request):
        doc = store.get_document('purchaseOrders', ordered_request.purchase_order_id)

        assert doc['request_ids'] == [ordered_request.pk]
        assert doc['items'] == [
            {'material_name': 'Cemento', 'unit': 'saco', 'category': 'Cemento', 'total_quantity': 50},
        ]


class TestWrites:
    """Tests for document writes and atomic batches."""

    def test_add_update_delete(self, store):
        supplier_id = store.add_document('suppliers', {'name': 'Comercial Sur'})

        store.update_document('suppliers', supplier_id, {'categories': ['Ferretería']})
        assert Supplier.objects.get(pk=supplier_id).categories == ['Ferretería']

        store.delete_document('suppliers', supplier_id)
        assert not Supplier.objects.filter(pk=supplier_id).exists()

    def test_update_missing(self, store):
        with pytest.raises(NotFoundError):
            store.update_document('suppliers', 9999, {'name': 'X'})

    def test_protected_collection(self, store, make_request):
        """Core collections change only through purchasing operations."""
        request = make_request()

        with pytest.raises(ValidationError) as exc:
            store.update_document('purchaseRequests', request.pk, {'status': 'received'})

        assert exc.value.code == 'PROTECTED_COLLECTION'
        request.refresh_from_db()
        assert request.status == 'pending'

    def test_unknown_field(self, store):
        with pytest.raises(ValidationError) as exc:
            store.add_document('suppliers', {'name': 'X', 'rating': 5})

        assert exc.value.code == 'INVALID_DOCUMENT'

    def test_batch_returns_new_ids(self, store, supplier):
        results = store.atomic_batch([
            BatchOperation('add', 'suppliers', data={'name': 'Comercial Sur'}),
            BatchOperation('update', 'suppliers', id=supplier.pk, data={'name': 'Ferretería Norte'}),
        ])

        assert results[1] is None
        assert Supplier.objects.get(pk=results[0]).name == 'Comercial Sur'
        supplier.refresh_from_db()
        assert supplier.name == 'Ferretería Norte'

    def test_batch_all_or_nothing(self, store, supplier):
        """A failing operation undoes the ones before it."""
        with pytest.raises(NotFoundError):
            store.atomic_batch([
                BatchOperation('add', 'suppliers', data={'name': 'Comercial Sur'}),
                BatchOperation('delete', 'suppliers', id=9999),
            ])

        assert list(Supplier.objects.all()) == [supplier]

    def test_batch_validated_before_writing(self, store):
        with pytest.raises(ValidationError) as exc:
            store.atomic_batch([
                BatchOperation('add', 'suppliers', data={'name': 'Comercial Sur'}),
                BatchOperation('upsert', 'suppliers', data={'name': 'X'}),
            ])

        assert exc.value.code == 'INVALID_OPERATION'
        assert not Supplier.objects.exists()


class TestSubscribe:
    """Tests for live collection snapshots."""

    def test_initial_snapshot(self, store, supplier):
        snapshots = []

        store.subscribe('suppliers', snapshots.append)

        assert [[d['name'] for d in s] for s in snapshots] == [['Ferretería Central']]

    def test_one_snapshot_per_commit(self, store, django_capture_on_commit_callbacks):
        snapshots = []
        store.subscribe('suppliers', snapshots.append, order_by='name')

        with django_capture_on_commit_callbacks(execute=True):
            Supplier.objects.create(name='Zeta')
            Supplier.objects.create(name='Alfa')

        assert len(snapshots) == 2
        assert [d['name'] for d in snapshots[-1]] == ['Alfa', 'Zeta']

    def test_sees_service_updates(self, store, make_request, django_capture_on_commit_callbacks):
        """Conditional updates also reach subscribers."""
        request = make_request()
        snapshots = []
        store.subscribe('purchaseRequests', snapshots.append)

        with django_capture_on_commit_callbacks(execute=True):
            purchasing.approve(request.pk)

        assert snapshots[-1][0]['status'] == 'approved'

    def test_sees_stock_changes(self, store, cement, django_capture_on_commit_callbacks):
        snapshots = []
        store.subscribe('materials', snapshots.append)

        with django_capture_on_commit_callbacks(execute=True):
            purchasing.add_stock(cement.pk, 5, 'Compra')

        assert snapshots[-1][0]['stock'] == 35

    def test_rolled_back_change(self, store, django_capture_on_commit_callbacks):
        """A rolled back write sends nothing and later commits still arrive."""
        snapshots = []
        store.subscribe('suppliers', snapshots.append, order_by='name')

        with pytest.raises(RuntimeError):
            with transaction.atomic():
                Supplier.objects.create(name='Zeta')
                raise RuntimeError('abort')
        with django_capture_on_commit_callbacks(execute=True):
            Supplier.objects.create(name='Alfa')

        assert len(snapshots) == 2
        assert [d['name'] for d in snapshots[-1]] == ['Alfa']

    def test_failed_batch_then_commit(self, store, supplier, django_capture_on_commit_callbacks):
        snapshots = []
        store.subscribe('suppliers', snapshots.append, order_by='name')

        with pytest.raises(NotFoundError):
            store.atomic_batch([
                BatchOperation('add', 'suppliers', data={'name': 'Comercial Sur'}),
                BatchOperation('delete', 'suppliers', id=9999),
            ])
        with django_capture_on_commit_callbacks(execute=True):
            store.update_document('suppliers', supplier.pk, {'name': 'Ferretería Norte'})

        assert len(snapshots) == 2
        assert [d['name'] for d in snapshots[-1]] == ['Ferretería Norte']

    def test_unsubscribe(self, store, django_capture_on_commit_callbacks):
        snapshots = []
        unsubscribe = store.subscribe('suppliers', snapshots.append)
        assert store.subscription_count == 1

        unsubscribe()
        with django_capture_on_commit_callbacks(execute=True):
            Supplier.objects.create(name='Comercial Sur')

        assert len(snapshots) == 1
        assert store.subscription_count == 0

    def test_close(self, store):
        store.subscribe('suppliers', lambda docs: None)
        store.subscribe('materials', lambda docs: None)

        store.close()

        assert store.subscription_count == 0


class TestLoader:
    """Tests for get_document_store()."""

    def test_default_backend(self):
        store = get_document_store()

        assert isinstance(store, DjangoDocumentStore)
        assert isinstance(store, DocumentStore)
        assert get_document_store() is store

    def test_reset(self):
        store = get_document_store()
        reset_document_store()

        assert get_document_store() is not store

    def test_bad_backend(self, settings):
        settings.PROCUREMAN = {'STORE_BACKEND': 'procureman.adapters.nowhere.Store'}

        with pytest.raises(ImproperlyConfigured):
            get_document_store()

    def test_not_a_store(self, settings):
        settings.PROCUREMAN = {'STORE_BACKEND': 'procureman.models.Supplier'}

        with pytest.raises(ImproperlyConfigured):
            get_document_store()

    def test_empty_backend(self, settings):
        settings.PROCUREMAN = {'STORE_BACKEND': ''}

        with pytest.raises(ImproperlyConfigured):
            get_document_store()
