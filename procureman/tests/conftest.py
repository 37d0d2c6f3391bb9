"""
Pytest fixtures for Procureman tests.
"""

import pytest
from django.contrib.auth import get_user_model

from procureman import purchasing
from procureman.adapters import reset_document_store
from procureman.models import Supplier


User = get_user_model()


@pytest.fixture(autouse=True)
def fresh_store():
    """Every test resolves its own document store."""
    reset_document_store()
    yield
    reset_document_store()


@pytest.fixture
def user(db):
    """Create an approver."""
    return User.objects.create_user(
        username='aprobador',
        password='testpass123'
    )


@pytest.fixture
def supervisor(db):
    """Create the supervisor who files requests."""
    return User.objects.create_user(
        username='supervisor',
        password='testpass123'
    )


@pytest.fixture
def supplier(db):
    """Create a supplier for construction materials."""
    return Supplier.objects.create(
        name='Ferretería Central',
        categories=['Cemento', 'Ferretería']
    )


@pytest.fixture
def other_supplier(db):
    return Supplier.objects.create(name='Comercial Sur', categories=['Ferretería'])


@pytest.fixture
def make_request(db, supervisor):
    """Factory for pending purchase requests."""
    def _make(material_name='Cemento', quantity=50, unit='saco', category='Cemento', **kwargs):
        kwargs.setdefault('justification', 'Obra bodega norte')
        kwargs.setdefault('area', 'Construcción')
        return purchasing.create_request(
            material_name=material_name,
            quantity=quantity,
            unit=unit,
            category=category,
            supervisor=supervisor,
            **kwargs,
        )
    return _make


@pytest.fixture
def make_approved(make_request, user):
    """Factory for approved (pool) purchase requests."""
    def _make(*args, **kwargs):
        request = make_request(*args, **kwargs)
        return purchasing.approve(request.pk, user=user)
    return _make


@pytest.fixture
def cement(db):
    """Create the material "Cemento" with 30 sacks in stock."""
    return purchasing.create_material('Cemento', 'saco', category='Cemento', stock=30)


@pytest.fixture
def ordered_request(make_approved, supplier):
    """A request already consumed by a purchase order."""
    request = make_approved()
    purchasing.generate_order([request.pk], supplier.pk)
    request.refresh_from_db()
    return request
