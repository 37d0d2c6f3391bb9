"""
Tests for material requests served from stock, and returns.
"""

import pytest

from procureman import InsufficientStockError, InvalidStateError, NotFoundError, ValidationError, purchasing
from procureman.models import (
    FulfillmentMode,
    MaterialRequestStatus,
    MovementKind,
    ReturnStatus,
    StockMovement,
)


pytestmark = pytest.mark.django_db


@pytest.fixture
def nails(db):
    return purchasing.create_material('Clavos', 'kg', category='Ferretería', stock=8)


class TestMaterialRequest:
    """Tests for material requests (stock deducted at approval)."""

    def test_create(self, cement, nails, supervisor):
        request = purchasing.create_material_request(
            [(cement.pk, 10), {'material_id': nails.pk, 'quantity': 2}],
            'Construcción',
            supervisor,
        )

        assert request.status == MaterialRequestStatus.PENDING
        assert request.fulfillment_mode == FulfillmentMode.IMMEDIATE
        assert request.items.count() == 2
        cement.refresh_from_db()
        assert cement.stock == 30

    def test_empty(self, supervisor):
        with pytest.raises(ValidationError) as exc:
            purchasing.create_material_request([], 'Construcción', supervisor)

        assert exc.value.code == 'EMPTY_ITEMS'

    def test_unknown_material(self, supervisor):
        with pytest.raises(NotFoundError):
            purchasing.create_material_request([(9999, 1)], 'Construcción', supervisor)

    def test_archived_material(self, supervisor):
        material = purchasing.create_material('Tornillos', 'caja')
        purchasing.archive_material(material.pk)

        with pytest.raises(ValidationError) as exc:
            purchasing.create_material_request([(material.pk, 1)], 'Construcción', supervisor)

        assert exc.value.code == 'MATERIAL_ARCHIVED'

    def test_approve_deducts_stock(self, cement, nails, supervisor, user):
        request = purchasing.create_material_request(
            [(cement.pk, 10), (nails.pk, 8)], 'Construcción', supervisor,
        )

        approved = purchasing.approve_material_request(request.pk, user=user)

        assert approved.status == MaterialRequestStatus.APPROVED
        assert approved.approved_by == user
        cement.refresh_from_db()
        nails.refresh_from_db()
        assert cement.stock == 20
        assert nails.stock == 0
        deliveries = StockMovement.objects.filter(kind=MovementKind.REQUEST_DELIVERY)
        assert deliveries.count() == 2
        assert {m.fulfillment_mode for m in deliveries} == {FulfillmentMode.IMMEDIATE}

    def test_insufficient_stock_rolls_back(self, cement, nails, supervisor):
        """If one item lacks stock, nothing is deducted."""
        request = purchasing.create_material_request(
            [(cement.pk, 10), (nails.pk, 9)], 'Construcción', supervisor,
        )

        with pytest.raises(InsufficientStockError) as exc:
            purchasing.approve_material_request(request.pk)

        assert exc.value.data['material'] == 'Clavos'
        assert exc.value.available == 8
        assert exc.value.requested == 9
        cement.refresh_from_db()
        assert cement.stock == 30
        assert not StockMovement.objects.filter(kind=MovementKind.REQUEST_DELIVERY).exists()
        request.refresh_from_db()
        assert request.status == MaterialRequestStatus.PENDING

    def test_reject(self, cement, supervisor):
        request = purchasing.create_material_request([(cement.pk, 1)], 'Construcción', supervisor)

        rejected = purchasing.reject_material_request(request.pk)

        assert rejected.status == MaterialRequestStatus.REJECTED
        with pytest.raises(InvalidStateError):
            purchasing.approve_material_request(request.pk)

    def test_missing(self):
        with pytest.raises(NotFoundError) as exc:
            purchasing.approve_material_request(9999)

        assert exc.value.code == 'MATERIAL_REQUEST_NOT_FOUND'

    def test_query(self, cement, supervisor):
        purchasing.create_material_request([(cement.pk, 1)], 'Construcción', supervisor)

        assert purchasing.material_requests(status=MaterialRequestStatus.PENDING).count() == 1


class TestReturns:
    """Tests for material returns."""

    def test_complete_return(self, cement, supervisor, user):
        request = purchasing.create_return(cement.pk, 5, supervisor, notes='Sobrante')
        assert request.status == ReturnStatus.PENDING

        completed = purchasing.complete_return(request.pk, user=user)

        assert completed.status == ReturnStatus.COMPLETED
        assert completed.resolved_at is not None
        cement.refresh_from_db()
        assert cement.stock == 35
        movement = StockMovement.objects.get(kind=MovementKind.RETURN_REENTRY)
        assert movement.reference == completed

    def test_reject_return(self, cement, supervisor):
        request = purchasing.create_return(cement.pk, 5, supervisor)

        rejected = purchasing.reject_return(request.pk)

        assert rejected.status == ReturnStatus.REJECTED
        cement.refresh_from_db()
        assert cement.stock == 30
        with pytest.raises(InvalidStateError):
            purchasing.complete_return(request.pk)

    def test_invalid_quantity(self, cement, supervisor):
        with pytest.raises(ValidationError):
            purchasing.create_return(cement.pk, 0, supervisor)

    def test_missing_return(self):
        with pytest.raises(NotFoundError) as exc:
            purchasing.complete_return(9999)

        assert exc.value.code == 'RETURN_NOT_FOUND'

    def test_query(self, cement, supervisor):
        purchasing.create_return(cement.pk, 5, supervisor)

        assert purchasing.returns(status=ReturnStatus.PENDING).count() == 1
