"""
Tests for stock reconciliation on receipt.
"""

import pytest

from procureman import InvalidStateError, NotFoundError, ValidationError, purchasing
from procureman.models import (
    FulfillmentMode,
    Material,
    MaterialAlias,
    MovementKind,
    OrderStatus,
    PurchaseRequest,
    RequestStatus,
    StockMovement,
)


pytestmark = pytest.mark.django_db


class TestReceive:
    """Tests for purchasing.receive()."""

    def test_creates_missing_material(self, ordered_request):
        """No "Cemento" in the catalog: receipt creates it with the received stock."""
        received = purchasing.receive(ordered_request.pk, 50)

        material = Material.objects.get(name='Cemento')
        assert material.stock == 50
        assert material.unit == 'saco'
        assert material.category == 'Cemento'
        assert material.supplier is None
        assert not material.archived
        assert received.pk == ordered_request.pk
        received.refresh_from_db()
        assert received.status == RequestStatus.RECEIVED
        assert received.received_at is not None

    def test_adds_to_existing_material(self, make_approved, supplier, cement):
        """Cemento with 30 in stock + 20 received = 50."""
        request = make_approved(quantity=20)
        purchasing.generate_order([request.pk], supplier.pk)

        purchasing.receive(request.pk, 20)

        cement.refresh_from_db()
        assert cement.stock == 50
        assert Material.objects.count() == 1

    def test_records_deferred_movement(self, ordered_request, user):
        received = purchasing.receive(ordered_request.pk, 50, user=user)

        movement = StockMovement.objects.get(kind=MovementKind.PURCHASE_RECEIPT)
        assert movement.delta == 50
        assert movement.stock_after == 50
        assert movement.fulfillment_mode == FulfillmentMode.DEFERRED
        assert movement.reference == received
        assert movement.user == user
        assert f"OC-{ordered_request.purchase_order_id}" in movement.reason

    def test_second_receive_fails(self, ordered_request):
        """Receiving twice fails and stock reflects one increment."""
        purchasing.receive(ordered_request.pk, 50)

        with pytest.raises(InvalidStateError) as exc:
            purchasing.receive(ordered_request.pk, 50)

        assert exc.value.code == 'INVALID_STATUS'
        assert Material.objects.get(name='Cemento').stock == 50
        assert StockMovement.objects.filter(kind=MovementKind.PURCHASE_RECEIPT).count() == 1

    def test_requires_ordered(self, make_approved):
        request = make_approved()

        with pytest.raises(InvalidStateError):
            purchasing.receive(request.pk, 50)

        assert not Material.objects.exists()

    @pytest.mark.parametrize('quantity', [0, -1, 1.5])
    def test_invalid_quantity(self, ordered_request, quantity):
        with pytest.raises(ValidationError):
            purchasing.receive(ordered_request.pk, quantity)

    def test_received_at_only_when_received(self, ordered_request, make_approved, make_request):
        """received_at is set exactly on received requests."""
        make_request()
        make_approved(material_name='Clavos', unit='kg', category='Ferretería')
        purchasing.receive(ordered_request.pk, 50)

        for request in PurchaseRequest.objects.all():
            assert (request.received_at is not None) == (request.status == RequestStatus.RECEIVED)

    def test_order_received_when_complete(self, make_approved, supplier):
        first = make_approved()
        second = make_approved(material_name='Clavos', quantity=10, unit='kg', category='Ferretería')
        order = purchasing.generate_order([first.pk, second.pk], supplier.pk)

        purchasing.receive(first.pk, 50)
        order.refresh_from_db()
        assert order.status == OrderStatus.GENERATED

        purchasing.receive(second.pk, 10)
        order.refresh_from_db()
        assert order.status == OrderStatus.RECEIVED

    def test_over_receipt_is_full(self, ordered_request):
        """More than requested closes the request and stocks what arrived."""
        purchasing.receive(ordered_request.pk, 60)

        ordered_request.refresh_from_db()
        assert ordered_request.status == RequestStatus.RECEIVED
        assert Material.objects.get(name='Cemento').stock == 60


class TestPartialReceipt:
    """Tests for receipts below the ordered quantity."""

    def test_receives_what_arrived(self, ordered_request):
        """The request is received for 20 and remembers the 50 ordered."""
        received = purchasing.receive(ordered_request.pk, 20)

        assert received.pk == ordered_request.pk
        ordered_request.refresh_from_db()
        assert ordered_request.status == RequestStatus.RECEIVED
        assert ordered_request.quantity == 20
        assert ordered_request.original_quantity == 50
        assert ordered_request.received_at is not None
        assert 'Recepción parcial' in ordered_request.notes
        assert Material.objects.get(name='Cemento').stock == 20

    def test_remainder_back_in_pool(self, ordered_request):
        purchasing.receive(ordered_request.pk, 20)

        remainder = PurchaseRequest.objects.exclude(pk=ordered_request.pk).get()
        assert remainder.status == RequestStatus.APPROVED
        assert remainder.quantity == 30
        assert remainder.material_name == 'Cemento'
        assert remainder.purchase_order is None
        assert remainder.lot is None
        assert remainder.received_at is None
        assert remainder.approved_by_id == ordered_request.approved_by_id
        assert list(purchasing.unbatched()) == [remainder]

    def test_second_receive_fails(self, ordered_request):
        """A partially received request cannot be received again."""
        purchasing.receive(ordered_request.pk, 20)

        with pytest.raises(InvalidStateError) as exc:
            purchasing.receive(ordered_request.pk, 20)

        assert exc.value.code == 'INVALID_STATUS'
        assert Material.objects.get(name='Cemento').stock == 20
        assert StockMovement.objects.filter(kind=MovementKind.PURCHASE_RECEIPT).count() == 1

    def test_closes_order(self, ordered_request):
        purchasing.receive(ordered_request.pk, 20)

        ordered_request.refresh_from_db()
        assert ordered_request.purchase_order.status == OrderStatus.RECEIVED

    def test_remainder_can_be_reordered(self, ordered_request, supplier):
        purchasing.receive(ordered_request.pk, 20)
        remainder = PurchaseRequest.objects.exclude(pk=ordered_request.pk).get()

        order = purchasing.generate_order([remainder.pk], supplier.pk)
        purchasing.receive(remainder.pk, 30)

        assert order.pk != ordered_request.purchase_order_id
        assert Material.objects.get(name='Cemento').stock == 50

    def test_partial_disabled(self, settings, ordered_request):
        settings.PROCUREMAN = {'ALLOW_PARTIAL_RECEIPT': False}

        received = purchasing.receive(ordered_request.pk, 20)

        assert received.pk == ordered_request.pk
        assert received.status == RequestStatus.RECEIVED
        assert PurchaseRequest.objects.count() == 1
        assert Material.objects.get(name='Cemento').stock == 20


class TestMaterialMatching:
    """Tests for how a receipt finds its material."""

    def test_explicit_material(self, ordered_request):
        bulk = purchasing.create_material('Cemento especial', 'saco')

        purchasing.receive(ordered_request.pk, 50, existing_material_id=bulk.pk)

        bulk.refresh_from_db()
        assert bulk.stock == 50
        assert not Material.objects.filter(name='Cemento').exists()

    def test_explicit_material_missing(self, ordered_request):
        with pytest.raises(NotFoundError) as exc:
            purchasing.receive(ordered_request.pk, 50, existing_material_id=9999)

        assert exc.value.code == 'MATERIAL_NOT_FOUND'
        ordered_request.refresh_from_db()
        assert ordered_request.status == RequestStatus.ORDERED

    def test_lowest_id_wins(self, ordered_request):
        """Duplicate names resolve to the oldest material."""
        first = Material.objects.create(name='Cemento', unit='saco')
        Material.objects.create(name='Cemento', unit='saco')

        purchasing.receive(ordered_request.pk, 50)

        first.refresh_from_db()
        assert first.stock == 50

    def test_exact_match_is_case_sensitive(self, ordered_request):
        Material.objects.create(name='cemento', unit='saco')

        purchasing.receive(ordered_request.pk, 50)

        assert Material.objects.filter(name='Cemento', stock=50).exists()

    def test_normalized_match(self, settings, ordered_request):
        settings.PROCUREMAN = {'MATERIAL_MATCH': 'normalized'}
        existing = Material.objects.create(name='CEMENTO ', unit='saco')

        purchasing.receive(ordered_request.pk, 50)

        existing.refresh_from_db()
        assert existing.stock == 50
        assert Material.objects.count() == 1

    def test_alias_match(self, ordered_request):
        target = Material.objects.create(name='Cemento Portland', unit='saco')
        MaterialAlias.objects.create(name='Cemento', material=target)

        purchasing.receive(ordered_request.pk, 50)

        target.refresh_from_db()
        assert target.stock == 50

    def test_archived_material_is_reactivated(self, ordered_request):
        archived = Material.objects.create(name='Cemento', unit='saco', archived=True)

        purchasing.receive(ordered_request.pk, 50)

        archived.refresh_from_db()
        assert not archived.archived
        assert archived.stock == 50

    def test_active_match_preferred_over_archived(self, ordered_request):
        Material.objects.create(name='Cemento', unit='saco', archived=True)
        active = Material.objects.create(name='Cemento', unit='saco')

        purchasing.receive(ordered_request.pk, 50)

        active.refresh_from_db()
        assert active.stock == 50

    def test_suggestions_ignore_case_and_accents(self):
        """Suggestions are read-only candidates."""
        match = Material.objects.create(name='Fierro Estriado', unit='barra')
        Material.objects.create(name='Fierro liso', unit='barra')

        assert purchasing.suggest_materials('fierro  estriádo') == [match]
        assert Material.objects.get(pk=match.pk).stock == 0
