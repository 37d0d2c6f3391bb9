"""
Tests for materials and the stock ledger.
"""

from io import StringIO

import pytest
from django.core.management import call_command
from django.db import IntegrityError, transaction

from procureman import (
    InsufficientStockError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
    purchasing,
)
from procureman.models import Material, MaterialAlias, MovementKind, StockMovement
from procureman.naming import normalize_name, same_material


pytestmark = pytest.mark.django_db


class TestCreateMaterial:
    """Tests for purchasing.create_material()."""

    def test_initial_stock_is_a_movement(self, cement):
        """Initial stock is recorded in the ledger."""
        movement = StockMovement.objects.get(material=cement)

        assert cement.stock == 30
        assert movement.kind == MovementKind.INITIAL
        assert movement.delta == 30

    def test_without_stock(self, supplier):
        material = purchasing.create_material('Clavos', 'kg', supplier_id=supplier.pk)

        assert material.stock == 0
        assert material.supplier == supplier
        assert not StockMovement.objects.exists()

    def test_normalized_name(self):
        material = purchasing.create_material('  Fierro   Estriado ', 'barra')

        assert material.name == 'Fierro   Estriado'
        assert material.normalized_name == 'fierro estriado'

    def test_negative_stock(self):
        with pytest.raises(ValidationError):
            purchasing.create_material('Clavos', 'kg', stock=-1)

    def test_missing_supplier(self):
        with pytest.raises(NotFoundError) as exc:
            purchasing.create_material('Clavos', 'kg', supplier_id=9999)

        assert exc.value.code == 'SUPPLIER_NOT_FOUND'
        assert not Material.objects.exists()


class TestStockChanges:
    """Tests for add_stock() and adjust_stock()."""

    def test_add_stock(self, cement, user):
        movement = purchasing.add_stock(cement.pk, 20, 'Compra directa', user=user)

        cement.refresh_from_db()
        assert cement.stock == 50
        assert movement.kind == MovementKind.MANUAL_ENTRY
        assert movement.stock_after == 50
        assert movement.user == user

    def test_add_requires_reason(self, cement):
        with pytest.raises(ValidationError) as exc:
            purchasing.add_stock(cement.pk, 20, '  ')

        assert exc.value.code == 'REASON_REQUIRED'

    def test_add_to_archived(self):
        material = purchasing.create_material('Clavos', 'kg')
        purchasing.archive_material(material.pk)

        with pytest.raises(ValidationError) as exc:
            purchasing.add_stock(material.pk, 5, 'Compra')

        assert exc.value.code == 'MATERIAL_ARCHIVED'

    def test_adjust_down(self, cement):
        movement = purchasing.adjust_stock(cement.pk, 25, 'Conteo semanal')

        cement.refresh_from_db()
        assert cement.stock == 25
        assert movement.delta == -5
        assert movement.kind == MovementKind.ADJUSTMENT
        assert movement.reason == 'Ajuste: Conteo semanal'

    def test_adjust_no_change(self, cement):
        assert purchasing.adjust_stock(cement.pk, 30, 'Conteo') is None
        assert StockMovement.objects.filter(kind=MovementKind.ADJUSTMENT).count() == 0

    def test_adjust_negative(self, cement):
        with pytest.raises(ValidationError):
            purchasing.adjust_stock(cement.pk, -1, 'Conteo')


class TestStockNonNegative:
    """Stock never goes below zero."""

    def test_decrement_below_zero_refused(self, cement):
        with pytest.raises(InsufficientStockError) as exc:
            StockMovement.objects.create(
                material=cement, delta=-31, kind=MovementKind.ADJUSTMENT, reason='Merma',
            )

        assert exc.value.available == 30
        assert exc.value.requested == 31
        cement.refresh_from_db()
        assert cement.stock == 30

    def test_database_constraint(self, cement):
        with pytest.raises(IntegrityError):
            with transaction.atomic():
                Material.objects.filter(pk=cement.pk).update(stock=-1)

    def test_movements_are_immutable(self, cement):
        movement = StockMovement.objects.get(material=cement)

        with pytest.raises(ValueError):
            movement.save()
        with pytest.raises(ValueError):
            movement.delete()


class TestArchive:
    """Tests for archive_material() and unarchive_material()."""

    def test_archive_with_stock_fails(self, cement):
        with pytest.raises(InvalidStateError) as exc:
            purchasing.archive_material(cement.pk)

        assert exc.value.code == 'MATERIAL_HAS_STOCK'
        cement.refresh_from_db()
        assert not cement.archived

    def test_archive_empty(self, cement):
        purchasing.adjust_stock(cement.pk, 0, 'Consumo total')

        archived = purchasing.archive_material(cement.pk)

        assert archived.archived
        assert cement not in purchasing.materials()
        assert cement in purchasing.materials(include_archived=True)

    def test_unarchive(self):
        material = purchasing.create_material('Clavos', 'kg')
        purchasing.archive_material(material.pk)

        assert not purchasing.unarchive_material(material.pk).archived


class TestMergeMaterials:
    """Tests for purchasing.merge_materials()."""

    def test_merge(self, cement, user):
        """Source stock moves to the target and its name becomes an alias."""
        duplicate = purchasing.create_material('cemento', 'saco', stock=12)

        target = purchasing.merge_materials(duplicate.pk, cement.pk, user=user)

        duplicate.refresh_from_db()
        assert target.stock == 42
        assert duplicate.stock == 0
        assert duplicate.archived
        assert MaterialAlias.objects.get(name='cemento').material == cement
        merges = StockMovement.objects.filter(kind=MovementKind.MERGE)
        assert sorted(m.delta for m in merges) == [-12, 12]

    def test_aliases_follow(self, cement):
        duplicate = purchasing.create_material('Cemento gris', 'saco')
        MaterialAlias.objects.create(name='Cemento corriente', material=duplicate)

        purchasing.merge_materials(duplicate.pk, cement.pk)

        assert set(cement.aliases.values_list('name', flat=True)) == {
            'Cemento gris',
            'Cemento corriente',
        }

    def test_merged_name_matches_target(self, cement):
        duplicate = purchasing.create_material('Cemento gris', 'saco')
        purchasing.merge_materials(duplicate.pk, cement.pk)

        assert purchasing.match_material('Cemento gris') == cement

    def test_same_material(self, cement):
        with pytest.raises(ValidationError) as exc:
            purchasing.merge_materials(cement.pk, cement.pk)

        assert exc.value.code == 'SAME_MATERIAL'

    def test_unit_mismatch(self, cement):
        bags = purchasing.create_material('Cemento granel', 'kg')

        with pytest.raises(ValidationError) as exc:
            purchasing.merge_materials(bags.pk, cement.pk)

        assert exc.value.code == 'UNIT_MISMATCH'


class TestLedger:
    """Tests for stock recalculation and the ledger check command."""

    def test_recalculate_fixes_drift(self, cement):
        Material.objects.filter(pk=cement.pk).update(stock=99)

        total = purchasing.recalculate_stock(cement.pk)

        cement.refresh_from_db()
        assert total == 30
        assert cement.stock == 30

    def test_movements_query(self, cement):
        purchasing.add_stock(cement.pk, 5, 'Compra')

        assert [m.delta for m in purchasing.movements(cement)] == [30, 5]

    def test_check_command_reports(self, cement):
        Material.objects.filter(pk=cement.pk).update(stock=99)
        out = StringIO()

        call_command('check_stock_ledger', stdout=out)

        assert 'Cemento' in out.getvalue()
        assert '1 material(es) con diferencias' in out.getvalue()
        cement.refresh_from_db()
        assert cement.stock == 99

    def test_check_command_fix(self, cement):
        Material.objects.filter(pk=cement.pk).update(stock=99)
        out = StringIO()

        call_command('check_stock_ledger', '--fix', stdout=out)

        cement.refresh_from_db()
        assert cement.stock == 30
        assert '1 material(es) corregido(s)' in out.getvalue()

    def test_check_command_clean(self, cement):
        out = StringIO()

        call_command('check_stock_ledger', stdout=out)

        assert '0 material(es) con diferencias' in out.getvalue()


class TestNaming:
    """Tests for material name normalization."""

    @pytest.mark.parametrize('raw,expected', [
        ('Cemento', 'cemento'),
        ('  CEMENTÓ  ', 'cemento'),
        ('Fierro  Estriado 8mm', 'fierro estriado 8mm'),
        ('Ferretería', 'ferreteria'),
        ('', ''),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_name(raw) == expected

    def test_same_material(self):
        assert same_material('Ferretería', 'FERRETERIA')
        assert not same_material('Clavos', 'Tornillos')
