"""
Inventory service — Materials and the stock ledger.

Stock only changes through StockMovement; every method here that moves
stock creates one.
"""

import logging

from procureman.conf import MATERIAL_MATCH_MODES, get_choice
from procureman.db import atomic_batch
from procureman.exceptions import InvalidStateError, NotFoundError, ValidationError
from procureman.models.enums import MovementKind
from procureman.models.material import Material, MaterialAlias
from procureman.models.movement import StockMovement
from procureman.models.supplier import Supplier
from procureman.services.requests import validate_quantity, validate_text

logger = logging.getLogger('procureman')


def get_material(material_id, lock: bool = False) -> Material:
    """
    Load a material.

    Raises:
        NotFoundError('MATERIAL_NOT_FOUND')
    """
    qs = Material.objects.all()
    if lock:
        qs = qs.select_for_update()
    try:
        return qs.get(pk=material_id)
    except (Material.DoesNotExist, ValueError, TypeError):
        raise NotFoundError('MATERIAL_NOT_FOUND', material_id=material_id) from None


def _validate_reason(reason) -> str:
    reason = (reason or '').strip()
    if not reason:
        raise ValidationError('REASON_REQUIRED')
    return reason


def _validate_stock_level(value, field='stock') -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError('INVALID_QUANTITY', field=field, requested=value)
    return value


class Inventory:
    """Material catalog and stock operations."""

    @classmethod
    def create_material(cls, name, unit, category='', stock=0, supplier_id=None,
                        user=None) -> Material:
        """
        Register a material. Initial stock is recorded as an INITIAL movement.

        Raises:
            ValidationError: Empty name/unit or negative stock
            NotFoundError('SUPPLIER_NOT_FOUND')
        """
        name = validate_text(name, 'name')
        unit = validate_text(unit, 'unit')
        _validate_stock_level(stock)

        with atomic_batch():
            supplier = None
            if supplier_id is not None:
                supplier = Supplier.objects.filter(pk=supplier_id).first()
                if supplier is None:
                    raise NotFoundError('SUPPLIER_NOT_FOUND', supplier_id=supplier_id)

            material = Material.objects.create(
                name=name,
                unit=unit,
                category=(category or '').strip(),
                supplier=supplier,
            )
            if stock:
                StockMovement.objects.create(
                    material=material,
                    delta=stock,
                    kind=MovementKind.INITIAL,
                    reason="Stock inicial",
                    user=user,
                )

        logger.info(
            "stock.material.created",
            extra={"material_id": material.pk, "material": material.name, "stock": stock},
        )
        return material

    @classmethod
    def add_stock(cls, material_id, quantity, reason, user=None) -> StockMovement:
        """
        Manual entry of stock.

        Raises:
            ValidationError('INVALID_QUANTITY' | 'REASON_REQUIRED' | 'MATERIAL_ARCHIVED')
            NotFoundError('MATERIAL_NOT_FOUND')
        """
        validate_quantity(quantity)
        reason = _validate_reason(reason)

        with atomic_batch():
            material = get_material(material_id, lock=True)
            if material.archived:
                raise ValidationError('MATERIAL_ARCHIVED', material_id=material.pk)
            movement = StockMovement.objects.create(
                material=material,
                delta=quantity,
                kind=MovementKind.MANUAL_ENTRY,
                reason=reason,
                user=user,
            )

        logger.info(
            "stock.added",
            extra={"material_id": material.pk, "qty": quantity, "stock": movement.stock_after},
        )
        return movement

    @classmethod
    def adjust_stock(cls, material_id, new_stock, reason, user=None) -> StockMovement | None:
        """
        Set stock to a counted value.

        Returns:
            The ADJUSTMENT movement, or None if the count matched.
        """
        _validate_stock_level(new_stock, 'new_stock')
        reason = _validate_reason(reason)

        with atomic_batch():
            material = get_material(material_id, lock=True)
            delta = new_stock - material.stock
            if not delta:
                return None
            movement = StockMovement.objects.create(
                material=material,
                delta=delta,
                kind=MovementKind.ADJUSTMENT,
                reason=f"Ajuste: {reason}",
                user=user,
            )

        logger.info(
            "stock.adjusted",
            extra={"material_id": material.pk, "delta": delta, "stock": movement.stock_after},
        )
        return movement

    @classmethod
    def archive_material(cls, material_id) -> Material:
        """
        Hide a material from the catalog. Only allowed with zero stock.

        Raises:
            InvalidStateError('MATERIAL_HAS_STOCK')
        """
        with atomic_batch():
            material = get_material(material_id, lock=True)
            if material.stock != 0:
                raise InvalidStateError('MATERIAL_HAS_STOCK', material_id=material.pk, stock=material.stock)
            material.archived = True
            material.save(update_fields=['archived', 'updated_at'])

        logger.info("stock.material.archived", extra={"material_id": material.pk})
        return material

    @classmethod
    def unarchive_material(cls, material_id) -> Material:
        with atomic_batch():
            material = get_material(material_id, lock=True)
            if material.archived:
                material.archived = False
                material.save(update_fields=['archived', 'updated_at'])
        return material

    @classmethod
    def merge_materials(cls, source_id, target_id, user=None) -> Material:
        """
        Fold a duplicate material into another.

        Source stock moves to the target through a pair of MERGE movements,
        the source is archived, and its name (and aliases) now resolve to
        the target.

        Raises:
            ValidationError('SAME_MATERIAL' | 'UNIT_MISMATCH')
            NotFoundError('MATERIAL_NOT_FOUND')
        """
        if source_id == target_id:
            raise ValidationError('SAME_MATERIAL', material_id=source_id)

        with atomic_batch():
            # Lock in id order
            locked = {
                m.pk: m
                for m in Material.objects.select_for_update()
                .filter(pk__in=[source_id, target_id])
                .order_by('pk')
            }
            source = locked.get(source_id)
            target = locked.get(target_id)
            if source is None:
                raise NotFoundError('MATERIAL_NOT_FOUND', material_id=source_id)
            if target is None:
                raise NotFoundError('MATERIAL_NOT_FOUND', material_id=target_id)
            if source.unit != target.unit:
                raise ValidationError('UNIT_MISMATCH', source_unit=source.unit, target_unit=target.unit)

            moved = source.stock
            if moved:
                reason = f"Fusión: {source.name} (#{source.pk}) → {target.name} (#{target.pk})"
                StockMovement.objects.create(
                    material=source, delta=-moved, kind=MovementKind.MERGE, reason=reason, user=user,
                )
                StockMovement.objects.create(
                    material=target, delta=moved, kind=MovementKind.MERGE, reason=reason, user=user,
                )

            source.archived = True
            source.save(update_fields=['archived', 'updated_at'])
            MaterialAlias.objects.filter(material=source).update(material=target)
            if source.name != target.name:
                MaterialAlias.objects.update_or_create(name=source.name, defaults={'material': target})

            target.refresh_from_db()

        logger.info(
            "stock.material.merged",
            extra={"source_id": source.pk, "target_id": target.pk, "moved": moved},
        )
        return target

    @classmethod
    def recalculate_stock(cls, material_id) -> int:
        """Rebuild a material's stock from its movements."""
        with atomic_batch():
            material = get_material(material_id, lock=True)
            return material.recalculate()

    @classmethod
    def match_material(cls, name) -> Material | None:
        """
        Resolve a request's material name for a receipt.

        Order: active exact name, alias, normalized name (when
        MATERIAL_MATCH is "normalized"), archived exact name. Duplicates
        resolve to the lowest id.
        """
        mode = get_choice('MATERIAL_MATCH', MATERIAL_MATCH_MODES)
        materials = Material.objects.order_by('pk')

        material = materials.active().named(name).first()
        if material is not None:
            return material

        alias = MaterialAlias.objects.select_related('material').filter(name=name).first()
        if alias is not None:
            return alias.material

        if mode == 'normalized':
            material = materials.active().normalized(name).first()
            if material is not None:
                return material

        return materials.named(name).first()

    @classmethod
    def suggest_materials(cls, name, limit=5) -> list[Material]:
        """
        Case- and accent-insensitive candidates for linking a receipt.

        Read-only; receive() never writes through a suggestion unless the
        caller passes its id explicitly.
        """
        return list(Material.objects.active().normalized(name).order_by('pk')[:limit])
