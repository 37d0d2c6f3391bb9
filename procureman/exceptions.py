"""
Exceptions for Procureman.

All errors are ProcurementError subclasses with a structured code for
programmatic handling and a category for user-facing wording.
"""

from typing import Any

from django.db import DatabaseError


class BaseError(Exception):
    """
    Exception with a code, a human-readable message and context data.

    Usage:
        raise NotFoundError('REQUEST_NOT_FOUND', request_id=42)
    """

    _default_messages: dict[str, str] = {}

    def __init__(self, code: str, message: str | None = None, **data: Any):
        self.code = code
        self.message = message or self._default_messages.get(code, code)
        self.data = data
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.code!r}, data={self.data!r})"


class ProcurementError(BaseError):
    """
    Structured exception for procurement operations.

    Usage:
        try:
            purchasing.approve(request_id)
        except InvalidStateError as e:
            print(e.code, e.data['current'])

    Attributes:
        code: Error code for programmatic handling
        message: Human-readable message
        data: Additional context data
        category: 'state', 'stock', 'data' or 'connection'
    """

    category = 'data'

    _default_messages = {
        # Validation
        'INVALID_QUANTITY': 'Cantidad inválida (debe ser un entero positivo)',
        'REQUIRED_FIELD': 'Campo obligatorio vacío',
        'INVALID_EDIT': 'Campo no editable durante la aprobación',
        'CATEGORY_MISMATCH': 'La categoría de la solicitud no coincide con la del lote',
        'LOT_NAME_TOO_SHORT': 'El nombre del lote es demasiado corto',
        'LOT_NAME_TAKEN': 'Ya existe un lote abierto con este nombre',
        'EMPTY_LOT': 'No hay solicitudes para generar la orden',
        'EMPTY_ITEMS': 'La solicitud no tiene ítems',
        'DUPLICATE_REQUEST': 'Una solicitud no puede ordenarse y devolverse a la vez',
        'REASON_REQUIRED': 'El motivo es obligatorio',
        'INVALID_MODE': 'Modo de agrupación inválido',
        'MATERIAL_ARCHIVED': 'El material está archivado',
        'SAME_MATERIAL': 'No se puede fusionar un material consigo mismo',
        'UNIT_MISMATCH': 'Las unidades de los materiales no coinciden',
        'PROTECTED_COLLECTION': 'Esta colección solo se modifica mediante operaciones de compras',
        'UNKNOWN_COLLECTION': 'Colección desconocida',
        'INVALID_FILTER': 'Filtro de consulta inválido',
        'INVALID_DOCUMENT': 'El documento tiene campos desconocidos',
        'INVALID_OPERATION': 'Operación de lote inválida',
        # Not found
        'REQUEST_NOT_FOUND': 'Solicitud de compra no encontrada',
        'MATERIAL_NOT_FOUND': 'Material no encontrado',
        'SUPPLIER_NOT_FOUND': 'Proveedor no encontrado',
        'ORDER_NOT_FOUND': 'Orden de compra no encontrada',
        'LOT_NOT_FOUND': 'Lote no encontrado',
        'MATERIAL_REQUEST_NOT_FOUND': 'Solicitud de material no encontrada',
        'RETURN_NOT_FOUND': 'Devolución no encontrada',
        'DOCUMENT_NOT_FOUND': 'Documento no encontrado',
        # State
        'INVALID_STATUS': 'Estado inválido para esta operación',
        'INVALID_TRANSITION': 'Transición de estado no permitida',
        'ALREADY_IN_LOT': 'La solicitud ya pertenece a un lote',
        'NOT_IN_LOT': 'La solicitud no pertenece a ningún lote',
        'LOT_CLOSED': 'El lote ya no está abierto',
        'ORDER_HAS_RECEIPTS': 'La orden tiene solicitudes ya recibidas',
        'MATERIAL_HAS_STOCK': 'Solo se pueden archivar materiales sin stock',
        'CONCURRENT_MODIFICATION': 'Modificación concurrente detectada',
        # Stock
        'INSUFFICIENT_STOCK': 'Stock insuficiente',
        # Store
        'STORE_FAILURE': 'Error del almacén de datos',
    }

    @property
    def available(self) -> int:
        """Shortcut for data['available']."""
        return self.data.get('available', 0)

    @property
    def requested(self) -> int:
        """Shortcut for data['requested']."""
        return self.data.get('requested', 0)

    def as_dict(self) -> dict[str, Any]:
        """Serialize to dict (useful for APIs)."""
        return {
            'code': self.code,
            'category': self.category,
            'message': self.message,
            'data': {
                k: v if isinstance(v, (int, float, bool, type(None), list)) else str(v)
                for k, v in self.data.items()
            },
        }


class ValidationError(ProcurementError):
    """Malformed input. Nothing was written."""

    category = 'data'


class EmptyLotError(ValidationError):
    """Order generation was asked to consume no requests."""

    def __init__(self, code: str = 'EMPTY_LOT', message: str | None = None, **data: Any):
        super().__init__(code, message, **data)


class NotFoundError(ProcurementError):
    """Referenced request, material, supplier, lot or order does not exist."""

    category = 'data'


class InvalidStateError(ProcurementError):
    """The current status does not satisfy the operation's precondition."""

    category = 'state'


class ConcurrentModificationError(InvalidStateError):
    """A document changed between read and conditional write."""

    def __init__(self, code: str = 'CONCURRENT_MODIFICATION', message: str | None = None, **data: Any):
        super().__init__(code, message, **data)


class InsufficientStockError(ProcurementError):
    """A stock decrement would take a material below zero."""

    category = 'stock'

    def __init__(self, code: str = 'INSUFFICIENT_STOCK', message: str | None = None, **data: Any):
        super().__init__(code, message, **data)


class StoreError(ProcurementError):
    """Underlying database failure. No partial success may be assumed."""

    category = 'connection'

    def __init__(self, code: str = 'STORE_FAILURE', message: str | None = None, **data: Any):
        super().__init__(code, message, **data)


_CATEGORY_PREFIXES = {
    'state': 'Operación no permitida en el estado actual',
    'stock': 'Problema de stock o datos',
    'data': 'Problema de stock o datos',
    'connection': 'Problema de conexión',
}


def user_message(exc: BaseException) -> str:
    """
    Resolve any exception raised by an operation to a message for the user.

    The prefix tells apart state conflicts, stock/data problems and
    connection problems.
    """
    if isinstance(exc, ProcurementError):
        prefix = _CATEGORY_PREFIXES.get(exc.category, _CATEGORY_PREFIXES['data'])
        return f"{prefix}: {exc.message}."
    if isinstance(exc, DatabaseError):
        return f"{_CATEGORY_PREFIXES['connection']}: intente nuevamente."
    return "Ocurrió un error inesperado."
