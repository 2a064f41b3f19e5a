"""
Exceptions for the warehouse core.

All errors are WarehouseError with a structured code for programmatic handling.
The subclasses pin the code for the failures callers most often branch on.
"""

from decimal import Decimal
from typing import Any


class BaseError(Exception):
    """
    Exception carrying a machine-readable code and context data.

    Attributes:
        code: Error code for programmatic handling
        message: Human-readable message
        data: Additional context data
    """

    _default_messages: dict[str, str] = {}

    def __init__(self, code: str, message: str | None = None, **data: Any):
        self.code = code
        self.message = message or self._default_messages.get(code, code)
        self.data = data
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, data={self.data!r})"


class WarehouseError(BaseError):
    """
    Structured exception for warehouse operations.

    Usage:
        try:
            warehouse.spend(paper.pk, 10, 'Print job #5')
        except WarehouseError as e:
            if e.code == 'INSUFFICIENT_STOCK':
                print(f"Only {e.available} available")
    """

    _default_messages = {
        'MATERIAL_NOT_FOUND': 'Material not found',
        'INSUFFICIENT_STOCK': 'Not enough material in stock',
        'RESERVATION_NOT_FOUND': 'Reservation not found or already processed',
        'UNKNOWN_OPERATION': 'Unknown operation kind',
        'PERSISTENCE_FAILURE': 'Database transaction failed',
        'INVALID_QUANTITY': 'Invalid quantity',
        'REASON_REQUIRED': 'Reason is required',
        'ORDER_REQUIRED': 'Order id is required for this operation',
        'INVALID_TTL': 'Reservation lifetime must be positive',
        'INVALID_FILTER': 'Invalid filter predicate',
        'INVALID_METADATA': 'Metadata payload does not match its schema',
    }

    @property
    def available(self) -> Decimal:
        """Shortcut for data['available']."""
        return self.data.get('available', Decimal('0'))

    @property
    def required(self) -> Decimal:
        """Shortcut for data['required']."""
        return self.data.get('required', Decimal('0'))

    def as_dict(self) -> dict[str, Any]:
        """Serialize to dict (useful for APIs)."""
        return {
            'code': self.code,
            'message': self.message,
            'data': {
                k: str(v) if isinstance(v, Decimal) else v
                for k, v in self.data.items()
            }
        }


class MaterialNotFound(WarehouseError):

    def __init__(self, material_id):
        super().__init__(
            'MATERIAL_NOT_FOUND',
            f"Material {material_id} not found",
            material_id=material_id,
        )


class InsufficientStock(WarehouseError):
    """Requested quantity exceeds what is available for the material."""

    def __init__(self, material_id, required: Decimal, available: Decimal,
                 material: str | None = None):
        shortfall = required - available
        label = material or f"#{material_id}"
        super().__init__(
            'INSUFFICIENT_STOCK',
            f"Not enough {label}: required {required}, "
            f"available {available}, short {shortfall}",
            material_id=material_id,
            material=material,
            required=required,
            available=available,
            shortfall=shortfall,
        )

    @property
    def shortfall(self) -> Decimal:
        return self.data['shortfall']


class ReservationNotFound(WarehouseError):
    """Reservation is missing, or is no longer active (status/expiry)."""

    def __init__(self, reservation_id, status: str | None = None):
        if status is None:
            message = f"Reservation {reservation_id} not found"
        else:
            message = f"Reservation {reservation_id} is not active (status: {status})"
        super().__init__(
            'RESERVATION_NOT_FOUND',
            message,
            reservation_id=reservation_id,
            status=status,
        )


class UnknownOperationKind(WarehouseError):

    def __init__(self, kind):
        super().__init__(
            'UNKNOWN_OPERATION',
            f"Unknown operation kind: {kind!r}",
            kind=kind,
        )


class PersistenceFailure(WarehouseError):
    """Wraps database errors raised while a warehouse transaction was open."""

    def __init__(self, detail: str):
        super().__init__('PERSISTENCE_FAILURE', detail=detail)
