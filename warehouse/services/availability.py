"""
Availability helpers shared by the executor and the reservation manager.

available = on-hand quantity - active reservations
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from django.db.models import Sum
from django.db.models.functions import Coalesce

from warehouse.exceptions import MaterialNotFound, WarehouseError
from warehouse.models.reservation import Reservation

ZERO = Decimal('0')
QUANTUM = Decimal('0.001')
MAX_QUANTITY = Decimal('999999999.999')
DEFAULT_RESERVATION_REASON = 'Order reservation'


@dataclass(frozen=True)
class MaterialRequirement:
    """A request for `quantity` units of a material."""

    material_id: int
    quantity: Decimal
    order_id: int | None = None
    reason: str = DEFAULT_RESERVATION_REASON


def to_quantity(value, allow_zero: bool = False) -> Decimal:
    """
    Coerce value to Decimal and validate its sign.

    Quantities are stored with three decimal places; anything finer, or
    above MAX_QUANTITY, is rejected rather than rounded by the database.

    Raises:
        WarehouseError('INVALID_QUANTITY'): non-numeric, negative, too
            precise, too large, or zero when allow_zero is False
    """
    if isinstance(value, bool):
        raise WarehouseError('INVALID_QUANTITY', requested=value)
    try:
        quantity = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise WarehouseError('INVALID_QUANTITY', requested=value) from None

    if not quantity.is_finite() or quantity < 0 or (quantity == 0 and not allow_zero):
        raise WarehouseError('INVALID_QUANTITY', requested=value)
    if quantity > MAX_QUANTITY:
        raise WarehouseError('INVALID_QUANTITY', requested=value, maximum=MAX_QUANTITY)

    rounded = quantity.quantize(QUANTUM)
    if rounded != quantity:
        raise WarehouseError('INVALID_QUANTITY', requested=value, precision=QUANTUM)
    return rounded


def to_material_pk(material_id) -> int:
    """Coerce a material id to an int primary key."""
    try:
        return int(material_id)
    except (TypeError, ValueError):
        raise MaterialNotFound(material_id) from None


def as_requirement(obj) -> MaterialRequirement:
    """Accept a MaterialRequirement or a mapping with the same keys."""
    if isinstance(obj, MaterialRequirement):
        return MaterialRequirement(
            material_id=obj.material_id,
            quantity=to_quantity(obj.quantity),
            order_id=obj.order_id,
            reason=obj.reason or DEFAULT_RESERVATION_REASON,
        )
    try:
        material_id = obj['material_id']
        quantity = obj['quantity']
    except (KeyError, TypeError):
        raise WarehouseError('INVALID_QUANTITY', requirement=repr(obj)) from None
    return MaterialRequirement(
        material_id=material_id,
        quantity=to_quantity(quantity),
        order_id=obj.get('order_id'),
        reason=obj.get('reason') or DEFAULT_RESERVATION_REASON,
    )


def reserved_quantity(material_id, now=None) -> Decimal:
    """Sum of active reservations for a material."""
    return Reservation.objects.filter(material_id=material_id).active(now).aggregate(
        t=Coalesce(Sum('quantity'), ZERO)
    )['t']


def reserved_by_material(now=None) -> dict[int, Decimal]:
    """Active reserved totals keyed by material id, in one query."""
    rows = (
        Reservation.objects.active(now)
        .values('material_id')
        .annotate(t=Sum('quantity'))
        .order_by()
    )
    return {row['material_id']: row['t'] for row in rows}


def available_for(material, now=None) -> Decimal:
    """Available quantity for an already-loaded material, clamped at zero."""
    return max(material.quantity - reserved_quantity(material.pk, now), ZERO)
