"""
Stock reports — low stock check and warehouse-wide summary.

Usage:
    # Run periodically (celery beat, cron) or after stock changes
    hits = warehouse.low_stock()
    # Returns list of (Material, available) tuples
    summary = warehouse.stock_summary()

Delivery (Telegram, e-mail) is up to the caller.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal

from warehouse.models.material import Material
from warehouse.services.availability import ZERO, available_for, reserved_by_material

logger = logging.getLogger('warehouse')

CENT = Decimal('0.01')
WARNING_FACTOR = Decimal('1.5')


def check_low_stock(material_id=None) -> list[tuple[Material, Decimal]]:
    """
    Return materials whose available quantity is <= min_quantity.

    Args:
        material_id: Optional material to check (None = all).

    Returns:
        List of (material, available) tuples, lowest availability first.
    """
    qs = Material.objects.all()
    if material_id is not None:
        qs = qs.filter(pk=material_id)

    low = []
    for material in qs:
        available = available_for(material)
        if available <= material.min_quantity:
            low.append((material, available))
            logger.warning(
                "stock.low",
                extra={
                    "material_id": material.pk,
                    "material": material.name,
                    "min_quantity": str(material.min_quantity),
                    "available": str(available),
                },
            )

    low.sort(key=lambda item: item[1])
    return low


@dataclass(frozen=True)
class StockSummary:
    """Warehouse-wide stock counts and valuation."""

    total_materials: int
    in_stock: int
    warning: int
    low_stock: int
    out_of_stock: int
    total_value: Decimal
    reserved_value: Decimal
    available_value: Decimal

    @property
    def alerts(self) -> int:
        return self.low_stock + self.out_of_stock


def stock_status(available: Decimal, min_quantity: Decimal) -> str:
    """
    Classify a material by its available quantity.

    out: nothing available. low: at or below min_quantity.
    warning: within 1.5x min_quantity. ok: everything else.
    """
    if available <= 0:
        return 'out'
    if min_quantity and available <= min_quantity:
        return 'low'
    if min_quantity and available <= min_quantity * WARNING_FACTOR:
        return 'warning'
    return 'ok'


def stock_summary() -> StockSummary:
    """
    Count materials per stock status and value the stock at price_per_unit.

    Reserved value covers active reservations only.
    """
    reserved = reserved_by_material()
    counts = {'ok': 0, 'warning': 0, 'low': 0, 'out': 0}
    total_value = reserved_value = available_value = ZERO

    materials = list(Material.objects.all())
    for material in materials:
        held = reserved.get(material.pk, ZERO)
        available = max(material.quantity - held, ZERO)
        counts[stock_status(available, material.min_quantity)] += 1

        price = material.price_per_unit
        total_value += material.quantity * price
        reserved_value += held * price
        available_value += available * price

    summary = StockSummary(
        total_materials=len(materials),
        in_stock=counts['ok'],
        warning=counts['warning'],
        low_stock=counts['low'],
        out_of_stock=counts['out'],
        total_value=total_value.quantize(CENT),
        reserved_value=reserved_value.quantize(CENT),
        available_value=available_value.quantize(CENT),
    )
    logger.info(
        "stock.summary",
        extra={
            "materials": summary.total_materials,
            "alerts": summary.alerts,
            "total_value": str(summary.total_value),
        },
    )
    return summary
