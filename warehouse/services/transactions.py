"""
Stock transactions — atomic batches of spend/add/adjust/reserve/unreserve.

All batches run under one transaction.atomic() block. Every material in the
batch is locked with select_for_update() before the first step runs.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Iterable

from django.utils import timezone

from warehouse.conf import WarehouseSettings
from warehouse.db import atomic
from warehouse.exceptions import (
    InsufficientStock,
    MaterialNotFound,
    UnknownOperationKind,
    WarehouseError,
)
from warehouse.models.enums import OperationKind, ReservationStatus
from warehouse.models.material import Material
from warehouse.models.reservation import Reservation
from warehouse.payloads import encode_metadata
from warehouse.services.availability import (
    MAX_QUANTITY,
    ZERO,
    available_for,
    reserved_quantity,
    to_material_pk,
    to_quantity,
)
from warehouse.services.ledger import LedgerWriter

logger = logging.getLogger('warehouse')


@dataclass(frozen=True)
class Operation:
    """
    One step of a transaction batch.

    For ADJUST, `quantity` is the new absolute on-hand quantity.
    For UNRESERVE, `quantity` is ignored; every reserved row of
    (material_id, order_id) is cancelled.
    """

    kind: str
    material_id: int
    quantity: Decimal
    reason: str
    order_id: int | None = None
    user_id: int | None = None
    metadata: dict[str, Any] | None = None
    ttl_hours: float | None = None


@dataclass(frozen=True)
class OperationResult:
    material_id: int
    old_quantity: Decimal
    new_quantity: Decimal
    operation: Operation
    timestamp: datetime
    reservation: Reservation | None = field(default=None, compare=False)

    @property
    def delta(self) -> Decimal:
        return self.new_quantity - self.old_quantity


class TransactionExecutor:
    """Runs operation batches against the Material stock store."""

    def __init__(self, config: WarehouseSettings, ledger: LedgerWriter):
        self.config = config
        self.ledger = ledger
        self._handlers = {
            OperationKind.SPEND: self._spend,
            OperationKind.ADD: self._add,
            OperationKind.ADJUST: self._adjust,
            OperationKind.RESERVE: self._reserve,
            OperationKind.UNRESERVE: self._unreserve,
        }

    # ══════════════════════════════════════════════════════════════
    # PUBLIC
    # ══════════════════════════════════════════════════════════════

    def execute(self, operations: Iterable[Operation]) -> list[OperationResult]:
        """
        Run all operations as one atomic unit, in list order.

        Returns:
            One OperationResult per operation.

        Raises:
            MaterialNotFound, InsufficientStock, UnknownOperationKind,
            WarehouseError('INVALID_QUANTITY'|'INVALID_TTL'|'REASON_REQUIRED'|'ORDER_REQUIRED'),
            PersistenceFailure. Nothing is applied when any step fails.
        """
        operations = list(operations)
        if not operations:
            return []

        try:
            with atomic(self.config):
                now = timezone.now()
                materials = self._lock_materials(operations)
                results = [self._apply(op, materials, now) for op in operations]
        except WarehouseError as exc:
            logger.warning(
                "stock.transaction.rolled_back",
                extra={
                    "operations": len(operations),
                    "code": exc.code,
                    "error": exc.message,
                },
            )
            raise

        logger.info(
            "stock.transaction.applied",
            extra={
                "operations": len(operations),
                "materials": sorted({r.material_id for r in results}),
            },
        )
        return results

    def spend(self, material_id, quantity, reason, order_id=None, user_id=None) -> OperationResult:
        """Consume stock. Fails with InsufficientStock past available quantity."""
        return self.execute([Operation(
            kind=OperationKind.SPEND,
            material_id=material_id,
            quantity=quantity,
            reason=reason,
            order_id=order_id,
            user_id=user_id,
        )])[0]

    def add(self, material_id, quantity, reason, order_id=None, user_id=None) -> OperationResult:
        """Receive stock."""
        return self.execute([Operation(
            kind=OperationKind.ADD,
            material_id=material_id,
            quantity=quantity,
            reason=reason,
            order_id=order_id,
            user_id=user_id,
        )])[0]

    def adjust(self, material_id, new_quantity, reason, user_id=None) -> OperationResult:
        """Set on-hand quantity to an absolute value (stock count)."""
        return self.execute([Operation(
            kind=OperationKind.ADJUST,
            material_id=material_id,
            quantity=new_quantity,
            reason=reason,
            user_id=user_id,
        )])[0]

    # ══════════════════════════════════════════════════════════════
    # INTERNALS
    # ══════════════════════════════════════════════════════════════

    def _lock_materials(self, operations) -> dict[int, Material]:
        pks = [to_material_pk(op.material_id) for op in operations]
        materials = {m.pk: m for m in Material.objects.locked(set(pks))}
        for op, pk in zip(operations, pks):
            if pk not in materials:
                raise MaterialNotFound(op.material_id)
        return materials

    def _apply(self, op: Operation, materials, now) -> OperationResult:
        try:
            kind = OperationKind(op.kind)
        except ValueError:
            raise UnknownOperationKind(op.kind) from None

        handler = self._handlers.get(kind)
        if handler is None:
            raise UnknownOperationKind(op.kind)

        if not op.reason:
            raise WarehouseError('REASON_REQUIRED', material_id=op.material_id)

        material = materials[to_material_pk(op.material_id)]
        return handler(op, material, now)

    def _spend(self, op, material, now):
        quantity = to_quantity(op.quantity)
        available = available_for(material, now)
        if available < quantity:
            raise InsufficientStock(material.pk, quantity, available, material.name)
        return self._write_quantity(
            OperationKind.SPEND, op, material, material.quantity - quantity, quantity, now,
        )

    def _add(self, op, material, now):
        quantity = to_quantity(op.quantity)
        new_quantity = material.quantity + quantity
        if new_quantity > MAX_QUANTITY:
            raise WarehouseError(
                'INVALID_QUANTITY', material_id=material.pk,
                requested=quantity, maximum=MAX_QUANTITY,
            )
        return self._write_quantity(
            OperationKind.ADD, op, material, new_quantity, quantity, now,
        )

    def _adjust(self, op, material, now):
        new_quantity = to_quantity(op.quantity, allow_zero=True)
        reserved = reserved_quantity(material.pk, now)
        if new_quantity < reserved:
            # Active holds must stay covered by on-hand stock
            raise InsufficientStock(material.pk, reserved, new_quantity, material.name)
        return self._write_quantity(
            OperationKind.ADJUST, op, material, new_quantity, new_quantity, now,
        )

    def _write_quantity(self, kind, op, material, new_quantity, requested, now):
        old_quantity = material.quantity

        Material.objects.filter(pk=material.pk).update(
            quantity=new_quantity,
            updated_at=now,
        )
        material.quantity = new_quantity

        self.ledger.record_move(
            material, new_quantity - old_quantity, op.reason,
            order_id=op.order_id, user_id=op.user_id, at=now,
        )
        self.ledger.record_audit(
            kind, material, requested, old_quantity, new_quantity, op.reason,
            order_id=op.order_id, user_id=op.user_id, metadata=op.metadata, at=now,
        )
        logger.info(
            f"stock.{kind}",
            extra={
                "material_id": material.pk,
                "qty": str(requested),
                "old": str(old_quantity),
                "new": str(new_quantity),
                "reason": op.reason,
                "order_id": op.order_id,
            },
        )
        return OperationResult(
            material_id=material.pk,
            old_quantity=old_quantity,
            new_quantity=new_quantity,
            operation=op,
            timestamp=now,
        )

    def _expires_at(self, ttl_hours, now) -> datetime:
        """Reservation expiry; ttl_hours accepts numbers and numeric strings."""
        if ttl_hours is None:
            ttl_hours = self.config.RESERVATION_TTL_HOURS
        if isinstance(ttl_hours, bool):
            raise WarehouseError('INVALID_TTL', ttl_hours=ttl_hours)
        try:
            hours = float(ttl_hours)
            if not math.isfinite(hours) or hours <= 0:
                raise ValueError(ttl_hours)
            return now + timedelta(hours=hours)
        except (TypeError, ValueError, OverflowError):
            raise WarehouseError('INVALID_TTL', ttl_hours=str(ttl_hours)) from None

    def _reserve(self, op, material, now):
        quantity = to_quantity(op.quantity)
        expires_at = self._expires_at(op.ttl_hours, now)

        available = available_for(material, now)
        if available < quantity:
            raise InsufficientStock(material.pk, quantity, available, material.name)

        reservation = Reservation.objects.create(
            material=material,
            order_id=op.order_id,
            quantity=quantity,
            status=ReservationStatus.RESERVED,
            reason=op.reason,
            created_at=now,
            expires_at=expires_at,
            user_id=op.user_id,
            metadata=encode_metadata(op.metadata),
        )
        self.ledger.record_audit(
            OperationKind.RESERVE, material, quantity, material.quantity, material.quantity,
            op.reason, order_id=op.order_id, user_id=op.user_id,
            metadata=dict(
                op.metadata or {},
                reservation_id=reservation.pk,
                expires_at=reservation.expires_at,
            ),
            at=now,
        )
        logger.info(
            "reservation.created",
            extra={
                "material_id": material.pk,
                "qty": str(quantity),
                "order_id": op.order_id,
                "reservation_id": reservation.pk,
                "expires_at": reservation.expires_at.isoformat(),
            },
        )
        return OperationResult(
            material_id=material.pk,
            old_quantity=material.quantity,
            new_quantity=material.quantity,
            operation=op,
            timestamp=now,
            reservation=reservation,
        )

    def _unreserve(self, op, material, now):
        if op.order_id is None:
            raise WarehouseError('ORDER_REQUIRED', material_id=material.pk)

        held = list(
            Reservation.objects.select_for_update()
            .filter(material=material, order_id=op.order_id, status=ReservationStatus.RESERVED)
            .order_by('pk')
        )
        released = sum((r.quantity for r in held), ZERO)
        if held:
            Reservation.objects.filter(pk__in=[r.pk for r in held]).update(
                status=ReservationStatus.CANCELLED,
                resolved_at=now,
            )

        self.ledger.record_audit(
            OperationKind.UNRESERVE, material, released, material.quantity, material.quantity,
            op.reason, order_id=op.order_id, user_id=op.user_id,
            metadata=dict(op.metadata or {}, reservation_ids=[r.pk for r in held]),
            at=now,
        )
        logger.info(
            "reservation.unreserved",
            extra={
                "material_id": material.pk,
                "order_id": op.order_id,
                "released": str(released),
                "count": len(held),
            },
        )
        return OperationResult(
            material_id=material.pk,
            old_quantity=material.quantity,
            new_quantity=material.quantity,
            operation=op,
            timestamp=now,
        )
