"""
Reservation manager — availability and the reservation lifecycle.

reserve_materials() is the only way to create reservations; it routes through
the executor, which checks availability under the material row lock.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from decimal import Decimal

from django.utils import timezone

from warehouse.conf import WarehouseSettings
from warehouse.db import atomic
from warehouse.exceptions import MaterialNotFound, ReservationNotFound, WarehouseError
from warehouse.models.enums import OperationKind, ReservationStatus
from warehouse.models.material import Material
from warehouse.models.reservation import Reservation
from warehouse.predicates import Predicate, build_q
from warehouse.services.availability import ZERO, as_requirement, available_for, to_material_pk
from warehouse.services.ledger import LedgerWriter
from warehouse.services.transactions import Operation, OperationResult, TransactionExecutor

logger = logging.getLogger('warehouse')

RESERVATION_COLUMNS = {'material_id', 'order_id', 'status', 'expires_at'}


@dataclass(frozen=True)
class Shortfall:
    material_id: int
    required: Decimal
    available: Decimal

    @property
    def shortfall(self) -> Decimal:
        return self.required - self.available


@dataclass(frozen=True)
class AvailabilityReport:
    ok: bool
    shortfalls: list[Shortfall] = field(default_factory=list)


class ReservationManager:
    """Availability queries and race-checked reservation transitions."""

    def __init__(self, config: WarehouseSettings, executor: TransactionExecutor,
                 ledger: LedgerWriter):
        self.config = config
        self.executor = executor
        self.ledger = ledger

    # ══════════════════════════════════════════════════════════════
    # QUERIES
    # ══════════════════════════════════════════════════════════════

    def available_quantity(self, material_id) -> Decimal:
        """
        On-hand quantity minus active reservations.

        Read-only and not locked; the value may be stale by the time a
        caller acts on it.

        Raises:
            MaterialNotFound
        """
        try:
            material = Material.objects.get(pk=to_material_pk(material_id))
        except Material.DoesNotExist:
            raise MaterialNotFound(material_id) from None
        return available_for(material)

    def check_availability(self, requirements) -> AvailabilityReport:
        """
        Advisory pre-check for a list of requirements.

        Requirements for the same material are summed. Unknown materials
        are reported with available=0. Passing this check does not
        guarantee a later reserve/spend succeeds.
        """
        totals: OrderedDict = OrderedDict()
        for requirement in map(as_requirement, requirements):
            totals[requirement.material_id] = (
                totals.get(requirement.material_id, ZERO) + requirement.quantity
            )

        pks = {}
        for material_id in totals:
            try:
                pks[material_id] = to_material_pk(material_id)
            except MaterialNotFound:
                continue

        materials = Material.objects.in_bulk(set(pks.values()))
        shortfalls = []
        for material_id, required in totals.items():
            material = materials.get(pks.get(material_id))
            available = available_for(material) if material is not None else ZERO
            if available < required:
                shortfalls.append(Shortfall(material_id, required, available))

        return AvailabilityReport(ok=not shortfalls, shortfalls=shortfalls)

    def reservations_for_order(self, order_id, active_only=False) -> list[Reservation]:
        return self._list(order_id=order_id, active_only=active_only)

    def reservations_for_material(self, material_id, active_only=False) -> list[Reservation]:
        return self._list(material_id=material_id, active_only=active_only)

    def _list(self, material_id=None, order_id=None, active_only=False):
        qs = Reservation.objects.filter(build_q([
            Predicate('material_id', '=', material_id),
            Predicate('order_id', '=', order_id),
        ], allowed=RESERVATION_COLUMNS))
        if active_only:
            qs = qs.active()
        return list(qs.select_related('material').order_by('-created_at', '-pk'))

    # ══════════════════════════════════════════════════════════════
    # LIFECYCLE
    # ══════════════════════════════════════════════════════════════

    def reserve_materials(self, requirements, expires_in_hours=None,
                          user_id=None) -> list[Reservation]:
        """
        Reserve every requirement, or none.

        Each requirement is checked against current availability inside
        the transaction, after locking the material row.

        Raises:
            InsufficientStock: naming the first material that falls short
            MaterialNotFound
        """
        operations = [
            Operation(
                kind=OperationKind.RESERVE,
                material_id=requirement.material_id,
                quantity=requirement.quantity,
                reason=requirement.reason,
                order_id=requirement.order_id,
                user_id=user_id,
                ttl_hours=expires_in_hours,
            )
            for requirement in map(as_requirement, requirements)
        ]
        results = self.executor.execute(operations)
        return [result.reservation for result in results]

    def unreserve(self, material_ids, order_id, reason='Reservation released',
                  user_id=None) -> list[OperationResult]:
        """Cancel every reserved row of `order_id` for the given materials."""
        return self.executor.execute([
            Operation(
                kind=OperationKind.UNRESERVE,
                material_id=material_id,
                quantity=ZERO,
                reason=reason,
                order_id=order_id,
                user_id=user_id,
            )
            for material_id in material_ids
        ])

    def cancel_reservations(self, reservation_ids, reason='Reservation cancelled',
                            user_id=None) -> int:
        """
        Cancel reservations by id.

        Transition: RESERVED -> CANCELLED. Rows in any other status are
        left alone.

        Returns:
            Number of reservations cancelled

        Raises:
            ReservationNotFound: If an id does not exist
        """
        ids = list(dict.fromkeys(reservation_ids))
        if not ids:
            return 0

        with atomic(self.config):
            now = timezone.now()
            reservations = self._lock_reservations(ids)

            pending = [r for r in reservations if r.status == ReservationStatus.RESERVED]
            if pending:
                Reservation.objects.filter(pk__in=[r.pk for r in pending]).update(
                    status=ReservationStatus.CANCELLED,
                    resolved_at=now,
                )
                self.ledger.record_audits(
                    {
                        'operation_type': OperationKind.UNRESERVE,
                        'material': r.material,
                        'quantity': r.quantity,
                        'old_quantity': r.material.quantity,
                        'new_quantity': r.material.quantity,
                        'reason': reason,
                        'order_id': r.order_id,
                        'user_id': user_id,
                        'metadata': {'reservation_id': r.pk},
                        'at': now,
                    }
                    for r in pending
                )

        logger.info(
            "reservations.cancelled",
            extra={
                "cancelled": len(pending),
                "skipped": len(reservations) - len(pending),
            },
        )
        return len(pending)

    def confirm_reservations(self, reservation_ids, user_id=None) -> list[OperationResult]:
        """
        Convert reservations into spends.

        Transition: RESERVED -> CONFIRMED, plus one spend per reservation
        in the same transaction. The reservation stops holding stock before
        its spend runs, so on-hand drops exactly once.

        Raises:
            ReservationNotFound: If an id is missing, not RESERVED, or expired
        """
        ids = list(dict.fromkeys(reservation_ids))
        if not ids:
            return []

        with atomic(self.config):
            now = timezone.now()
            reservations = self._lock_reservations(ids)

            for reservation in reservations:
                if reservation.status != ReservationStatus.RESERVED:
                    raise ReservationNotFound(reservation.pk, status=reservation.status)
                if reservation.expires_at <= now:
                    raise ReservationNotFound(reservation.pk, status=ReservationStatus.EXPIRED)

            Reservation.objects.filter(pk__in=ids).update(
                status=ReservationStatus.CONFIRMED,
                resolved_at=now,
            )

            results = self.executor.execute([
                Operation(
                    kind=OperationKind.SPEND,
                    material_id=r.material_id,
                    quantity=r.quantity,
                    reason=r.reason,
                    order_id=r.order_id,
                    user_id=user_id,
                    metadata={'reservation_id': r.pk},
                )
                for r in reservations
            ])

        logger.info(
            "reservations.confirmed",
            extra={"reservation_ids": ids},
        )
        return results

    def _lock_reservations(self, ids) -> list[Reservation]:
        """Lock the reservations' materials, then the reservations themselves."""
        material_ids = set(
            Reservation.objects.filter(pk__in=ids).values_list('material_id', flat=True)
        )
        list(Material.objects.locked(material_ids))
        found = {r.pk: r for r in Reservation.objects.locked(ids)}
        for pk in ids:
            if pk not in found:
                raise ReservationNotFound(pk)
        return [found[pk] for pk in ids]
