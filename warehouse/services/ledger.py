"""
Ledger writer — append-only Move ledger and audit log.

The writer has no business rules. It exists so that each executor step
produces exactly one Move/AuditLogEntry pair per quantity change.
"""

import logging
from decimal import Decimal

from django.db.models import Sum
from django.db.models.functions import Coalesce
from django.utils import timezone

from warehouse.conf import WarehouseSettings
from warehouse.models.audit import AuditLogEntry
from warehouse.models.move import Move
from warehouse.payloads import encode_metadata
from warehouse.predicates import Predicate, build_q

logger = logging.getLogger('warehouse')

HISTORY_COLUMNS = {'material_id', 'order_id', 'user_id', 'operation_type', 'created_at'}
MOVE_COLUMNS = {'material_id', 'order_id', 'user_id', 'created_at'}


class LedgerWriter:
    """Inserts ledger rows and answers history queries."""

    def __init__(self, config: WarehouseSettings):
        self.config = config

    # ══════════════════════════════════════════════════════════════
    # WRITES
    # ══════════════════════════════════════════════════════════════

    def record_move(self, material, delta: Decimal, reason: str,
                    order_id=None, user_id=None, at=None) -> Move:
        return Move.objects.create(
            material=material,
            delta=delta,
            reason=reason,
            order_id=order_id,
            user_id=user_id,
            created_at=at or timezone.now(),
        )

    def record_audit(self, operation_type, material, quantity: Decimal,
                     old_quantity: Decimal, new_quantity: Decimal, reason: str,
                     order_id=None, user_id=None, metadata=None, at=None) -> AuditLogEntry:
        return AuditLogEntry.objects.create(**self._audit_fields(
            operation_type, material, quantity, old_quantity, new_quantity,
            reason, order_id, user_id, metadata, at,
        ))

    def record_audits(self, entries) -> list[AuditLogEntry]:
        """
        Bulk insert audit entries.

        Args:
            entries: iterable of dicts with the record_audit() keyword arguments
        """
        rows = [AuditLogEntry(**self._audit_fields(**entry)) for entry in entries]
        return AuditLogEntry.objects.bulk_create(rows)

    @staticmethod
    def _audit_fields(operation_type, material, quantity, old_quantity, new_quantity,
                      reason, order_id=None, user_id=None, metadata=None, at=None):
        return {
            'operation_type': str(operation_type),
            'material': material,
            'quantity': quantity,
            'old_quantity': old_quantity,
            'new_quantity': new_quantity,
            'reason': reason,
            'order_id': order_id,
            'user_id': user_id,
            'metadata': encode_metadata(metadata),
            'created_at': at or timezone.now(),
        }

    # ══════════════════════════════════════════════════════════════
    # QUERIES
    # ══════════════════════════════════════════════════════════════

    def _limit(self, limit) -> int:
        if limit is None:
            return self.config.HISTORY_LIMIT
        return max(int(limit), 0)

    def get_operation_history(self, material_id=None, order_id=None,
                              limit=None, operation_type=None) -> list[AuditLogEntry]:
        """
        Audit entries, newest first.

        Args:
            material_id: Only this material (None = all)
            order_id: Only this order (None = all)
            limit: Max rows (None = HISTORY_LIMIT)
            operation_type: Only this OperationKind (None = all)
        """
        q = build_q([
            Predicate('material_id', '=', material_id),
            Predicate('order_id', '=', order_id),
            Predicate('operation_type', '=', operation_type),
        ], allowed=HISTORY_COLUMNS)

        qs = (
            AuditLogEntry.objects.filter(q)
            .select_related('material', 'user')
            .order_by('-created_at', '-pk')
        )
        return list(qs[:self._limit(limit)])

    def get_moves(self, material_id=None, order_id=None, limit=None) -> list[Move]:
        """Ledger moves, newest first."""
        q = build_q([
            Predicate('material_id', '=', material_id),
            Predicate('order_id', '=', order_id),
        ], allowed=MOVE_COLUMNS)
        qs = Move.objects.filter(q).order_by('-created_at', '-pk')
        return list(qs[:self._limit(limit)])

    def replay_quantity(self, material_id, until=None) -> Decimal:
        """
        Sum of deltas recorded for a material up to `until` (None = now).

        Equals on-hand quantity at that moment when every unit entered
        the warehouse through the executor.
        """
        q = build_q([
            Predicate('material_id', '=', material_id),
            Predicate('created_at', '<=', until),
        ], allowed=MOVE_COLUMNS)
        return Move.objects.filter(q).aggregate(
            t=Coalesce(Sum('delta'), Decimal('0'))
        )['t']

    def check_drift(self, material) -> Decimal:
        """
        Compare on-hand quantity with the ledger replay.

        Returns:
            quantity - replay (0 when consistent). A non-zero drift is logged.
        """
        drift = material.quantity - self.replay_quantity(material.pk)
        if drift:
            logger.warning(
                "ledger.drift",
                extra={
                    "material_id": material.pk,
                    "quantity": str(material.quantity),
                    "drift": str(drift),
                },
            )
        return drift
