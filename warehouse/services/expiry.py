"""
Expiry sweep — release reservations past their TTL.

Usage:
    # Run periodically (celery beat, cron) or before availability-sensitive work
    released = warehouse.cleanup_expired_reservations()
"""

import logging

from django.utils import timezone

from warehouse.conf import WarehouseSettings
from warehouse.db import atomic
from warehouse.models.enums import OperationKind, ReservationStatus
from warehouse.models.reservation import Reservation
from warehouse.services.ledger import LedgerWriter

logger = logging.getLogger('warehouse')


class ExpirySweeper:

    def __init__(self, config: WarehouseSettings, ledger: LedgerWriter):
        self.config = config
        self.ledger = ledger

    def count_expired(self, now=None) -> int:
        """How many reservations a sweep would release right now."""
        return Reservation.objects.expired(now).count()

    def cleanup_expired_reservations(self) -> int:
        """
        Flip RESERVED rows with expires_at <= now to EXPIRED.

        Returns:
            Number of reservations released

        Concurrency:
            - Each batch runs under its own transaction
            - Uses select_for_update() with SKIP LOCKED
            - Safe for multiple instances; re-running is a no-op
        """
        now = timezone.now()
        total = 0
        batch_size = self.config.EXPIRED_BATCH_SIZE

        while True:
            with atomic(self.config):
                batch = list(
                    Reservation.objects.select_for_update(skip_locked=True, of=('self',))
                    .expired(now)
                    .select_related('material')
                    .order_by('pk')[:batch_size]
                )

                if not batch:
                    break

                Reservation.objects.filter(pk__in=[r.pk for r in batch]).update(
                    status=ReservationStatus.EXPIRED,
                    resolved_at=now,
                )
                self.ledger.record_audits(
                    {
                        'operation_type': OperationKind.EXPIRE,
                        'material': r.material,
                        'quantity': r.quantity,
                        'old_quantity': r.material.quantity,
                        'new_quantity': r.material.quantity,
                        'reason': 'Reservation expired',
                        'order_id': r.order_id,
                        'metadata': {
                            'reservation_id': r.pk,
                            'expires_at': r.expires_at,
                        },
                        'at': now,
                    }
                    for r in batch
                )
                total += len(batch)

        if total:
            logger.info(
                "reservations.expired_released",
                extra={"released": total},
            )
        return total
