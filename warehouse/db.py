"""
Transaction boundary shared by every warehouse entry point.
"""

from contextlib import contextmanager

from django.db import DatabaseError, connection, transaction

from warehouse.conf import WarehouseSettings
from warehouse.exceptions import PersistenceFailure


def _apply_lock_timeout(config: WarehouseSettings) -> None:
    """Bound row-lock waits for the current transaction (PostgreSQL only)."""
    if connection.vendor != 'postgresql' or not config.LOCK_TIMEOUT_MS:
        return
    with connection.cursor() as cursor:
        cursor.execute(
            "SELECT set_config('lock_timeout', %s, true)",
            [f"{int(config.LOCK_TIMEOUT_MS)}ms"],
        )


@contextmanager
def atomic(config: WarehouseSettings):
    """
    transaction.atomic() with a lock timeout and PersistenceFailure mapping.

    Any exception rolls the block back. DatabaseError is re-raised as
    PersistenceFailure; WarehouseError passes through unchanged.
    """
    try:
        with transaction.atomic():
            _apply_lock_timeout(config)
            yield
    except DatabaseError as exc:
        raise PersistenceFailure(str(exc)) from exc
