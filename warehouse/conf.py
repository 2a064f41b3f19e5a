"""
Warehouse configuration.

Usage in settings.py:
    WAREHOUSE = {
        "RESERVATION_TTL_HOURS": 24,
        "EXPIRED_BATCH_SIZE": 200,
        "HISTORY_LIMIT": 100,
        "LOCK_TIMEOUT_MS": 5000,
    }

The settings object is built once when the app registry is ready
(see WarehouseConfig.ready) and handed to each service explicitly.
"""

from dataclasses import dataclass
from typing import Any

from django.conf import settings


@dataclass(frozen=True)
class WarehouseSettings:
    """Warehouse configuration settings."""

    # Default reservation lifetime in hours
    RESERVATION_TTL_HOURS: float = 24

    # Batch size for the expiry sweep
    EXPIRED_BATCH_SIZE: int = 200

    # Default number of rows returned by history queries
    HISTORY_LIMIT: int = 100

    # Lock wait timeout applied to each transaction on PostgreSQL (0 = server default)
    LOCK_TIMEOUT_MS: int = 5000


def get_warehouse_settings() -> WarehouseSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "WAREHOUSE", {})
    return WarehouseSettings(**{
        k: v for k, v in user_settings.items()
        if k in WarehouseSettings.__dataclass_fields__
    })
