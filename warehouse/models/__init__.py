"""
Warehouse Models.

Core models for stock bookkeeping:
- Material: On-hand quantity per stock item
- Reservation: Time-bounded holds against future consumption
- Move: Immutable ledger of quantity changes
- AuditLogEntry: Before/after trail of every operation
"""

from warehouse.models.audit import AuditLogEntry
from warehouse.models.enums import OperationKind, ReservationStatus
from warehouse.models.material import Material
from warehouse.models.move import Move
from warehouse.models.reservation import Reservation

__all__ = [
    'OperationKind',
    'ReservationStatus',
    'Material',
    'Reservation',
    'Move',
    'AuditLogEntry',
]
