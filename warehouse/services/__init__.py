"""
Warehouse services — modular organization of stock operations.

    from warehouse.services import (
        LedgerWriter, TransactionExecutor, ReservationManager, ExpirySweeper,
    )
"""

from warehouse.services.expiry import ExpirySweeper
from warehouse.services.ledger import LedgerWriter
from warehouse.services.reservations import ReservationManager
from warehouse.services.transactions import Operation, OperationResult, TransactionExecutor

__all__ = [
    'LedgerWriter',
    'TransactionExecutor',
    'ReservationManager',
    'ExpirySweeper',
    'Operation',
    'OperationResult',
]
