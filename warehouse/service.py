"""
Warehouse Service — The single public interface for stock operations.

Usage:
    from warehouse import get_warehouse, WarehouseError

    warehouse = get_warehouse()
    warehouse.add(paper.pk, 100, 'Supplier delivery')
    [res] = warehouse.reserve_materials([{'material_id': paper.pk, 'quantity': 30}])
    warehouse.available_quantity(paper.pk)  # 70
    warehouse.confirm_reservations([res.pk])
"""

from warehouse.conf import WarehouseSettings, get_warehouse_settings
from warehouse.services.alerts import check_low_stock, stock_summary
from warehouse.services.expiry import ExpirySweeper
from warehouse.services.ledger import LedgerWriter
from warehouse.services.reservations import ReservationManager
from warehouse.services.transactions import TransactionExecutor


class Warehouse:
    """
    Facade over the ledger, executor, reservation manager and sweeper.

    All components share the WarehouseSettings passed in. The app config
    builds one instance at startup; tests build their own.

    IMPORTANT: All state-changing methods run inside one atomic
    transaction with row locks. See each component's docstrings.
    """

    def __init__(self, config: WarehouseSettings | None = None):
        self.config = config or get_warehouse_settings()
        self.ledger = LedgerWriter(self.config)
        self.transactions = TransactionExecutor(self.config, self.ledger)
        self.reservations = ReservationManager(self.config, self.transactions, self.ledger)
        self.sweeper = ExpirySweeper(self.config, self.ledger)

    # ══════════════════════════════════════════════════════════════
    # MOVEMENTS
    # ══════════════════════════════════════════════════════════════

    def execute(self, operations):
        return self.transactions.execute(operations)

    def spend(self, material_id, quantity, reason, order_id=None, user_id=None):
        return self.transactions.spend(material_id, quantity, reason, order_id, user_id)

    def add(self, material_id, quantity, reason, order_id=None, user_id=None):
        return self.transactions.add(material_id, quantity, reason, order_id, user_id)

    def adjust(self, material_id, new_quantity, reason, user_id=None):
        return self.transactions.adjust(material_id, new_quantity, reason, user_id)

    # ══════════════════════════════════════════════════════════════
    # RESERVATIONS
    # ══════════════════════════════════════════════════════════════

    def available_quantity(self, material_id):
        return self.reservations.available_quantity(material_id)

    def check_availability(self, requirements):
        return self.reservations.check_availability(requirements)

    def reserve_materials(self, requirements, expires_in_hours=None, user_id=None):
        return self.reservations.reserve_materials(requirements, expires_in_hours, user_id)

    def confirm_reservations(self, reservation_ids, user_id=None):
        return self.reservations.confirm_reservations(reservation_ids, user_id)

    def cancel_reservations(self, reservation_ids, reason='Reservation cancelled', user_id=None):
        return self.reservations.cancel_reservations(reservation_ids, reason, user_id)

    def unreserve(self, material_ids, order_id, reason='Reservation released', user_id=None):
        return self.reservations.unreserve(material_ids, order_id, reason, user_id)

    def reservations_for_order(self, order_id, active_only=False):
        return self.reservations.reservations_for_order(order_id, active_only)

    def cleanup_expired_reservations(self):
        return self.sweeper.cleanup_expired_reservations()

    # ══════════════════════════════════════════════════════════════
    # HISTORY & REPORTS
    # ══════════════════════════════════════════════════════════════

    def get_operation_history(self, material_id=None, order_id=None, limit=None,
                              operation_type=None):
        return self.ledger.get_operation_history(material_id, order_id, limit, operation_type)

    def get_moves(self, material_id=None, order_id=None, limit=None):
        return self.ledger.get_moves(material_id, order_id, limit)

    def low_stock(self, material_id=None):
        return check_low_stock(material_id)

    def stock_summary(self):
        return stock_summary()
