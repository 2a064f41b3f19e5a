"""
Warehouse — stock transactions and reservations for the print shop.

Usage:
    from warehouse import get_warehouse, WarehouseError

    warehouse = get_warehouse()
    warehouse.spend(paper.pk, 70, 'Print job')
    warehouse.available_quantity(paper.pk)
"""


def get_warehouse():
    """Return the Warehouse service built by the app config at startup."""
    from django.apps import apps
    return apps.get_app_config('warehouse').service


def __getattr__(name):
    """Lazy import to avoid circular imports during app loading."""
    if name == 'Warehouse':
        from warehouse.service import Warehouse
        return Warehouse
    elif name == 'WarehouseSettings':
        from warehouse.conf import WarehouseSettings
        return WarehouseSettings
    elif name == 'Operation':
        from warehouse.services.transactions import Operation
        return Operation
    elif name in ('WarehouseError', 'MaterialNotFound', 'InsufficientStock',
                  'ReservationNotFound', 'UnknownOperationKind', 'PersistenceFailure'):
        from warehouse import exceptions
        return getattr(exceptions, name)
    elif name in ('Material', 'Reservation', 'Move', 'AuditLogEntry',
                  'OperationKind', 'ReservationStatus'):
        from warehouse import models
        return getattr(models, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
