"""Django app configuration for the warehouse core."""

from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class WarehouseConfig(AppConfig):
    """
    Configuration for the warehouse app.

    Builds the Warehouse service once the registry is ready and keeps it
    here for the life of the process.
    """

    default_auto_field = "django.db.models.BigAutoField"
    name = "warehouse"
    verbose_name = _("Warehouse")

    service = None

    def ready(self):
        from warehouse.conf import get_warehouse_settings
        from warehouse.service import Warehouse

        self.service = Warehouse(get_warehouse_settings())
