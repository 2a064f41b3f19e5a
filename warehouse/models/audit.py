"""
AuditLogEntry model — operational audit trail for every warehouse operation.
"""

from django.conf import settings
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from warehouse.models.enums import OperationKind
from warehouse.payloads import Metadata, decode_metadata


class AuditLogEntry(models.Model):
    """
    Before/after snapshot of one warehouse operation.

    Superset of the Move ledger: reservation create, cancel and expiry are
    recorded here too, with old_quantity == new_quantity.
    """

    operation_type = models.CharField(
        max_length=20,
        choices=OperationKind.choices,
        db_index=True,
        verbose_name=_('Operation'),
    )
    material = models.ForeignKey(
        'warehouse.Material',
        on_delete=models.CASCADE,
        related_name='audit_entries',
        verbose_name=_('Material'),
    )

    quantity = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        verbose_name=_('Requested quantity'),
    )
    old_quantity = models.DecimalField(max_digits=12, decimal_places=3, verbose_name=_('Before'))
    new_quantity = models.DecimalField(max_digits=12, decimal_places=3, verbose_name=_('After'))

    reason = models.CharField(max_length=255, verbose_name=_('Reason'))
    order_id = models.PositiveIntegerField(
        null=True,
        blank=True,
        db_index=True,
        verbose_name=_('Order'),
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('User'),
    )
    metadata = models.JSONField(default=dict, blank=True, verbose_name=_('Metadata'))

    created_at = models.DateTimeField(default=timezone.now, db_index=True, verbose_name=_('Timestamp'))

    class Meta:
        db_table = 'warehouse_audit_log'
        verbose_name = _('Audit log entry')
        verbose_name_plural = _('Audit log')
        indexes = [
            models.Index(fields=['material', 'created_at'], name='audit_material_created'),
        ]

    def save(self, *args, **kwargs):
        if self.pk:
            raise ValueError("Audit log entries are immutable.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Audit log entries are immutable.")

    @property
    def payload(self) -> Metadata:
        return decode_metadata(self.metadata)

    @property
    def delta(self):
        return self.new_quantity - self.old_quantity

    def __str__(self) -> str:
        return f"{self.operation_type} {self.material_id}: {self.old_quantity} → {self.new_quantity}"
