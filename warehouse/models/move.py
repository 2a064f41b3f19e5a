"""
Move model — append-only stock ledger for materials.
"""

from django.conf import settings
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class Move(models.Model):
    """
    Immutable record of a quantity change.

    Rows are insert-only. A wrong entry is fixed by a compensating Move.
    Every spend, add and adjust writes exactly one Move through the
    LedgerWriter.

    Summing deltas up to a moment replays on-hand quantity at that moment.
    """

    material = models.ForeignKey(
        'warehouse.Material',
        on_delete=models.CASCADE,
        related_name='moves',
        verbose_name=_('Material'),
    )

    delta = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        verbose_name=_('Delta'),
        help_text=_('Positive = stock in, negative = stock out'),
    )

    reason = models.CharField(
        max_length=255,
        verbose_name=_('Reason'),
        help_text=_('Required. E.g. "Print job #123", "Stock count"'),
    )
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

    created_at = models.DateTimeField(default=timezone.now, db_index=True, verbose_name=_('Timestamp'))

    class Meta:
        db_table = 'material_moves'
        verbose_name = _('Move')
        verbose_name_plural = _('Moves')
        ordering = ['created_at', 'pk']
        indexes = [
            models.Index(fields=['material', 'created_at'], name='move_material_created'),
        ]

    def save(self, *args, **kwargs):
        """Insert only."""
        if self.pk:
            raise ValueError(
                "Moves are immutable. "
                "To correct one, record a new Move with the inverse delta."
            )

        if not self.reason:
            raise ValueError("Reason is required")

        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        """Ledger rows are never removed."""
        raise ValueError(
            "Moves are immutable. "
            "To reverse one, record a new Move with the inverse delta."
        )

    def __str__(self) -> str:
        return f"{self.delta:+} material #{self.material_id} ({self.reason})"
