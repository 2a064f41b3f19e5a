"""
Reservation model — time-bounded hold on material stock.
"""

from django.conf import settings
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from warehouse.models.enums import ReservationStatus
from warehouse.payloads import Metadata, decode_metadata


class ReservationQuerySet(models.QuerySet):

    def active(self, now=None):
        """
        Reservations currently holding stock.

        A row still marked RESERVED stops counting once expires_at passes,
        whether or not the expiry sweep has flipped it yet.
        """
        now = now or timezone.now()
        return self.filter(status=ReservationStatus.RESERVED, expires_at__gt=now)

    def expired(self, now=None):
        """Reservations past their TTL that the sweep has not released."""
        now = now or timezone.now()
        return self.filter(status=ReservationStatus.RESERVED, expires_at__lte=now)

    def locked(self, reservation_ids):
        """
        Lock the given reservations, with their materials joined in.

        Callers lock the materials first (MaterialQuerySet.locked).
        """
        return (
            self.select_for_update(of=('self',))
            .filter(pk__in=reservation_ids)
            .select_related('material')
            .order_by('pk')
        )


class Reservation(models.Model):
    """
    Soft hold against future consumption of a material.

    LIFECYCLE:

        RESERVED ──confirm──► CONFIRMED   (stock spent once)
            │
            ├──cancel/unreserve──► CANCELLED
            │
            └──expiry sweep──► EXPIRED

    A reservation never changes on-hand quantity by itself; only
    confirmation does, through a regular spend.
    """

    material = models.ForeignKey(
        'warehouse.Material',
        on_delete=models.CASCADE,
        related_name='reservations',
        verbose_name=_('Material'),
    )
    order_id = models.PositiveIntegerField(
        null=True,
        blank=True,
        db_index=True,
        verbose_name=_('Order'),
    )

    quantity = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        verbose_name=_('Quantity'),
    )
    status = models.CharField(
        max_length=20,
        choices=ReservationStatus.choices,
        default=ReservationStatus.RESERVED,
        db_index=True,
        verbose_name=_('Status'),
    )
    reason = models.CharField(max_length=255, verbose_name=_('Reason'))

    created_at = models.DateTimeField(default=timezone.now)
    expires_at = models.DateTimeField(
        db_index=True,
        verbose_name=_('Expires at'),
        help_text=_('Past this moment the hold no longer counts against availability'),
    )
    resolved_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name=_('Resolved at'),
        help_text=_('When the reservation was confirmed, cancelled or expired'),
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('User'),
    )
    metadata = models.JSONField(default=dict, blank=True)

    objects = ReservationQuerySet.as_manager()

    class Meta:
        db_table = 'material_reservations'
        verbose_name = _('Reservation')
        verbose_name_plural = _('Reservations')
        indexes = [
            models.Index(fields=['material', 'status', 'expires_at'], name='reservation_material_active'),
            models.Index(fields=['status', 'expires_at'], name='reservation_status_expiry'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gt=0),
                name='reservation_quantity_positive',
            ),
        ]

    @property
    def payload(self) -> Metadata:
        return decode_metadata(self.metadata)

    def __str__(self) -> str:
        order = f" order #{self.order_id}" if self.order_id else ""
        return f"{self.quantity}x {self.material_id}{order} [{self.status}]"
