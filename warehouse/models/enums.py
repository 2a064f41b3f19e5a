"""
Enums for warehouse models.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class OperationKind(models.TextChoices):
    """
    Kind of warehouse operation.

    SPEND, ADD and ADJUST change on-hand quantity and write a ledger move.
    RESERVE and UNRESERVE only touch reservations.
    EXPIRE is written by the expiry sweep and is never submitted by callers.
    """
    SPEND = 'spend', _('Spend')
    ADD = 'add', _('Add')
    ADJUST = 'adjust', _('Adjust')
    RESERVE = 'reserve', _('Reserve')
    UNRESERVE = 'unreserve', _('Unreserve')
    EXPIRE = 'expire', _('Expire')


class ReservationStatus(models.TextChoices):
    """Reservation lifecycle status."""
    RESERVED = 'reserved', _('Reserved')     # Holding stock until expires_at
    CONFIRMED = 'confirmed', _('Confirmed')  # Converted into a spend
    CANCELLED = 'cancelled', _('Cancelled')  # Released by a caller
    EXPIRED = 'expired', _('Expired')        # Released by the expiry sweep
