"""Small helpers shared by the warehouse tests."""

from datetime import timedelta

from django.utils import timezone

from warehouse.models import Reservation


def make_expired(reservation, hours=1):
    """Push a reservation's expiry into the past."""
    Reservation.objects.filter(pk=reservation.pk).update(
        expires_at=timezone.now() - timedelta(hours=hours)
    )
    reservation.refresh_from_db()
    return reservation


def reload(obj):
    obj.refresh_from_db()
    return obj
