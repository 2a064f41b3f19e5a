"""
Tests for the reservation lifecycle: availability, reserve, cancel, confirm.
"""

from decimal import Decimal

import pytest

from warehouse.exceptions import (
    InsufficientStock,
    MaterialNotFound,
    ReservationNotFound,
    WarehouseError,
)
from warehouse.models import AuditLogEntry, Move, OperationKind, Reservation, ReservationStatus
from warehouse.models.material import MaterialQuerySet
from warehouse.models.reservation import ReservationQuerySet
from warehouse.services.availability import DEFAULT_RESERVATION_REASON, MaterialRequirement
from warehouse.tests.helpers import make_expired, reload


pytestmark = pytest.mark.django_db


def reserve(warehouse, material, quantity, order_id=None, **kwargs):
    [reservation] = warehouse.reserve_materials(
        [{'material_id': material.pk, 'quantity': quantity, 'order_id': order_id}],
        **kwargs,
    )
    return reservation


class TestAvailableQuantity:
    """Tests for warehouse.available_quantity()."""

    def test_no_reservations(self, warehouse, paper):
        assert warehouse.available_quantity(paper.pk) == Decimal('100')

    def test_active_reservation_reduces_available(self, warehouse, paper):
        reserve(warehouse, paper, 30)

        assert warehouse.available_quantity(paper.pk) == Decimal('70')
        assert reload(paper).quantity == Decimal('100')

    def test_expired_reservation_ignored_before_sweep(self, warehouse, paper):
        reservation = reserve(warehouse, paper, 30)
        make_expired(reservation)

        assert reservation.status == ReservationStatus.RESERVED
        assert warehouse.available_quantity(paper.pk) == Decimal('100')

    def test_cancelled_reservation_ignored(self, warehouse, paper):
        reservation = reserve(warehouse, paper, 30)
        warehouse.cancel_reservations([reservation.pk])

        assert warehouse.available_quantity(paper.pk) == Decimal('100')

    def test_unknown_material(self, warehouse, db):
        with pytest.raises(MaterialNotFound):
            warehouse.available_quantity(999999)


class TestCheckAvailability:
    """Tests for warehouse.check_availability()."""

    def test_everything_fits(self, warehouse, paper, toner):
        report = warehouse.check_availability([
            {'material_id': paper.pk, 'quantity': 50},
            MaterialRequirement(material_id=toner.pk, quantity=Decimal('5')),
        ])

        assert report.ok is True
        assert report.shortfalls == []

    def test_reports_each_shortfall(self, warehouse, paper, toner):
        report = warehouse.check_availability([
            {'material_id': paper.pk, 'quantity': 50},
            {'material_id': toner.pk, 'quantity': 8},
        ])

        assert report.ok is False
        [shortfall] = report.shortfalls
        assert shortfall.material_id == toner.pk
        assert shortfall.required == Decimal('8')
        assert shortfall.available == Decimal('5')
        assert shortfall.shortfall == Decimal('3')

    def test_sums_requirements_for_same_material(self, warehouse, paper):
        report = warehouse.check_availability([
            {'material_id': paper.pk, 'quantity': 60},
            {'material_id': paper.pk, 'quantity': 60},
        ])

        assert report.ok is False
        assert report.shortfalls[0].required == Decimal('120')
        assert report.shortfalls[0].available == Decimal('100')

    def test_unknown_material_reported_unavailable(self, warehouse, db):
        report = warehouse.check_availability([{'material_id': 999999, 'quantity': 1}])

        assert report.ok is False
        assert report.shortfalls[0].available == Decimal('0')

    def test_accounts_for_reservations(self, warehouse, paper):
        reserve(warehouse, paper, 90)

        report = warehouse.check_availability([{'material_id': paper.pk, 'quantity': 20}])

        assert report.shortfalls[0].available == Decimal('10')

    def test_is_read_only(self, warehouse, paper):
        warehouse.check_availability([{'material_id': paper.pk, 'quantity': 500}])

        assert not Reservation.objects.exists()
        assert not AuditLogEntry.objects.exists()

    def test_non_numeric_material_id_reported_unavailable(self, warehouse, paper):
        report = warehouse.check_availability([
            {'material_id': 'paper-a4', 'quantity': 1},
            {'material_id': paper.pk, 'quantity': 10},
        ])

        assert report.ok is False
        [shortfall] = report.shortfalls
        assert shortfall.material_id == 'paper-a4'
        assert shortfall.available == Decimal('0')

    def test_non_numeric_material_id_not_found(self, warehouse, db):
        with pytest.raises(MaterialNotFound):
            warehouse.available_quantity('paper-a4')

    def test_invalid_quantity(self, warehouse, paper):
        with pytest.raises(WarehouseError) as exc:
            warehouse.check_availability([{'material_id': paper.pk, 'quantity': -1}])

        assert exc.value.code == 'INVALID_QUANTITY'


class TestReserveMaterials:
    """Tests for warehouse.reserve_materials()."""

    def test_creates_reservations(self, warehouse, paper, toner, user):
        reservations = warehouse.reserve_materials(
            [
                {'material_id': paper.pk, 'quantity': 30, 'order_id': 7, 'reason': 'Order #7 flyers'},
                {'material_id': toner.pk, 'quantity': 1, 'order_id': 7},
            ],
            expires_in_hours=48,
            user_id=user.pk,
        )

        assert len(reservations) == 2
        flyers, ink = reservations
        assert flyers.material == paper
        assert flyers.reason == 'Order #7 flyers'
        assert ink.reason == DEFAULT_RESERVATION_REASON
        assert all(r.status == ReservationStatus.RESERVED for r in reservations)
        assert all(r.order_id == 7 for r in reservations)
        assert reload(flyers).user == user

    def test_does_not_touch_on_hand(self, warehouse, paper):
        reserve(warehouse, paper, 30)

        assert reload(paper).quantity == Decimal('100')
        assert not Move.objects.exists()

    def test_writes_reserve_audit_entries(self, warehouse, paper):
        reservation = reserve(warehouse, paper, 30, order_id=3)

        entry = AuditLogEntry.objects.get(operation_type=OperationKind.RESERVE)
        assert entry.order_id == 3
        assert entry.quantity == Decimal('30')
        assert entry.old_quantity == entry.new_quantity == Decimal('100')
        assert entry.payload.get('reservation_id') == reservation.pk

    def test_all_or_nothing(self, warehouse, paper, toner):
        with pytest.raises(InsufficientStock) as exc:
            warehouse.reserve_materials([
                {'material_id': paper.pk, 'quantity': 30},
                {'material_id': toner.pk, 'quantity': 10},
            ])

        assert exc.value.data['material'] == 'Toner black'
        assert 'Toner black' in str(exc.value)
        assert not Reservation.objects.exists()
        assert not AuditLogEntry.objects.exists()

    def test_later_reservation_sees_earlier_one(self, warehouse, paper):
        reserve(warehouse, paper, 60, order_id=1)

        with pytest.raises(InsufficientStock) as exc:
            reserve(warehouse, paper, 60, order_id=2)

        assert exc.value.available == Decimal('40')
        assert Reservation.objects.count() == 1

    def test_nothing_on_hand(self, warehouse, empty_film):
        with pytest.raises(InsufficientStock) as exc:
            reserve(warehouse, empty_film, 1)

        assert exc.value.available == Decimal('0')

    def test_unknown_material(self, warehouse, paper):
        with pytest.raises(MaterialNotFound):
            warehouse.reserve_materials([
                {'material_id': paper.pk, 'quantity': 1},
                {'material_id': 999999, 'quantity': 1},
            ])

        assert not Reservation.objects.exists()


class TestCancelReservations:
    """Tests for warehouse.cancel_reservations()."""

    def test_cancel_restores_availability(self, warehouse, paper):
        reservation = reserve(warehouse, paper, 30)

        cancelled = warehouse.cancel_reservations([reservation.pk])

        assert cancelled == 1
        reservation = reload(reservation)
        assert reservation.status == ReservationStatus.CANCELLED
        assert reservation.resolved_at is not None
        assert warehouse.available_quantity(paper.pk) == Decimal('100')

    def test_cancel_is_idempotent(self, warehouse, paper):
        reservation = reserve(warehouse, paper, 30)

        assert warehouse.cancel_reservations([reservation.pk]) == 1
        assert warehouse.cancel_reservations([reservation.pk]) == 0
        assert AuditLogEntry.objects.filter(operation_type=OperationKind.UNRESERVE).count() == 1

    def test_cancel_skips_confirmed(self, warehouse, paper):
        reservation = reserve(warehouse, paper, 30)
        warehouse.confirm_reservations([reservation.pk])

        assert warehouse.cancel_reservations([reservation.pk]) == 0
        assert reload(reservation).status == ReservationStatus.CONFIRMED
        assert reload(paper).quantity == Decimal('70')

    def test_cancel_unknown_id_aborts_batch(self, warehouse, paper):
        reservation = reserve(warehouse, paper, 30)

        with pytest.raises(ReservationNotFound) as exc:
            warehouse.cancel_reservations([reservation.pk, 999999])

        assert exc.value.data['reservation_id'] == 999999
        assert reload(reservation).status == ReservationStatus.RESERVED

    def test_cancel_writes_audit_entry(self, warehouse, paper, user):
        reservation = reserve(warehouse, paper, 30, order_id=9)

        warehouse.cancel_reservations([reservation.pk], reason='Customer cancelled', user_id=user.pk)

        entry = AuditLogEntry.objects.get(operation_type=OperationKind.UNRESERVE)
        assert entry.reason == 'Customer cancelled'
        assert entry.order_id == 9
        assert entry.user == user
        assert entry.payload.get('reservation_id') == reservation.pk

    def test_cancel_empty_list(self, warehouse, db):
        assert warehouse.cancel_reservations([]) == 0


class TestConfirmReservations:
    """Tests for warehouse.confirm_reservations()."""

    def test_confirm_spends_reserved_quantity_once(self, warehouse, paper):
        reservation = reserve(warehouse, paper, 30, order_id=4)

        [result] = warehouse.confirm_reservations([reservation.pk])

        assert result.old_quantity == Decimal('100')
        assert result.new_quantity == Decimal('70')
        assert reload(paper).quantity == Decimal('70')
        assert warehouse.available_quantity(paper.pk) == Decimal('70')
        assert reload(reservation).status == ReservationStatus.CONFIRMED

    def test_confirm_writes_spend_move(self, warehouse, paper):
        reservation = reserve(warehouse, paper, 30, order_id=4)

        warehouse.confirm_reservations([reservation.pk])

        move = Move.objects.get(material=paper)
        assert move.delta == Decimal('-30')
        assert move.order_id == 4
        entry = AuditLogEntry.objects.get(operation_type=OperationKind.SPEND)
        assert entry.payload.get('reservation_id') == reservation.pk

    def test_confirm_cancelled(self, warehouse, paper):
        reservation = reserve(warehouse, paper, 30)
        warehouse.cancel_reservations([reservation.pk])

        with pytest.raises(ReservationNotFound) as exc:
            warehouse.confirm_reservations([reservation.pk])

        assert exc.value.data['status'] == ReservationStatus.CANCELLED
        assert reload(paper).quantity == Decimal('100')

    def test_confirm_expired(self, warehouse, paper):
        reservation = make_expired(reserve(warehouse, paper, 30))

        with pytest.raises(ReservationNotFound) as exc:
            warehouse.confirm_reservations([reservation.pk])

        assert exc.value.data['status'] == ReservationStatus.EXPIRED
        assert reload(reservation).status == ReservationStatus.RESERVED
        assert reload(paper).quantity == Decimal('100')

    def test_confirm_twice(self, warehouse, paper):
        reservation = reserve(warehouse, paper, 30)
        warehouse.confirm_reservations([reservation.pk])

        with pytest.raises(ReservationNotFound):
            warehouse.confirm_reservations([reservation.pk])

        assert reload(paper).quantity == Decimal('70')

    def test_confirm_batch_rolls_back(self, warehouse, paper, toner):
        good = reserve(warehouse, paper, 30)
        bad = reserve(warehouse, toner, 2)
        warehouse.cancel_reservations([bad.pk])

        with pytest.raises(ReservationNotFound):
            warehouse.confirm_reservations([good.pk, bad.pk])

        assert reload(good).status == ReservationStatus.RESERVED
        assert reload(paper).quantity == Decimal('100')
        assert not Move.objects.exists()

    def test_confirm_after_stock_count_shortfall(self, warehouse, paper):
        reservation = reserve(warehouse, paper, 30)
        warehouse.adjust(paper.pk, 30, 'Stock count')

        warehouse.confirm_reservations([reservation.pk])

        assert reload(paper).quantity == Decimal('0')


class TestReservationQueries:

    def test_reservations_for_order(self, warehouse, paper, toner):
        first = reserve(warehouse, paper, 10, order_id=12)
        second = reserve(warehouse, toner, 1, order_id=12)
        reserve(warehouse, paper, 5, order_id=13)

        found = warehouse.reservations_for_order(12)

        assert [r.pk for r in found] == [second.pk, first.pk]

    def test_active_only(self, warehouse, paper):
        kept = reserve(warehouse, paper, 10, order_id=12)
        gone = reserve(warehouse, paper, 5, order_id=12)
        warehouse.cancel_reservations([gone.pk])

        found = warehouse.reservations_for_order(12, active_only=True)

        assert [r.pk for r in found] == [kept.pk]

    def test_reservations_for_material(self, warehouse, paper, toner):
        reserve(warehouse, paper, 10)
        reserve(warehouse, toner, 1)

        found = warehouse.reservations.reservations_for_material(toner.pk)

        assert [r.material_id for r in found] == [toner.pk]


class TestLockOrder:
    """Materials are always locked before reservations."""

    @pytest.fixture
    def lock_calls(self, monkeypatch):
        calls = []
        material_locked = MaterialQuerySet.locked
        reservation_locked = ReservationQuerySet.locked

        def lock_materials(qs, ids):
            calls.append('material')
            return material_locked(qs, ids)

        def lock_reservations(qs, ids):
            calls.append('reservation')
            return reservation_locked(qs, ids)

        monkeypatch.setattr(MaterialQuerySet, 'locked', lock_materials)
        monkeypatch.setattr(ReservationQuerySet, 'locked', lock_reservations)
        return calls

    def test_confirm(self, warehouse, paper, lock_calls):
        reservation = reserve(warehouse, paper, 30)
        lock_calls.clear()

        warehouse.confirm_reservations([reservation.pk])

        assert lock_calls[:2] == ['material', 'reservation']
        assert reload(paper).quantity == Decimal('70')

    def test_cancel(self, warehouse, paper, lock_calls):
        reservation = reserve(warehouse, paper, 30)
        lock_calls.clear()

        warehouse.cancel_reservations([reservation.pk])

        assert lock_calls == ['material', 'reservation']
