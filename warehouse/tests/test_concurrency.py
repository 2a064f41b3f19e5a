"""
Concurrent writers against the same material.

These tests commit for real (transactional db) and run each writer on its
own thread with its own database connection.
"""

from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from threading import Barrier

import pytest
from django.db import connection

from warehouse.exceptions import InsufficientStock
from warehouse.models import Move, Reservation
from warehouse.services.transactions import OperationResult
from warehouse.tests.helpers import reload


def run_together(*calls):
    """Start every call at the same moment; return results or InsufficientStock errors."""
    barrier = Barrier(len(calls), timeout=30)

    def worker(call):
        try:
            barrier.wait()
            return call()
        except InsufficientStock as exc:
            return exc
        finally:
            connection.close()

    with ThreadPoolExecutor(max_workers=len(calls)) as executor:
        futures = [executor.submit(worker, call) for call in calls]
        return [future.result(timeout=60) for future in futures]


@pytest.mark.django_db(transaction=True)
class TestConcurrentWriters:

    def test_two_spends_of_all_stock(self, warehouse, paper):
        outcomes = run_together(
            lambda: warehouse.spend(paper.pk, 100, 'Job A'),
            lambda: warehouse.spend(paper.pk, 100, 'Job B'),
        )

        succeeded = [o for o in outcomes if isinstance(o, OperationResult)]
        failed = [o for o in outcomes if isinstance(o, InsufficientStock)]
        assert len(succeeded) == 1
        assert len(failed) == 1
        assert failed[0].available == Decimal('0')
        assert reload(paper).quantity == Decimal('0')
        assert Move.objects.filter(material=paper).count() == 1

    def test_two_reservations_exceeding_stock(self, warehouse, paper):
        outcomes = run_together(
            lambda: warehouse.reserve_materials([{'material_id': paper.pk, 'quantity': 60, 'order_id': 1}]),
            lambda: warehouse.reserve_materials([{'material_id': paper.pk, 'quantity': 60, 'order_id': 2}]),
        )

        failed = [o for o in outcomes if isinstance(o, InsufficientStock)]
        assert len(failed) == 1
        assert failed[0].available == Decimal('40')
        assert Reservation.objects.filter(material=paper).count() == 1
        assert warehouse.available_quantity(paper.pk) == Decimal('40')

    def test_many_small_spends_all_apply(self, warehouse, paper):
        outcomes = run_together(*[
            (lambda i=i: warehouse.spend(paper.pk, 10, f'Job {i}'))
            for i in range(5)
        ])

        assert all(isinstance(o, OperationResult) for o in outcomes)
        assert reload(paper).quantity == Decimal('50')
        assert warehouse.ledger.replay_quantity(paper.pk) == Decimal('-50')
