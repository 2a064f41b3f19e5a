"""
Pytest fixtures for warehouse tests.
"""

from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model

from warehouse.conf import WarehouseSettings
from warehouse.models import Material
from warehouse.service import Warehouse


User = get_user_model()


@pytest.fixture
def config():
    return WarehouseSettings(
        RESERVATION_TTL_HOURS=24,
        EXPIRED_BATCH_SIZE=2,
        HISTORY_LIMIT=50,
        LOCK_TIMEOUT_MS=0,
    )


@pytest.fixture
def warehouse(config):
    """A Warehouse service with test settings."""
    return Warehouse(config)


@pytest.fixture
def user(db):
    """Create a test user."""
    return User.objects.create_user(
        username='storekeeper',
        password='testpass123'
    )


@pytest.fixture
def paper(db):
    """Paper A4: 100 sheets on hand, reorder at 20."""
    return Material.objects.create(
        name='Paper A4',
        unit='sheets',
        quantity=Decimal('100'),
        min_quantity=Decimal('20'),
        price_per_unit=Decimal('0.45'),
    )


@pytest.fixture
def toner(db):
    """Black toner: 5 cartridges on hand, reorder at 2."""
    return Material.objects.create(
        name='Toner black',
        unit='pcs',
        quantity=Decimal('5'),
        min_quantity=Decimal('2'),
        price_per_unit=Decimal('80.00'),
    )


@pytest.fixture
def empty_film(db):
    """Laminating film with nothing on hand."""
    return Material.objects.create(
        name='Laminating film',
        unit='m2',
        quantity=Decimal('0'),
        min_quantity=Decimal('10'),
    )

