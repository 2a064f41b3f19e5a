"""
Material model — on-hand quantity per stock item.
"""

from decimal import Decimal

from django.db import models
from django.utils.translation import gettext_lazy as _


class MaterialQuerySet(models.QuerySet):

    def locked(self, material_ids):
        """
        Lock the given materials for the rest of the transaction.

        Lock order is global: materials first, in primary-key order, then
        any reservation rows (ReservationQuerySet.locked). Every writer
        follows it, so two transactions never wait on each other in a cycle.
        """
        return self.select_for_update().filter(pk__in=material_ids).order_by('pk')


class Material(models.Model):
    """
    Stock record for a consumable material (paper, toner, film...).

    The catalog owns name, unit and pricing. The warehouse core only
    writes `quantity`, and only through the TransactionExecutor.
    """

    name = models.CharField(max_length=200, verbose_name=_('Name'))
    unit = models.CharField(
        max_length=20,
        default='pcs',
        verbose_name=_('Unit'),
        help_text=_('Unit of measure, e.g. sheets, m2, kg'),
    )

    quantity = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        default=Decimal('0'),
        verbose_name=_('Quantity on hand'),
    )
    min_quantity = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        default=Decimal('0'),
        verbose_name=_('Minimum quantity'),
        help_text=_('Reorder threshold'),
    )
    price_per_unit = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0'),
        verbose_name=_('Price per unit'),
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = MaterialQuerySet.as_manager()

    class Meta:
        db_table = 'materials'
        verbose_name = _('Material')
        verbose_name_plural = _('Materials')
        ordering = ['name']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=0),
                name='material_quantity_non_negative',
            ),
        ]

    def __str__(self) -> str:
        return self.name
