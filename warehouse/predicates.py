"""
Predicate builder for optional query filters.

Filters are expressed as (column, operator, value) triples and translated
into Django Q objects, so values always reach the database as bound
parameters.

Usage:
    from warehouse.predicates import Predicate, build_q

    q = build_q(
        [Predicate('material_id', '=', 5), Predicate('order_id', '=', None)],
        allowed={'material_id', 'order_id'},
    )
    AuditLogEntry.objects.filter(q)

Predicates whose value is None are skipped, which keeps "optional filter"
call sites free of if-chains. Use the 'is_null' operator to filter on NULL.
"""

from typing import Iterable, NamedTuple

from django.db.models import Q

from warehouse.exceptions import WarehouseError

OPERATORS = {
    '=': 'exact',
    '!=': 'exact',
    '<': 'lt',
    '<=': 'lte',
    '>': 'gt',
    '>=': 'gte',
    'in': 'in',
    'is_null': 'isnull',
}


class Predicate(NamedTuple):
    column: str
    operator: str
    value: object


def to_q(predicate: Predicate, allowed: set[str] | None = None) -> Q:
    """Translate a single predicate into a Q object."""
    column, operator, value = predicate

    if allowed is not None and column not in allowed:
        raise WarehouseError('INVALID_FILTER', column=column)

    lookup = OPERATORS.get(operator)
    if lookup is None:
        raise WarehouseError('INVALID_FILTER', column=column, operator=operator)

    q = Q(**{f"{column}__{lookup}": value})
    if operator == '!=':
        return ~q
    return q


def build_q(predicates: Iterable[Predicate], allowed: set[str] | None = None) -> Q:
    """AND together all predicates that carry a value."""
    q = Q()
    for predicate in predicates:
        if predicate.value is None:
            continue
        q &= to_q(predicate, allowed)
    return q
