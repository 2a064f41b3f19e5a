"""
Versioned metadata payloads for reservation and audit rows.

Metadata is stored in a JSON column as an envelope:

    {"schema": 2, "data": {...}}

Schema 1 rows were written by the previous back office as a bare JSON object,
sometimes serialized to a string in a text column. decode_metadata() reads
both shapes, so history written before the envelope still loads.
"""

import json
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from warehouse.exceptions import WarehouseError

SCHEMA_VERSION = 2


@dataclass(frozen=True)
class Metadata:
    """Decoded metadata payload."""

    version: int = SCHEMA_VERSION
    data: dict[str, Any] = field(default_factory=dict)

    def get(self, key: str, default=None):
        return self.data.get(key, default)


def _normalize(value: Any, path: str) -> Any:
    """Reduce a value to JSON-safe primitives, rejecting anything else."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [_normalize(v, f"{path}[{i}]") for i, v in enumerate(value)]
    if isinstance(value, dict):
        out = {}
        for k, v in value.items():
            if not isinstance(k, str):
                raise WarehouseError('INVALID_METADATA', path=path, key=repr(k))
            out[k] = _normalize(v, f"{path}.{k}")
        return out
    raise WarehouseError('INVALID_METADATA', path=path, type=type(value).__name__)


def encode_metadata(data: dict[str, Any] | None) -> dict[str, Any]:
    """Wrap caller metadata in the current schema envelope."""
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise WarehouseError('INVALID_METADATA', path='$', type=type(data).__name__)
    return {'schema': SCHEMA_VERSION, 'data': _normalize(data, '$')}


def decode_metadata(raw: Any) -> Metadata:
    """Decode a stored payload of any known schema version."""
    if raw is None or raw == '':
        return Metadata(version=1, data={})

    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            raise WarehouseError('INVALID_METADATA', path='$', reason='not JSON') from None

    if not isinstance(raw, dict):
        raise WarehouseError('INVALID_METADATA', path='$', type=type(raw).__name__)

    version = raw.get('schema')
    if version is None:
        return Metadata(version=1, data=raw)

    if version != SCHEMA_VERSION:
        raise WarehouseError('INVALID_METADATA', path='$.schema', version=version)

    data = raw.get('data', {})
    if not isinstance(data, dict):
        raise WarehouseError('INVALID_METADATA', path='$.data', type=type(data).__name__)
    return Metadata(version=SCHEMA_VERSION, data=data)
