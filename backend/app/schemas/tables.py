"""
Caller-defined table schemas.

A TableDescriptor is an ordered list of ColumnSpec values decoded from the request
body. It is consumed by the table repository, which turns it into DDL.
"""
from __future__ import annotations

import json
import re
from typing import Any

import sqlalchemy as sa
from pydantic import BaseModel, Field

from app.core.errors import ValidationError

IDENTIFIER_RE = re.compile(r'^[A-Za-z_][A-Za-z0-9_]{0,63}$')

RESERVED_COLUMNS = ('id', 'created_at', 'updated_at', 'deleted_at')

COLUMN_TYPES: dict[str, Any] = {
    'string': lambda: sa.String(255),
    'text': sa.Text,
    'integer': sa.Integer,
    'bigint': sa.BigInteger,
    'float': sa.Float,
    'boolean': sa.Boolean,
    'date': sa.Date,
    'datetime': sa.DateTime,
    'json': sa.JSON,
}

# a mapping value made only of these keys is a column definition, anything else is a sample
COLUMN_SPEC_KEYS = frozenset({'type', 'nullable', 'unique', 'default'})

_TYPE_ALIASES = {
    'str': 'string',
    'varchar': 'string',
    'int': 'integer',
    'bool': 'boolean',
    'double': 'float',
    'timestamp': 'datetime',
}


def normalize_type_name(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    key = value.strip().lower()
    key = _TYPE_ALIASES.get(key, key)
    return key if key in COLUMN_TYPES else None


def infer_type_name(sample: Any) -> str:
    # bool before int: bool is a subclass of int
    if isinstance(sample, bool):
        return 'boolean'
    if isinstance(sample, int):
        return 'integer'
    if isinstance(sample, float):
        return 'float'
    if isinstance(sample, (dict, list)):
        return 'json'
    return 'string'


def validate_identifier(name: Any, kind: str) -> str:
    text = str(name or '').strip()
    if not text:
        raise ValidationError(f'{kind} name is required')
    if not IDENTIFIER_RE.match(text):
        raise ValidationError(f'Invalid {kind} name: {text}')
    return text


class ColumnSpec(BaseModel):
    name: str
    type: str = 'string'
    nullable: bool = True
    unique: bool = False
    default: Any = None

    def to_column(self) -> sa.Column:
        kwargs: dict[str, Any] = {'nullable': self.nullable, 'unique': self.unique}
        if self.default is not None:
            kwargs['server_default'] = _server_default(self.default)
        return sa.Column(self.name, COLUMN_TYPES[self.type](), **kwargs)


class TableDescriptor(BaseModel):
    columns: list[ColumnSpec] = Field(default_factory=list)

    @property
    def names(self) -> list[str]:
        return [c.name for c in self.columns]

    @classmethod
    def from_payload(cls, data: Any) -> 'TableDescriptor':
        """
        Accepts {col: "type"}, {col: {type, nullable, unique, default}},
        [{name, type, ...}] or {col: <sample value>} (type inferred from the value).
        """
        if isinstance(data, dict):
            items = [_column_from_entry(name, value, detailed=_is_column_spec(value)) for name, value in data.items()]
        elif isinstance(data, list):
            items = []
            for entry in data:
                if not isinstance(entry, dict) or 'name' not in entry:
                    raise ValidationError('Column list entries must be objects with a name')
                items.append(
                    _column_from_entry(entry['name'], {k: v for k, v in entry.items() if k != 'name'}, detailed=True)
                )
        else:
            raise ValidationError('Column definitions are required')

        if not items:
            raise ValidationError('At least one column is required')

        seen: set[str] = set()
        for column in items:
            lowered = column.name.lower()
            if lowered in RESERVED_COLUMNS:
                raise ValidationError(f'Column name is reserved: {column.name}')
            if lowered in seen:
                raise ValidationError(f'Duplicate column: {column.name}')
            seen.add(lowered)
        return cls(columns=items)


def _server_default(value: Any):
    if isinstance(value, bool):
        return sa.text('1' if value else '0')
    if isinstance(value, (int, float)):
        return sa.text(repr(value))
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def _is_column_spec(value: Any) -> bool:
    return isinstance(value, dict) and bool(value) and set(value) <= COLUMN_SPEC_KEYS


def _column_from_entry(name: Any, value: Any, *, detailed: bool) -> ColumnSpec:
    col_name = validate_identifier(name, 'column')
    if detailed:
        type_name = normalize_type_name(value.get('type', 'string'))
        if type_name is None:
            raise ValidationError(f'Unknown column type for {col_name}: {value.get("type")}')
        return ColumnSpec(
            name=col_name,
            type=type_name,
            nullable=bool(value.get('nullable', True)),
            unique=bool(value.get('unique', False)),
            default=value.get('default'),
        )
    type_name = normalize_type_name(value)
    if type_name is None:
        type_name = infer_type_name(value)
    return ColumnSpec(name=col_name, type=type_name)
