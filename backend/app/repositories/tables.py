"""
Table registry and row access for caller-defined tables.

DDL goes through alembic's Operations bound to the session connection, so it shares
the request transaction where the backend allows transactional DDL. Rows are read
and written with SQLAlchemy Core against tables reflected per call.
"""
from __future__ import annotations

from datetime import date, datetime
from typing import Any

import sqlalchemy as sa
from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy.orm import Session

from app.core.errors import ValidationError
from app.db.base import utcnow
from app.schemas.tables import RESERVED_COLUMNS, ColumnSpec, TableDescriptor


def _operations(db: Session) -> Operations:
    return Operations(MigrationContext.configure(db.connection()))


def list_table_names(db: Session) -> list[str]:
    return sorted(sa.inspect(db.connection()).get_table_names())


def table_exists(db: Session, name: str) -> bool:
    return name in list_table_names(db)


def reflect(db: Session, name: str) -> sa.Table:
    return sa.Table(name, sa.MetaData(), autoload_with=db.connection())


def describe(table: sa.Table) -> list[dict[str, Any]]:
    return [
        {
            'name': column.name,
            'type': str(column.type),
            'nullable': bool(column.nullable),
            'primary_key': bool(column.primary_key),
        }
        for column in table.columns
    ]


def create_table(db: Session, name: str, descriptor: TableDescriptor) -> None:
    _operations(db).create_table(
        name,
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        *[spec.to_column() for spec in descriptor.columns],
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column('deleted_at', sa.DateTime, nullable=True),
    )


def add_columns(db: Session, name: str, columns: list[ColumnSpec]) -> None:
    ops = _operations(db)
    for spec in columns:
        ops.add_column(name, spec.to_column())


def rename_table(db: Session, old_name: str, new_name: str) -> None:
    _operations(db).rename_table(old_name, new_name)


def drop_table(db: Session, name: str) -> None:
    _operations(db).drop_table(name)


def _coerce(column: sa.Column, value: Any) -> Any:
    if not isinstance(value, str):
        return value
    try:
        if isinstance(column.type, sa.DateTime):
            return datetime.fromisoformat(value)
        if isinstance(column.type, sa.Date):
            return date.fromisoformat(value)
    except ValueError as exc:
        raise ValidationError(f'Invalid date value for {column.name}: {value}') from exc
    return value


def _values(table: sa.Table, values: Any, *, writable: bool) -> dict[str, Any]:
    if not isinstance(values, dict):
        raise ValidationError('Row data must be an object')
    out: dict[str, Any] = {}
    for key, value in values.items():
        if key not in table.c:
            raise ValidationError(f'Unknown column: {key}')
        if writable and key in RESERVED_COLUMNS:
            raise ValidationError(f'Column is managed by the server: {key}')
        out[key] = _coerce(table.c[key], value)
    return out


def _where(table: sa.Table, filters: dict[str, Any] | None, *, deleted: bool | None):
    clauses = [table.c[key] == value for key, value in _values(table, filters or {}, writable=False).items()]
    if deleted is True:
        clauses.append(table.c.deleted_at.is_not(None))
    elif deleted is False:
        clauses.append(table.c.deleted_at.is_(None))
    return sa.and_(sa.true(), *clauses)


def select_rows(db: Session, table: sa.Table, filters: dict[str, Any] | None = None, *, deleted: bool | None = False) -> list[dict]:
    stmt = sa.select(table).where(_where(table, filters, deleted=deleted)).order_by(table.c.id.asc())
    return [dict(row) for row in db.connection().execute(stmt).mappings()]


def insert_row(db: Session, table: sa.Table, values: Any) -> dict:
    data = _values(table, values, writable=True)
    if not data:
        raise ValidationError('Row data is required')
    now = utcnow()
    result = db.connection().execute(table.insert().values(**data, created_at=now, updated_at=now))
    row_id = result.inserted_primary_key[0]
    return select_rows(db, table, {'id': row_id}, deleted=None)[0]


def update_rows(db: Session, table: sa.Table, filters: dict[str, Any] | None, values: Any) -> int:
    data = _values(table, values, writable=True)
    if not data:
        raise ValidationError('Update data is required')
    stmt = table.update().where(_where(table, filters, deleted=False)).values(**data, updated_at=utcnow())
    return db.connection().execute(stmt).rowcount


def set_rows_deleted(db: Session, table: sa.Table, filters: dict[str, Any] | None, deleted_at: datetime | None) -> int:
    # soft delete touches live rows, restore touches deleted ones
    currently_deleted = deleted_at is None
    stmt = (
        table.update()
        .where(_where(table, filters, deleted=currently_deleted))
        .values(deleted_at=deleted_at, updated_at=utcnow())
    )
    return db.connection().execute(stmt).rowcount


def delete_rows(db: Session, table: sa.Table, filters: dict[str, Any]) -> int:
    stmt = table.delete().where(_where(table, filters, deleted=None))
    return db.connection().execute(stmt).rowcount
