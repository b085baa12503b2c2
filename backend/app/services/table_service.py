from __future__ import annotations

import logging
from typing import Any

from app.core.config import settings
from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.core.security import Principal
from app.db.base import utcnow
from app.db.session import transactional
from app.repositories import tables as tables_repo
from app.schemas.tables import TableDescriptor, validate_identifier

logger = logging.getLogger(__name__)

_INTERNAL_TABLES = {'alembic_version'}


def _prefix() -> str:
    return settings.deleted_prefix


def _strip_prefix(name: str) -> str:
    return name[len(_prefix()):] if name.startswith(_prefix()) else name


def validate_table_name(value: Any, *, allow_deleted: bool = False) -> str:
    """Reject the protected table, internal tables and (unless allowed) soft-delete prefixed names."""
    name = validate_identifier(value, 'table')
    base = _strip_prefix(name)
    if base.lower() == settings.protected_table.lower() or name.lower() == settings.protected_table.lower():
        raise ValidationError(f'Table {name} is protected')
    if name.lower() in _INTERNAL_TABLES or base.lower() in _INTERNAL_TABLES:
        raise ValidationError(f'Table {name} is reserved')
    if name.startswith(_prefix()) and not allow_deleted:
        raise ValidationError(f'Table names starting with {_prefix()} are reserved')
    if not base:
        raise ValidationError(f'Invalid table name: {name}')
    return name


def _require_live(db, name: str):
    if not tables_repo.table_exists(db, name):
        raise NotFoundError(f'Table {name} not found')
    return tables_repo.reflect(db, name)


def _filters(value: Any, *, required: bool = False) -> dict:
    if value is None:
        value = {}
    if not isinstance(value, dict):
        raise ValidationError('Filter must be an object')
    if required and not value:
        raise ValidationError('A non-empty filter is required')
    return value


class TableService:
    @staticmethod
    def create(db, actor: Principal, table: Any, data: Any) -> dict:
        name = validate_table_name(table)
        descriptor = TableDescriptor.from_payload(data)
        if tables_repo.table_exists(db, name):
            raise ConflictError(f'Table {name} already exists')
        if tables_repo.table_exists(db, _prefix() + name):
            raise ConflictError(f'Table {name} exists as deleted; restore or drop {_prefix() + name} first')

        with transactional(db):
            tables_repo.create_table(db, name, descriptor)
        logger.info('Table %s created by %s with columns %s', name, actor.name, descriptor.names)
        return {'message': f'Table {name} created', 'table': name, 'columns': descriptor.names}

    @staticmethod
    def read(db, actor: Principal, table: Any) -> dict:
        name = validate_table_name(table)
        ref = _require_live(db, name)
        return {'table': name, 'columns': tables_repo.describe(ref), 'rows': tables_repo.select_rows(db, ref)}

    @staticmethod
    def update(db, actor: Principal, table: Any, data: Any) -> dict:
        name = validate_table_name(table)
        descriptor = TableDescriptor.from_payload(data)
        ref = _require_live(db, name)
        existing = {c.name.lower() for c in ref.columns}
        missing = [spec for spec in descriptor.columns if spec.name.lower() not in existing]

        if missing:
            with transactional(db):
                tables_repo.add_columns(db, name, missing)
            logger.info('Table %s altered by %s, added %s', name, actor.name, [c.name for c in missing])
        return {'message': f'Table {name} synced', 'table': name, 'added': [c.name for c in missing]}

    @staticmethod
    def delete(db, actor: Principal, table: Any) -> dict:
        name = validate_table_name(table)
        _require_live(db, name)
        target = _prefix() + name
        if tables_repo.table_exists(db, target):
            raise ConflictError(f'Table {target} already exists; drop it first')

        with transactional(db):
            tables_repo.rename_table(db, name, target)
        logger.info('Table %s deleted by %s', name, actor.name)
        return {'message': f'Table {name} deleted', 'table': target}

    @staticmethod
    def restore(db, actor: Principal, table: Any) -> dict:
        name = validate_table_name(table, allow_deleted=True)
        original = _strip_prefix(name)
        deleted = _prefix() + original
        if not tables_repo.table_exists(db, deleted):
            raise NotFoundError(f'Table {original} is not deleted')
        if tables_repo.table_exists(db, original):
            raise ConflictError(f'Table {original} already exists; cannot restore')

        with transactional(db):
            tables_repo.rename_table(db, deleted, original)
        logger.info('Table %s restored by %s', original, actor.name)
        return {'message': f'Table {original} restored', 'table': original}

    @staticmethod
    def drop(db, actor: Principal, table: Any) -> dict:
        name = validate_table_name(table, allow_deleted=True)
        target = name
        if not tables_repo.table_exists(db, target):
            fallback = _prefix() + name
            if name.startswith(_prefix()) or not tables_repo.table_exists(db, fallback):
                raise NotFoundError(f'Table {name} not found')
            target = fallback

        with transactional(db):
            tables_repo.drop_table(db, target)
        logger.info('Table %s dropped by %s', target, actor.name)
        return {'message': f'Table {target} dropped', 'table': target}


class RowService:
    @staticmethod
    def add(db, actor: Principal, table: Any, data: Any) -> dict:
        name = validate_table_name(table)
        ref = _require_live(db, name)
        with transactional(db):
            row = tables_repo.insert_row(db, ref, data)
        logger.info('Row %s added to %s by %s', row.get('id'), name, actor.name)
        return row

    @staticmethod
    def read(db, actor: Principal, table: Any, data: Any) -> list[dict]:
        name = validate_table_name(table)
        ref = _require_live(db, name)
        filters = _filters(data)
        rows = tables_repo.select_rows(db, ref, filters)
        if filters and not rows:
            raise NotFoundError(f'No rows in {name} match the filter')
        return rows

    @staticmethod
    def update(db, actor: Principal, table: Any, where: Any, data: Any) -> dict:
        name = validate_table_name(table)
        ref = _require_live(db, name)
        filters = _filters(where)
        with transactional(db):
            count = tables_repo.update_rows(db, ref, filters, data)
            if count == 0:
                raise NotFoundError(f'No rows in {name} match the filter')
        logger.info('%d rows updated in %s by %s', count, name, actor.name)
        return {'message': f'{count} rows updated', 'table': name, 'count': count}

    @staticmethod
    def delete(db, actor: Principal, table: Any, data: Any) -> dict:
        name = validate_table_name(table)
        ref = _require_live(db, name)
        filters = _filters(data, required=True)
        with transactional(db):
            count = tables_repo.set_rows_deleted(db, ref, filters, utcnow())
            if count == 0:
                raise NotFoundError(f'No live rows in {name} match the filter')
        logger.info('%d rows deleted in %s by %s', count, name, actor.name)
        return {'message': f'{count} rows deleted', 'table': name, 'count': count}

    @staticmethod
    def restore(db, actor: Principal, table: Any, data: Any) -> dict:
        name = validate_table_name(table)
        ref = _require_live(db, name)
        filters = _filters(data, required=True)
        with transactional(db):
            count = tables_repo.set_rows_deleted(db, ref, filters, None)
            if count == 0:
                raise NotFoundError(f'No deleted rows in {name} match the filter')
        logger.info('%d rows restored in %s by %s', count, name, actor.name)
        return {'message': f'{count} rows restored', 'table': name, 'count': count}

    @staticmethod
    def drop(db, actor: Principal, table: Any, data: Any) -> dict:
        name = validate_table_name(table)
        ref = _require_live(db, name)
        filters = _filters(data, required=True)
        with transactional(db):
            count = tables_repo.delete_rows(db, ref, filters)
            if count == 0:
                raise NotFoundError(f'No rows in {name} match the filter')
        logger.info('%d rows dropped from %s by %s', count, name, actor.name)
        return {'message': f'{count} rows dropped', 'table': name, 'count': count}
