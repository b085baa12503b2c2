from enum import Enum

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.deps import decode_action, get_list_cache, get_principal
from app.core.list_cache import ListCache
from app.core.security import Principal
from app.db.session import get_db
from app.schemas.common import OperationResult
from app.schemas.requests import TableIn
from app.services.table_service import RowService, TableService

table_router = APIRouter()
data_router = APIRouter()


class TableAction(str, Enum):
    CREATE = 'create'
    READ = 'read'
    UPDATE = 'update'
    DELETE = 'delete'
    RESTORE = 'restore'
    DROP = 'drop'


class DataAction(str, Enum):
    CREATE = 'create'
    ADD = 'add'
    READ = 'read'
    UPDATE = 'update'
    DELETE = 'delete'
    RESTORE = 'restore'
    DROP = 'drop'


_TABLE_HANDLERS = {
    TableAction.CREATE: lambda db, actor, p: TableService.create(db, actor, p.table, p.data),
    TableAction.READ: lambda db, actor, p: TableService.read(db, actor, p.table),
    TableAction.UPDATE: lambda db, actor, p: TableService.update(db, actor, p.table, p.data),
    TableAction.DELETE: lambda db, actor, p: TableService.delete(db, actor, p.table),
    TableAction.RESTORE: lambda db, actor, p: TableService.restore(db, actor, p.table),
    TableAction.DROP: lambda db, actor, p: TableService.drop(db, actor, p.table),
}

_DATA_HANDLERS = {
    DataAction.CREATE: lambda db, actor, p: RowService.add(db, actor, p.table, p.data),
    DataAction.ADD: lambda db, actor, p: RowService.add(db, actor, p.table, p.data),
    DataAction.READ: lambda db, actor, p: RowService.read(db, actor, p.table, p.data),
    DataAction.UPDATE: lambda db, actor, p: RowService.update(db, actor, p.table, p.where, p.data),
    DataAction.DELETE: lambda db, actor, p: RowService.delete(db, actor, p.table, p.data),
    DataAction.RESTORE: lambda db, actor, p: RowService.restore(db, actor, p.table, p.data),
    DataAction.DROP: lambda db, actor, p: RowService.drop(db, actor, p.table, p.data),
}


@table_router.post('/{action}')
def table_action(
    action: str,
    payload: TableIn,
    db: Session = Depends(get_db),
    cache: ListCache = Depends(get_list_cache),
    actor: Principal = Depends(get_principal),
):
    op = decode_action(TableAction, action)
    data = _TABLE_HANDLERS[op](db, actor, payload)
    if op is not TableAction.READ:
        cache.refresh()
    return OperationResult.ok(data).to_response()


@data_router.post('/{action}')
def data_action(
    action: str,
    payload: TableIn,
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_principal),
):
    op = decode_action(DataAction, action)
    return OperationResult.ok(_DATA_HANDLERS[op](db, actor, payload)).to_response()
