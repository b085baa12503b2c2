from enum import Enum

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.deps import decode_action, get_list_cache, require_admin
from app.core.list_cache import ListCache
from app.core.security import Principal
from app.db.session import get_db
from app.schemas.common import OperationResult
from app.schemas.requests import UserIn
from app.services.user_service import UserService

router = APIRouter()


class UserAction(str, Enum):
    CREATE = 'create'
    READ = 'read'
    UPDATE = 'update'
    DELETE = 'delete'
    RESTORE = 'restore'
    DROP = 'drop'


_HANDLERS = {
    UserAction.CREATE: lambda db, actor, p: UserService.create(db, actor, p.user, p.password, p.admin),
    UserAction.READ: lambda db, actor, p: UserService.read(db, actor, p.user),
    UserAction.UPDATE: lambda db, actor, p: UserService.update(db, actor, p.user, p.password, p.admin),
    UserAction.DELETE: lambda db, actor, p: UserService.delete(db, actor, p.user),
    UserAction.RESTORE: lambda db, actor, p: UserService.restore(db, actor, p.user),
    UserAction.DROP: lambda db, actor, p: UserService.drop(db, actor, p.user),
}


@router.post('/{action}')
def user_action(
    action: str,
    payload: UserIn,
    db: Session = Depends(get_db),
    cache: ListCache = Depends(get_list_cache),
    actor: Principal = Depends(require_admin),
):
    op = decode_action(UserAction, action)
    data = _HANDLERS[op](db, actor, payload)
    if op is not UserAction.READ:
        cache.refresh()
    return OperationResult.ok(data).to_response()
