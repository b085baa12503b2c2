from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.core.deps import get_list_cache, require_admin, require_query_access
from app.core.list_cache import ListCache
from app.core.security import Principal
from app.db.session import get_db
from app.schemas.common import OperationResult
from app.schemas.requests import CommandIn, QueryIn
from app.services.command_service import CommandService, parse_command

router = APIRouter()


@router.post('/cmd')
def run_command(
    payload: CommandIn,
    request: Request,
    cache: ListCache = Depends(get_list_cache),
    actor: Principal = Depends(require_admin),
):
    command = parse_command(payload.data)
    data = CommandService.execute(command, actor, cache, request.app.state.server_control)
    return OperationResult.ok(data).to_response()


@router.post('/query')
def run_query(
    payload: QueryIn,
    db: Session = Depends(get_db),
    cache: ListCache = Depends(get_list_cache),
    actor: Principal = Depends(require_query_access),
):
    data = CommandService.run_query(db, actor, payload.data)
    # raw SQL may have touched users or tables
    cache.refresh()
    return OperationResult.ok(data).to_response()
