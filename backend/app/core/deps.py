from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import UnauthorizedError
from app.core.list_cache import ListCache
from app.core.security import AuthGate, Principal
from app.db.session import get_db


def get_list_cache(request: Request) -> ListCache:
    return request.app.state.list_cache


def get_auth_gate(request: Request) -> AuthGate:
    return request.app.state.auth_gate


def get_principal(
    request: Request,
    db: Session = Depends(get_db),
    gate: AuthGate = Depends(get_auth_gate),
) -> Principal:
    return gate.resolve(db, request.headers.get('authorization'))


def require_admin(principal: Principal = Depends(get_principal)) -> Principal:
    if not principal.is_admin:
        raise UnauthorizedError('Admin privileges required')
    return principal


def require_query_access(principal: Principal = Depends(get_principal)) -> Principal:
    policy = (settings.query_access or 'admin_or_token').strip().lower()
    if principal.is_token:
        return principal
    if policy == 'admin_or_token' and principal.is_admin:
        return principal
    raise UnauthorizedError('Query access denied')


def decode_action(enum_cls, value: str):
    try:
        return enum_cls(str(value or '').strip().lower())
    except ValueError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f'Unknown action: {value}') from None
