from __future__ import annotations

import logging
import re
from datetime import datetime, timezone

from app.core.config import settings
from app.core.errors import ConflictError, NotFoundError, UnauthorizedError, ValidationError
from app.core.security import TOKEN_PRINCIPAL, Principal, hash_password
from app.db.base import utcnow
from app.db.session import transactional
from app.models.users import User
from app.repositories import users as users_repo

logger = logging.getLogger(__name__)

USERNAME_RE = re.compile(r"^[A-Za-z0-9_.@-]{1,128}$")


def user_to_out(row: User) -> dict:
    return {
        'username': row.username,
        'admin': bool(row.admin),
        'created_at': row.created_at.isoformat() if row.created_at else None,
        'updated_at': row.updated_at.isoformat() if row.updated_at else None,
        'deleted_at': row.deleted_at.isoformat() if row.deleted_at else None,
    }


def _username(value: str | None) -> str:
    name = str(value or '').strip()
    if not name:
        raise ValidationError('Username required')
    return name


def _require(db, username: str) -> User:
    row = users_repo.get_user(db, username)
    if row is None:
        raise NotFoundError(f'User {username} not found')
    return row


def _confirmation(message: str, row: User | None = None) -> dict:
    out = {'message': message, 'timestamp': datetime.now(timezone.utc).isoformat()}
    if row is not None:
        out['user'] = user_to_out(row)
    return out


class UserService:
    @staticmethod
    def create(db, actor: Principal, username: str | None, password: str | None, admin: bool | None) -> dict:
        uname = _username(username)
        if uname == TOKEN_PRINCIPAL:
            raise ValidationError(f'Username {TOKEN_PRINCIPAL} is reserved')
        if not USERNAME_RE.match(uname):
            raise ValidationError(f'Invalid username: {uname}')
        if not str(password or ''):
            raise ValidationError('Password required')

        existing = users_repo.get_user(db, uname)
        if existing is not None:
            if existing.is_deleted:
                raise ConflictError(f'User {uname} already exists (deleted)')
            raise ConflictError(f'User {uname} already exists')

        # only an admin may mint another admin
        grant_admin = bool(admin) and actor.is_admin
        with transactional(db):
            row = users_repo.create_user(db, uname, hash_password(password), grant_admin)
        logger.info('User %s created by %s (admin=%s)', uname, actor.name, grant_admin)
        return _confirmation(f'User {uname} created', row)

    @staticmethod
    def read(db, actor: Principal, username: str | None) -> dict:
        row = _require(db, _username(username))
        return user_to_out(row)

    @staticmethod
    def update(db, actor: Principal, username: str | None, password: str | None, admin: bool | None) -> dict:
        uname = _username(username)
        row = _require(db, uname)
        if row.is_deleted:
            raise ConflictError(f'User {uname} is deleted')
        if not password and admin is None:
            raise ValidationError('Nothing to update: provide pass and/or admin')
        if admin is not None and not actor.is_admin:
            raise UnauthorizedError('Admin privileges required to change the admin flag')
        if admin is False and uname == actor.name:
            raise ValidationError('You cannot revoke your own admin privileges')

        with transactional(db):
            users_repo.update_user(db, row, hash_password(password) if password else None, admin)
        logger.info('User %s updated by %s', uname, actor.name)
        return _confirmation(f'User {uname} updated', row)

    @staticmethod
    def delete(db, actor: Principal, username: str | None) -> dict:
        uname = _username(username)
        if uname == actor.name:
            raise ValidationError('You cannot delete your own account')
        row = _require(db, uname)
        if row.is_deleted:
            raise ConflictError(f'User {uname} is already deleted')
        _guard_admin_target(row)

        with transactional(db):
            users_repo.set_deleted_at(db, row, utcnow())
        logger.info('User %s deleted by %s', uname, actor.name)
        return _confirmation(f'User {uname} deleted', row)

    @staticmethod
    def restore(db, actor: Principal, username: str | None) -> dict:
        uname = _username(username)
        row = _require(db, uname)
        if not row.is_deleted:
            raise ConflictError(f'User {uname} is not deleted')

        with transactional(db):
            users_repo.set_deleted_at(db, row, None)
        logger.info('User %s restored by %s', uname, actor.name)
        return _confirmation(f'User {uname} restored', row)

    @staticmethod
    def drop(db, actor: Principal, username: str | None) -> dict:
        uname = _username(username)
        if uname == actor.name:
            raise ValidationError('You cannot drop your own account')
        row = _require(db, uname)
        _guard_admin_target(row)

        with transactional(db):
            users_repo.drop_user(db, row)
        logger.info('User %s dropped by %s', uname, actor.name)
        return _confirmation(f'User {uname} dropped')


def _guard_admin_target(row: User) -> None:
    if settings.protect_admins and row.admin:
        raise ValidationError(f'User {row.username} is an admin and cannot be removed')
