from __future__ import annotations

import logging

from app.core.config import settings
from app.core.list_cache import ListCache
from app.core.security import hash_password
from app.db.base import Base
from app.db.session import SessionLocal, engine, transactional
from app.models.users import User
from app.repositories import users as users_repo

logger = logging.getLogger(__name__)


def ensure_default_admin() -> bool:
    """Create the configured admin when no active admin exists. Returns True when one was created."""
    db = SessionLocal()
    try:
        if users_repo.count_active_admins(db) > 0:
            return False
        username = settings.default_admin_user
        row = users_repo.get_user(db, username)
        with transactional(db):
            if row is None:
                users_repo.create_user(db, username, hash_password(settings.default_admin_password), True)
            else:
                # an existing (possibly deleted) account with that name is promoted back
                users_repo.set_deleted_at(db, row, None)
                users_repo.update_user(db, row, hash_password(settings.default_admin_password), True)
        logger.warning('No admin found; default admin %s ensured', username)
        return True
    finally:
        db.close()


def bootstrap_database(cache: ListCache) -> None:
    """
    Ensure the credential table exists, guarantee an admin account and warm the list cache.
    """
    Base.metadata.create_all(bind=engine, tables=[User.__table__])
    ensure_default_admin()
    cache.refresh()
    try:
        cache.reload_tokens()
    except OSError:
        logger.exception(
            'Token file %s could not be read; keeping %d loaded tokens', cache.tokens_path, len(cache.get_tokens())
        )
    logger.info('DB bootstrap completed (%d users, %d tables)', len(cache.get_users()), len(cache.get_tables()))
