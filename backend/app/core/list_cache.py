"""
In-memory snapshot of user and table membership.

Built once at startup and handed to the auth gate and the routers through app.state.
refresh() re-derives every list from the database and must be called after each
mutation that can change membership. Each refresh swaps in a complete snapshot; a
reader racing a refresh sees either the old or the new one.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from sqlalchemy.orm import Session

from app.repositories import tables as tables_repo
from app.repositories import users as users_repo

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Snapshot:
    users: tuple[str, ...] = ()
    active_users: tuple[str, ...] = ()
    deleted_users: tuple[str, ...] = ()
    admins: tuple[str, ...] = ()
    tables: tuple[str, ...] = ()
    deleted_tables: tuple[str, ...] = ()


@dataclass
class ListCache:
    session_factory: Callable[[], Session]
    protected_table: str
    deleted_prefix: str
    tokens_path: str | None = None
    _snapshot: Snapshot = field(default_factory=Snapshot, init=False)
    _tokens: tuple[str, ...] = field(default=(), init=False)

    def refresh(self) -> Snapshot:
        db = self.session_factory()
        try:
            rows = users_repo.list_users(db)
            names = tables_repo.list_table_names(db)
        finally:
            db.close()

        hidden = {self.protected_table.lower(), 'alembic_version'}
        visible = [n for n in names if n.lower() not in hidden]
        self._snapshot = Snapshot(
            users=tuple(r.username for r in rows),
            active_users=tuple(r.username for r in rows if r.deleted_at is None),
            deleted_users=tuple(r.username for r in rows if r.deleted_at is not None),
            admins=tuple(r.username for r in rows if r.admin and r.deleted_at is None),
            tables=tuple(n for n in visible if not n.startswith(self.deleted_prefix)),
            deleted_tables=tuple(n for n in visible if n.startswith(self.deleted_prefix)),
        )
        logger.debug('List cache refreshed: %d users, %d tables', len(self._snapshot.users), len(self._snapshot.tables))
        return self._snapshot

    def reload_tokens(self) -> int:
        """Read the token file; one token per line, blank lines ignored. No path disables tokens."""
        if not self.tokens_path:
            self._tokens = ()
            return 0
        content = Path(self.tokens_path).expanduser().read_text(encoding='utf-8')
        self._tokens = tuple(line.strip() for line in content.splitlines() if line.strip())
        logger.info('Loaded %d access tokens', len(self._tokens))
        return len(self._tokens)

    def get_users(self) -> list[str]:
        return list(self._snapshot.users)

    def get_active_users(self) -> list[str]:
        return list(self._snapshot.active_users)

    def get_deleted_users(self) -> list[str]:
        return list(self._snapshot.deleted_users)

    def get_admins(self) -> list[str]:
        return list(self._snapshot.admins)

    def get_tables(self) -> list[str]:
        return list(self._snapshot.tables)

    def get_deleted_tables(self) -> list[str]:
        return list(self._snapshot.deleted_tables)

    def get_tokens(self) -> list[str]:
        return list(self._tokens)
