from __future__ import annotations

import logging
from enum import Enum

from app.core.errors import ValidationError
from app.core.list_cache import ListCache
from app.core.security import Principal
from app.db.session import transactional

logger = logging.getLogger(__name__)


class Command(str, Enum):
    HELP = 'help'
    USERS = 'users'
    ADMINS = 'admins'
    TABLES = 'tables'
    RELOAD = 'reload'
    RESTART = 'restart'
    STOP = 'stop'


COMMAND_HELP = {
    Command.HELP: 'List the available commands',
    Command.USERS: 'List all, active and deleted users',
    Command.ADMINS: 'List active admin users',
    Command.TABLES: 'List active and deleted tables',
    Command.RELOAD: 'Reload the user/table lists and the token file',
    Command.RESTART: 'Restart the server process',
    Command.STOP: 'Stop the server process',
}


class ServerControl:
    """Lifecycle hooks for restart/stop. The uvicorn host installs a subclass that acts on them."""

    def __init__(self) -> None:
        self.stop_requested = False
        self.restart_requested = False

    def request_stop(self) -> None:
        self.stop_requested = True

    def request_restart(self) -> None:
        self.restart_requested = True


def parse_command(value: str) -> Command:
    try:
        return Command(str(value or '').strip().lower())
    except ValueError:
        raise ValidationError(f"Unknown command: {value}. Use 'help' to list commands") from None


class CommandService:
    @staticmethod
    def execute(command: Command, actor: Principal, cache: ListCache, control: ServerControl):
        logger.info('Command %s issued by %s', command.value, actor.name)
        if command is Command.HELP:
            return {c.value: COMMAND_HELP[c] for c in Command}
        if command is Command.USERS:
            return {
                'users': cache.get_users(),
                'active': cache.get_active_users(),
                'deleted': cache.get_deleted_users(),
            }
        if command is Command.ADMINS:
            return {'admins': cache.get_admins()}
        if command is Command.TABLES:
            return {'tables': cache.get_tables(), 'deleted': cache.get_deleted_tables()}
        if command is Command.RELOAD:
            snapshot = cache.refresh()
            tokens = cache.reload_tokens()
            return {'users': len(snapshot.users), 'tables': len(snapshot.tables), 'tokens': tokens}
        if command is Command.RESTART:
            control.request_restart()
            return {'message': 'Restart scheduled'}
        if command is Command.STOP:
            control.request_stop()
            return {'message': 'Stop scheduled'}
        raise ValidationError(f'Unhandled command: {command.value}')

    @staticmethod
    def run_query(db, actor: Principal, sql: str):
        """Execute caller-supplied SQL verbatim. Only reachable by trusted principals."""
        statement = str(sql or '').strip()
        if not statement:
            raise ValidationError('Query required')
        logger.warning('Raw query executed by %s', actor.name)
        with transactional(db):
            result = db.connection().exec_driver_sql(statement)
            if result.returns_rows:
                rows = [dict(r) for r in result.mappings()]
                return {'rows': rows, 'count': len(rows)}
            return {'rows': [], 'count': result.rowcount}
