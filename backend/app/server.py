"""Process host: runs the API under uvicorn with graceful and forced shutdown."""
from __future__ import annotations

import logging
import os
import signal
import sys
import threading

import uvicorn

from app.core.config import Settings, settings
from app.core.logging_config import setup_logging
from app.core.prod_check import validate_production_config
from app.services.command_service import ServerControl

logger = logging.getLogger('app.server')


class GracefulServer(uvicorn.Server):
    """uvicorn server that arms a forced-exit timer as soon as shutdown starts."""

    def __init__(self, config: uvicorn.Config, cfg: Settings):
        super().__init__(config)
        self._cfg = cfg
        self._timer: threading.Timer | None = None

    def begin_shutdown(self) -> None:
        if self._timer is None:
            self._timer = threading.Timer(self._cfg.shutdown_grace_seconds, self._force_exit)
            self._timer.daemon = True
            self._timer.start()
        self.should_exit = True

    async def startup(self, sockets=None) -> None:
        await super().startup(sockets=sockets)
        if self.started:
            logger.info('Now listening on port %s', self.config.port)

    def handle_exit(self, sig, frame) -> None:
        # not delegated: uvicorn re-raises captured signals once shutdown completes
        if self.should_exit and sig == signal.SIGINT:
            self.force_exit = True
            return
        logger.info('%s received signal %s, stopping...', self._cfg.server_name, sig)
        self.begin_shutdown()

    def _force_exit(self) -> None:
        logger.error('%s terminated', self._cfg.server_name)
        os._exit(self._cfg.forced_exit_code)

    def cancel_force_exit(self) -> None:
        if self._timer is not None:
            self._timer.cancel()


class UvicornControl(ServerControl):
    def __init__(self) -> None:
        super().__init__()
        self.server: GracefulServer | None = None

    def request_stop(self) -> None:
        super().request_stop()
        if self.server is not None:
            self.server.begin_shutdown()

    def request_restart(self) -> None:
        super().request_restart()
        if self.server is not None:
            self.server.begin_shutdown()


def serve(cfg: Settings | None = None) -> int:
    cfg = cfg or settings
    from app.main import create_app

    control = UvicornControl()
    app = create_app(server_control=control)
    config = uvicorn.Config(app, host=cfg.server_host, port=cfg.server_port, log_level='info', log_config=None)
    server = GracefulServer(config, cfg)
    control.server = server

    # uvicorn routes SIGINT/SIGTERM to handle_exit itself
    if hasattr(signal, 'SIGQUIT'):
        signal.signal(signal.SIGQUIT, server.handle_exit)

    server.run()
    server.cancel_force_exit()
    logger.info('%s stopped', cfg.server_name)

    if control.restart_requested:
        logger.info('%s restarting', cfg.server_name)
        os.execv(sys.executable, [sys.executable, '-m', 'app.server', *sys.argv[1:]])
    return 0


def main() -> None:
    setup_logging(settings)
    validate_production_config()
    raise SystemExit(serve(settings))


if __name__ == '__main__':
    main()
