import os
import signal
import socket
import subprocess
import sys
import tempfile
import time
import unittest
import urllib.error
import urllib.request
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import uvicorn

from app.server import GracefulServer, UvicornControl
from app.services.command_service import ServerControl

ROOT = Path(__file__).resolve().parents[1]


def _cfg(**overrides):
    values = {'server_name': 'TableGate', 'shutdown_grace_seconds': 2.0, 'forced_exit_code': 22}
    values.update(overrides)
    return SimpleNamespace(**values)


def _server(cfg=None):
    return GracefulServer(uvicorn.Config(app=MagicMock()), cfg or _cfg())


class GracefulServerTests(unittest.TestCase):
    @patch('app.server.threading.Timer')
    def test_begin_shutdown_arms_timer_once(self, timer_cls):
        server = _server()
        server.begin_shutdown()
        server.begin_shutdown()
        timer_cls.assert_called_once_with(2.0, server._force_exit)
        timer_cls.return_value.start.assert_called_once()
        self.assertTrue(server.should_exit)

    @patch('app.server.threading.Timer')
    def test_cancel_force_exit(self, timer_cls):
        server = _server()
        server.cancel_force_exit()
        timer_cls.return_value.cancel.assert_not_called()
        server.begin_shutdown()
        server.cancel_force_exit()
        timer_cls.return_value.cancel.assert_called_once()

    @patch('app.server.os._exit')
    def test_force_exit_uses_configured_code(self, os_exit):
        _server(_cfg(forced_exit_code=7))._force_exit()
        os_exit.assert_called_once_with(7)

    @patch('app.server.threading.Timer')
    def test_handle_exit_does_not_queue_signal_for_reraise(self, timer_cls):
        server = _server()
        server.handle_exit(signal.SIGTERM, None)
        self.assertTrue(server.should_exit)
        self.assertFalse(server.force_exit)
        self.assertEqual(server._captured_signals, [])
        timer_cls.return_value.start.assert_called_once()

    @patch('app.server.threading.Timer')
    def test_second_sigint_forces_exit(self, _timer_cls):
        server = _server()
        server.handle_exit(signal.SIGINT, None)
        server.handle_exit(signal.SIGINT, None)
        self.assertTrue(server.force_exit)
        self.assertEqual(server._captured_signals, [])


class UvicornControlTests(unittest.TestCase):
    def test_plain_control_only_records_flags(self):
        control = ServerControl()
        control.request_restart()
        self.assertTrue(control.restart_requested)
        self.assertFalse(control.stop_requested)

    def test_stop_and_restart_begin_shutdown(self):
        control = UvicornControl()
        control.request_stop()  # no server attached yet
        control.server = MagicMock()
        control.request_restart()
        control.server.begin_shutdown.assert_called_once()
        self.assertTrue(control.stop_requested)
        self.assertTrue(control.restart_requested)


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(('127.0.0.1', 0))
        return sock.getsockname()[1]


@unittest.skipUnless(os.name == 'posix', 'needs POSIX signals')
class ProcessHostSignalTests(unittest.TestCase):
    def test_sigterm_shuts_down_cleanly(self):
        with tempfile.TemporaryDirectory() as tmp:
            port = _free_port()
            env = dict(os.environ)
            env.update({
                'PYTHONPATH': str(ROOT / 'backend'),
                'APP_ENV': 'dev',
                'SERVER_NAME': 'TableGate',
                'SERVER_HOST': '127.0.0.1',
                'SERVER_PORT': str(port),
                'DATABASE_URL': f"sqlite:///{Path(tmp) / 'host.db'}",
                'TOKENS_ENABLED': 'false',
                'LOGGING_ENABLED': 'false',
            })
            proc = subprocess.Popen(
                [sys.executable, '-m', 'app.server'],
                cwd=tmp, env=env,
                stdout=subprocess.PIPE, stderr=subprocess.STDOUT, text=True,
            )
            try:
                deadline = time.time() + 30
                while True:
                    self.assertIsNone(proc.poll(), 'server exited before answering /health')
                    try:
                        urllib.request.urlopen(f'http://127.0.0.1:{port}/health', timeout=1).read()
                        break
                    except (urllib.error.URLError, OSError):
                        if time.time() > deadline:
                            self.fail('server did not answer /health')
                        time.sleep(0.2)

                proc.send_signal(signal.SIGTERM)
                output, _ = proc.communicate(timeout=20)
            finally:
                if proc.poll() is None:
                    proc.kill()
                    proc.communicate()

            self.assertEqual(proc.returncode, 0, output)
            self.assertIn('Now listening on port', output)
            self.assertIn('TableGate stopped', output)


if __name__ == '__main__':
    unittest.main()
