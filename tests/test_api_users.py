import base64
import os
import sys
import tempfile
import unittest
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import patch

import sqlalchemy as sa
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / 'backend'))

os.environ['DATABASE_URL'] = os.environ.get('TEST_DATABASE_URL', f"sqlite:///{Path(tempfile.gettempdir()) / 'tablegate_test.db'}")
os.environ['DEFAULT_ADMIN_USER'] = 'test_admin'
os.environ['DEFAULT_ADMIN_PASSWORD'] = 'test_pass'

from app.main import app  # noqa: E402
from app.db.bootstrap import bootstrap_database  # noqa: E402
from app.db.session import SessionLocal, engine  # noqa: E402
from app.services import user_service  # noqa: E402


def basic(user: str, password: str) -> dict:
    raw = base64.b64encode(f'{user}:{password}'.encode('utf-8')).decode('ascii')
    return {'Authorization': f'Basic {raw}'}


def reset_database() -> None:
    with engine.begin() as conn:
        for name in sa.inspect(conn).get_table_names():
            conn.exec_driver_sql(f'DROP TABLE IF EXISTS "{name}"')
    bootstrap_database(app.state.list_cache)


ADMIN = basic('test_admin', 'test_pass')


class ApiUserLifecycleTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        reset_database()
        cls.client = TestClient(app)

    def post(self, path: str, payload: dict, headers: dict | None = None):
        return self.client.post(path, json=payload, headers=headers or ADMIN)

    def test_end_to_end_user_scenario(self):
        r = self.post('/user/create', {'user': 'test_user', 'pass': 'test_pw'})
        self.assertEqual(r.status_code, 200, r.json())
        self.assertTrue(r.json()['success'])
        self.assertIn('timestamp', r.json()['data'])

        r = self.post('/user/read', {'user': 'test_user'})
        self.assertTrue(r.json()['success'])
        self.assertEqual(r.json()['data']['username'], 'test_user')
        self.assertIsNone(r.json()['data']['deleted_at'])
        self.assertNotIn('password_hash', r.json()['data'])

        r = self.post('/user/update', {'user': 'test_user', 'pass': 'new_password'})
        self.assertTrue(r.json()['success'])
        db = SessionLocal()
        try:
            self.assertTrue(app.state.auth_gate.authenticate(db, 'test_user', 'new_password'))
            self.assertFalse(app.state.auth_gate.authenticate(db, 'test_user', 'test_pw'))
        finally:
            db.close()

        r = self.post('/user/delete', {'user': 'test_user'})
        self.assertTrue(r.json()['success'])
        self.assertIn('test_user', app.state.list_cache.get_deleted_users())

        r = self.post('/user/restore', {'user': 'test_user'})
        self.assertTrue(r.json()['success'])
        self.assertIn('test_user', app.state.list_cache.get_active_users())

        r = self.post('/user/drop', {'user': 'test_user'})
        self.assertTrue(r.json()['success'])
        self.assertNotIn('test_user', app.state.list_cache.get_users())

        r = self.post('/user/read', {'user': 'test_user'})
        self.assertEqual(r.status_code, 400)
        self.assertFalse(r.json()['success'])
        self.assertIn('not found', r.json()['error'])

    def test_delete_twice_reports_already_deleted(self):
        self.post('/user/create', {'user': 'twice_user', 'pass': 'pw'})
        self.assertTrue(self.post('/user/delete', {'user': 'twice_user'}).json()['success'])
        r = self.post('/user/delete', {'user': 'twice_user'})
        self.assertFalse(r.json()['success'])
        self.assertIn('already deleted', r.json()['error'])

    def test_restore_never_deleted_user_fails(self):
        self.post('/user/create', {'user': 'live_user', 'pass': 'pw'})
        r = self.post('/user/restore', {'user': 'live_user'})
        self.assertFalse(r.json()['success'])
        self.assertIn('not deleted', r.json()['error'])

    def test_self_delete_and_self_drop_are_refused(self):
        r = self.post('/user/delete', {'user': 'test_admin'})
        self.assertFalse(r.json()['success'])
        r = self.post('/user/drop', {'user': 'test_admin'})
        self.assertFalse(r.json()['success'])
        self.assertIn('test_admin', app.state.list_cache.get_admins())

    def test_duplicate_create_conflicts(self):
        self.assertTrue(self.post('/user/create', {'user': 'dup_user', 'pass': 'pw'}).json()['success'])
        r = self.post('/user/create', {'user': 'dup_user', 'pass': 'other'})
        self.assertFalse(r.json()['success'])
        self.assertIn('already exists', r.json()['error'])

    def test_create_admin_and_drop_it(self):
        r = self.post('/user/create', {'user': 'temp_admin', 'pass': 'test_pw', 'admin': True})
        self.assertTrue(r.json()['data']['user']['admin'])
        self.assertIn('temp_admin', app.state.list_cache.get_admins())

        r = self.post('/user/drop', {'user': 'temp_admin'})
        self.assertTrue(r.json()['success'])
        self.assertNotIn('temp_admin', app.state.list_cache.get_admins())

    def test_protect_admins_refuses_removing_other_admins(self):
        self.post('/user/create', {'user': 'guarded_admin', 'pass': 'pw', 'admin': True})
        with patch.object(user_service.settings, 'protect_admins', True):
            r = self.post('/user/delete', {'user': 'guarded_admin'})
            self.assertEqual(r.status_code, 400)
            self.assertIn('is an admin', r.json()['error'])
            r = self.post('/user/drop', {'user': 'guarded_admin'})
            self.assertFalse(r.json()['success'])
            self.assertIn('guarded_admin', app.state.list_cache.get_admins())

        self.assertTrue(self.post('/user/delete', {'user': 'guarded_admin'}).json()['success'])
        self.assertNotIn('guarded_admin', app.state.list_cache.get_admins())

    def test_admin_cannot_revoke_own_admin_flag(self):
        r = self.post('/user/update', {'user': 'test_admin', 'admin': False})
        self.assertEqual(r.status_code, 400)
        self.assertIn('own admin', r.json()['error'])
        self.assertIn('test_admin', app.state.list_cache.get_admins())

        self.post('/user/create', {'user': 'demoted_admin', 'pass': 'pw', 'admin': True})
        r = self.post('/user/update', {'user': 'demoted_admin', 'admin': False})
        self.assertTrue(r.json()['success'])
        self.assertNotIn('demoted_admin', app.state.list_cache.get_admins())

    def test_timestamps_are_naive_utc(self):
        self.post('/user/create', {'user': 'clock_user', 'pass': 'pw'})
        data = self.post('/user/read', {'user': 'clock_user'}).json()['data']
        created = datetime.fromisoformat(data['created_at'])
        self.assertIsNone(created.tzinfo)
        now = datetime.now(timezone.utc).replace(tzinfo=None)
        self.assertLess(abs(now - created), timedelta(minutes=5))

    def test_non_admin_cannot_manage_users(self):
        self.post('/user/create', {'user': 'plain_user', 'pass': 'plain_pw'})
        r = self.post('/user/read', {'user': 'test_admin'}, headers=basic('plain_user', 'plain_pw'))
        self.assertEqual(r.status_code, 401)
        self.assertFalse(r.json()['success'])

    def test_deleted_user_cannot_authenticate(self):
        self.post('/user/create', {'user': 'gone_user', 'pass': 'gone_pw'})
        r = self.post('/table/read', {'table': 'missing'}, headers=basic('gone_user', 'gone_pw'))
        self.assertEqual(r.status_code, 400)
        self.post('/user/delete', {'user': 'gone_user'})
        r = self.post('/table/read', {'table': 'missing'}, headers=basic('gone_user', 'gone_pw'))
        self.assertEqual(r.status_code, 401)

    def test_update_missing_user_fails(self):
        r = self.post('/user/update', {'user': 'nobody', 'pass': 'x'})
        self.assertFalse(r.json()['success'])
        self.assertIn('not found', r.json()['error'])

    def test_reserved_and_missing_usernames(self):
        r = self.post('/user/create', {'user': 'token', 'pass': 'x'})
        self.assertFalse(r.json()['success'])
        r = self.post('/user/create', {'pass': 'x'})
        self.assertEqual(r.status_code, 400)
        self.assertIn('Username required', r.json()['error'])

    def test_unknown_user_action_is_404(self):
        r = self.post('/user/promote', {'user': 'test_admin'})
        self.assertEqual(r.status_code, 404)
        self.assertFalse(r.json()['success'])


if __name__ == '__main__':
    unittest.main()
