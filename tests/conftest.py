import os
import sys
import tempfile
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / 'backend'))

# app.db.session builds its engine at import time
os.environ.setdefault('DATABASE_URL', os.environ.get('TEST_DATABASE_URL', f"sqlite:///{Path(tempfile.gettempdir()) / 'tablegate_test.db'}"))
os.environ['DEFAULT_ADMIN_USER'] = 'test_admin'
os.environ['DEFAULT_ADMIN_PASSWORD'] = 'test_pass'
