import json
import os
import sys
from pathlib import Path


def parse_users(raw: str | None):
    if not raw:
        return []
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError:
        return []
    if not isinstance(payload, list):
        return []
    users = []
    for item in payload:
        if not isinstance(item, dict):
            continue
        username = str(item.get('username', '')).strip()
        password = str(item.get('password', '')).strip()
        admin = bool(item.get('admin', False))
        if username and password and username != 'token':
            users.append({'username': username, 'password': password, 'admin': admin})
    return users


def main():
    root = Path(__file__).resolve().parents[1]
    sys.path.insert(0, str(root / 'backend'))

    from app.core.config import settings
    from app.core.security import hash_password
    from app.db.base import Base
    from app.db.session import SessionLocal, engine, transactional
    from app.models.users import User
    from app.repositories import users as users_repo

    Base.metadata.create_all(bind=engine, tables=[User.__table__])

    users = parse_users(os.getenv('BOOTSTRAP_USERS'))
    if not users:
        users = [{'username': settings.default_admin_user, 'password': settings.default_admin_password, 'admin': True}]

    db = SessionLocal()
    created = 0
    updated = 0
    try:
        with transactional(db):
            for user in users:
                row = users_repo.get_user(db, user['username'])
                if row:
                    users_repo.set_deleted_at(db, row, None)
                    users_repo.update_user(db, row, hash_password(user['password']), user['admin'])
                    updated += 1
                else:
                    users_repo.create_user(db, user['username'], hash_password(user['password']), user['admin'])
                    created += 1
    finally:
        db.close()

    print(json.dumps({'ok': True, 'created': created, 'updated': updated, 'total': len(users)}, ensure_ascii=False))


if __name__ == '__main__':
    main()
