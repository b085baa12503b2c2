from datetime import datetime

from sqlalchemy.orm import Session

from app.db.base import utcnow
from app.models.users import User


def list_users(db: Session) -> list[User]:
    return db.query(User).order_by(User.username.asc()).all()


def get_user(db: Session, username: str) -> User | None:
    return db.query(User).filter(User.username == username).first()


def get_active_user(db: Session, username: str) -> User | None:
    return db.query(User).filter(User.username == username, User.deleted_at.is_(None)).first()


def count_active_admins(db: Session) -> int:
    return db.query(User).filter(User.admin == True, User.deleted_at.is_(None)).count()  # noqa: E712


def create_user(db: Session, username: str, password_hash: str, admin: bool) -> User:
    row = User(username=username, password_hash=password_hash, admin=bool(admin))
    db.add(row)
    db.flush()
    return row


def update_user(db: Session, row: User, password_hash: str | None, admin: bool | None) -> User:
    if password_hash:
        row.password_hash = password_hash
    if admin is not None:
        row.admin = bool(admin)
    row.updated_at = utcnow()
    db.add(row)
    db.flush()
    return row


def set_deleted_at(db: Session, row: User, value: datetime | None) -> User:
    row.deleted_at = value
    row.updated_at = utcnow()
    db.add(row)
    db.flush()
    return row


def drop_user(db: Session, row: User) -> None:
    db.delete(row)
    db.flush()
