from __future__ import annotations

import base64
import binascii
import hmac
from dataclasses import dataclass

from passlib.context import CryptContext
from sqlalchemy.orm import Session

from app.core.errors import AuthenticationError, UnauthorizedError
from app.core.list_cache import ListCache
from app.repositories import users as users_repo

pwd_context = CryptContext(schemes=['pbkdf2_sha256'], deprecated='auto')

TOKEN_PRINCIPAL = 'token'


@dataclass(frozen=True)
class Principal:
    name: str
    is_admin: bool = False
    is_token: bool = False


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return pwd_context.verify(password, password_hash)
    except (ValueError, TypeError):
        return False


def decode_basic_header(header: str | None) -> tuple[str, str]:
    """Split a 'Basic base64(user:pass)' header into (principal, secret)."""
    value = str(header or '').strip()
    if not value:
        raise AuthenticationError('Authentication failed: missing Authorization header')
    scheme, _, encoded = value.partition(' ')
    if scheme.lower() != 'basic' or not encoded.strip():
        raise AuthenticationError('Authentication failed: expected Basic credentials')
    try:
        decoded = base64.b64decode(encoded.strip(), validate=True).decode('utf-8')
    except (binascii.Error, UnicodeDecodeError) as exc:
        raise AuthenticationError('Authentication failed: malformed credentials') from exc
    principal, sep, secret = decoded.partition(':')
    if not sep or not principal:
        raise AuthenticationError('Authentication failed: malformed credentials')
    return principal, secret


class AuthGate:
    """Validates decoded credentials against the token list or the credential store."""

    def __init__(self, cache: ListCache):
        self.cache = cache

    def authenticate(self, db: Session, principal: str, secret: str) -> bool:
        if principal == TOKEN_PRINCIPAL:
            return any(hmac.compare_digest(secret, token) for token in self.cache.get_tokens())
        if principal not in self.cache.get_active_users():
            return False
        row = users_repo.get_active_user(db, principal)
        return bool(row and verify_password(secret, row.password_hash))

    def is_admin(self, principal: str) -> bool:
        return principal in self.cache.get_admins()

    def resolve(self, db: Session, header: str | None) -> Principal:
        principal, secret = decode_basic_header(header)
        if not self.authenticate(db, principal, secret):
            raise UnauthorizedError('Invalid credentials')
        if principal == TOKEN_PRINCIPAL:
            return Principal(name=principal, is_token=True)
        return Principal(name=principal, is_admin=self.is_admin(principal))
