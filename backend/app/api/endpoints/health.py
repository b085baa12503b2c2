from fastapi import APIRouter
from sqlalchemy import text

from app.core.config import settings
from app.db.session import SessionLocal
from app.schemas.common import OperationResult

router = APIRouter()


@router.get('/health')
def health():
    """
    Health check. Returns 200 when the database answers a trivial query,
    503 when it is unreachable.
    """
    db_ok = False
    db = SessionLocal()
    try:
        db.execute(text('SELECT 1'))
        db_ok = True
    except Exception:
        db_ok = False
    finally:
        db.close()
    if not db_ok:
        return OperationResult.fail('Database unreachable', 503).to_response()
    return OperationResult.ok({'service': settings.app_name, 'db_ok': True}).to_response()
