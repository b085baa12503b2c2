from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import create_engine, event
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import Settings, settings
from app.core.errors import TransactionError


def build_database_url(cfg: Settings) -> URL:
    if cfg.database_url.strip():
        return make_url(cfg.database_url.strip())

    dialect = cfg.db_dialect.strip().lower()
    if dialect == 'sqlite':
        return URL.create('sqlite', database=cfg.db_storage)
    if dialect == 'mysql':
        return URL.create(
            'mysql+mysqlconnector',
            username=cfg.db_username or None,
            password=cfg.db_password or None,
            host=cfg.db_host,
            port=cfg.db_port,
            database=cfg.db_database,
        )
    raise ValueError(f'Unsupported DB_DIALECT: {cfg.db_dialect}')


database_url = build_database_url(settings)
is_sqlite = database_url.get_backend_name() == 'sqlite'

if is_sqlite and database_url.database and database_url.database != ':memory:':
    Path(database_url.database).expanduser().parent.mkdir(parents=True, exist_ok=True)

connect_args = {'check_same_thread': False, 'timeout': 30} if is_sqlite else {}
engine_kwargs = {
    'pool_pre_ping': True,
    'connect_args': connect_args,
}
if not is_sqlite:
    engine_kwargs.update(
        {
            'pool_size': max(1, int(settings.db_pool_size or 10)),
            'max_overflow': max(0, int(settings.db_max_overflow or 20)),
            'pool_timeout': max(1, int(settings.db_pool_timeout or 30)),
            'pool_recycle': max(30, int(settings.db_pool_recycle or 1800)),
        }
    )

engine = create_engine(database_url, **engine_kwargs)


if is_sqlite:
    @event.listens_for(engine, 'connect')
    def _sqlite_pragmas(dbapi_connection, _connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute('PRAGMA journal_mode=WAL;')
        cursor.execute('PRAGMA busy_timeout=30000;')
        cursor.close()


SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transactional(db: Session):
    """Commit on success; roll back on any error and surface driver errors as TransactionError."""
    try:
        yield db
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise TransactionError(str(getattr(exc, 'orig', None) or exc)) from exc
    except Exception:
        db.rollback()
        raise
