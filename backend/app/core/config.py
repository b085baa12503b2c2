from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore')

    app_name: str = 'tablegate-api'
    app_env: str = Field(default='dev', alias='APP_ENV')

    server_name: str = Field(default='TableGate', alias='SERVER_NAME')
    server_host: str = Field(default='0.0.0.0', alias='SERVER_HOST')
    server_port: int = Field(default=8000, alias='SERVER_PORT')
    server_url: str = Field(default='http://localhost:8000', alias='SERVER_URL')
    redirect_url: str = Field(default='https://example.com', alias='REDIRECT_URL')

    database_url: str = Field(default='', alias='DATABASE_URL')
    db_dialect: str = Field(default='sqlite', alias='DB_DIALECT')
    db_storage: str = Field(default='./data/tablegate.db', alias='DB_STORAGE')
    db_host: str = Field(default='localhost', alias='DB_HOST')
    db_port: int = Field(default=3306, alias='DB_PORT')
    db_username: str = Field(default='', alias='DB_USERNAME')
    db_password: str = Field(default='', alias='DB_PASSWORD')
    db_database: str = Field(default='tablegate', alias='DB_DATABASE')
    db_pool_size: int = Field(default=10, alias='DB_POOL_SIZE')
    db_max_overflow: int = Field(default=20, alias='DB_MAX_OVERFLOW')
    db_pool_timeout: int = Field(default=30, alias='DB_POOL_TIMEOUT')
    db_pool_recycle: int = Field(default=1800, alias='DB_POOL_RECYCLE')

    protected_table: str = Field(default='users', alias='PROTECTED_TABLE')
    deleted_prefix: str = Field(default='deleted_', alias='DELETED_PREFIX')

    default_admin_user: str = Field(default='admin', alias='DEFAULT_ADMIN_USER')
    default_admin_password: str = Field(default='change_me_admin_password', alias='DEFAULT_ADMIN_PASSWORD')

    tokens_enabled: bool = Field(default=False, alias='TOKENS_ENABLED')
    tokens_path: str = Field(default='./tokens.txt', alias='TOKENS_PATH')

    query_access: str = Field(default='admin_or_token', alias='QUERY_ACCESS')
    protect_admins: bool = Field(default=False, alias='PROTECT_ADMINS')

    logging_enabled: bool = Field(default=False, alias='LOGGING_ENABLED')
    logfile_path: str = Field(default='./logs/tablegate.log', alias='LOGFILE_PATH')
    debug_enabled: bool = Field(default=False, alias='DEBUG_ENABLED')
    sql_logging: bool = Field(default=False, alias='SQL_LOGGING')

    shutdown_grace_seconds: float = Field(default=2.0, alias='SHUTDOWN_GRACE_SECONDS')
    forced_exit_code: int = Field(default=22, alias='FORCED_EXIT_CODE')


settings = Settings()
