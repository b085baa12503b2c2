import logging
import time
import uuid

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.router import router as api_router
from app.core.config import settings
from app.core.errors import ApiError
from app.core.list_cache import ListCache
from app.core.logging_config import log_request, structured_log
from app.core.security import AuthGate
from app.db.bootstrap import bootstrap_database
from app.db.session import SessionLocal
from app.schemas.common import OperationResult
from app.services.command_service import ServerControl

logger = logging.getLogger(__name__)


def _trace_id(request: Request) -> str:
    return getattr(request.state, 'trace_id', None) or request.headers.get('x-trace-id') or str(uuid.uuid4())


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = '.'.join(str(p) for p in err.get('loc', ()) if p != 'body')
        parts.append(f"{loc or 'body'}: {err.get('msg', 'invalid')}")
    return 'Invalid request: ' + '; '.join(parts) if parts else 'Invalid request'


def create_app(server_control: ServerControl | None = None) -> FastAPI:
    app = FastAPI(title=settings.app_name, version='1.0.0')

    cache = ListCache(
        session_factory=SessionLocal,
        protected_table=settings.protected_table,
        deleted_prefix=settings.deleted_prefix,
        tokens_path=settings.tokens_path if settings.tokens_enabled else None,
    )
    app.state.list_cache = cache
    app.state.auth_gate = AuthGate(cache)
    app.state.server_control = server_control or ServerControl()

    @app.middleware('http')
    async def trace_and_logging(request: Request, call_next):
        trace_id = request.headers.get('x-trace-id') or str(uuid.uuid4())
        request.state.trace_id = trace_id
        start = time.time()
        try:
            response = await call_next(request)
            latency = round((time.time() - start) * 1000, 2)
            log_request(request.url.path, request.method, trace_id, latency, response.status_code)
            response.headers['x-trace-id'] = trace_id
            response.headers['x-latency-ms'] = str(latency)
            return response
        except Exception as exc:
            latency = round((time.time() - start) * 1000, 2)
            structured_log(
                'error', 'request_failed',
                trace_id=trace_id, duration_ms=latency,
                endpoint=f'{request.method} {request.url.path}',
                error=str(exc),
            )
            headers = {'x-trace-id': trace_id, 'x-latency-ms': str(latency)}
            return OperationResult.fail('Internal server error', 500).to_response(headers=headers)

    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError):
        structured_log(
            'warning', 'request_rejected',
            trace_id=_trace_id(request),
            endpoint=f'{request.method} {request.url.path}',
            status_code=exc.status_code,
            error=exc.message,
        )
        return OperationResult.from_error(exc).to_response()

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        message = exc.detail if isinstance(exc.detail, str) else 'HTTP error'
        if exc.status_code == 404 and message == 'Not Found':
            message = f'Route not found: {request.method} {request.url.path}'
        return OperationResult.fail(message, exc.status_code).to_response()

    @app.exception_handler(RequestValidationError)
    async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
        return OperationResult.fail(_validation_message(exc), 400).to_response()

    app.include_router(api_router)

    @app.get('/{path:path}', include_in_schema=False)
    def redirect_all(path: str, request: Request):
        logger.info('Server has been accessed with: /%s', path)
        return RedirectResponse(url=settings.redirect_url, status_code=302)

    @app.api_route('/{path:path}', methods=['POST', 'PUT', 'PATCH', 'DELETE'], include_in_schema=False)
    def unmatched(path: str, request: Request):
        raise StarletteHTTPException(status_code=404)

    @app.on_event('startup')
    def _bootstrap_db_on_startup() -> None:
        bootstrap_database(cache)
        logger.info('%s started', settings.server_name)

    return app


app = create_app()
