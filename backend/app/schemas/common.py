from __future__ import annotations

from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from app.core.errors import ApiError


class Envelope(BaseModel):
    success: bool
    data: Any = None
    error: str | None = None


class OperationResult(BaseModel):
    """Outcome of one operation: status code, success flag and payload or message."""

    status_code: int = 200
    success: bool = True
    data: Any = None
    error: str | None = None

    @classmethod
    def ok(cls, data: Any = None) -> 'OperationResult':
        return cls(status_code=200, success=True, data=data)

    @classmethod
    def fail(cls, message: str, status_code: int = 400) -> 'OperationResult':
        return cls(status_code=status_code, success=False, error=message)

    @classmethod
    def from_error(cls, exc: ApiError) -> 'OperationResult':
        return cls.fail(exc.message, exc.status_code)

    def envelope(self) -> dict:
        if self.success:
            return {'success': True, 'data': jsonable_encoder(self.data)}
        return {'success': False, 'error': self.error}

    def to_response(self, headers: dict[str, str] | None = None) -> JSONResponse:
        return JSONResponse(status_code=self.status_code, content=self.envelope(), headers=headers)
