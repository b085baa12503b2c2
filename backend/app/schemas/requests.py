from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CommandIn(BaseModel):
    data: str = Field(min_length=1, max_length=64)


class QueryIn(BaseModel):
    data: str = Field(min_length=1)


class UserIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user: str | None = Field(default=None, max_length=128)
    password: str | None = Field(default=None, alias='pass', max_length=128)
    admin: bool | None = None


class TableIn(BaseModel):
    table: str | None = None
    data: Any = None
    where: dict[str, Any] | None = None
