from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

MAX_DURATION_MINUTES = 60 * 24 * 30  # 30 days
MAX_CONTENT_LENGTH = 100_000


class CheckKeyIn(BaseModel):
    password: Any = None


class CheckKeyOut(BaseModel):
    valid: bool
    message: Optional[str] = None


class MemoCreate(BaseModel):
    password: Optional[str] = None
    content: Optional[str] = Field(default="", max_length=MAX_CONTENT_LENGTH)
    duration: Optional[int] = Field(default=None, ge=1, le=MAX_DURATION_MINUTES)


class MemoUpdate(BaseModel):
    content: str = Field(max_length=MAX_CONTENT_LENGTH)
    duration: Optional[int] = Field(default=None, ge=1, le=MAX_DURATION_MINUTES)


class _CamelOut(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MemoSaved(_CamelOut):
    success: bool = True
    expires_at: datetime


class MemoOut(_CamelOut):
    content: str
    expires_at: datetime
    duration_minutes: int
    last_updated: datetime


class MemoDeleted(_CamelOut):
    success: bool = True
    message: str
