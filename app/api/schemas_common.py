from __future__ import annotations

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class Envelope(BaseModel, Generic[T]):
    success: bool = True
    message: Optional[str] = None
    data: Optional[T] = None
    total: Optional[int] = None
    pagination: Optional[Pagination] = None


class ErrorEnvelope(BaseModel):
    success: bool = False
    message: str
    error: str
    field: Optional[str] = None
