# Common API response schemas.
# Created: 2026-10-12

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

from tokenhub.models import Page

T = TypeVar("T")


class APIResponse(BaseModel):
    """Base response wrapper."""

    model_config = {"from_attributes": True}


class ErrorResponse(APIResponse):
    """Standard error envelope."""

    error: str
    error_description: str
    errors: dict[str, list[str]] | None = None


class Paginated(APIResponse, Generic[T]):
    """Paginated list response, newest first."""

    data: list[T]
    current_page: int
    last_page: int
    per_page: int
    total: int

    @classmethod
    def from_page(cls, page: Page[Any], convert: Callable[[Any], T]) -> Paginated[T]:
        return cls(
            data=[convert(item) for item in page.items],
            current_page=page.page,
            last_page=page.last_page,
            per_page=page.per_page,
            total=page.total,
        )


class MessageResponse(APIResponse):
    """Simple confirmation message."""

    message: str
