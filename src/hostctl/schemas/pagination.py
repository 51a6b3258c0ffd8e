"""Offset pagination, search and sorting parameters for server listings."""

import math
from typing import Final, Literal

from pydantic import BaseModel, field_validator

from src.hostctl.core.exceptions import InvalidFieldError

DEFAULT_PAGE_SIZE: Final[int] = 10
MAX_PAGE_SIZE: Final[int] = 100
DEFAULT_SORT_FIELD: Final[str] = "created_at"
VALID_SORT_FIELDS: Final[tuple[str, ...]] = (
    "name",
    "host",
    "port",
    "username",
    "created_at",
    "updated_at",
)


class ServerQueryParams(BaseModel):
    """Listing query.

    Out-of-range values fall back to defaults, except sort_by: an unknown sort
    field is rejected here, before any query is built.
    """

    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE
    search: str = ""
    sort_by: str = DEFAULT_SORT_FIELD
    sort_order: Literal["asc", "desc"] = "desc"

    @field_validator("page", mode="before")
    @classmethod
    def default_page(cls, v: int | str | None) -> int:
        page = int(v) if v not in (None, "") else 1
        return page if page > 0 else 1

    @field_validator("page_size", mode="before")
    @classmethod
    def default_page_size(cls, v: int | str | None) -> int:
        size = int(v) if v not in (None, "") else DEFAULT_PAGE_SIZE
        return size if 0 < size <= MAX_PAGE_SIZE else DEFAULT_PAGE_SIZE

    @field_validator("search", mode="before")
    @classmethod
    def strip_search(cls, v: str | None) -> str:
        return (v or "").strip()

    @field_validator("sort_by", mode="before")
    @classmethod
    def check_sort_by(cls, v: str | None) -> str:
        if not v:
            return DEFAULT_SORT_FIELD
        if v not in VALID_SORT_FIELDS:
            raise InvalidFieldError("sort_by", f"invalid sort field: {v}")
        return v

    @field_validator("sort_order", mode="before")
    @classmethod
    def default_sort_order(cls, v: str | None) -> str:
        v = (v or "").lower()
        return v if v in ("asc", "desc") else "desc"

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    @property
    def limit(self) -> int:
        return self.page_size

    def total_pages(self, total_items: int) -> int:
        return math.ceil(total_items / self.page_size)
