from dataclasses import dataclass

from fastapi import Query, Request

from mfgops.api.auth import resolve_settings


@dataclass(frozen=True)
class Pagination:
    page: int
    page_size: int


def get_pagination(
    request: Request,
    page: int = Query(1),
    page_size: int | None = Query(None),
) -> Pagination:
    """Clamp paging parameters to the configured default and maximum page size."""
    page, size = resolve_settings(request).clamp_page(page, page_size)
    return Pagination(page=page, page_size=size)
