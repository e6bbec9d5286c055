from collections.abc import Sequence
from typing import TypeVar

from app.settings import settings

T = TypeVar("T")


def clamp_page(page: int | None) -> int:
    return max(1, int(page or 1))


def clamp_per_page(per_page: int | None) -> int:
    if not per_page:
        return settings.listing_per_page_default
    return min(settings.listing_per_page_max, max(settings.listing_per_page_min, int(per_page)))


def slice_refs(refs: Sequence[T], page: int, per_page: int) -> list[T]:
    """병합된 ID 목록에서 요청 페이지 구간만 잘라냄 (계정별 페이지 경계와 무관)"""
    offset = (page - 1) * per_page
    if offset >= len(refs):
        return []
    return list(refs[offset:offset + per_page])
