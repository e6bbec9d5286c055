"""
Shopee 상품 ID 페이지 수집기.

계정 1개 + 상태 1개에 대해 get_item_list를 offset 페이징으로 끝까지 조회합니다.
전체 건수(total)는 첫 페이지 응답 값을 그대로 신뢰합니다.
"""
import asyncio
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any

from tenacity import RetryCallState, retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from app.errors import UpstreamError
from app.services.shopee.types import FetchResult, RemoteItemRef, ShopeeAccount, StatusFilter
from app.settings import settings
from app.shopee_client import ShopeeClient

logger = logging.getLogger(__name__)


@dataclass
class ItemIdPage:
    offset: int
    item_ids: list[int]
    total: int


def _stop_after_configured_attempts(retry_state: RetryCallState) -> bool:
    """재시도 횟수는 호출 시점의 settings.shopee_retry_count를 따름"""
    return stop_after_attempt(settings.shopee_retry_count)(retry_state)


@retry(
    stop=_stop_after_configured_attempts,
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type(UpstreamError),
    reraise=True,
    before_sleep=lambda retry_state: logger.warning(
        f"[Shopee] get_item_list 재시도 중... ({retry_state.attempt_number}회째): {retry_state.outcome.exception()}"
    ),
)
async def _fetch_page(
    client: ShopeeClient,
    account: ShopeeAccount,
    status: StatusFilter,
    offset: int,
    page_size: int,
) -> dict[str, Any]:
    return await client.get_item_list(account, status.remote_status, offset=offset, page_size=page_size)


async def iter_item_id_pages(
    client: ShopeeClient,
    account: ShopeeAccount,
    status: StatusFilter,
    page_size: int | None = None,
    deadline_seconds: float | None = None,
) -> AsyncIterator[ItemIdPage]:
    """
    계정 내부 커서: 페이지 단위로 상품 ID를 순차 yield.

    종료 조건:
    - 배치 크기보다 적게 반환된 경우
    - offset이 첫 응답의 total_count에 도달한 경우

    Raises:
        UpstreamError: 페이지 호출 실패 또는 수집 제한 시간 초과
    """
    page_size = page_size or settings.shopee_page_size
    deadline_seconds = deadline_seconds or settings.shopee_fetch_deadline_seconds
    loop = asyncio.get_running_loop()
    deadline = loop.time() + deadline_seconds

    offset = 0
    total: int | None = None
    while True:
        remaining = deadline - loop.time()
        if remaining <= 0:
            raise UpstreamError(f"Shopee 상품 목록 수집 제한 시간 초과 (offset={offset})")
        try:
            response = await asyncio.wait_for(
                _fetch_page(client, account, status, offset, page_size),
                timeout=remaining,
            )
        except asyncio.TimeoutError as e:
            raise UpstreamError(f"Shopee 상품 목록 수집 제한 시간 초과 (offset={offset})") from e

        try:
            items = response.get("item") or []
            if total is None:
                total = int(response.get("total_count") or 0)
            item_ids = [int(it["item_id"]) for it in items if it.get("item_id") is not None]
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise UpstreamError(
                f"Shopee 상품 목록 응답 형식 오류 (offset={offset}): {e}",
                path="/api/v2/product/get_item_list",
            ) from e

        yield ItemIdPage(offset=offset, item_ids=item_ids, total=total)

        offset += page_size
        if len(items) < page_size or offset >= total:
            return


async def fetch_all_identifiers(
    client: ShopeeClient,
    account: ShopeeAccount,
    status: StatusFilter,
    page_size: int | None = None,
    deadline_seconds: float | None = None,
) -> FetchResult:
    """
    계정의 상태별 상품 ID 전체 수집.

    페이지 호출 실패 시 그때까지 수집한 ID와 첫 페이지 total을 그대로 반환합니다.
    (계정 단위 부분 실패 격리, 예외를 올리지 않음)
    """
    result = FetchResult(account=account)
    pages = 0
    try:
        async for page in iter_item_id_pages(client, account, status, page_size, deadline_seconds):
            if pages == 0:
                result.total = page.total
            pages += 1
            result.refs.extend(RemoteItemRef(account.id, item_id) for item_id in page.item_ids)
    except UpstreamError as e:
        result.error = e.message
        logger.error(
            f"[Shopee] 상품 목록 수집 중단 account={account.name} status={status.value} "
            f"pages={pages} collected={len(result.refs)} total={result.total}: {e.message}"
        )
        return result

    logger.info(
        f"[Shopee] 상품 목록 수집 완료 account={account.name} status={status.value} "
        f"pages={pages} collected={len(result.refs)} total={result.total}"
    )
    return result
