"""
Shopee 다중 계정 상품 리스팅 서비스.

흐름: 계정 조회 → 계정별 ID 수집(동시) → 병합 → 메모리 재페이징 → 상세 조인 → 레코드 변환
"""
import asyncio
import logging
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.orm import Session

from app.errors import UpstreamError
from app.schemas.shopee import ListingPage, Pagination
from app.services.shopee.accounts import resolve_accounts
from app.services.shopee.aggregation import aggregate
from app.services.shopee.joiner import join_details
from app.services.shopee.pagination import clamp_page, clamp_per_page, slice_refs
from app.services.shopee.projector import project
from app.services.shopee.types import ShopeeAccount, StatusFilter
from app.settings import settings
from app.shopee_client import ShopeeClient

logger = logging.getLogger(__name__)


class ShopeeListingService:
    """Shopee 리스팅 조회 서비스 (요청 단위 생성)"""

    def __init__(self, session: Session, client: ShopeeClient | None = None):
        self.session = session
        self._client = client

    @asynccontextmanager
    async def _open_client(self) -> AsyncIterator[ShopeeClient]:
        if self._client is not None:
            yield self._client
            return
        async with ShopeeClient.from_settings(settings) as client:
            yield client

    async def list_products(
        self,
        user_id: uuid.UUID,
        account_id: uuid.UUID | None = None,
        status: StatusFilter = StatusFilter.NORMAL,
        page: int | None = 1,
        per_page: int | None = None,
        strict: bool | None = None,
    ) -> ListingPage:
        """
        상태별 상품 목록을 전 계정 통합으로 페이징 조회.

        Args:
            user_id: 요청 사용자 ID
            account_id: 특정 계정만 조회 (None이면 전체 활성 계정)
            status: 상태 필터
            page: 페이지 번호 (1 이상으로 보정)
            per_page: 페이지 크기 (설정된 min/max로 보정)
            strict: True면 실제 수집된 ID 수(total_retrieved)를 함께 반환

        Raises:
            AccountNotFoundError: account_id가 활성 계정이 아닌 경우
        """
        page = clamp_page(page)
        per_page = clamp_per_page(per_page)
        strict = settings.shopee_strict_totals if strict is None else strict

        accounts = resolve_accounts(self.session, user_id, account_id)
        if not accounts:
            return ListingPage(
                products=[],
                pagination=Pagination(page=page, per_page=per_page, total=0, total_retrieved=0 if strict else None),
            )

        async with self._open_client() as client:
            result = await aggregate(client, accounts, status)
            page_refs = slice_refs(result.refs, page, per_page)
            joined = await join_details(client, page_refs, {a.id: a for a in accounts})

        # 동시 호출 완료 순서와 무관하게 슬라이스 순서대로 변환
        products = [project(joined[ref], status) for ref in page_refs]

        logger.info(
            f"[Shopee] 리스팅 조회 user={user_id} status={status.value} page={page} per_page={per_page} "
            f"accounts={len(accounts)} total={result.grand_total} retrieved={result.total_retrieved} "
            f"rows={len(products)}"
        )
        return ListingPage(
            products=products,
            pagination=Pagination(
                page=page,
                per_page=per_page,
                total=result.grand_total,
                total_retrieved=result.total_retrieved if strict else None,
            ),
        )

    async def count_by_status(
        self,
        user_id: uuid.UUID,
        account_id: uuid.UUID | None = None,
    ) -> dict[str, int]:
        """
        상태별 상품 수 (계정 합계).

        상태 x 계정마다 1건짜리 조회로 total_count만 읽어 합산합니다.
        품절(SOLDOUT)은 화면단 필터이므로 집계 대상에서 제외됩니다.
        """
        statuses = [s for s in StatusFilter if not s.is_display_filter]
        counts = {s.value: 0 for s in statuses}

        accounts = resolve_accounts(self.session, user_id, account_id)
        if not accounts:
            return counts

        pairs = [(account, status) for account in accounts for status in statuses]
        async with self._open_client() as client:
            totals = await asyncio.gather(*(self._probe_total(client, a, s) for a, s in pairs))

        for (_, status), total in zip(pairs, totals):
            counts[status.value] += total
        return counts

    async def _probe_total(self, client: ShopeeClient, account: ShopeeAccount, status: StatusFilter) -> int:
        try:
            response = await client.get_item_list(account, status.remote_status, offset=0, page_size=1)
        except UpstreamError as e:
            logger.warning(f"[Shopee] 상태별 건수 조회 실패 account={account.name} status={status.value}: {e.message}")
            return 0
        return int(response.get("total_count") or 0)
