"""
계정별 상품 ID 수집을 동시에 실행하고 하나의 목록으로 병합합니다.
"""
import asyncio
import itertools
import logging

from app.services.shopee.fetcher import fetch_all_identifiers
from app.services.shopee.types import AggregateResult, ShopeeAccount, StatusFilter
from app.shopee_client import ShopeeClient

logger = logging.getLogger(__name__)


async def aggregate(
    client: ShopeeClient,
    accounts: list[ShopeeAccount],
    status: StatusFilter,
) -> AggregateResult:
    """
    모든 계정을 동시에 수집 후 계정 순서대로 병합.

    grand_total은 각 계정 첫 페이지 total의 합입니다.
    수집이 중간에 실패한 계정도 최초 total을 그대로 더하므로
    실제 수집된 ID 수(total_retrieved)보다 클 수 있습니다.
    """
    if not accounts:
        return AggregateResult(refs=[], grand_total=0)

    results = await asyncio.gather(
        *(fetch_all_identifiers(client, account, status) for account in accounts)
    )

    refs = list(itertools.chain.from_iterable(r.refs for r in results))
    grand_total = sum(r.total for r in results)

    failed = [r.account.name for r in results if not r.complete]
    if failed:
        logger.warning(
            f"[Shopee] 일부 계정 수집 실패 status={status.value} failed={failed} "
            f"grand_total={grand_total} retrieved={len(refs)}"
        )

    return AggregateResult(refs=refs, grand_total=grand_total, per_account=list(results))
