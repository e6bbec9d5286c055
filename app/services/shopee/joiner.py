"""
요청 페이지에 포함된 상품에 대해서만 상세 정보를 조인합니다.

계정별로 묶어서:
1. get_item_base_info 일괄 조회
2. get_item_extra_info 일괄 조회 (best-effort, 실패 시 지표 0)
3. has_model 상품에 대해 get_model_list 개별 조회
   (10개 단위 서브배치 내부는 동시, 서브배치끼리는 순차)
"""
import asyncio
import logging
import uuid
from collections.abc import Mapping, Sequence
from typing import Any, TypeVar

from app.errors import UpstreamError
from app.services.shopee.types import JoinedItem, RemoteItemRef, ShopeeAccount
from app.settings import settings
from app.shopee_client import ShopeeClient

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _chunks(items: Sequence[T], size: int) -> list[Sequence[T]]:
    return [items[i:i + size] for i in range(0, len(items), size)]


def group_by_account(refs: Sequence[RemoteItemRef]) -> dict[uuid.UUID, list[RemoteItemRef]]:
    groups: dict[uuid.UUID, list[RemoteItemRef]] = {}
    for ref in refs:
        groups.setdefault(ref.account_id, []).append(ref)
    return groups


async def _fetch_base_info(client: ShopeeClient, account: ShopeeAccount, item_ids: list[int]) -> dict[int, dict[str, Any]]:
    base_by_id: dict[int, dict[str, Any]] = {}
    for chunk in _chunks(item_ids, settings.shopee_item_info_batch_size):
        try:
            items = await client.get_item_base_info(account, chunk)
        except UpstreamError as e:
            # 기본 정보가 없어도 레코드는 기본값으로 내려보낸다
            logger.error(f"[Shopee] get_item_base_info 실패 account={account.name} ids={len(chunk)}: {e.message}")
            continue
        for item in items:
            if item.get("item_id") is not None:
                base_by_id[int(item["item_id"])] = item
    return base_by_id


async def _fetch_extra_info(client: ShopeeClient, account: ShopeeAccount, item_ids: list[int]) -> dict[int, dict[str, Any]]:
    extra_by_id: dict[int, dict[str, Any]] = {}
    for chunk in _chunks(item_ids, settings.shopee_item_info_batch_size):
        try:
            items = await client.get_item_extra_info(account, chunk)
        except Exception as e:
            logger.warning(f"[Shopee] get_item_extra_info 실패 (지표 0 처리) account={account.name}: {e}")
            continue
        for item in items:
            if item.get("item_id") is not None:
                extra_by_id[int(item["item_id"])] = item
    return extra_by_id


async def _fetch_models(client: ShopeeClient, account: ShopeeAccount, item_id: int) -> dict[str, Any]:
    try:
        return await client.get_model_list(account, item_id)
    except Exception as e:
        logger.warning(f"[Shopee] get_model_list 실패 (옵션 없음 처리) account={account.name} item_id={item_id}: {e}")
        return {}


async def _join_account(
    client: ShopeeClient,
    account: ShopeeAccount,
    refs: list[RemoteItemRef],
) -> dict[RemoteItemRef, JoinedItem]:
    item_ids = [ref.item_id for ref in refs]
    base_by_id = await _fetch_base_info(client, account, item_ids)
    extra_by_id = await _fetch_extra_info(client, account, item_ids)

    joined = {
        ref: JoinedItem(
            ref=ref,
            account=account,
            base=base_by_id.get(ref.item_id, {}),
            extra=extra_by_id.get(ref.item_id, {}),
        )
        for ref in refs
    }

    targets = [item for item in joined.values() if item.has_model]
    for batch in _chunks(targets, settings.shopee_model_batch_size):
        responses = await asyncio.gather(*(_fetch_models(client, account, item.ref.item_id) for item in batch))
        for item, response in zip(batch, responses):
            item.models = response.get("model") or []
            item.tier_variations = response.get("tier_variation") or []

    return joined


async def join_details(
    client: ShopeeClient,
    page_refs: Sequence[RemoteItemRef],
    accounts: Mapping[uuid.UUID, ShopeeAccount],
) -> dict[RemoteItemRef, JoinedItem]:
    """
    페이지 ID들의 상세 정보를 (계정 ID, 상품 ID) 복합 키로 조인.

    반환 dict의 순서는 보장하지 않으므로 호출 측에서 page_refs 순서로 재정렬해야 합니다.
    """
    groups = group_by_account(page_refs)
    results = await asyncio.gather(
        *(_join_account(client, accounts[account_id], refs) for account_id, refs in groups.items())
    )

    joined: dict[RemoteItemRef, JoinedItem] = {}
    for result in results:
        joined.update(result)
    return joined
