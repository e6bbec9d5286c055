"""
상품 ID 페이지 수집/계정 병합/메모리 재페이징 테스트.
"""

import asyncio
import math

import pytest

from app.errors import UpstreamError
from app.services.shopee.aggregation import aggregate
from app.services.shopee.fetcher import fetch_all_identifiers
from app.services.shopee.pagination import clamp_page, clamp_per_page, slice_refs
from app.services.shopee.types import RemoteItemRef, StatusFilter
from app.settings import settings


@pytest.mark.unit
class TestFetchAllIdentifiers:

    @pytest.mark.asyncio
    async def test_250_items_take_exactly_three_pages(self, fake_client, account_factory):
        account = account_factory()
        fake_client.items[(account.id, "NORMAL")] = list(range(1, 251))

        result = await fetch_all_identifiers(fake_client, account, StatusFilter.NORMAL)

        offsets = [c[2][1] for c in fake_client.calls if c[0] == "get_item_list"]
        assert offsets == [0, 100, 200]
        assert result.total == 250
        assert len(result.refs) == 250
        assert result.refs[0] == RemoteItemRef(account.id, 1)
        assert result.complete

    @pytest.mark.asyncio
    async def test_stops_when_offset_reaches_first_total(self, fake_client, account_factory):
        account = account_factory()
        fake_client.items[(account.id, "NORMAL")] = list(range(1, 301))
        # 첫 응답 total만 신뢰 (이후 페이지에서 total이 바뀌어도 무시)
        fake_client.totals[(account.id, "NORMAL")] = 200

        result = await fetch_all_identifiers(fake_client, account, StatusFilter.NORMAL)

        assert fake_client.count("get_item_list") == 2
        assert result.total == 200
        assert len(result.refs) == 200

    @pytest.mark.asyncio
    async def test_page_failure_keeps_collected_and_first_total(self, fake_client, account_factory):
        account = account_factory()
        fake_client.items[(account.id, "NORMAL")] = list(range(1, 251))
        fake_client.fail_pages.add((account.id, 100))

        result = await fetch_all_identifiers(fake_client, account, StatusFilter.NORMAL)

        assert result.total == 250
        assert len(result.refs) == 100
        assert not result.complete
        assert fake_client.count("get_item_list") == 2

    @pytest.mark.asyncio
    async def test_uses_remote_status_value(self, fake_client, account_factory):
        account = account_factory()
        fake_client.items[(account.id, "UNLIST")] = [5, 6]

        result = await fetch_all_identifiers(fake_client, account, StatusFilter.UNLISTED)

        assert [r.item_id for r in result.refs] == [5, 6]
        assert fake_client.calls[0][2][0] == "UNLIST"

    @pytest.mark.asyncio
    async def test_empty_account(self, fake_client, account_factory):
        result = await fetch_all_identifiers(fake_client, account_factory(), StatusFilter.BANNED)

        assert result.refs == []
        assert result.total == 0
        assert fake_client.count("get_item_list") == 1


@pytest.mark.unit
class TestAggregate:

    @pytest.mark.asyncio
    async def test_merges_in_account_order(self, fake_client, account_factory):
        a1, a2 = account_factory("a1", 1), account_factory("a2", 2)
        fake_client.items[(a1.id, "NORMAL")] = [10, 11]
        fake_client.items[(a2.id, "NORMAL")] = [10, 20, 21]

        result = await aggregate(fake_client, [a1, a2], StatusFilter.NORMAL)

        assert result.refs == [
            RemoteItemRef(a1.id, 10),
            RemoteItemRef(a1.id, 11),
            RemoteItemRef(a2.id, 10),
            RemoteItemRef(a2.id, 20),
            RemoteItemRef(a2.id, 21),
        ]
        assert result.grand_total == 5

    @pytest.mark.asyncio
    async def test_grand_total_counts_reported_totals_even_on_failure(self, fake_client, account_factory):
        a1, a2 = account_factory("a1", 1), account_factory("a2", 2)
        fake_client.items[(a1.id, "NORMAL")] = list(range(250))
        fake_client.items[(a2.id, "NORMAL")] = list(range(30))
        fake_client.fail_pages.add((a1.id, 200))

        result = await aggregate(fake_client, [a1, a2], StatusFilter.NORMAL)

        assert result.grand_total == 280
        assert result.total_retrieved == 230
        assert [r.complete for r in result.per_account] == [False, True]

    @pytest.mark.asyncio
    async def test_no_accounts(self, fake_client):
        result = await aggregate(fake_client, [], StatusFilter.NORMAL)

        assert result.refs == []
        assert result.grand_total == 0
        assert fake_client.calls == []


@pytest.mark.unit
class TestRepagination:

    @pytest.mark.parametrize("per_page", [5, 7, 100, 300])
    def test_pages_reconstruct_merged_list(self, per_page):
        merged = list(range(523))
        pages = math.ceil(len(merged) / per_page)

        rebuilt = []
        for page in range(1, pages + 1):
            rebuilt.extend(slice_refs(merged, page, per_page))

        assert rebuilt == merged

    def test_offset_beyond_length_is_empty(self):
        assert slice_refs([1, 2, 3], 2, 5) == []

    def test_clamping(self):
        assert clamp_page(0) == 1
        assert clamp_page(-3) == 1
        assert clamp_per_page(1) == 5
        assert clamp_per_page(1000) == 300
        assert clamp_per_page(None) == 20


def _slow_after_first_page(fake_client, account_id, delay: float):
    """account_id 계정의 두 번째 페이지부터 delay초 지연"""
    original = fake_client.get_item_list

    async def get_item_list(account, item_status, offset=0, page_size=100):
        if account.id == account_id and offset > 0:
            await asyncio.sleep(delay)
        return await original(account, item_status, offset=offset, page_size=page_size)

    fake_client.get_item_list = get_item_list


def _fail_once(fake_client, account_id, fail_offset: int):
    """지정 페이지 호출을 첫 번째에만 실패시킴"""
    original = fake_client.get_item_list
    failed = set()

    async def get_item_list(account, item_status, offset=0, page_size=100):
        key = (account.id, offset)
        if key == (account_id, fail_offset) and key not in failed:
            failed.add(key)
            fake_client.calls.append(("get_item_list", account.id, (item_status, offset, page_size)))
            raise UpstreamError("temporary", status_code=503)
        return await original(account, item_status, offset=offset, page_size=page_size)

    fake_client.get_item_list = get_item_list


@pytest.mark.unit
class TestFetchIsolation:

    @pytest.mark.asyncio
    async def test_malformed_page_stops_only_that_account(self, fake_client, account_factory):
        a1, a2 = account_factory("a1", 1), account_factory("a2", 2)
        fake_client.items[(a1.id, "NORMAL")] = ["not-a-number"]
        fake_client.items[(a2.id, "NORMAL")] = [20, 21]

        result = await aggregate(fake_client, [a1, a2], StatusFilter.NORMAL)

        assert result.refs == [RemoteItemRef(a2.id, 20), RemoteItemRef(a2.id, 21)]
        assert result.per_account[0].error is not None
        assert result.per_account[1].complete

    @pytest.mark.asyncio
    async def test_non_dict_item_is_upstream_error(self, fake_client, account_factory):
        account = account_factory()

        async def get_item_list(account, item_status, offset=0, page_size=100):
            return {"item": ["oops"], "total_count": 1}

        fake_client.get_item_list = get_item_list

        result = await fetch_all_identifiers(fake_client, account, StatusFilter.NORMAL)

        assert result.refs == []
        assert "응답 형식 오류" in result.error

    @pytest.mark.asyncio
    async def test_deadline_stops_slow_account_only(self, fake_client, account_factory, monkeypatch):
        a1, a2 = account_factory("slow", 1), account_factory("fast", 2)
        fake_client.items[(a1.id, "NORMAL")] = list(range(250))
        fake_client.items[(a2.id, "NORMAL")] = list(range(30))
        _slow_after_first_page(fake_client, a1.id, delay=5)
        monkeypatch.setattr(settings, "shopee_fetch_deadline_seconds", 0.2)

        result = await aggregate(fake_client, [a1, a2], StatusFilter.NORMAL)

        slow, fast = result.per_account
        assert "제한 시간 초과" in slow.error
        assert slow.total == 250
        assert len(slow.refs) == 100
        assert fast.complete
        assert len(fast.refs) == 30
        assert result.grand_total == 280

    @pytest.mark.asyncio
    async def test_explicit_deadline_argument(self, fake_client, account_factory):
        account = account_factory()
        fake_client.items[(account.id, "NORMAL")] = list(range(150))
        _slow_after_first_page(fake_client, account.id, delay=5)

        result = await fetch_all_identifiers(fake_client, account, StatusFilter.NORMAL, deadline_seconds=0.1)

        assert not result.complete
        assert result.total == 150
        assert len(result.refs) == 100


@pytest.mark.unit
class TestFetchRetry:

    @pytest.mark.asyncio
    async def test_failed_page_is_retried_when_enabled(self, fake_client, account_factory, monkeypatch):
        account = account_factory()
        fake_client.items[(account.id, "NORMAL")] = list(range(150))
        _fail_once(fake_client, account.id, fail_offset=100)
        monkeypatch.setattr(settings, "shopee_retry_count", 2)

        result = await fetch_all_identifiers(fake_client, account, StatusFilter.NORMAL)

        offsets = [c[2][1] for c in fake_client.calls if c[0] == "get_item_list"]
        assert offsets == [0, 100, 100]
        assert result.complete
        assert len(result.refs) == 150

    @pytest.mark.asyncio
    async def test_no_retry_by_default(self, fake_client, account_factory):
        account = account_factory()
        fake_client.items[(account.id, "NORMAL")] = list(range(150))
        _fail_once(fake_client, account.id, fail_offset=100)

        result = await fetch_all_identifiers(fake_client, account, StatusFilter.NORMAL)

        assert fake_client.count("get_item_list") == 2
        assert not result.complete
        assert len(result.refs) == 100
