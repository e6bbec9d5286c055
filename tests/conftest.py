"""Pytest configuration and fixtures."""

import uuid
from typing import Any

import pytest
from sqlalchemy import create_engine, JSON
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from app.errors import UpstreamError
from app.models import MarketBase
from app.services.shopee.types import ShopeeAccount


# 테스트용 메모리 SQLite 엔진
TEST_DATABASE_URL = "sqlite:///:memory:"

test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
    echo=False  # 테스트 로그 줄이기
)

TestSessionLocal = sessionmaker(
    bind=test_engine,
    autoflush=False,
    expire_on_commit=False,
)


def _patch_jsonb_to_json(base):
    """
    SQLite에서 JSONB를 JSON으로 변경하여 컴파일 오류 방지.
    테스트용으로만 사용.
    """
    from sqlalchemy.dialects.postgresql import JSONB

    for table in base.metadata.sorted_tables:
        for column in table.columns:
            if isinstance(column.type, JSONB):
                column.type = JSON()


@pytest.fixture(scope="function")
def test_session() -> Session:
    """
    테스트용 데이터베이스 세션 fixture.
    각 테스트마다 새로운 메모리 DB 생성.
    """
    _patch_jsonb_to_json(MarketBase)
    MarketBase.metadata.create_all(bind=test_engine)

    session = TestSessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
        MarketBase.metadata.drop_all(bind=test_engine)


@pytest.fixture(scope="function")
def db_session(test_session: Session):
    """
    기존 코드 호환용 alias.
    test_session과 동일하게 동작.
    """
    yield test_session


def make_account(name: str = "loja-1", shop_id: int = 1001) -> ShopeeAccount:
    return ShopeeAccount(id=uuid.uuid4(), shop_id=shop_id, name=name, access_token=f"token-{name}")


class FakeShopeeClient:
    """
    ShopeeClient 대체용 인메모리 가짜 클라이언트.

    Attributes:
        items: {(account_id, remote_status): [item_id, ...]}
        totals: total_count 강제값 {(account_id, remote_status): int}
        base: {(account_id, item_id): base_info}
        extra: {(account_id, item_id): extra_info}
        models: {(account_id, item_id): model_list_response}
        fail_pages: 실패시킬 get_item_list 호출 {(account_id, offset)}
        fail_models: 실패시킬 get_model_list {(account_id, item_id)}
        fail_extra / fail_base: 실패시킬 계정 ID 집합
        calls: 호출 기록 [(method, account_id, arg)]
    """

    def __init__(self):
        self.items: dict[tuple[Any, str], list[int]] = {}
        self.totals: dict[tuple[Any, str], int] = {}
        self.base: dict[tuple[Any, int], dict] = {}
        self.extra: dict[tuple[Any, int], dict] = {}
        self.models: dict[tuple[Any, int], dict] = {}
        self.fail_pages: set[tuple[Any, int]] = set()
        self.fail_models: set[tuple[Any, int]] = set()
        self.fail_extra: set[Any] = set()
        self.fail_base: set[Any] = set()
        self.calls: list[tuple[str, Any, Any]] = []

    async def get_item_list(self, account, item_status, offset=0, page_size=100):
        self.calls.append(("get_item_list", account.id, (item_status, offset, page_size)))
        if (account.id, offset) in self.fail_pages:
            raise UpstreamError("boom", status_code=500, path="/api/v2/product/get_item_list")
        ids = self.items.get((account.id, item_status), [])
        total = self.totals.get((account.id, item_status), len(ids))
        batch = ids[offset:offset + page_size]
        return {
            "item": [{"item_id": i, "item_status": item_status} for i in batch],
            "total_count": total,
            "has_next_page": offset + page_size < total,
        }

    async def get_item_base_info(self, account, item_ids):
        item_ids = list(item_ids)
        self.calls.append(("get_item_base_info", account.id, item_ids))
        if account.id in self.fail_base:
            raise UpstreamError("base failed")
        return [
            {"item_id": i, **self.base[(account.id, i)]}
            for i in item_ids
            if (account.id, i) in self.base
        ]

    async def get_item_extra_info(self, account, item_ids):
        item_ids = list(item_ids)
        self.calls.append(("get_item_extra_info", account.id, item_ids))
        if account.id in self.fail_extra:
            raise UpstreamError("extra failed")
        return [
            {"item_id": i, **self.extra[(account.id, i)]}
            for i in item_ids
            if (account.id, i) in self.extra
        ]

    async def get_model_list(self, account, item_id):
        self.calls.append(("get_model_list", account.id, item_id))
        if (account.id, item_id) in self.fail_models:
            raise UpstreamError("model list failed")
        return self.models.get((account.id, item_id), {})

    def count(self, method: str) -> int:
        return sum(1 for c in self.calls if c[0] == method)


@pytest.fixture
def fake_client() -> FakeShopeeClient:
    return FakeShopeeClient()


@pytest.fixture
def account_factory():
    return make_account


# 테스트 마커 정의
def pytest_configure(config):
    """Pytest 마커 등록."""
    config.addinivalue_line("markers", "unit: 단위 테스트 (DB 불필요)")
    config.addinivalue_line("markers", "integration: 통합 테스트 (실제 DB/API 필요)")
