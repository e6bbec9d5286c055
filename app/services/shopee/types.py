"""
Shopee 리스팅 파이프라인 공용 타입.

모든 객체는 파이프라인 1회 실행 동안만 생성/사용되며 캐시되지 않습니다.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from app.errors import ListingError
from app.models import MarketAccount


class StatusFilter(str, Enum):
    NORMAL = "NORMAL"
    UNLISTED = "UNLISTED"
    BANNED = "BANNED"
    DELETED = "DELETED"
    REVIEWING = "REVIEWING"
    SOLDOUT = "SOLDOUT"

    @property
    def remote_status(self) -> str:
        """Shopee get_item_list의 item_status 값"""
        return REMOTE_STATUS[self]

    @property
    def is_display_filter(self) -> bool:
        """원격 상태를 공유하고 화면단에서 재고 기준으로 걸러내는 상태"""
        return self is StatusFilter.SOLDOUT


REMOTE_STATUS: dict[StatusFilter, str] = {
    StatusFilter.NORMAL: "NORMAL",
    StatusFilter.UNLISTED: "UNLIST",
    StatusFilter.BANNED: "BANNED",
    StatusFilter.DELETED: "SELLER_DELETE",
    StatusFilter.REVIEWING: "REVIEWING",
    # 품절은 NORMAL 상품 중 재고 0인 것 (클라이언트 측 필터)
    StatusFilter.SOLDOUT: "NORMAL",
}


@dataclass(frozen=True)
class ShopeeAccount:
    id: uuid.UUID
    shop_id: int
    name: str
    access_token: str

    @classmethod
    def from_model(cls, account: MarketAccount) -> "ShopeeAccount":
        creds = account.credentials or {}
        shop_id = creds.get("shop_id")
        access_token = creds.get("access_token")
        if not shop_id or not access_token:
            raise ListingError(
                f"Shopee 계정 인증 정보가 설정되지 않았습니다: {account.name}",
                error_code="account_credentials_missing",
                context={"account_id": str(account.id)},
            )
        return cls(
            id=account.id,
            shop_id=int(shop_id),
            name=account.name,
            access_token=str(access_token),
        )


@dataclass(frozen=True)
class RemoteItemRef:
    account_id: uuid.UUID
    item_id: int


@dataclass
class FetchResult:
    account: ShopeeAccount
    refs: list[RemoteItemRef] = field(default_factory=list)
    total: int = 0
    error: str | None = None

    @property
    def complete(self) -> bool:
        return self.error is None


@dataclass
class AggregateResult:
    refs: list[RemoteItemRef]
    grand_total: int
    per_account: list[FetchResult] = field(default_factory=list)

    @property
    def total_retrieved(self) -> int:
        return len(self.refs)


@dataclass
class JoinedItem:
    ref: RemoteItemRef
    account: ShopeeAccount
    base: dict[str, Any] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)
    models: list[dict[str, Any]] = field(default_factory=list)
    tier_variations: list[dict[str, Any]] = field(default_factory=list)

    @property
    def has_model(self) -> bool:
        return bool(self.base.get("has_model"))
