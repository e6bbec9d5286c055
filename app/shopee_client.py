from __future__ import annotations

import hashlib
import hmac
import logging
import time
from collections.abc import Callable, Iterable
from typing import Any

import httpx

from app.errors import UpstreamError
from app.services.shopee.types import ShopeeAccount
from app.settings import Settings

logger = logging.getLogger(__name__)

# 토큰 발급 경로는 서명 문자열에 access_token/shop_id를 포함하지 않는다
AUTH_PATHS = frozenset({
    "/api/v2/auth/token/get",
    "/api/v2/auth/access_token/get",
})


class ShopeeClient:
    """
    Shopee Open Platform v2 클라이언트.

    재시도/백오프는 호출 측 책임입니다. 이 계층은 실패를 UpstreamError로 올리기만 합니다.
    """

    def __init__(
        self,
        partner_id: int,
        partner_key: str,
        base_url: str,
        timeout: httpx.Timeout | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._partner_id = int(partner_id)
        self._partner_key = partner_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout or httpx.Timeout(30.0, connect=10.0)
        self._transport = transport
        self._clock = clock
        self._http: httpx.AsyncClient | None = None

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> "ShopeeClient":
        return cls(
            partner_id=settings.shopee_partner_id,
            partner_key=settings.shopee_partner_key,
            base_url=settings.shopee_base_url,
            timeout=httpx.Timeout(
                settings.shopee_timeout_seconds,
                connect=settings.shopee_connect_timeout_seconds,
            ),
            **kwargs,
        )

    async def __aenter__(self) -> "ShopeeClient":
        self._http = self._new_http()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    def _new_http(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self._base_url, timeout=self._timeout, transport=self._transport)

    def sign(self, path: str, timestamp: int, account: ShopeeAccount | None = None) -> str:
        """
        요청 서명 생성.

        서명 문자열: {partner_id}{path}{timestamp}[{access_token}{shop_id}]
        HMAC-SHA256(partner_key), lowercase hex
        """
        base = f"{self._partner_id}{path}{timestamp}"
        if account is not None and path not in AUTH_PATHS:
            base += f"{account.access_token}{account.shop_id}"
        return hmac.new(
            self._partner_key.encode("utf-8"),
            base.encode("utf-8"),
            hashlib.sha256,
        ).hexdigest()

    def _auth_params(self, path: str, account: ShopeeAccount | None) -> dict[str, Any]:
        timestamp = int(self._clock())
        params: dict[str, Any] = {
            "partner_id": self._partner_id,
            "timestamp": timestamp,
            "sign": self.sign(path, timestamp, account),
        }
        if account is not None and path not in AUTH_PATHS:
            params["access_token"] = account.access_token
            params["shop_id"] = account.shop_id
        return params

    async def request(
        self,
        account: ShopeeAccount | None,
        path: str,
        params: dict[str, Any] | None = None,
        method: str = "GET",
    ) -> dict[str, Any]:
        method = method.upper()
        query = self._auth_params(path, account)

        if method == "GET":
            query.update(params or {})
            kwargs: dict[str, Any] = {"params": query}
        elif method == "POST":
            kwargs = {"params": query, "json": params or {}}
        else:
            raise ValueError(f"Unsupported method: {method}")

        try:
            if self._http is not None:
                resp = await self._http.request(method, path, **kwargs)
            else:
                async with self._new_http() as http:
                    resp = await http.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise UpstreamError(f"Shopee API timeout: {e}", path=path) from e
        except httpx.HTTPError as e:
            raise UpstreamError(f"Shopee API request failed: {e}", path=path) from e

        try:
            data = resp.json()
        except ValueError as e:
            raise UpstreamError(
                f"Shopee API returned non-JSON response (HTTP {resp.status_code})",
                status_code=resp.status_code,
                path=path,
                context={"_raw_text": resp.text[:500]},
            ) from e

        if resp.status_code >= 400 or not isinstance(data, dict):
            raise UpstreamError(
                f"Shopee API HTTP {resp.status_code}: {_error_message(data)}",
                status_code=resp.status_code,
                path=path,
            )
        if data.get("error"):
            raise UpstreamError(
                f"Shopee API error: {_error_message(data)}",
                status_code=resp.status_code,
                path=path,
                context={"request_id": data.get("request_id")},
            )
        return data

    # --------------------------------------------------------------------------
    # 상품 API (Product API)
    # --------------------------------------------------------------------------

    async def get_item_list(
        self,
        account: ShopeeAccount,
        item_status: str,
        offset: int = 0,
        page_size: int = 100,
    ) -> dict[str, Any]:
        """
        상태별 상품 ID 목록 조회 (offset 페이징)

        Returns:
            response 필드 dict:
            - item: [{"item_id", "item_status", "update_time"}]
            - total_count: 전체 상품 수
            - has_next_page / next_offset
        """
        data = await self.request(
            account,
            "/api/v2/product/get_item_list",
            {"offset": offset, "page_size": page_size, "item_status": item_status},
        )
        return data.get("response") or {}

    async def get_item_base_info(self, account: ShopeeAccount, item_ids: Iterable[int]) -> list[dict[str, Any]]:
        """상품 기본 정보 일괄 조회 (최대 50개)"""
        data = await self.request(
            account,
            "/api/v2/product/get_item_base_info",
            {"item_id_list": _join_ids(item_ids)},
        )
        return (data.get("response") or {}).get("item_list") or []

    async def get_item_extra_info(self, account: ShopeeAccount, item_ids: Iterable[int]) -> list[dict[str, Any]]:
        """상품 부가 지표(판매/좋아요/조회수) 일괄 조회 (최대 50개)"""
        data = await self.request(
            account,
            "/api/v2/product/get_item_extra_info",
            {"item_id_list": _join_ids(item_ids)},
        )
        return (data.get("response") or {}).get("item_list") or []

    async def get_model_list(self, account: ShopeeAccount, item_id: int) -> dict[str, Any]:
        """
        상품 옵션(모델) 목록 조회

        Returns:
            response 필드 dict:
            - tier_variation: [{"name", "option_list": [{"option", "image"}]}]
            - model: [{"model_id", "tier_index", "price_info", "stock_info_v2", ...}]
        """
        data = await self.request(
            account,
            "/api/v2/product/get_model_list",
            {"item_id": item_id},
        )
        return data.get("response") or {}


def _join_ids(item_ids: Iterable[int]) -> str:
    return ",".join(str(i) for i in item_ids)


def _error_message(data: Any) -> str:
    if not isinstance(data, dict):
        return "알 수 없는 오류"
    error = data.get("error") or ""
    message = data.get("message") or ""
    if error and message:
        return f"{error}: {message}"
    return error or message or "알 수 없는 오류"
