from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.errors import ConfigError


SHOPEE_BASE_URLS = {
    "test": "https://partner.test-stable.shopeemobile.com",
    "live": "https://partner.shopeemobile.com",
}


class Settings(BaseSettings):
    market_database_url: str = "sqlite:///./market.db"

    # Shopee Open Platform (파트너 공통 자격증명)
    shopee_env: str = "test"  # test, live
    shopee_api_base_url: str = ""  # 비워두면 shopee_env 기준으로 결정
    shopee_partner_id: int = 0
    shopee_partner_key: str = ""

    shopee_timeout_seconds: float = 30.0
    shopee_connect_timeout_seconds: float = 10.0
    shopee_fetch_deadline_seconds: float = 120.0  # 계정별 페이지 수집 최대 시간
    shopee_retry_count: int = 1  # tenacity 시도 횟수 (1 = 재시도 없음)

    shopee_page_size: int = 100  # get_item_list 배치 크기
    shopee_item_info_batch_size: int = 50  # get_item_base_info/extra_info 최대 id 수
    shopee_model_batch_size: int = 10  # get_model_list 동시 호출 수
    shopee_price_scale: int = 100000  # price_info 고정소수점 단위
    shopee_strict_totals: bool = False

    listing_per_page_default: int = 20
    listing_per_page_min: int = 5
    listing_per_page_max: int = 300

    @field_validator("shopee_env")
    @classmethod
    def normalize_env(cls, v: str) -> str:
        # 알 수 없는 환경은 기동 시 validate_shopee_settings에서 ConfigError로 처리
        return (v or "").strip().lower()

    @field_validator("shopee_api_base_url")
    @classmethod
    def validate_http_url(cls, v: str) -> str:
        if v and not v.startswith(("http://", "https://")):
            raise ValueError("URL은 'http://' 또는 'https://'로 시작해야 합니다.")
        return v.rstrip("/")

    @field_validator(
        "shopee_timeout_seconds",
        "shopee_connect_timeout_seconds",
        "shopee_fetch_deadline_seconds",
    )
    @classmethod
    def validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("대기 시간은 0보다 커야 합니다.")
        return v

    @field_validator("shopee_retry_count", "shopee_model_batch_size", "shopee_price_scale")
    @classmethod
    def validate_at_least_one(cls, v: int) -> int:
        if v < 1:
            raise ValueError("값은 1 이상이어야 합니다.")
        return v

    @field_validator("shopee_page_size", "shopee_item_info_batch_size")
    @classmethod
    def validate_batch_size(cls, v: int) -> int:
        if not 1 <= v <= 100:
            raise ValueError("batch_size는 1에서 100 사이여야 합니다.")
        return v

    @model_validator(mode="after")
    def validate_per_page_bounds(self) -> "Settings":
        if not 1 <= self.listing_per_page_min <= self.listing_per_page_max:
            raise ValueError("listing_per_page_min/max 범위가 올바르지 않습니다.")
        if not self.listing_per_page_min <= self.listing_per_page_default <= self.listing_per_page_max:
            raise ValueError("listing_per_page_default는 min/max 범위 안에 있어야 합니다.")
        return self

    @property
    def shopee_base_url(self) -> str:
        return self.shopee_api_base_url or SHOPEE_BASE_URLS.get(self.shopee_env, "")

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", case_sensitive=False)


def validate_shopee_settings(s: Settings) -> None:
    """
    기동 시 Shopee 대상 설정 검증.

    Raises:
        ConfigError: 알 수 없는 환경이거나 파트너 자격증명이 없는 경우
    """
    if s.shopee_env not in SHOPEE_BASE_URLS:
        raise ConfigError(
            f"지원하지 않는 shopee_env입니다: {s.shopee_env!r}",
            context={"allowed": sorted(SHOPEE_BASE_URLS)},
        )
    if s.shopee_partner_id <= 0 or not s.shopee_partner_key:
        raise ConfigError("SHOPEE_PARTNER_ID / SHOPEE_PARTNER_KEY가 설정되지 않았습니다.")


settings = Settings()
