"""
Shopee 리스팅 응답 스키마.
"""

from pydantic import BaseModel, Field


class PriceRange(BaseModel):
    """최소/최대 가격 (같으면 단일 값으로 축약되어 이 모델을 쓰지 않음)"""
    min: float
    max: float


PriceValue = float | PriceRange | None


class VariationRecord(BaseModel):
    variation_id: str
    variation_name: str
    sku: str | None = None
    price: float | None = None
    promo_price: float | None = None
    stock: int = 0
    image_url: str | None = None


class ProductRecord(BaseModel):
    id: str  # shopee-{shop_id}-{item_id}
    item_id: int
    marketplace: str = "shopee"
    title: str = ""
    account_id: str
    account_name: str
    image_url: str | None = None
    sku: str
    price: PriceValue = None
    promo_price: PriceValue = None
    stock: int = 0
    sold_count: int = 0
    liked_count: int = 0
    view_count: int = 0
    created_at: str
    updated_at: str
    status: str
    has_variations: bool = False
    variations: list[VariationRecord] | None = None


class Pagination(BaseModel):
    page: int
    per_page: int
    total: int
    total_retrieved: int | None = None  # strict 모드에서만 채워짐


class ListingPage(BaseModel):
    products: list[ProductRecord] = Field(default_factory=list)
    pagination: Pagination


class ListingErrorResponse(BaseModel):
    """
    표준 에러 응답 (데이터는 비어 있음).
    """
    error_type: str  # "account_not_found", "account_lookup_failed", "unauthorized"
    message: str
    details: dict | None = None
    products: list[ProductRecord] = Field(default_factory=list)
    pagination: Pagination | None = None
