"""
조인된 원시 데이터를 최종 리스팅 레코드로 변환합니다 (순수 함수).

가격 규칙:
- price_info의 original_price/current_price는 고정소수점 정수 (1/100000 단위)
- 한쪽이 0 이하이면 다른 쪽 값으로 대체
- 옵션 상품의 가격 범위는 옵션 가격만으로 계산, 재고는 옵션 재고 합계
"""
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime, timezone
from typing import Any

from app.schemas.shopee import PriceRange, PriceValue, ProductRecord, VariationRecord
from app.services.shopee.types import JoinedItem, StatusFilter
from app.settings import settings

EPOCH_DISPLAY = "1970-01-01T00:00:00+00:00"
DEFAULT_VARIATION_NAME = "Variação"
VARIATION_NAME_SEPARATOR = " / "

# 지표 필드명 후보 (앞에서부터 처음 값이 있는 필드를 사용)
SALES_FIELDS: tuple[tuple[Any, ...], ...] = (("sale",), ("sales",), ("sold",), ("historical_sold",))
LIKES_FIELDS: tuple[tuple[Any, ...], ...] = (("likes",), ("liked_count",), ("like_count",))
VIEWS_FIELDS: tuple[tuple[Any, ...], ...] = (("views",), ("view_count",), ("view",))
STOCK_FIELDS: tuple[tuple[Any, ...], ...] = (
    ("stock_info_v2", "summary_info", "total_available_stock"),
    ("normal_stock",),  # legacy
    ("stock_info", 0, "normal_stock"),  # legacy
)


def dig(obj: Any, path: Sequence[Any]) -> Any:
    """중첩 dict/list에서 경로 값 조회 (없으면 None)"""
    for key in path:
        if isinstance(key, int):
            if not isinstance(obj, list) or not -len(obj) <= key < len(obj):
                return None
            obj = obj[key]
        else:
            if not isinstance(obj, Mapping):
                return None
            obj = obj.get(key)
        if obj is None:
            return None
    return obj


def first_present(
    sources: Iterable[Mapping[str, Any]],
    paths: Sequence[Sequence[Any]],
    default: int = 0,
) -> int:
    """
    필드 후보 경로를 순서대로 시도하여 처음으로 숫자 값이 있는 경로의 값을 반환.

    Args:
        sources: 조회 대상 dict 목록 (우선순위 순)
        paths: 필드 경로 후보 (우선순위 순)
        default: 아무 값도 없을 때 기본값
    """
    sources = list(sources)
    for path in paths:
        for source in sources:
            value = dig(source, path)
            if value is None or value == "":
                continue
            try:
                return int(value)
            except (TypeError, ValueError):
                continue
    return default


def _to_number(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def normalize_price_pair(price_info: Any, scale: int | None = None) -> tuple[float, float]:
    """
    (original, current) 가격 쌍을 통화 단위로 변환.

    한쪽 값이 누락되거나 0 이하이면 다른 쪽 값으로 대체합니다.
    """
    scale = scale or settings.shopee_price_scale
    entry = dig(price_info, (0,)) if isinstance(price_info, list) else price_info
    if not isinstance(entry, Mapping):
        entry = {}

    original = _to_number(entry.get("original_price")) / scale
    current = _to_number(entry.get("current_price")) / scale
    if original <= 0:
        original = current
    if current <= 0:
        current = original
    return original, current


def price_range(values: Iterable[float | None]) -> PriceValue:
    """양수 값들의 min/max. 같으면 단일 값, 없으면 None"""
    positives = [v for v in values if v is not None and v > 0]
    if not positives:
        return None
    low, high = min(positives), max(positives)
    if low == high:
        return low
    return PriceRange(min=low, max=high)


def promo_of(original: float, current: float) -> float | None:
    if 0 < current < original:
        return current
    return None


def format_epoch(value: Any) -> str:
    try:
        seconds = int(value or 0)
    except (TypeError, ValueError):
        seconds = 0
    if seconds <= 0:
        return EPOCH_DISPLAY
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc).isoformat()
    except (OverflowError, OSError, ValueError):
        # 밀리초 값 등 표현 불가능한 시각
        return EPOCH_DISPLAY


def _tier_option(tiers: Sequence[Mapping[str, Any]], tier_pos: int, option_idx: Any) -> Mapping[str, Any] | None:
    if tier_pos >= len(tiers) or not isinstance(option_idx, int):
        return None
    options = tiers[tier_pos].get("option_list") or []
    if not 0 <= option_idx < len(options):
        return None
    option = options[option_idx]
    return option if isinstance(option, Mapping) else None


def variation_name(model: Mapping[str, Any], tiers: Sequence[Mapping[str, Any]]) -> str:
    """tier_index를 옵션명으로 변환해 " / "로 연결. 변환 불가 시 model_name 사용"""
    indices = model.get("tier_index") or []
    if tiers and indices:
        labels = []
        for tier_pos, option_idx in enumerate(indices):
            option = _tier_option(tiers, tier_pos, option_idx)
            label = option.get("option") if option else None
            if not label:
                labels = []
                break
            labels.append(str(label))
        if labels:
            return VARIATION_NAME_SEPARATOR.join(labels)
    return model.get("model_name") or DEFAULT_VARIATION_NAME


def _variation_image(model: Mapping[str, Any], tiers: Sequence[Mapping[str, Any]]) -> str | None:
    indices = model.get("tier_index") or []
    if tiers and indices:
        option = _tier_option(tiers, 0, indices[0])
        image_url = dig(option, ("image", "image_url")) if option else None
        if image_url:
            return image_url
    return dig(model, ("image", "image_url"))


def project_variation(
    model: Mapping[str, Any],
    tiers: Sequence[Mapping[str, Any]],
    scale: int | None = None,
) -> VariationRecord:
    original, current = normalize_price_pair(model.get("price_info"), scale)
    return VariationRecord(
        variation_id=str(model.get("model_id", "")),
        variation_name=variation_name(model, tiers),
        sku=model.get("model_sku") or None,
        price=original if original > 0 else None,
        promo_price=promo_of(original, current),
        stock=first_present([model], STOCK_FIELDS),
        image_url=_variation_image(model, tiers),
    )


def project(item: JoinedItem, status: StatusFilter, scale: int | None = None) -> ProductRecord:
    base = item.base
    item_id = item.ref.item_id

    variations: list[VariationRecord] | None = None
    if item.has_model:
        variations = [project_variation(m, item.tier_variations, scale) for m in item.models]
        price = price_range(v.price for v in variations)
        promo_price = price_range(v.promo_price for v in variations)
        stock = sum(v.stock for v in variations)
    else:
        original, current = normalize_price_pair(base.get("price_info"), scale)
        price = original if original > 0 else None
        promo_price = promo_of(original, current)
        stock = first_present([base], STOCK_FIELDS)

    counters = (item.extra, base)
    return ProductRecord(
        id=f"shopee-{item.account.shop_id}-{item_id}",
        item_id=item_id,
        title=base.get("item_name") or "",
        account_id=str(item.account.id),
        account_name=item.account.name,
        image_url=dig(base, ("image", "image_url_list", 0)),
        sku=base.get("item_sku") or str(item_id),
        price=price,
        promo_price=promo_price,
        stock=stock,
        sold_count=first_present(counters, SALES_FIELDS),
        liked_count=first_present(counters, LIKES_FIELDS),
        view_count=first_present(counters, VIEWS_FIELDS),
        created_at=format_epoch(base.get("create_time")),
        updated_at=format_epoch(base.get("update_time")),
        status=status.value,
        has_variations=item.has_model,
        variations=variations,
    )


def is_sold_out(record: ProductRecord) -> bool:
    """화면단 품절 필터 (NORMAL 상품 중 재고 0)"""
    return record.stock <= 0
