"""
Shopee 상품 리스팅 API 엔드포인트
- 연동된 전체(또는 특정) Shopee 계정의 상품을 상태별로 통합 조회
- 상태별 상품 수 집계
"""
from fastapi import APIRouter, Depends, Header, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
import uuid
import logging

from app.db import get_session
from app.errors import AccountNotFoundError, AuthError, ListingError
from app.schemas.shopee import ListingErrorResponse, ListingPage, Pagination
from app.services.shopee.listing_service import ShopeeListingService
from app.services.shopee.pagination import clamp_page, clamp_per_page
from app.services.shopee.types import StatusFilter

router = APIRouter()
logger = logging.getLogger(__name__)


def _parse_user_id(raw: str | None) -> uuid.UUID:
    if not raw:
        raise AuthError("인증된 사용자가 없습니다.", error_code="unauthorized")
    try:
        return uuid.UUID(raw)
    except ValueError as e:
        raise AuthError("사용자 ID 형식이 올바르지 않습니다.", error_code="unauthorized") from e


def get_current_user_id(x_user_id: str | None = Header(default=None)) -> uuid.UUID:
    try:
        return _parse_user_id(x_user_id)
    except AuthError as e:
        raise HTTPException(status_code=401, detail=e.to_dict())


def _error_response(status_code: int, error_type: str, message: str, details: dict | None, page: int, per_page: int) -> JSONResponse:
    body = ListingErrorResponse(
        error_type=error_type,
        message=message,
        details=details,
        pagination=Pagination(page=page, per_page=per_page, total=0),
    )
    return JSONResponse(status_code=status_code, content=body.model_dump())


@router.get("/listings", response_model=ListingPage, status_code=200)
async def list_shopee_listings(
    user_id: uuid.UUID = Depends(get_current_user_id),
    session: Session = Depends(get_session),
    account_id: uuid.UUID | None = Query(default=None, alias="accountId"),
    status: StatusFilter = Query(default=StatusFilter.NORMAL),
    page: int = Query(default=1),
    per_page: int | None = Query(default=None, alias="perPage"),
    strict: bool | None = Query(default=None),
):
    """
    Shopee 상품 목록을 계정 통합으로 조회합니다.
    """
    service = ShopeeListingService(session)
    try:
        return await service.list_products(
            user_id,
            account_id=account_id,
            status=status,
            page=page,
            per_page=per_page,
            strict=strict,
        )
    except AccountNotFoundError as e:
        return _error_response(404, e.error_code, e.message, e.context, clamp_page(page), clamp_per_page(per_page))
    except ListingError as e:
        # 인증 정보가 없는 계정을 지정한 경우 등
        logger.warning(f"Shopee listing request rejected: {e.message}")
        return _error_response(422, e.error_code, e.message, e.context, clamp_page(page), clamp_per_page(per_page))
    except SQLAlchemyError as e:
        logger.error(f"Shopee account lookup failed: {e}", exc_info=True)
        return _error_response(
            503, "account_lookup_failed", "계정 조회에 실패했습니다.", None, clamp_page(page), clamp_per_page(per_page)
        )


@router.get("/listings/counts", response_model=dict[str, int], status_code=200)
async def count_shopee_listings(
    user_id: uuid.UUID = Depends(get_current_user_id),
    session: Session = Depends(get_session),
    account_id: uuid.UUID | None = Query(default=None, alias="accountId"),
):
    """
    상태별 상품 수를 반환합니다. (상태 x 계정 수만큼 원격 호출)
    """
    service = ShopeeListingService(session)
    try:
        return await service.count_by_status(user_id, account_id=account_id)
    except AccountNotFoundError as e:
        return JSONResponse(
            status_code=404,
            content={"error_type": e.error_code, "message": e.message, "details": e.context, "counts": {}},
        )
    except ListingError as e:
        logger.warning(f"Shopee count request rejected: {e.message}")
        return JSONResponse(
            status_code=422,
            content={"error_type": e.error_code, "message": e.message, "details": e.context, "counts": {}},
        )
    except SQLAlchemyError as e:
        logger.error(f"Shopee account lookup failed: {e}", exc_info=True)
        return JSONResponse(
            status_code=503,
            content={"error_type": "account_lookup_failed", "message": "계정 조회에 실패했습니다.", "counts": {}},
        )
