"""
상태 점검 API
- /system: DB 연결 + Shopee 연동 설정 여부
- /accounts: 요청 사용자의 Shopee 계정별 API 연결 상태
"""
from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.orm import Session
import uuid
import logging

from app.api.endpoints.shopee import get_current_user_id
from app.db import get_session
from app.errors import ListingError
from app.models import MarketAccount
from app.services.shopee.accounts import MARKET_CODE
from app.services.shopee.types import ShopeeAccount, StatusFilter
from app.settings import settings
from app.shopee_client import ShopeeClient

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/system")
async def get_system_health(session: Session = Depends(get_session)):
    """
    DB 연결과 Shopee 파트너 설정 상태를 반환합니다.
    """
    try:
        db_time = session.execute(select(func.now())).scalar()
        database = "ok"
    except Exception as e:
        logger.error(f"[Health] DB 연결 확인 실패: {e}")
        db_time = None
        database = "error"

    return {
        "status": "healthy" if database == "ok" else "unhealthy",
        "database": database,
        "timestamp": db_time.isoformat() if hasattr(db_time, "isoformat") else db_time,
        "shopee_env": settings.shopee_env,
        "shopee_configured": bool(settings.shopee_partner_id and settings.shopee_partner_key),
    }


@router.get("/accounts")
async def get_accounts_health(
    user_id: uuid.UUID = Depends(get_current_user_id),
    session: Session = Depends(get_session),
):
    """
    요청 사용자의 활성 Shopee 계정마다 1건짜리 목록 조회로 토큰/서명 유효성을 확인합니다.
    """
    rows = session.scalars(
        select(MarketAccount)
        .where(
            MarketAccount.user_id == user_id,
            MarketAccount.market_code == MARKET_CODE,
            MarketAccount.is_active == True,
        )
        .order_by(MarketAccount.created_at.desc(), MarketAccount.id)
    ).all()
    results = []

    async with ShopeeClient.from_settings(settings) as client:
        for row in rows:
            status = "healthy"
            message = ""
            try:
                account = ShopeeAccount.from_model(row)
                await client.get_item_list(account, StatusFilter.NORMAL.remote_status, offset=0, page_size=1)
            except ListingError as e:
                status = "unhealthy"
                message = e.message
            except Exception as e:
                logger.error(f"[Health] Shopee 계정 점검 중 예외 ({row.name}): {e}", exc_info=True)
                status = "error"
                message = str(e)

            results.append({
                "account_id": str(row.id),
                "account_name": row.name,
                "status": status,
                "message": message,
            })

    return results
