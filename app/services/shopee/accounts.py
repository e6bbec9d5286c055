"""
Shopee 계정 조회.

요청 사용자의 활성 Shopee 계정을 매 요청마다 새로 조회합니다 (캐시 없음).
"""
import logging
import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.errors import AccountNotFoundError, ListingError
from app.models import MarketAccount
from app.services.shopee.types import ShopeeAccount

logger = logging.getLogger(__name__)

MARKET_CODE = "SHOPEE"


def resolve_accounts(
    session: Session,
    user_id: uuid.UUID,
    account_id: uuid.UUID | None = None,
) -> list[ShopeeAccount]:
    """
    조회 대상 계정 목록 반환.

    Args:
        session: DB 세션
        user_id: 요청 사용자 ID
        account_id: 특정 계정만 조회할 경우 계정 ID

    Returns:
        활성 계정 목록 (최근 연동 순). 계정이 없으면 빈 리스트

    Raises:
        AccountNotFoundError: account_id가 사용자의 활성 계정이 아닌 경우
    """
    stmt = select(MarketAccount).where(
        MarketAccount.user_id == user_id,
        MarketAccount.market_code == MARKET_CODE,
        MarketAccount.is_active == True,
    )
    if account_id is not None:
        stmt = stmt.where(MarketAccount.id == account_id)
    stmt = stmt.order_by(MarketAccount.created_at.desc(), MarketAccount.id)

    rows = session.scalars(stmt).all()
    if account_id is not None and not rows:
        raise AccountNotFoundError(account_id, user_id)

    if account_id is not None:
        return [ShopeeAccount.from_model(rows[0])]

    accounts = []
    for row in rows:
        try:
            accounts.append(ShopeeAccount.from_model(row))
        except ListingError as e:
            logger.warning(f"[Shopee] 계정 제외 ({row.name}): {e.message}")
    logger.debug(f"[Shopee] user={user_id} accounts={len(accounts)}")
    return accounts
