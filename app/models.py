from datetime import datetime
import uuid

from sqlalchemy import DateTime, Text, UniqueConstraint, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func


class MarketBase(DeclarativeBase):
    pass


class MarketAccount(MarketBase):
    """
    마켓 계정 (연동된 판매자 스토어).

    Shopee 계정의 credentials 예시:
        {"shop_id": 123456, "access_token": "...", "refresh_token": "..."}
    """
    __tablename__ = "market_accounts"
    __table_args__ = (UniqueConstraint("market_code", "name", name="uq_market_accounts_code_name"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)  # 계정 소유자
    market_code: Mapped[str] = mapped_column(Text, nullable=False)  # 'SHOPEE'
    name: Mapped[str] = mapped_column(Text, nullable=False)  # Account Alias
    credentials: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    is_active: Mapped[bool] = mapped_column(default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
