import os

from fastapi import Depends, FastAPI
from sqlalchemy import text
from sqlalchemy.orm import Session

from app.db import get_session, market_engine
from app.models import MarketBase
from app.settings import settings, validate_shopee_settings
from app.api.endpoints import health, shopee

app = FastAPI()

app.include_router(shopee.router, prefix="/api/shopee", tags=["Shopee"])
app.include_router(health.router, prefix="/api/health", tags=["Health"])


@app.on_event("startup")
def on_startup() -> None:
    # 잘못된 대상 환경/자격증명은 요청 단위가 아니라 기동 시점에 실패시킨다 (ConfigError)
    validate_shopee_settings(settings)

    if os.getenv("DB_AUTO_CREATE_TABLES", "").strip() in ("1", "true", "TRUE", "yes", "YES"):
        MarketBase.metadata.create_all(bind=market_engine)


@app.get("/health")
def health_check() -> dict:
    return {"status": "ok"}


@app.get("/db/ping")
def db_ping(session: Session = Depends(get_session)) -> dict:
    value = session.execute(text("SELECT 1")).scalar_one()
    return {"ok": value == 1}
