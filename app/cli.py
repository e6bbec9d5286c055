import argparse
import asyncio
import json
import logging
import sys
import uuid

from app.db import SessionLocal
from app.errors import ListingError
from app.services.shopee.listing_service import ShopeeListingService
from app.services.shopee.types import StatusFilter
from app.settings import settings, validate_shopee_settings

# 로그 설정
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s'
)
logger = logging.getLogger("app.cli")


def _print_json(payload) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def run_shopee_command(args) -> None:
    """Shopee 리스팅 명령 실행기"""
    session = SessionLocal()
    try:
        validate_shopee_settings(settings)
        service = ShopeeListingService(session)

        if args.command == "listings":
            logger.info(f"[CLI] Shopee listings status={args.status} page={args.page}")
            result = asyncio.run(service.list_products(
                args.user_id,
                account_id=args.account_id,
                status=StatusFilter(args.status),
                page=args.page,
                per_page=args.per_page,
                strict=args.strict or None,
            ))
            _print_json(result.model_dump(mode="json"))
            return

        if args.command == "counts":
            logger.info("[CLI] Shopee listing counts")
            _print_json(asyncio.run(service.count_by_status(args.user_id, account_id=args.account_id)))
            return

    except ListingError as e:
        logger.error(f"[CLI] {e.error_code}: {e.message}")
        sys.exit(1)
    except Exception as e:
        logger.exception(f"[CLI] Critical error: {e}")
        sys.exit(1)
    finally:
        session.close()


def main():
    parser = argparse.ArgumentParser(description="Shopee Listings CLI")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    listings_parser = subparsers.add_parser("listings", help="List products across linked Shopee accounts")
    listings_parser.add_argument("--status", choices=[s.value for s in StatusFilter], default=StatusFilter.NORMAL.value)
    listings_parser.add_argument("--page", type=int, default=1)
    listings_parser.add_argument("--per-page", type=int, default=None)
    listings_parser.add_argument("--strict", action="store_true", help="Report total_retrieved alongside total")

    counts_parser = subparsers.add_parser("counts", help="Count products per status")

    for sub in (listings_parser, counts_parser):
        sub.add_argument("--user-id", type=uuid.UUID, required=True)
        sub.add_argument("--account-id", type=uuid.UUID, default=None)

    args = parser.parse_args()

    if args.command in ("listings", "counts"):
        run_shopee_command(args)
    else:
        parser.print_help()

if __name__ == "__main__":
    main()
