"""
Main Entry Point (Composition Root)
"""
import argparse
import asyncio
import logging
import sys
from typing import List, Optional

import structlog

from src.application.cache import KeyedCache
from src.application.ui import ConsoleRenderer
from src.domain import LedgerError, TokenId
from src.infrastructure.config import Settings, get_settings
from src.infrastructure.connection import ConnectionManager
from src.infrastructure.ledger_client import LedgerClient
from src.infrastructure.metadata import IpfsMetadataResolver
from src.infrastructure.wallet import WalletSession

logger = structlog.get_logger()


def configure_logging(level: str) -> None:
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="nft-ledger", description="Query the NFT marketplace ledger")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("listings", help="Active marketplace listings")

    owned = commands.add_parser("owned", help="Tokens owned by an address")
    owned.add_argument("address")

    created = commands.add_parser("created", help="Tokens created by an address")
    created.add_argument("address")

    info = commands.add_parser("info", help="One token with its listing")
    info.add_argument("token_id", type=int)

    history = commands.add_parser("history", help="Sales history, newest first")
    history.add_argument("token_id", type=int)
    history.add_argument("--page", type=int, default=1)
    history.add_argument("--page-size", type=int, default=None)

    return parser


def build_client(settings: Settings, cache: KeyedCache) -> LedgerClient:
    if settings.wallet_private_key is not None:
        wallet = WalletSession.from_private_key(settings.wallet_private_key)
    else:
        wallet = WalletSession.read_only()

    connection = ConnectionManager(settings, wallet)
    return LedgerClient(
        connection,
        cache=cache,
        max_block_range=settings.max_block_range,
        history_page_size=settings.history_page_size,
    )


async def run(args: argparse.Namespace, settings: Settings) -> int:
    cache = KeyedCache()
    client = build_client(settings, cache)
    resolver = IpfsMetadataResolver(settings.ipfs_gateway, cache=cache)
    renderer = ConsoleRenderer()

    try:
        if args.command == "history":
            envelope = await client.get_history(TokenId(args.token_id), args.page, args.page_size)
            renderer.history(envelope, args.token_id)
            return 0

        if args.command == "listings":
            items, title = await client.get_marketplace_listings(), "Marketplace"
        elif args.command == "owned":
            items, title = await client.get_by_owner(args.address), f"Owned by {args.address}"
        elif args.command == "created":
            items, title = await client.get_by_creator(args.address), f"Created by {args.address}"
        else:
            items, title = [await client.get_info(TokenId(args.token_id))], f"Token {args.token_id}"

        metadata = await resolver.fetch_many(item.token.cid for item in items)
        renderer.market_items(items, title, metadata)
        return 0
    except LedgerError as e:
        logger.error("command_failed", command=args.command, reason=e.reason)
        renderer.error(e.reason)
        return 1
    except ValueError as e:
        # Bad user input: malformed address, page or page size out of range
        logger.error("command_rejected", command=args.command, reason=str(e))
        renderer.error(f"Invalid input: {e}")
        return 1
    finally:
        await resolver.close()
        await client.connection.close()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info("startup", command=args.command, **settings.model_dump(exclude={"wallet_private_key"}))
    return asyncio.run(run(args, settings))


if __name__ == "__main__":
    sys.exit(main())
