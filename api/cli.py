#!/usr/bin/env python3
"""CLI for Translation Booking API management tasks.

Usage:
    python -m cli <command>

Commands:
    migrate                Run database migrations
    expire-jobs            Time out pending jobs whose expiry has passed
    issue-token <user_id>  Issue a new API token for a user
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def _get_alembic_config():
    from alembic.config import Config

    api_dir = Path(__file__).parent
    cfg = Config(str(api_dir / "alembic.ini"))
    cfg.set_main_option("script_location", str(api_dir / "alembic"))
    return cfg


def cmd_migrate() -> int:
    """Run database migrations."""
    from alembic import command

    logger.info("Running database migrations...")
    command.upgrade(_get_alembic_config(), "head")
    logger.info("Migrations complete")
    return 0


async def _expire_jobs() -> int:
    from core.database import create_engine, create_session_maker, dispose_engine
    from services.booking_service import expire_overdue_jobs

    engine = create_engine()
    session_maker = create_session_maker(engine)
    try:
        async with session_maker() as session:
            count = await expire_overdue_jobs(session)
            await session.commit()
        return count
    finally:
        await dispose_engine(engine)


def cmd_expire_jobs() -> int:
    """Move pending jobs past their expiry to timed out."""
    count = asyncio.run(_expire_jobs())
    logger.info(f"Timed out {count} expired jobs")
    return 0


async def _issue_token(user_id: int) -> str | None:
    from core.auth import generate_api_token, hash_api_token
    from core.database import create_engine, create_session_maker, dispose_engine
    from repositories.user_repository import UserRepository

    engine = create_engine()
    session_maker = create_session_maker(engine)
    try:
        async with session_maker() as session:
            repo = UserRepository(session)
            user = await repo.get_by_id(user_id)
            if user is None:
                return None
            token = generate_api_token()
            await repo.set_token_hash(user, hash_api_token(token))
            await session.commit()
        return token
    finally:
        await dispose_engine(engine)


def cmd_issue_token(user_id: int) -> int:
    """Issue an API token, replacing any token the user already had."""
    token = asyncio.run(_issue_token(user_id))
    if token is None:
        logger.error(f"User {user_id} not found")
        return 1

    # Only the digest is stored; this is the one chance to see the token
    print(token)
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Translation Booking API CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser(
        "migrate",
        help="Run database migrations",
    )
    subparsers.add_parser(
        "expire-jobs",
        help="Time out pending jobs whose expiry has passed",
    )
    issue_token = subparsers.add_parser(
        "issue-token",
        help="Issue a new API token for a user",
    )
    issue_token.add_argument("user_id", type=int)

    args = parser.parse_args()

    if args.command == "migrate":
        return cmd_migrate()
    elif args.command == "expire-jobs":
        return cmd_expire_jobs()
    elif args.command == "issue-token":
        return cmd_issue_token(args.user_id)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
