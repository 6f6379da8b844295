#!/usr/bin/env python3
"""CLI for ouca API management tasks.

Usage:
    python -m cli <command>

Commands:
    migrate        Run database migrations
    downgrade      Revert database migrations
    create-user    Create the internal account of an OIDC identity
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from alembic import command
from alembic.config import Config

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def _get_alembic_config() -> Config:
    api_dir = Path(__file__).resolve().parent
    cfg = Config(str(api_dir / "alembic.ini"))
    # Absolute, so the command works from any working directory
    cfg.set_main_option("script_location", str(api_dir / "alembic"))
    return cfg


def cmd_migrate(target: str) -> int:
    """Run database migrations."""
    logger.info(f"Upgrading database to {target}...")
    command.upgrade(_get_alembic_config(), target)
    logger.info("Migrations complete")
    return 0


def cmd_downgrade(target: str) -> int:
    logger.info(f"Downgrading database to {target}...")
    command.downgrade(_get_alembic_config(), target)
    logger.info("Downgrade complete")
    return 0


async def _create_user(provider: str, sub: str) -> str:
    from core.database import create_engine, create_session_maker, dispose_engine
    from services.user_service import create_user

    engine = create_engine()
    try:
        async with create_session_maker(engine)() as session:
            user = await create_user(session, provider, sub)
            await session.commit()
            return user.id
    finally:
        await dispose_engine(engine)


def cmd_create_user(provider: str | None, sub: str) -> int:
    """Create an account without going through the API (bootstrap an admin)."""
    from core.config import get_settings
    from services.exceptions import AlreadyExistsError

    provider = provider or get_settings().oidc_provider_name
    try:
        user_id = asyncio.run(_create_user(provider, sub))
    except AlreadyExistsError:
        logger.error(f"An account already exists for {provider}:{sub}")
        return 1

    logger.info(f"Created user {user_id}")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(
        description="ouca API CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    migrate = subparsers.add_parser("migrate", help="Run database migrations")
    migrate.add_argument(
        "target", nargs="?", default="head", help="Target revision (default: head)"
    )

    downgrade = subparsers.add_parser("downgrade", help="Revert database migrations")
    downgrade.add_argument(
        "target", nargs="?", default="-1", help="Target revision (default: -1)"
    )

    create_user = subparsers.add_parser(
        "create-user", help="Create the internal account of an OIDC identity"
    )
    create_user.add_argument(
        "--provider", help="Identity provider name (default: OIDC_PROVIDER_NAME)"
    )
    create_user.add_argument("--sub", required=True, help="Subject of the identity")

    args = parser.parse_args()

    match args.command:
        case "migrate":
            return cmd_migrate(args.target)
        case "downgrade":
            return cmd_downgrade(args.target)
        case "create-user":
            return cmd_create_user(args.provider, args.sub)
        case _:
            parser.print_help()
            return 1


if __name__ == "__main__":
    sys.exit(main())
