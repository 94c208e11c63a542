#!/usr/bin/env python3
"""CLI for Growth Tracker API management tasks.

Usage:
    python -m cli <command>

Commands:
    reconcile       Create today's placeholder streak records for all users
    send-reminders  Email users who missed their streak yesterday
    migrate         Run database migrations
"""

import argparse
import asyncio
import sys
from pathlib import Path

from core.clock import get_clock
from core.config import get_settings
from core.database import create_engine, create_session_maker, dispose_engine
from core.logger import configure_logging, get_logger

logger = get_logger(__name__)


async def _reconcile() -> int:
    from services.reconciliation_service import run_daily_reconciliation

    engine = create_engine()
    try:
        result = await run_daily_reconciliation(create_session_maker(engine), get_clock())
    finally:
        await dispose_engine(engine)
    return 0 if result.ok else 1


async def _send_reminders() -> int:
    from services.email_service import get_email_service
    from services.reminder_service import send_streak_reminders

    engine = create_engine()
    try:
        result = await send_streak_reminders(
            create_session_maker(engine), get_clock(), get_email_service()
        )
    finally:
        await dispose_engine(engine)
    return 0 if result.failed == 0 else 1


def cmd_reconcile() -> int:
    """Run the nightly reconciliation once."""
    return asyncio.run(_reconcile())


def cmd_send_reminders() -> int:
    """Run the reminder job once."""
    return asyncio.run(_send_reminders())


def cmd_migrate() -> int:
    """Run database migrations."""
    from alembic import command
    from alembic.config import Config

    get_settings()  # fail fast on missing DATABASE_URL
    logger.info("migrations.running")
    cfg = Config(str(Path(__file__).parent / "alembic.ini"))
    cfg.set_main_option("script_location", str(Path(__file__).parent / "alembic"))
    command.upgrade(cfg, "head")
    logger.info("migrations.complete")
    return 0


COMMANDS = {
    "reconcile": cmd_reconcile,
    "send-reminders": cmd_send_reminders,
    "migrate": cmd_migrate,
}


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Growth Tracker API CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")
    subparsers.add_parser(
        "reconcile", help="Create today's placeholder streak records for all users"
    )
    subparsers.add_parser(
        "send-reminders", help="Email users who missed their streak yesterday"
    )
    subparsers.add_parser("migrate", help="Run database migrations")

    args = parser.parse_args(argv)

    handler = COMMANDS.get(args.command)
    if handler is None:
        parser.print_help()
        return 1

    configure_logging()
    return handler()


if __name__ == "__main__":
    sys.exit(main())
