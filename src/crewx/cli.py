"""CrewX Command Line Interface.

Provides operational tools for:
- Serving the HTTP API
- Creating the schema and seeding admin credentials
- Notification housekeeping and shift reminders
- Recording manual payments
- Auditing enrolled counts and balances

Usage:
    crewx serve
    crewx init-db --seed-admin admin@example.com secret123
    crewx cleanup-notifications --days 30
    crewx send-reminders --date 2026-05-01
    crewx record-payment --worker-id X --amount 500
    crewx check-consistency
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from datetime import date
from decimal import Decimal
from typing import Awaitable, Callable
from uuid import UUID

import uvicorn

from crewx.config import configure_logging, get_settings
from crewx.database import create_schema, dispose_db, get_session
from crewx.exceptions import CrewXError
from crewx.services.bookkeeping import BookkeepingService
from crewx.services.identity import IdentityService
from crewx.services.notifications import NotificationService
from crewx.validation import format_money, validate_amount


def parse_date(s: str) -> date:
    """Parse ISO date string."""
    return date.fromisoformat(s)


def parse_uuid(s: str) -> UUID:
    """Parse UUID string."""
    return UUID(s)


def parse_amount(s: str) -> Decimal:
    """Parse a positive amount with at most two decimals."""
    try:
        return validate_amount(s)
    except CrewXError as exc:
        raise argparse.ArgumentTypeError(exc.message) from exc


class CrewXCli:
    """CrewX Command Line Interface."""

    def __init__(self) -> None:
        self.parser = self._build_parser()

    def _build_parser(self) -> argparse.ArgumentParser:
        """Build argument parser."""
        parser = argparse.ArgumentParser(
            prog="crewx",
            description="CrewX operational tools",
        )
        parser.add_argument(
            "--log-level",
            type=str,
            help="Override LOG_LEVEL",
        )
        subparsers = parser.add_subparsers(dest="command", help="Commands")

        # serve command
        serve = subparsers.add_parser("serve", help="Run the HTTP API")
        serve.add_argument("--host", type=str, help="Bind address (default: $HOST)")
        serve.add_argument("--port", type=int, help="Port (default: $PORT)")
        serve.add_argument("--reload", action="store_true", help="Reload on code changes")

        # init-db command
        init_db = subparsers.add_parser("init-db", help="Create all tables")
        init_db.add_argument(
            "--seed-admin",
            nargs=2,
            metavar=("EMAIL", "PASSWORD"),
            help="Also store admin credentials",
        )

        # cleanup-notifications command
        cleanup = subparsers.add_parser(
            "cleanup-notifications",
            help="Delete notifications past the retention window",
        )
        cleanup.add_argument(
            "--days",
            type=int,
            help="Retention in days (default: $NOTIFICATION_RETENTION_DAYS)",
        )

        # send-reminders command
        reminders = subparsers.add_parser(
            "send-reminders",
            help="Notify workers enrolled in jobs on a date",
        )
        reminders.add_argument(
            "--date",
            type=parse_date,
            help="Job date, YYYY-MM-DD (default: today)",
        )

        # record-payment command
        payment = subparsers.add_parser(
            "record-payment",
            help="Credit a worker's balance",
        )
        payment.add_argument("--worker-id", type=parse_uuid, required=True, help="Worker account ID")
        payment.add_argument(
            "--amount",
            type=parse_amount,
            help="Amount to credit (default: the job's pay when --job-id is given)",
        )
        payment.add_argument("--job-id", type=parse_uuid, help="Mark this job as paid")

        # check-consistency command
        subparsers.add_parser(
            "check-consistency",
            help="Verify enrolled counts and balances; exits 1 on violations",
        )

        return parser

    def run(self, args: list[str] | None = None) -> int:
        """Run the CLI with given arguments."""
        parsed = self.parser.parse_args(args)
        configure_logging(parsed.log_level)

        if not parsed.command:
            self.parser.print_help()
            return 1

        if parsed.command == "serve":
            return self._cmd_serve(parsed)

        handlers: dict[str, Callable[[argparse.Namespace], Awaitable[int]]] = {
            "init-db": self._cmd_init_db,
            "cleanup-notifications": self._cmd_cleanup_notifications,
            "send-reminders": self._cmd_send_reminders,
            "record-payment": self._cmd_record_payment,
            "check-consistency": self._cmd_check_consistency,
        }

        handler = handlers.get(parsed.command)
        if handler is None:
            print(f"Unknown command: {parsed.command}", file=sys.stderr)
            return 1

        try:
            return asyncio.run(self._run_async(handler, parsed))
        except CrewXError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            return 2

    async def _run_async(
        self,
        handler: Callable[[argparse.Namespace], Awaitable[int]],
        args: argparse.Namespace,
    ) -> int:
        try:
            return await handler(args)
        finally:
            await dispose_db()

    def _cmd_serve(self, args: argparse.Namespace) -> int:
        """Run the API with uvicorn."""
        settings = get_settings()
        uvicorn.run(
            "crewx.api.app:create_app",
            factory=True,
            host=args.host or settings.host,
            port=args.port or settings.port,
            reload=args.reload or settings.debug,
            log_level=settings.log_level.lower(),
        )
        return 0

    async def _cmd_init_db(self, args: argparse.Namespace) -> int:
        await create_schema()
        print("Schema created.")
        if args.seed_admin:
            email, password = args.seed_admin
            async with get_session() as session:
                await IdentityService(session).register_admin(email, password)
            print(f"Admin credentials stored for {email.strip().lower()}.")
        return 0

    async def _cmd_cleanup_notifications(self, args: argparse.Namespace) -> int:
        async with get_session() as session:
            removed = await NotificationService(session).cleanup_old_notifications(args.days)
        print(f"Removed {removed} notification(s).")
        return 0

    async def _cmd_send_reminders(self, args: argparse.Namespace) -> int:
        on_date = args.date or date.today()
        async with get_session() as session:
            sent = await NotificationService(session).send_shift_reminders(on_date)
        print(f"Sent {sent} reminder(s) for {on_date.isoformat()}.")
        return 0

    async def _cmd_record_payment(self, args: argparse.Namespace) -> int:
        if args.amount is None and args.job_id is None:
            print("Either --amount or --job-id is required.", file=sys.stderr)
            return 1
        async with get_session() as session:
            account = await BookkeepingService(session).record_manual_payment(
                args.worker_id, amount=args.amount, job_id=args.job_id
            )
        print(f"{account.name} balance: {format_money(account.balance)}")
        return 0

    async def _cmd_check_consistency(self, args: argparse.Namespace) -> int:
        async with get_session() as session:
            problems = await BookkeepingService(session).check_consistency()

        print("Consistency Check")
        print("=" * 40)
        for problem in problems:
            print(f"  - {problem}")
        print("=" * 40)
        if problems:
            print(f"Overall: {len(problems)} violation(s)")
            return 1
        print("Overall: CONSISTENT")
        return 0


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    cli = CrewXCli()
    return cli.run(argv)


if __name__ == "__main__":
    sys.exit(main())
