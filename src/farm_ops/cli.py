"""Farm operations command line interface.

Usage:
    farm-ops init-db
    farm-ops run-payroll --farm-id X --pay-period-id Y --rate-card-id Z
    farm-ops export-payroll --farm-id X --pay-period-id Y --variant breakdown --output out.csv
    farm-ops dashboard --farm-id X
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from datetime import date
from typing import Any, Awaitable, Callable
from uuid import UUID

from farm_ops.config import get_settings
from farm_ops.database import dispose_db, get_session, init_db, init_models
from farm_ops.errors import FarmOpsError
from farm_ops.logging_setup import configure_logging
from farm_ops.services import DashboardService, ExportService, PayrollService
from farm_ops.services.export_service import EXPORT_VARIANTS


def parse_uuid(s: str) -> UUID:
    """Parse UUID string."""
    return UUID(s)


class FarmOpsCli:
    """Operational commands that run without the HTTP API."""

    def __init__(self) -> None:
        self.parser = self._build_parser()

    def _build_parser(self) -> argparse.ArgumentParser:
        """Build argument parser."""
        parser = argparse.ArgumentParser(
            prog="farm-ops",
            description="Farm operations tools",
        )
        parser.add_argument(
            "--database-url",
            type=str,
            help="Database URL (default: $DATABASE_URL)",
        )
        subparsers = parser.add_subparsers(dest="command", help="Commands")

        subparsers.add_parser("init-db", help="Create all tables")

        run = subparsers.add_parser("run-payroll", help="Compute payroll for a pay period")
        run.add_argument("--farm-id", type=parse_uuid, required=True)
        run.add_argument("--pay-period-id", type=parse_uuid, required=True)
        run.add_argument("--rate-card-id", type=parse_uuid, required=True)

        export = subparsers.add_parser("export-payroll", help="Write payroll lines as CSV")
        export.add_argument("--farm-id", type=parse_uuid, required=True)
        export.add_argument("--pay-period-id", type=parse_uuid, required=True)
        export.add_argument("--variant", choices=EXPORT_VARIANTS, default="summary")
        export.add_argument(
            "--output",
            type=str,
            help="Output file (default: stdout)",
        )

        dashboard = subparsers.add_parser("dashboard", help="Print dashboard KPIs as JSON")
        dashboard.add_argument("--farm-id", type=parse_uuid, required=True)
        dashboard.add_argument(
            "--today",
            type=date.fromisoformat,
            help="Reference date (default: today)",
        )

        return parser

    def run(self, args: list[str] | None = None) -> int:
        """Run the CLI with given arguments."""
        parsed = self.parser.parse_args(args)

        if not parsed.command:
            self.parser.print_help()
            return 1

        configure_logging(get_settings().log_level)

        handlers: dict[str, Callable[[argparse.Namespace], Awaitable[int]]] = {
            "init-db": self._cmd_init_db,
            "run-payroll": self._cmd_run_payroll,
            "export-payroll": self._cmd_export_payroll,
            "dashboard": self._cmd_dashboard,
        }

        handler = handlers.get(parsed.command)
        if handler is None:
            print(f"Unknown command: {parsed.command}", file=sys.stderr)
            return 1

        return asyncio.run(self._execute(handler, parsed))

    async def _execute(
        self,
        handler: Callable[[argparse.Namespace], Awaitable[int]],
        args: argparse.Namespace,
    ) -> int:
        init_db(args.database_url)
        try:
            return await handler(args)
        except FarmOpsError as e:
            print(f"ERROR [{e.code}]: {e.message}", file=sys.stderr)
            return 1
        finally:
            await dispose_db()

    async def _cmd_init_db(self, args: argparse.Namespace) -> int:
        engine, _ = init_db()
        await init_models(engine)
        print("Tables created.")
        return 0

    async def _cmd_run_payroll(self, args: argparse.Namespace) -> int:
        async with get_session() as session:
            result = await PayrollService(session).run_payroll(
                args.farm_id, args.pay_period_id, args.rate_card_id
            )

        print(f"Pay period: {result.pay_period_id}")
        print(f"  Workers:      {result.worker_count}")
        print(f"  Gross:        {result.total_gross:.2f}")
        print(f"  Deductions:   {result.total_deductions:.2f}")
        print(f"  Bonuses:      {result.total_bonuses:.2f}")
        print(f"  Net:          {result.total_net:.2f}")
        if result.floating_adjustments:
            print(f"  Not applied (no pay period): {result.floating_adjustments}")
        if result.unapplied_adjustments:
            print(f"  Not applied (no approved work): {result.unapplied_adjustments}")
        for warning in result.warnings:
            print(f"  ! {warning}")
        return 0

    async def _cmd_export_payroll(self, args: argparse.Namespace) -> int:
        async with get_session() as session:
            content = await ExportService(session).export_payroll(
                args.farm_id, args.pay_period_id, args.variant
            )

        if args.output:
            with open(args.output, "w", encoding="utf-8", newline="") as f:
                f.write(content)
            print(f"Wrote {args.variant} export to {args.output}")
        else:
            print(content)
        return 0

    async def _cmd_dashboard(self, args: argparse.Namespace) -> int:
        _, factory = init_db()
        kpis = await DashboardService(factory).load(args.farm_id, args.today)
        payload: dict[str, Any] = {
            "submitted_count": kpis.submitted_count,
            "approved_acres": str(kpis.approved_acres),
            "overdue_jobs": [job.label for job in kpis.overdue_jobs],
            "due_soon_jobs": [job.label for job in kpis.due_soon_jobs],
            "errors": kpis.errors,
        }
        print(json.dumps(payload, indent=2))
        return 0


def main() -> int:
    """CLI entry point."""
    cli = FarmOpsCli()
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
