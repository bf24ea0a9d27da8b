"""CSV export of payroll lines."""

from __future__ import annotations

import csv
import io
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from farm_ops.errors import ValidationError
from farm_ops.models import PayrollLine
from farm_ops.services.payroll_service import PayrollService

SUMMARY_HEADER = ["Worker", "Gross", "Deductions", "Net"]
BREAKDOWN_HEADER = ["Worker", "Job Type", "Crop", "Acres", "Rate", "Amount"]
EXPORT_VARIANTS = ("summary", "breakdown")


def format_money(value: Any) -> str:
    """Two-decimal string, as shown on payslips."""
    amount = Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return f"{amount:f}"


def to_csv(rows: Iterable[Sequence[Any]]) -> str:
    """Render rows as CSV text, one row per line, no trailing newline.

    Fields containing a comma, quote or newline are quoted with inner
    quotes doubled.
    """
    output = io.StringIO()
    writer = csv.writer(output, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
    for row in rows:
        writer.writerow(["" if value is None else value for value in row])
    return output.getvalue().removesuffix("\n")


def summary_rows(lines: Iterable[PayrollLine]) -> list[list[str]]:
    rows = [list(SUMMARY_HEADER)]
    for line in lines:
        rows.append([
            line.worker.full_name,
            format_money(line.gross_pay),
            format_money(line.deductions),
            format_money(line.net_pay),
        ])
    return rows


def breakdown_rows(lines: Iterable[PayrollLine]) -> list[list[str]]:
    """One row per piece item across all lines."""
    rows = [list(BREAKDOWN_HEADER)]
    for line in lines:
        for item in line.piece_items:
            rows.append([
                line.worker.full_name,
                item["job_type"],
                item.get("crop") or "",
                str(item["acres_done"]),
                format_money(item["rate"]),
                format_money(item["amount"]),
            ])
    return rows


class ExportService:
    """Builds downloadable CSV files for a pay period."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def export_payroll(
        self, farm_id: UUID, pay_period_id: UUID, variant: str = "summary"
    ) -> str:
        """Export the period's payroll lines as CSV text.

        Lines appear in the same order as ``list_payroll_lines``.
        """
        if variant not in EXPORT_VARIANTS:
            raise ValidationError(f"Unknown export variant '{variant}'", field="variant")

        lines = await PayrollService(self.session).list_payroll_lines(farm_id, pay_period_id)
        if variant == "summary":
            return to_csv(summary_rows(lines))
        return to_csv(breakdown_rows(lines))
