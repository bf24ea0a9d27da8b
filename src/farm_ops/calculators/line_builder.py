"""Payroll line builder with deterministic hashing."""

from __future__ import annotations

import hashlib
import json
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable

from farm_ops.calculators.types import (
    AdjustmentInput,
    AdjustmentItem,
    ApprovedLog,
    PieceItem,
    WorkerPayrollContext,
)


class LineBuilder:
    """Builds payroll line figures from piece items and adjustments.

    Conventions:
    - Piece amounts are positive and sum exactly to gross
    - Deductions and advances accumulate into ``deductions`` (positive)
    - Bonuses accumulate into ``bonuses`` (positive)
    - NET = GROSS - DEDUCTIONS + BONUSES
    - Money is rounded to 2 decimals (half up) per piece item
    """

    OUTPUT_PRECISION = Decimal("0.01")
    ACRE_PRECISION = Decimal("0.0001")

    @staticmethod
    def round_money(amount: Decimal) -> Decimal:
        """Round amount to 2 decimal places."""
        return Decimal(amount).quantize(LineBuilder.OUTPUT_PRECISION, rounding=ROUND_HALF_UP)

    @staticmethod
    def normalize_acres(acres: Decimal) -> Decimal:
        """Quantize acres and drop trailing zeros (2.5000 -> 2.5, 100.0000 -> 100)."""
        quantized = Decimal(acres).quantize(LineBuilder.ACRE_PRECISION, rounding=ROUND_HALF_UP)
        return Decimal(format(quantized.normalize(), "f"))

    @staticmethod
    def create_piece_item(log: ApprovedLog, rate: Decimal) -> PieceItem:
        """Create a piece item: acres_done * rate."""
        acres = LineBuilder.normalize_acres(log.acres_done)
        return PieceItem(
            job_log_id=log.job_log_id,
            job_type=log.job_type,
            crop=log.crop,
            log_date=log.log_date,
            acres_done=acres,
            rate=LineBuilder.round_money(rate),
            amount=LineBuilder.round_money(acres * rate),
        )

    @staticmethod
    def create_adjustment_item(adj: AdjustmentInput) -> AdjustmentItem:
        return AdjustmentItem(
            adjustment_id=adj.adjustment_id,
            adj_type=adj.adj_type,
            amount=LineBuilder.round_money(abs(adj.amount)),
            reason=adj.reason,
        )

    @staticmethod
    def apply_totals(ctx: WorkerPayrollContext) -> WorkerPayrollContext:
        """Fill gross/deductions/bonuses/net on the context from its items."""
        ctx.gross = LineBuilder.round_money(sum((p.amount for p in ctx.piece_items), Decimal("0")))

        deductions = Decimal("0")
        bonuses = Decimal("0")
        for item in ctx.adjustment_items:
            if item.adj_type.reduces_pay:
                deductions += item.amount
            else:
                bonuses += item.amount

        ctx.deductions = LineBuilder.round_money(deductions)
        ctx.bonuses = LineBuilder.round_money(bonuses)
        ctx.net = LineBuilder.round_money(ctx.gross - ctx.deductions + ctx.bonuses)
        return ctx

    @staticmethod
    def validate(ctx: WorkerPayrollContext) -> list[str]:
        """Check internal consistency of a computed line.

        Returns list of error messages (empty if valid).
        """
        errors: list[str] = []
        piece_total = sum((p.amount for p in ctx.piece_items), Decimal("0"))
        if piece_total != ctx.gross:
            errors.append(f"Piece items sum to {piece_total}, gross is {ctx.gross}")

        for i, item in enumerate(ctx.piece_items):
            if item.amount < 0:
                errors.append(
                    f"Piece item {i} ({item.job_type}) has negative amount {item.amount}"
                )

        expected_net = ctx.gross - ctx.deductions + ctx.bonuses
        if expected_net != ctx.net:
            errors.append(
                f"Net {ctx.net} does not equal gross - deductions + bonuses ({expected_net})"
            )
        return errors

    @staticmethod
    def compute_hash(data: Any) -> str:
        """Deterministic hash of JSON-serializable data."""
        json_str = json.dumps(data, sort_keys=True, default=str)
        return hashlib.sha256(json_str.encode()).hexdigest()[:32]

    @staticmethod
    def inputs_data(
        logs: Iterable[ApprovedLog], adjustments: Iterable[AdjustmentInput]
    ) -> list[dict[str, str]]:
        """Canonical description of a worker's calculation inputs."""
        data = [
            {"type": "job_log", "id": str(log.job_log_id), "acres": str(log.acres_done)}
            for log in logs
        ]
        data.extend(
            {"type": "adjustment", "id": str(adj.adjustment_id), "amount": str(adj.amount)}
            for adj in adjustments
        )
        return data
