"""Tests for payroll line builder."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

from farm_ops.calculators.line_builder import LineBuilder
from farm_ops.calculators.types import (
    AdjustmentInput,
    AdjustmentType,
    ApprovedLog,
    WorkerPayrollContext,
)


def make_log(acres: str, job_type: str = "planting", crop: str | None = None) -> ApprovedLog:
    return ApprovedLog(
        job_log_id=uuid4(),
        worker_id=uuid4(),
        log_date=date(2024, 1, 2),
        acres_done=Decimal(acres),
        job_type=job_type,
        crop=crop,
    )


def make_context() -> WorkerPayrollContext:
    return WorkerPayrollContext(
        worker_id=uuid4(),
        pay_period_id=uuid4(),
        period_start=date(2024, 1, 1),
        period_end=date(2024, 1, 7),
    )


class TestLineBuilder:
    """Test line builder functionality."""

    def test_round_money(self):
        """Half-up rounding to 2 decimal places."""
        assert LineBuilder.round_money(Decimal("10.125")) == Decimal("10.13")
        assert LineBuilder.round_money(Decimal("10.124")) == Decimal("10.12")
        assert LineBuilder.round_money(Decimal("10.135")) == Decimal("10.14")

    def test_normalize_acres(self):
        assert LineBuilder.normalize_acres(Decimal("2.5000")) == Decimal("2.5")
        assert str(LineBuilder.normalize_acres(Decimal("2.5000"))) == "2.5"
        assert str(LineBuilder.normalize_acres(Decimal("100.0000"))) == "100"
        assert str(LineBuilder.normalize_acres(Decimal("0.33335"))) == "0.3334"

    def test_create_piece_item(self):
        """amount = acres * rate."""
        log = make_log("1.5", crop="maize")
        item = LineBuilder.create_piece_item(log, Decimal("20000"))

        assert item.job_log_id == log.job_log_id
        assert item.job_type == "planting"
        assert item.crop == "maize"
        assert item.acres_done == Decimal("1.5")
        assert item.rate == Decimal("20000.00")
        assert item.amount == Decimal("30000.00")

    def test_piece_item_amount_rounds_half_up(self):
        item = LineBuilder.create_piece_item(make_log("0.3333"), Decimal("15000"))
        # 0.3333 * 15000 = 4999.5
        assert item.amount == Decimal("4999.50")

        item = LineBuilder.create_piece_item(make_log("0.00005"), Decimal("10000"))
        # acres quantized to 0.0001 first
        assert item.acres_done == Decimal("0.0001")
        assert item.amount == Decimal("1.00")

    def test_breakdown_dict_is_serializable(self):
        item = LineBuilder.create_piece_item(make_log("2.5"), Decimal("20000"))
        data = item.to_breakdown_dict()

        assert data["acres_done"] == "2.5"
        assert data["rate"] == "20000.00"
        assert data["amount"] == "50000.00"
        assert data["crop"] is None
        assert data["log_date"] == "2024-01-02"

    def test_apply_totals(self):
        """net = gross - deductions + bonuses."""
        ctx = make_context()
        ctx.piece_items.append(LineBuilder.create_piece_item(make_log("2"), Decimal("20000")))
        ctx.piece_items.append(LineBuilder.create_piece_item(make_log("1"), Decimal("15000")))
        for adj_type, amount in [
            (AdjustmentType.DEDUCTION, "5000"),
            (AdjustmentType.ADVANCE, "2000"),
            (AdjustmentType.BONUS, "1000"),
        ]:
            ctx.adjustment_items.append(
                LineBuilder.create_adjustment_item(
                    AdjustmentInput(
                        adjustment_id=uuid4(),
                        worker_id=ctx.worker_id,
                        adj_type=adj_type,
                        amount=Decimal(amount),
                    )
                )
            )

        LineBuilder.apply_totals(ctx)

        assert ctx.gross == Decimal("55000.00")
        assert ctx.deductions == Decimal("7000.00")
        assert ctx.bonuses == Decimal("1000.00")
        assert ctx.net == Decimal("49000.00")
        assert LineBuilder.validate(ctx) == []

    def test_negative_net_is_allowed(self):
        ctx = make_context()
        ctx.adjustment_items.append(
            LineBuilder.create_adjustment_item(
                AdjustmentInput(
                    adjustment_id=uuid4(),
                    worker_id=ctx.worker_id,
                    adj_type=AdjustmentType.ADVANCE,
                    amount=Decimal("3000"),
                )
            )
        )

        LineBuilder.apply_totals(ctx)

        assert ctx.net == Decimal("-3000.00")
        assert LineBuilder.validate(ctx) == []

    def test_validate_detects_inconsistent_gross(self):
        ctx = make_context()
        ctx.piece_items.append(LineBuilder.create_piece_item(make_log("1"), Decimal("20000")))
        LineBuilder.apply_totals(ctx)
        ctx.gross = Decimal("1.00")

        errors = LineBuilder.validate(ctx)

        assert any("Piece items sum" in e for e in errors)
        assert any("Net" in e for e in errors)

    def test_compute_hash_is_deterministic(self):
        data = [{"type": "job_log", "id": "x", "acres": "1"}]
        assert LineBuilder.compute_hash(data) == LineBuilder.compute_hash(list(data))
        assert LineBuilder.compute_hash(data) != LineBuilder.compute_hash([])
        assert len(LineBuilder.compute_hash(data)) == 32
