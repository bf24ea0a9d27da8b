"""Tests for payroll runs."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from farm_ops.calculators.rate_resolver import RateNotFoundError
from farm_ops.errors import NotFoundError, PreconditionError, ValidationError
from farm_ops.models import PayrollLine
from farm_ops.services import JobLogService, PayrollService, PlanningService, RateCardService


async def count_lines(session, pay_period_id) -> int:
    result = await session.execute(
        select(func.count())
        .select_from(PayrollLine)
        .where(PayrollLine.pay_period_id == pay_period_id)
    )
    return result.scalar_one()


class TestRunPayroll:
    """Test computing and storing payroll lines."""

    async def test_gross_is_acres_times_rate(
        self, session, settings, farm, workers, rate_card, pay_period, approve_work
    ):
        await approve_work(workers["ada"], date(2024, 1, 2), "1.5")
        await approve_work(workers["ada"], date(2024, 1, 3), "1.5")
        service = PayrollService(session, settings)

        result = await service.run_payroll(
            farm.farm_id, pay_period.pay_period_id, rate_card.rate_card_id
        )

        assert result.worker_count == 1
        line = result.lines[0]
        assert line.worker_id == workers["ada"].worker_id
        assert line.gross_pay == Decimal("60000.00")
        assert line.net_pay == Decimal("60000.00")
        assert line.rate_card_id == rate_card.rate_card_id
        assert result.total_gross == Decimal("60000.00")
        assert pay_period.last_rate_card_id == rate_card.rate_card_id
        assert pay_period.last_run_at is not None

    async def test_piece_items_sum_to_gross(
        self, session, settings, farm, workers, rate_card, pay_period, approve_work
    ):
        await approve_work(workers["ada"], date(2024, 1, 2), "0.3333")
        await approve_work(workers["ada"], date(2024, 1, 4), "2.25")
        await approve_work(workers["bola"], date(2024, 1, 5), "1")

        result = await PayrollService(session, settings).run_payroll(
            farm.farm_id, pay_period.pay_period_id, rate_card.rate_card_id
        )

        assert result.worker_count == 2
        for line in result.lines:
            amounts = [Decimal(item["amount"]) for item in line.breakdown["piece_items"]]
            assert sum(amounts) == line.gross_pay
        assert result.total_gross == sum(line.gross_pay for line in result.lines)

    async def test_adjustments_change_net(
        self, session, settings, farm, workers, rate_card, pay_period, approve_work
    ):
        await approve_work(workers["ada"], date(2024, 1, 2), "3")
        service = PayrollService(session, settings)
        ada = workers["ada"].worker_id
        await service.add_adjustment(
            farm.farm_id, ada, "deduction", "5000", pay_period_id=pay_period.pay_period_id
        )
        await service.add_adjustment(
            farm.farm_id, ada, "bonus", "2000", "Early finish", pay_period.pay_period_id
        )

        result = await service.run_payroll(
            farm.farm_id, pay_period.pay_period_id, rate_card.rate_card_id
        )

        line = result.lines[0]
        assert line.gross_pay == Decimal("60000.00")
        assert line.deductions == Decimal("5000.00")
        assert line.bonuses == Decimal("2000.00")
        assert line.net_pay == Decimal("57000.00")
        assert len(line.breakdown["adjustments"]) == 2

    async def test_floating_and_unapplied_adjustments_are_counted(
        self, session, settings, farm, workers, rate_card, pay_period, approve_work
    ):
        await approve_work(workers["ada"], date(2024, 1, 2), "1")
        service = PayrollService(session, settings)
        # No pay period: never applied by a run
        await service.add_adjustment(farm.farm_id, workers["ada"].worker_id, "advance", "1000")
        # Bola has no approved work in the period
        await service.add_adjustment(
            farm.farm_id,
            workers["bola"].worker_id,
            "bonus",
            "500",
            pay_period_id=pay_period.pay_period_id,
        )

        result = await service.run_payroll(
            farm.farm_id, pay_period.pay_period_id, rate_card.rate_card_id
        )

        assert result.floating_adjustments == 1
        assert result.unapplied_adjustments == 1
        assert [line.worker_id for line in result.lines] == [workers["ada"].worker_id]
        assert result.lines[0].net_pay == Decimal("20000.00")

    async def test_only_approved_logs_inside_period_count(
        self, session, settings, farm, workers, job, rate_card, pay_period, approve_work
    ):
        await approve_work(workers["ada"], date(2024, 1, 7), "1")
        # Outside the period
        await approve_work(workers["ada"], date(2024, 1, 8), "1")
        # Submitted but not approved
        await JobLogService(session).create(
            farm.farm_id, job.job_id, date(2024, 1, 3), "4", workers["ada"].worker_id
        )

        result = await PayrollService(session, settings).run_payroll(
            farm.farm_id, pay_period.pay_period_id, rate_card.rate_card_id
        )

        assert result.lines[0].gross_pay == Decimal("20000.00")
        assert len(result.lines[0].breakdown["piece_items"]) == 1

    async def test_no_logs_produces_no_lines(self, session, settings, farm, rate_card, pay_period):
        result = await PayrollService(session, settings).run_payroll(
            farm.farm_id, pay_period.pay_period_id, rate_card.rate_card_id
        )

        assert result.lines == []
        assert result.total_net == Decimal("0")
        assert await count_lines(session, pay_period.pay_period_id) == 0

    async def test_rerun_replaces_lines(
        self, session, settings, farm, workers, rate_card, pay_period, approve_work
    ):
        await approve_work(workers["ada"], date(2024, 1, 2), "1")
        await approve_work(workers["bola"], date(2024, 1, 3), "2")
        service = PayrollService(session, settings)
        args = (farm.farm_id, pay_period.pay_period_id, rate_card.rate_card_id)

        first = await service.run_payroll(*args)
        first_ids = {(line.payroll_line_id, line.calculation_id) for line in first.lines}
        second = await service.run_payroll(*args)
        second_ids = {(line.payroll_line_id, line.calculation_id) for line in second.lines}

        assert first_ids == second_ids
        assert await count_lines(session, pay_period.pay_period_id) == 2

    async def test_rerun_is_byte_identical(
        self, session, settings, farm, workers, rate_card, pay_period, approve_work
    ):
        await approve_work(workers["ada"], date(2024, 1, 2), "1.25")
        await approve_work(workers["bola"], date(2024, 1, 3), "2")
        service = PayrollService(session, settings)
        await service.add_adjustment(
            farm.farm_id,
            workers["bola"].worker_id,
            "bonus",
            "750",
            pay_period_id=pay_period.pay_period_id,
        )
        args = (farm.farm_id, pay_period.pay_period_id, rate_card.rate_card_id)

        async def stored_rows():
            await session.flush()
            table = PayrollLine.__table__
            result = await session.execute(
                select(table)
                .where(table.c.pay_period_id == pay_period.pay_period_id)
                .order_by(table.c.payroll_line_id)
            )
            return [tuple(row) for row in result.all()]

        await service.run_payroll(*args)
        first = await stored_rows()
        await service.run_payroll(*args)
        second = await stored_rows()

        assert len(first) == 2
        assert first == second

    async def test_planting_with_deduction(
        self, session, settings, farm, workers, rate_card, pay_period, approve_work
    ):
        await RateCardService(session, settings).upsert_rates(
            farm.farm_id, rate_card.rate_card_id, {"planting": "30000"}
        )
        await approve_work(workers["ada"], date(2024, 1, 2), "2.0")
        service = PayrollService(session, settings)
        await service.add_adjustment(
            farm.farm_id,
            workers["ada"].worker_id,
            "deduction",
            "5000",
            pay_period_id=pay_period.pay_period_id,
        )

        result = await service.run_payroll(
            farm.farm_id, pay_period.pay_period_id, rate_card.rate_card_id
        )

        line = result.lines[0]
        assert line.gross_pay == Decimal("60000.00")
        assert line.deductions == Decimal("5000.00")
        assert line.net_pay == Decimal("55000.00")
        [item] = line.breakdown["piece_items"]
        assert (item["job_type"], item["crop"]) == ("planting", "maize")
        assert Decimal(item["acres_done"]) == Decimal("2")
        assert Decimal(item["rate"]) == Decimal("30000")
        assert Decimal(item["amount"]) == Decimal("60000")
        [adjustment] = line.breakdown["adjustments"]
        assert adjustment["adj_type"] == "deduction"
        assert Decimal(adjustment["amount"]) == Decimal("5000")

    async def test_rerun_after_new_approval_updates_line(
        self, session, settings, farm, workers, rate_card, pay_period, approve_work
    ):
        await approve_work(workers["ada"], date(2024, 1, 2), "1")
        service = PayrollService(session, settings)
        args = (farm.farm_id, pay_period.pay_period_id, rate_card.rate_card_id)

        first = await service.run_payroll(*args)
        first_line = first.lines[0]
        first_ids = (first_line.payroll_line_id, first_line.calculation_id)
        await approve_work(workers["ada"], date(2024, 1, 3), "1")
        second = await service.run_payroll(*args)

        line = second.lines[0]
        assert line.payroll_line_id == first_ids[0]
        assert line.calculation_id != first_ids[1]
        assert line.gross_pay == Decimal("40000.00")
        assert await count_lines(session, pay_period.pay_period_id) == 1

    async def test_missing_rate_writes_nothing(
        self, session, settings, farm, workers, plan, team, plot, rate_card, pay_period,
        approve_work,
    ):
        await approve_work(workers["ada"], date(2024, 1, 2), "1")
        service = PayrollService(session, settings)
        args = (farm.farm_id, pay_period.pay_period_id, rate_card.rate_card_id)
        await service.run_payroll(*args)

        harvest = await PlanningService(session).create_job(
            farm.farm_id,
            plan.plan_id,
            team.team_id,
            plot.plot_id,
            "harvesting",
            "5",
            date(2024, 1, 1),
            date(2024, 1, 20),
        )
        await approve_work(workers["bola"], date(2024, 1, 4), "1", job_id=harvest.job_id)

        with pytest.raises(RateNotFoundError, match="harvesting"):
            await service.run_payroll(*args)

        # The previous run's line is untouched
        assert await count_lines(session, pay_period.pay_period_id) == 1

    async def test_selection_required(self, session, settings, farm, rate_card, pay_period):
        service = PayrollService(session, settings)

        with pytest.raises(PreconditionError, match="pay period"):
            await service.run_payroll(farm.farm_id, None, rate_card.rate_card_id)
        with pytest.raises(PreconditionError, match="rate card"):
            await service.run_payroll(farm.farm_id, pay_period.pay_period_id, None)

    async def test_other_farm_records_not_found(
        self, session, settings, farm, other_farm, rate_card, pay_period
    ):
        service = PayrollService(session, settings)

        with pytest.raises(NotFoundError):
            await service.run_payroll(
                other_farm.farm_id, pay_period.pay_period_id, rate_card.rate_card_id
            )
        with pytest.raises(NotFoundError):
            await service.run_payroll(farm.farm_id, uuid4(), rate_card.rate_card_id)


class TestPayrollLines:
    """Test listing stored payroll lines."""

    async def test_highest_net_first(
        self, session, settings, farm, workers, rate_card, pay_period, approve_work
    ):
        await approve_work(workers["ada"], date(2024, 1, 2), "1")
        await approve_work(workers["bola"], date(2024, 1, 2), "2")
        service = PayrollService(session, settings)
        await service.run_payroll(farm.farm_id, pay_period.pay_period_id, rate_card.rate_card_id)

        lines = await service.list_payroll_lines(farm.farm_id, pay_period.pay_period_id)

        assert [line.worker_name for line in lines] == ["Bola Ade", "Ada Obi"]
        assert [line.net_pay for line in lines] == [Decimal("40000.00"), Decimal("20000.00")]

    async def test_other_farm_cannot_list(self, session, settings, other_farm, pay_period):
        with pytest.raises(NotFoundError):
            await PayrollService(session, settings).list_payroll_lines(
                other_farm.farm_id, pay_period.pay_period_id
            )


class TestPeriodsAndAdjustments:
    """Test pay period and adjustment input checks."""

    async def test_period_dates_validated(self, session, settings, farm):
        service = PayrollService(session, settings)

        with pytest.raises(ValidationError, match="on or after"):
            await service.create_pay_period(farm.farm_id, date(2024, 1, 7), date(2024, 1, 1))
        with pytest.raises(ValidationError):
            await service.create_pay_period(farm.farm_id, date(2024, 1, 1), None)
        with pytest.raises(ValidationError, match="period type"):
            await service.create_pay_period(
                farm.farm_id, date(2024, 1, 1), date(2024, 1, 7), "yearly"
            )

    async def test_period_needs_existing_farm(self, session, settings):
        with pytest.raises(NotFoundError, match="Farm"):
            await PayrollService(session, settings).create_pay_period(
                uuid4(), date(2024, 1, 1), date(2024, 1, 7)
            )

    async def test_adjustment_validation(self, session, settings, farm, workers):
        service = PayrollService(session, settings)
        ada = workers["ada"].worker_id

        with pytest.raises(ValidationError, match="adjustment type"):
            await service.add_adjustment(farm.farm_id, ada, "tip", "100")
        with pytest.raises(ValidationError, match="Amount"):
            await service.add_adjustment(farm.farm_id, ada, "bonus", "0")
        with pytest.raises(ValidationError, match="at most 2 decimal places"):
            await service.add_adjustment(farm.farm_id, ada, "bonus", "100.005")
        with pytest.raises(NotFoundError):
            await service.add_adjustment(farm.farm_id, uuid4(), "bonus", "100")

    async def test_list_adjustments_by_period(self, session, settings, farm, workers, pay_period):
        service = PayrollService(session, settings)
        ada = workers["ada"].worker_id
        await service.add_adjustment(farm.farm_id, ada, "bonus", "100")
        await service.add_adjustment(
            farm.farm_id, ada, "deduction", "50", pay_period_id=pay_period.pay_period_id
        )

        assert len(await service.list_adjustments(farm.farm_id)) == 2
        tied = await service.list_adjustments(farm.farm_id, pay_period.pay_period_id)
        assert [a.adj_type for a in tied] == ["deduction"]
