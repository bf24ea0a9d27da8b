"""Tests for farms, plots, workers and teams."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from farm_ops.errors import ImmutableStateError, NotFoundError, ValidationError
from farm_ops.models import Worker
from farm_ops.services import FarmService, PayrollService, RosterService


class TestFarms:
    """Test farms and memberships."""

    async def test_owner_membership(self, session, farm, other_farm):
        farms = await FarmService(session).list_farms_for_user("user-1")

        assert [(f.name, role) for f, role in farms] == [("Green Acres", "owner")]

    async def test_membership_upsert(self, session, farm, other_farm):
        service = FarmService(session)
        await service.add_membership(other_farm.farm_id, "user-1", role="viewer")
        membership = await service.add_membership(other_farm.farm_id, "user-1", role="manager")

        assert membership.role == "manager"
        farms = await service.list_farms_for_user("user-1")
        assert [(f.name, role) for f, role in farms] == [
            ("Green Acres", "owner"),
            ("Other Farm", "manager"),
        ]

    async def test_membership_validation(self, session, farm):
        service = FarmService(session)

        with pytest.raises(ValidationError, match="role"):
            await service.add_membership(farm.farm_id, "user-2", role="boss")
        with pytest.raises(NotFoundError):
            await service.add_membership(uuid4(), "user-2")
        with pytest.raises(ValidationError, match="Farm name"):
            await service.create_farm("   ")


class TestUnknownFarm:
    """Test that records are only created under an existing farm."""

    async def test_roster_records_need_a_farm(self, session):
        roster = RosterService(session)
        missing = uuid4()

        with pytest.raises(NotFoundError, match="Farm"):
            await roster.create_worker(missing, "Nobody")
        with pytest.raises(NotFoundError, match="Farm"):
            await roster.create_plot(missing, "Plot Z", "3")
        with pytest.raises(NotFoundError, match="Farm"):
            await roster.create_team(missing, "Ghost Team")

        assert await session.scalar(select(func.count()).select_from(Worker)) == 0


class TestPlots:
    """Test plot records."""

    async def test_plot_fields(self, plot):
        assert plot.name == "Plot A"
        assert plot.code == "PA"
        assert plot.size_acres == Decimal("12.5")

    async def test_plot_size_must_be_positive(self, session, farm):
        with pytest.raises(ValidationError, match="Size"):
            await RosterService(session).create_plot(farm.farm_id, "Plot B", "-2")

    async def test_plot_with_jobs_cannot_be_deleted(self, session, farm, plot, job):
        with pytest.raises(ImmutableStateError):
            await RosterService(session).delete_plot(farm.farm_id, plot.plot_id)

    async def test_delete_unused_plot(self, session, farm, plot):
        roster = RosterService(session)
        await roster.delete_plot(farm.farm_id, plot.plot_id)

        assert await roster.list_plots(farm.farm_id) == []


class TestWorkers:
    """Test worker records."""

    async def test_list_workers_by_name(self, session, farm, other_farm, workers):
        roster = RosterService(session)
        await roster.create_worker(other_farm.farm_id, "Zed Outsider")

        names = [w.full_name for w in await roster.list_workers(farm.farm_id)]

        assert names == ["Ada Obi", "Bola Ade"]

    async def test_deactivate_and_reactivate(self, session, farm, workers):
        roster = RosterService(session)
        bola = workers["bola"].worker_id

        await roster.set_worker_active(farm.farm_id, bola, False)
        active = await roster.list_workers(farm.farm_id, active_only=True)
        assert [w.full_name for w in active] == ["Ada Obi"]

        worker = await roster.set_worker_active(farm.farm_id, bola, True)
        assert worker.active is True

    async def test_update_and_photo(self, session, farm, workers):
        roster = RosterService(session)
        ada = workers["ada"].worker_id

        worker = await roster.update_worker(farm.farm_id, ada, phone=" 0801 ", role="lead")
        assert worker.phone == "0801"
        assert worker.role == "lead"

        worker = await roster.set_photo_url(farm.farm_id, ada, "https://cdn.example/ada.jpg")
        assert worker.photo_url == "https://cdn.example/ada.jpg"

        with pytest.raises(ValidationError, match="Full name"):
            await roster.update_worker(farm.farm_id, ada, full_name="")

    async def test_delete_worker_without_history(self, session, farm, team, workers):
        roster = RosterService(session)
        bola = workers["bola"].worker_id
        await roster.add_member(farm.farm_id, team.team_id, bola, date(2024, 1, 1))

        await roster.delete_worker(farm.farm_id, bola)

        assert [w.full_name for w in await roster.list_workers(farm.farm_id)] == ["Ada Obi"]
        assert await roster.list_members(farm.farm_id, team.team_id) == []

    async def test_delete_worker_with_logs_refused(self, session, farm, workers, approve_work):
        await approve_work(workers["ada"], date(2024, 1, 2), "1")

        with pytest.raises(ImmutableStateError, match="deactivate"):
            await RosterService(session).delete_worker(farm.farm_id, workers["ada"].worker_id)

    async def test_delete_worker_with_adjustment_refused(self, session, settings, farm, workers):
        await PayrollService(session, settings).add_adjustment(
            farm.farm_id, workers["bola"].worker_id, "advance", "500"
        )

        with pytest.raises(ImmutableStateError):
            await RosterService(session).delete_worker(farm.farm_id, workers["bola"].worker_id)

    async def test_other_farm_worker_not_found(self, session, other_farm, workers):
        with pytest.raises(NotFoundError):
            await RosterService(session).set_worker_active(
                other_farm.farm_id, workers["ada"].worker_id, False
            )


class TestTeams:
    """Test teams and team membership."""

    async def test_add_member_once(self, session, farm, team, workers):
        roster = RosterService(session)
        ada = workers["ada"].worker_id

        membership = await roster.add_member(farm.farm_id, team.team_id, ada, date(2024, 1, 1))
        assert membership.end_date is None

        with pytest.raises(ValidationError, match="already an active member"):
            await roster.add_member(farm.farm_id, team.team_id, ada, date(2024, 2, 1))

    async def test_rejoin_after_membership_ends(self, session, farm, team, workers):
        roster = RosterService(session)
        ada = workers["ada"].worker_id
        first = await roster.add_member(farm.farm_id, team.team_id, ada, date(2024, 1, 1))

        with pytest.raises(ValidationError, match="on or after"):
            await roster.end_membership(
                farm.farm_id, first.team_membership_id, date(2023, 12, 31)
            )

        await roster.end_membership(farm.farm_id, first.team_membership_id, date(2024, 1, 31))
        await roster.add_member(farm.farm_id, team.team_id, ada, date(2024, 3, 1))

        active = await roster.list_members(farm.farm_id, team.team_id)
        history = await roster.list_members(farm.farm_id, team.team_id, active_only=False)
        assert [m.start_date for m in active] == [date(2024, 3, 1)]
        assert len(history) == 2
        assert active[0].worker.full_name == "Ada Obi"

    async def test_team_leader_must_belong_to_farm(self, session, other_farm, workers):
        with pytest.raises(NotFoundError):
            await RosterService(session).create_team(
                other_farm.farm_id, "Raiders", leader_worker_id=workers["ada"].worker_id
            )

    async def test_delete_team(self, session, farm, team, job, workers):
        roster = RosterService(session)
        spare = await roster.create_team(farm.farm_id, "Spare")
        bola = workers["bola"].worker_id
        await roster.add_member(farm.farm_id, spare.team_id, bola, date(2024, 1, 1))

        await roster.delete_team(farm.farm_id, spare.team_id)
        with pytest.raises(ImmutableStateError):
            await roster.delete_team(farm.farm_id, team.team_id)

        assert [t.name for t in await roster.list_teams(farm.farm_id)] == ["North Team"]
