"""Pytest fixtures for farm operations tests."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import AsyncGenerator
from uuid import UUID

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from farm_ops.config import Settings
from farm_ops.database import get_engine, init_models, make_session_factory
from farm_ops.models import Farm, Job, JobLog, PayPeriod, Plan, Plot, RateCard, Team, Worker
from farm_ops.services import (
    FarmService,
    JobLogService,
    PayrollService,
    PlanningService,
    RateCardService,
    RosterService,
)


def make_settings(**overrides) -> Settings:
    values = {
        "database_url": "sqlite+aiosqlite://",
        "engine_version": "test",
        "host": "127.0.0.1",
        "port": 8000,
        "debug": False,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Fresh file-backed SQLite database per test.

    Not :memory:, so that several sessions (as the dashboard opens) share data.
    """
    engine = get_engine(f"sqlite+aiosqlite:///{tmp_path / 'farm_ops.db'}")
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return make_session_factory(engine)


@pytest.fixture
async def session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def farm(session: AsyncSession) -> Farm:
    return await FarmService(session).create_farm(
        "Green Acres", location="Oyo", owner_ref="user-1"
    )


@pytest.fixture
async def other_farm(session: AsyncSession) -> Farm:
    return await FarmService(session).create_farm("Other Farm")


@pytest.fixture
async def workers(session: AsyncSession, farm: Farm) -> dict[str, Worker]:
    roster = RosterService(session)
    return {
        "ada": await roster.create_worker(farm.farm_id, "Ada Obi", phone="0800"),
        "bola": await roster.create_worker(farm.farm_id, "Bola Ade"),
    }


@pytest.fixture
async def team(session: AsyncSession, farm: Farm, workers: dict[str, Worker]) -> Team:
    return await RosterService(session).create_team(
        farm.farm_id, "North Team", leader_worker_id=workers["ada"].worker_id
    )


@pytest.fixture
async def plot(session: AsyncSession, farm: Farm) -> Plot:
    return await RosterService(session).create_plot(farm.farm_id, "Plot A", "12.5", code="PA")


@pytest.fixture
async def plan(session: AsyncSession, farm: Farm) -> Plan:
    return await PlanningService(session).create_plan(
        farm.farm_id, "January", date(2024, 1, 1), date(2024, 1, 31)
    )


@pytest.fixture
async def job(session: AsyncSession, farm: Farm, plan: Plan, team: Team, plot: Plot) -> Job:
    """Planting maize on 10 acres, due mid-January."""
    return await PlanningService(session).create_job(
        farm.farm_id,
        plan.plan_id,
        team.team_id,
        plot.plot_id,
        "planting",
        "10",
        date(2024, 1, 1),
        date(2024, 1, 15),
        crop="maize",
    )


@pytest.fixture
async def rate_card(session: AsyncSession, farm: Farm, settings: Settings) -> RateCard:
    """Active card paying 20000/acre for planting and 15000/acre for weeding."""
    service = RateCardService(session, settings)
    card = await service.create_rate_card(farm.farm_id, "2024 rates")
    await service.upsert_rates(
        farm.farm_id, card.rate_card_id, {"planting": "20000", "weeding": "15000"}
    )
    return await service.activate_rate_card(farm.farm_id, card.rate_card_id)


@pytest.fixture
async def pay_period(session: AsyncSession, farm: Farm, settings: Settings) -> PayPeriod:
    return await PayrollService(session, settings).create_pay_period(
        farm.farm_id, date(2024, 1, 1), date(2024, 1, 7)
    )


@pytest.fixture
def approve_work(session: AsyncSession, farm: Farm, job: Job):
    """Record work as a submitted log and approve it.

    Defaults to the ``job`` fixture; pass ``job_id`` for another job.
    """

    async def _approve(
        worker: Worker,
        log_date: date,
        acres: str | Decimal,
        job_id: UUID | None = None,
    ) -> JobLog:
        service = JobLogService(session)
        log = await service.create(
            farm.farm_id, job_id or job.job_id, log_date, acres, worker.worker_id
        )
        return await service.approve(farm.farm_id, log.job_log_id)

    return _approve
