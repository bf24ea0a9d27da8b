"""Tests for per-acre rate resolution."""

from decimal import Decimal
from uuid import uuid4

import pytest

from farm_ops.calculators.rate_resolver import RateNotFoundError, RateResolver
from farm_ops.errors import PreconditionError
from farm_ops.models import Rate
from farm_ops.services import RateCardService


def make_rate(job_type: str, amount: str, crop: str | None = None) -> Rate:
    return Rate(
        rate_id=uuid4(),
        job_type=job_type,
        crop=crop,
        pay_type="per_acre",
        rate_amount=Decimal(amount),
    )


class TestRateSelection:
    """Test exact-crop vs crop-agnostic selection."""

    def test_crop_agnostic_rate_applies_to_any_crop(self):
        resolver = RateResolver(uuid4(), [make_rate("planting", "20000")])

        assert resolver.resolve("planting", "maize") == Decimal("20000")
        assert resolver.resolve("planting", None) == Decimal("20000")

    def test_exact_crop_beats_crop_agnostic(self):
        resolver = RateResolver(
            uuid4(),
            [
                make_rate("planting", "20000"),
                make_rate("planting", "25000", crop="cassava"),
            ],
        )

        assert resolver.resolve("planting", "cassava") == Decimal("25000")
        assert resolver.resolve("planting", "maize") == Decimal("20000")

    def test_exact_crop_wins_regardless_of_order(self):
        resolver = RateResolver(
            uuid4(),
            [
                make_rate("planting", "25000", crop="cassava"),
                make_rate("planting", "20000"),
            ],
        )

        assert resolver.resolve("planting", "cassava") == Decimal("25000")

    def test_other_crop_rate_never_matches(self):
        card_id = uuid4()
        resolver = RateResolver(card_id, [make_rate("planting", "25000", crop="cassava")])

        assert resolver.find_rate("planting", "maize") is None
        assert resolver.find_rate("planting", None) is None

        with pytest.raises(RateNotFoundError) as exc_info:
            resolver.resolve("planting", "maize")

        assert exc_info.value.rate_card_id == card_id
        assert exc_info.value.job_type == "planting"
        assert exc_info.value.crop == "maize"
        assert isinstance(exc_info.value, PreconditionError)

    def test_missing_job_type(self):
        resolver = RateResolver(uuid4(), [make_rate("planting", "20000")])

        with pytest.raises(RateNotFoundError, match="weeding"):
            resolver.resolve("weeding")

    def test_non_per_acre_rate_ignored(self):
        rate = make_rate("planting", "20000")
        rate.pay_type = "per_day"
        resolver = RateResolver(uuid4(), [rate])

        assert resolver.find_rate("planting") is None


class TestRateResolverLoading:
    """Test loading a resolver from the database."""

    async def test_for_rate_card(self, session, farm, settings):
        service = RateCardService(session, settings)
        card = await service.create_rate_card(farm.farm_id, "Main")
        await service.upsert_rates(farm.farm_id, card.rate_card_id, {"planting": "20000"})
        await service.upsert_rates(
            farm.farm_id, card.rate_card_id, {"planting": "30000"}, crop="yam"
        )

        resolver = await RateResolver.for_rate_card(session, card.rate_card_id)

        assert len(resolver.rates) == 2
        assert resolver.resolve("planting", "yam") == Decimal("30000")
        assert resolver.resolve("planting", "maize") == Decimal("20000")
