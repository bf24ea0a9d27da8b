"""Farm (tenant) and membership service."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from farm_ops.errors import ValidationError
from farm_ops.models import Farm, FarmMembership
from farm_ops.services.scoping import optional_text, require_farm, require_text

MEMBERSHIP_ROLES = ("owner", "manager", "supervisor", "viewer")


class FarmService:
    """Creates farms and resolves which farms a user may work in.

    The selected farm is never stored here; callers pass it explicitly to
    every other service.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_farm(
        self,
        name: str,
        location: str | None = None,
        owner_ref: str | None = None,
    ) -> Farm:
        """Create a farm, optionally granting ``owner_ref`` the owner role."""
        farm = Farm(
            name=require_text(name, "name", "Farm name"),
            location=optional_text(location),
        )
        self.session.add(farm)
        await self.session.flush()

        if owner_ref:
            await self.add_membership(farm.farm_id, owner_ref, role="owner")
        return farm

    async def get_farm(self, farm_id: UUID) -> Farm:
        return await require_farm(self.session, farm_id)

    async def add_membership(
        self, farm_id: UUID, user_ref: str, role: str = "manager"
    ) -> FarmMembership:
        """Grant (or re-activate) a user's access to a farm."""
        await self.get_farm(farm_id)
        user_ref = require_text(user_ref, "user_ref", "User")
        if role not in MEMBERSHIP_ROLES:
            raise ValidationError(f"Unknown role '{role}'", field="role")

        result = await self.session.execute(
            select(FarmMembership).where(
                FarmMembership.farm_id == farm_id,
                FarmMembership.user_ref == user_ref,
            )
        )
        membership = result.scalar_one_or_none()
        if membership is None:
            membership = FarmMembership(farm_id=farm_id, user_ref=user_ref, role=role)
            self.session.add(membership)
        else:
            membership.role = role
            membership.is_active = True

        await self.session.flush()
        return membership

    async def list_farms_for_user(self, user_ref: str) -> list[tuple[Farm, str]]:
        """Farms the user has an active membership in, with the user's role."""
        result = await self.session.execute(
            select(Farm, FarmMembership.role)
            .join(FarmMembership, FarmMembership.farm_id == Farm.farm_id)
            .where(
                FarmMembership.user_ref == user_ref,
                FarmMembership.is_active.is_(True),
            )
            .order_by(Farm.name)
        )
        return [(farm, role) for farm, role in result.all()]
