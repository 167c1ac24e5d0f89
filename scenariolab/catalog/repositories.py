"""Repositories used by catalog scenarios."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from scenariolab.catalog import ids
from scenariolab.catalog.models import Role, User
from scenariolab.core.logging import get_logger

logger = get_logger(__name__)

# Fixed so that rebuilding a scenario produces byte-identical snapshots
SEEDED_AT = datetime(2024, 1, 1, tzinfo=UTC)

DEFAULT_ROLES: list[tuple[uuid.UUID, str, str]] = [
    (ids.ADMIN_ROLE, "admin", "Full access to every resource"),
    (ids.MEMBER_ROLE, "member", "Standard application access"),
]


class RoleRepository:
    """Role persistence."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create_default_roles(self) -> list[Role]:
        """Insert the default roles.

        Returns:
            The created roles.
        """
        roles = [
            Role(id=role_id, name=name, description=desc)
            for role_id, name, desc in DEFAULT_ROLES
        ]
        self.session.add_all(roles)
        await self.session.flush()
        logger.info("catalog.roles.created", count=len(roles))
        return roles

    async def get_by_name(self, name: str) -> Role | None:
        result = await self.session.execute(select(Role).where(Role.name == name))
        return result.scalar_one_or_none()


class UserRepository:
    """User persistence."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(
        self,
        email: str,
        full_name: str,
        role_name: str = "member",
        user_id: uuid.UUID | None = None,
    ) -> User:
        """Create a user with the given role.

        Raises:
            LookupError: If the role does not exist.
        """
        result = await self.session.execute(select(Role.id).where(Role.name == role_name))
        role_id = result.scalar_one_or_none()
        if role_id is None:
            raise LookupError(f"Role '{role_name}' not found")

        user = User(
            id=user_id or uuid.uuid4(),
            email=email,
            full_name=full_name,
            role_id=role_id,
            created_at=SEEDED_AT,
        )
        self.session.add(user)
        await self.session.flush()
        logger.info("catalog.user.created", email=email, role=role_name)
        return user

    async def list_all(self) -> list[User]:
        result = await self.session.execute(select(User).order_by(User.email))
        return list(result.scalars().all())
