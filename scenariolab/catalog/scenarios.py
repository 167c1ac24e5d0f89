"""Sample scenario chain: Sandbox <- Roles <- Users."""

from __future__ import annotations

from typing import TYPE_CHECKING

from scenariolab.catalog import ids
from scenariolab.scenarios import Scenario, ScenarioDescriptor

if TYPE_CHECKING:
    from scenariolab.catalog.unit_of_work import CatalogUnitOfWork


class CreateSandbox(Scenario):
    """Empty scenario: the clean database every chain starts from."""

    async def seed(self, uow: CatalogUnitOfWork) -> None:
        return None


class CreateRoles(Scenario):
    async def seed(self, uow: CatalogUnitOfWork) -> None:
        await uow.roles.create_default_roles()


class CreateUsers(Scenario):
    async def seed(self, uow: CatalogUnitOfWork) -> None:
        await uow.users.create("usuario1@example.com", "Usuario Uno", user_id=ids.FIRST_USER)
        await uow.users.create("usuario2@example.com", "Usuario Dos", user_id=ids.SECOND_USER)


SANDBOX = ScenarioDescriptor(
    name="Sandbox",
    scenario=CreateSandbox(),
    description="Empty database",
)
ROLES = ScenarioDescriptor(
    name="Roles",
    scenario=CreateRoles(),
    preload="Sandbox",
    description="Default admin and member roles",
)
USERS = ScenarioDescriptor(
    name="Users",
    scenario=CreateUsers(),
    preload="Roles",
    description="Two member users",
)

ALL_SCENARIOS = [SANDBOX, ROLES, USERS]
