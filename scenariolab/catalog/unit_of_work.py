"""Unit of work exposing the catalog repositories."""

from scenariolab.catalog.repositories import RoleRepository, UserRepository
from scenariolab.scenarios.unit_of_work import SqlAlchemyUnitOfWork


class CatalogUnitOfWork(SqlAlchemyUnitOfWork):
    """SQLAlchemy unit of work with role and user repositories."""

    @property
    def roles(self) -> RoleRepository:
        return RoleRepository(self.session)

    @property
    def users(self) -> UserRepository:
        return UserRepository(self.session)
