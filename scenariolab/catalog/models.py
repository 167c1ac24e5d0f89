"""Catalog ORM models seeded by the sample scenarios.

Tables:
- role: named permission groups
- app_user: accounts, each referencing one role
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from scenariolab.core.database import Base


class Role(Base):
    """Role table.

    Attributes:
        id: Primary key.
        name: Unique role name (e.g., "admin").
        description: Human-readable summary.
    """

    __tablename__ = "role"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    name: Mapped[str] = mapped_column(String(50), unique=True, index=True)
    description: Mapped[str | None] = mapped_column(String(200), nullable=True)

    users: Mapped[list["User"]] = relationship(back_populates="role")


class User(Base):
    """Application user table.

    Attributes:
        id: Primary key.
        email: Unique login email.
        full_name: Display name.
        role_id: Foreign key to role.
        created_at: Creation timestamp, set by the seeding code.
    """

    __tablename__ = "app_user"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    email: Mapped[str] = mapped_column(String(254), unique=True, index=True)
    full_name: Mapped[str] = mapped_column(String(100))
    role_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("role.id"), index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    role: Mapped[Role] = relationship(back_populates="users")
