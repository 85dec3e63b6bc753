"""SQLAlchemy ORM models for applications and organizations."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from infrastructure.database.models import Base, TimestampMixin


class ApplicationModel(Base, TimestampMixin):
    """ORM model for applications table (metadata only).

    Ownership is stored in the application_organizations and
    application_users join tables.
    """

    __tablename__ = "applications"

    id: Mapped[str] = mapped_column(String(26), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    api_key_id: Mapped[str] = mapped_column(String(255), nullable=False)
    api_key_value: Mapped[str] = mapped_column(String(255), nullable=False)

    def __repr__(self) -> str:
        """Return string representation."""
        return f"<ApplicationModel(id={self.id}, name={self.name})>"


class OrganizationModel(Base, TimestampMixin):
    """ORM model for organizations table (metadata only)."""

    __tablename__ = "organizations"

    id: Mapped[str] = mapped_column(String(26), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    def __repr__(self) -> str:
        """Return string representation."""
        return f"<OrganizationModel(id={self.id}, name={self.name})>"
