"""SQLAlchemy ORM models for association join rows.

Join rows are inserted and deleted, never updated. The unique constraints
on ``application_id`` make storage itself reject a second owner link of
the same kind.
"""

from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from infrastructure.database.models import Base, CreatedAtMixin


class ApplicationOrganizationModel(Base, CreatedAtMixin):
    """Links an application to the organization that owns it."""

    __tablename__ = "application_organizations"

    id: Mapped[str] = mapped_column(String(26), primary_key=True)
    application_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    organization_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        """Return string representation."""
        return (
            f"<ApplicationOrganizationModel(application_id={self.application_id}, "
            f"organization_id={self.organization_id})>"
        )


class ApplicationUserModel(Base, CreatedAtMixin):
    """Links an application to the user that owns it directly.

    ``user_id`` carries no foreign key: identity-provider-backed users do
    not live in the local users table.
    """

    __tablename__ = "application_users"

    id: Mapped[str] = mapped_column(String(26), primary_key=True)
    application_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    def __repr__(self) -> str:
        """Return string representation."""
        return (
            f"<ApplicationUserModel(application_id={self.application_id}, "
            f"user_id={self.user_id})>"
        )


class OrganizationUserModel(Base, CreatedAtMixin):
    """Membership of a user in an organization, with a role."""

    __tablename__ = "organization_users"
    __table_args__ = (
        UniqueConstraint(
            "organization_id", "user_id", name="uq_organization_users_org_user"
        ),
    )

    id: Mapped[str] = mapped_column(String(26), primary_key=True)
    organization_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    role: Mapped[str] = mapped_column(String(16), nullable=False)

    def __repr__(self) -> str:
        """Return string representation."""
        return (
            f"<OrganizationUserModel(organization_id={self.organization_id}, "
            f"user_id={self.user_id}, role={self.role})>"
        )
