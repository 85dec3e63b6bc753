"""SQLAlchemy ORM models for identities, pending sign-ups and reset grants."""

from sqlalchemy import ForeignKey, Index, String, Text, text
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import Mapped, mapped_column

from infrastructure.database.models import Base, CreatedAtMixin, TimestampMixin


class UserModel(Base, TimestampMixin):
    """ORM model for users table.

    id is VARCHAR(64) to hold both ULIDs (local users) and UUID legacy ids.
    ``(provider, provider_id)`` is unique whenever ``provider_id`` is set.
    """

    __tablename__ = "users"
    __table_args__ = (
        Index(
            "ix_users_provider_provider_id",
            "provider",
            "provider_id",
            unique=True,
            postgresql_where=text("provider_id IS NOT NULL"),
        ),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    photo: Mapped[str | None] = mapped_column(Text, nullable=True)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True, index=True)
    provider: Mapped[str] = mapped_column(String(32), nullable=False)
    provider_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    apps: Mapped[list[str]] = mapped_column(
        ARRAY(String(64)), nullable=False, default=list
    )
    password: Mapped[str | None] = mapped_column(String(255), nullable=True)
    salt: Mapped[str | None] = mapped_column(String(255), nullable=True)
    user_token: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        """Return string representation."""
        return f"<UserModel(id={self.id}, provider={self.provider})>"


class PendingUserModel(Base, CreatedAtMixin):
    """ORM model for unconfirmed local sign-ups (7-day time-to-live)."""

    __tablename__ = "pending_users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    email: Mapped[str] = mapped_column(String(320), nullable=False, index=True)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    password: Mapped[str] = mapped_column(String(255), nullable=False)
    salt: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(32), nullable=False)
    confirmation_token: Mapped[str] = mapped_column(
        String(64), nullable=False, unique=True
    )
    apps: Mapped[list[str]] = mapped_column(
        ARRAY(String(64)), nullable=False, default=list
    )

    def __repr__(self) -> str:
        """Return string representation."""
        return f"<PendingUserModel(id={self.id}, email={self.email})>"


class PasswordRenewalModel(Base, CreatedAtMixin):
    """ORM model for single-use password reset grants."""

    __tablename__ = "password_renewals"

    id: Mapped[str] = mapped_column(String(26), primary_key=True)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    token: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)

    def __repr__(self) -> str:
        """Return string representation."""
        return f"<PasswordRenewalModel(id={self.id}, user_id={self.user_id})>"
