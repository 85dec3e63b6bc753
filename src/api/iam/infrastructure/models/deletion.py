"""SQLAlchemy ORM model for deletion requests."""

from sqlalchemy import Boolean, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from infrastructure.database.models import Base, TimestampMixin


def _flag() -> Mapped[bool]:
    return mapped_column(Boolean, nullable=False, default=False)


class DeletionModel(Base, TimestampMixin):
    """ORM model for deletions table. One row per user at most."""

    __tablename__ = "deletions"
    __table_args__ = (Index("ix_deletions_user_id", "user_id", unique=True),)

    id: Mapped[str] = mapped_column(String(26), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    requestor_user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, index=True)

    datasets_deleted: Mapped[bool] = _flag()
    layers_deleted: Mapped[bool] = _flag()
    widgets_deleted: Mapped[bool] = _flag()
    user_account_deleted: Mapped[bool] = _flag()
    user_data_deleted: Mapped[bool] = _flag()
    graph_data_deleted: Mapped[bool] = _flag()
    collections_deleted: Mapped[bool] = _flag()
    favourites_deleted: Mapped[bool] = _flag()
    vocabularies_deleted: Mapped[bool] = _flag()
    areas_deleted: Mapped[bool] = _flag()
    stories_deleted: Mapped[bool] = _flag()
    subscriptions_deleted: Mapped[bool] = _flag()
    dashboards_deleted: Mapped[bool] = _flag()
    profiles_deleted: Mapped[bool] = _flag()
    topics_deleted: Mapped[bool] = _flag()

    def __repr__(self) -> str:
        """Return string representation."""
        return f"<DeletionModel(id={self.id}, user_id={self.user_id}, status={self.status})>"
