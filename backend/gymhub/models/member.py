# gymhub/models/member.py
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from gymhub.db.base import Base
from gymhub.models.user import User, new_id


class Member(Base):
    """One row per (organization, user): a subject never holds two roles in one organization."""

    __tablename__ = "members"
    __table_args__ = (
        UniqueConstraint("organization_id", "user_id", name="uq_members_organization_user"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)

    organization_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # OWNER | TRAINER | USER, parsed with gymhub.core.roles.parse_role on read
    role: Mapped[str] = mapped_column(String(30), nullable=False, default="USER")

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    user: Mapped[User] = relationship(lazy="raise")
