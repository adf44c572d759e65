"""List: a named collection of tasks owned by exactly one user.

The owner never appears in `shares`; other users reach the list through
a ListShare row carrying VIEW, EDIT or ADMIN. Deleting a list cascades to
its tasks and to every share row on both (enforced by the FKs).
"""

import uuid
from datetime import datetime

from sqlalchemy import (
    DateTime, Enum as SAEnum, ForeignKey, String, Text, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from taskshare.auth.permissions import SharePermission
from taskshare.database import Base


class TaskList(Base):
    __tablename__ = "lists"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)

    # Immutable after creation
    owner_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    shares: Mapped[list["ListShare"]] = relationship(
        back_populates="task_list", cascade="all, delete-orphan",
        passive_deletes=True, lazy="selectin",
    )
    tasks: Mapped[list["Task"]] = relationship(  # noqa: F821
        back_populates="task_list", cascade="all, delete-orphan",
        passive_deletes=True, lazy="selectin",
    )
    owner = relationship("User", lazy="selectin")


class ListShare(Base):
    __tablename__ = "list_shares"
    __table_args__ = (
        UniqueConstraint("list_id", "user_id", name="uq_list_shares_list_user"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    list_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("lists.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    permission: Mapped[SharePermission] = mapped_column(
        SAEnum(SharePermission, name="share_permission"),
        default=SharePermission.VIEW, nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    task_list: Mapped["TaskList"] = relationship(back_populates="shares")
    user = relationship("User", lazy="selectin")
