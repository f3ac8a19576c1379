from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from forum.database import Base


def _utcnow() -> datetime:
    # Python-side timestamps keep sub-second precision on every backend,
    # which the pagination cursor relies on.
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# User
# ---------------------------------------------------------------------------
class User(Base):
    __tablename__ = "user"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        server_default=func.now(),
        nullable=False,
    )

    # Relationships use lazy="noload"; posts and votes are fetched explicitly.
    posts: Mapped[List["Post"]] = relationship("Post", back_populates="creator", lazy="noload")
    votes: Mapped[List["Vote"]] = relationship("Vote", back_populates="user", lazy="noload")


# ---------------------------------------------------------------------------
# Post
# ---------------------------------------------------------------------------
class Post(Base):
    __tablename__ = "post"

    __table_args__ = (
        # Feed ordering and cursor seek: (created_at DESC, id DESC).
        Index("ix_post_created_at_id", "created_at", "id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    # Always equal to the signed sum of this post's rows in ``updoot``.
    points: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)
    creator_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("user.id"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        server_default=func.now(),
        nullable=False,
    )

    creator: Mapped["User"] = relationship("User", back_populates="posts", lazy="noload")
    votes: Mapped[List["Vote"]] = relationship(
        "Vote", back_populates="post", lazy="noload", passive_deletes=True
    )


# ---------------------------------------------------------------------------
# Vote (one row per user per post)
# ---------------------------------------------------------------------------
class Vote(Base):
    __tablename__ = "updoot"

    __table_args__ = (
        CheckConstraint("value IN (-1, 1)", name="ck_updoot_value"),
    )

    post_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("post.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("user.id"), primary_key=True, index=True
    )
    value: Mapped[int] = mapped_column(Integer, nullable=False)

    post: Mapped[Optional["Post"]] = relationship("Post", back_populates="votes", lazy="noload")
    user: Mapped[Optional["User"]] = relationship("User", back_populates="votes", lazy="noload")
