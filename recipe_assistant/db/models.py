"""
Database models for the Recipe Assistant.

This module defines SQLAlchemy models for:
- Conversation threads (identity, status, activity timestamps)
- Thread messages (the append-only user/assistant turn log)

Column types are portable so the same models run on PostgreSQL in
deployment and on SQLite (aiosqlite) in development and tests. Timestamps
are naive UTC and assigned in Python so ordering never depends on the
server clock.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

THREAD_STATUSES = ("active",)
MESSAGE_ROLES = ("user", "assistant")


def utcnow() -> datetime:
    """Current UTC time as a naive datetime (the storage convention)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class Thread(Base):
    """
    Conversation thread grouping an ordered sequence of messages.

    Attributes:
        id: Opaque unique identifier, immutable once created
        status: Thread status (only 'active' today)
        created_at: Thread creation timestamp
        last_updated_at: Last completed exchange, never moves backward
    """

    __tablename__ = "threads"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=new_id,
        doc="Unique thread identifier",
    )

    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default="active",
        doc="Thread status (active)",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utcnow,
        doc="Thread creation timestamp (UTC)",
    )

    last_updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utcnow,
        doc="Last activity timestamp (UTC)",
    )

    messages: Mapped[list["ThreadMessage"]] = relationship(
        "ThreadMessage",
        back_populates="thread",
        cascade="all, delete-orphan",
        order_by="ThreadMessage.sequence",
        doc="All messages in this thread",
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('active')",
            name="chk_thread_status",
        ),
    )

    def __repr__(self) -> str:
        return f"<Thread(id={self.id}, status={self.status})>"


class ThreadMessage(Base):
    """
    One user or assistant turn within a thread.

    Messages are immutable once written. ``sequence`` is a per-thread
    counter that breaks ties between messages written in the same instant.

    Attributes:
        id: Unique message identifier
        thread_id: Parent thread ID
        sequence: 1-based position within the thread
        role: Message role (user/assistant)
        content: Message text
        created_at: Message timestamp (UTC, non-decreasing per thread)
    """

    __tablename__ = "thread_messages"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=new_id,
        doc="Unique message identifier",
    )

    thread_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("threads.id", ondelete="CASCADE"),
        nullable=False,
        doc="Parent thread ID",
    )

    sequence: Mapped[int] = mapped_column(
        Integer, nullable=False, doc="Position of the message within its thread"
    )

    role: Mapped[str] = mapped_column(
        String(16), nullable=False, doc="Message role (user/assistant)"
    )

    content: Mapped[str] = mapped_column(
        Text, nullable=False, doc="Message text"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utcnow,
        doc="Message creation timestamp (UTC)",
    )

    thread: Mapped["Thread"] = relationship(
        "Thread", back_populates="messages", doc="Parent thread"
    )

    __table_args__ = (
        CheckConstraint(
            "role IN ('user', 'assistant')",
            name="chk_message_role",
        ),
        UniqueConstraint("thread_id", "sequence", name="uq_thread_message_sequence"),
    )

    def __repr__(self) -> str:
        return (
            f"<ThreadMessage(id={self.id}, thread_id={self.thread_id}, "
            f"seq={self.sequence}, role={self.role})>"
        )
