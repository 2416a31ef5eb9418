"""
Repository layer for the thread store and message log.

Repositories encapsulate database access and expose async operations that
each run as their own unit of work:
- ThreadsRepository: thread creation, existence checks, activity touch
- MessagesRepository: ordered, append-only message log per thread

Every SQLAlchemy error is wrapped as StorageFailure so callers only deal
with the conversation error taxonomy.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..errors import StorageFailure, ThreadNotFound
from .database import unit_of_work
from .models import MESSAGE_ROLES, Thread, ThreadMessage, new_id, utcnow

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ThreadRecord:
    """Detached snapshot of a thread row."""

    id: str
    status: str
    created_at: datetime
    last_updated_at: datetime


@dataclass(frozen=True)
class MessageRecord:
    """Detached snapshot of a message row."""

    id: str
    thread_id: str
    sequence: int
    role: str
    content: str
    created_at: datetime


def _thread_record(thread: Thread) -> ThreadRecord:
    return ThreadRecord(
        id=thread.id,
        status=thread.status,
        created_at=thread.created_at,
        last_updated_at=thread.last_updated_at,
    )


def _message_record(message: ThreadMessage) -> MessageRecord:
    return MessageRecord(
        id=message.id,
        thread_id=message.thread_id,
        sequence=message.sequence,
        role=message.role,
        content=message.content,
        created_at=message.created_at,
    )


class ThreadsRepository:
    """
    Repository for conversation threads.

    Provides:
    - Thread creation with status 'active'
    - Existence checks and snapshot reads
    - Monotonic last_updated_at touch
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        """
        Initialize repository with a session factory.

        Args:
            session_factory: Factory producing one session per operation
        """
        self.session_factory = session_factory

    async def create_thread(self) -> str:
        """
        Create a new active thread.

        Returns:
            The generated thread ID

        Raises:
            StorageFailure: If the store is unreachable or rejects the insert
        """
        now = utcnow()
        thread = Thread(id=new_id(), status="active", created_at=now, last_updated_at=now)

        try:
            async with unit_of_work(self.session_factory) as session:
                session.add(thread)
        except SQLAlchemyError as e:
            raise StorageFailure(f"Database error creating thread: {e}") from e

        logger.info("Thread created", thread_id=thread.id)
        return thread.id

    async def get(self, thread_id: str) -> Optional[ThreadRecord]:
        """
        Get a thread snapshot by ID.

        Args:
            thread_id: Thread identifier

        Returns:
            ThreadRecord if found, None otherwise
        """
        try:
            async with unit_of_work(self.session_factory) as session:
                thread = await session.get(Thread, thread_id)
                return _thread_record(thread) if thread else None
        except SQLAlchemyError as e:
            raise StorageFailure(f"Database error getting thread: {e}") from e

    async def exists(self, thread_id: str) -> bool:
        """Check whether a thread with this ID exists."""
        return await self.get(thread_id) is not None

    async def touch(self, thread_id: str) -> bool:
        """
        Advance last_updated_at to now.

        The timestamp never moves backward: if the stored value is ahead of
        the local clock it is kept. Touching an unknown thread is a no-op.

        Args:
            thread_id: Thread identifier

        Returns:
            True if the thread was found and touched, False otherwise

        Raises:
            StorageFailure: If the store is unreachable
        """
        try:
            async with unit_of_work(self.session_factory) as session:
                thread = await session.get(Thread, thread_id)
                if thread is None:
                    logger.warning("Touch on unknown thread ignored", thread_id=thread_id)
                    return False
                thread.last_updated_at = max(thread.last_updated_at, utcnow())
        except SQLAlchemyError as e:
            raise StorageFailure(f"Database error touching thread: {e}") from e

        return True


class MessagesRepository:
    """
    Append-only message log, ordered per thread.

    Ordering is by a per-thread sequence counter; timestamps are clamped so
    they never decrease within a thread.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def append(self, thread_id: str, role: str, content: str) -> str:
        """
        Append a message to a thread.

        Args:
            thread_id: Owning thread ID
            role: 'user' or 'assistant'
            content: Message text

        Returns:
            The new message ID

        Raises:
            ValueError: If role is not a known message role
            ThreadNotFound: If the thread does not exist
            StorageFailure: If the write fails, including a sequence collision
                from an unsynchronised concurrent writer on the same thread
        """
        if role not in MESSAGE_ROLES:
            raise ValueError(f"Invalid message role: {role}")

        try:
            async with unit_of_work(self.session_factory) as session:
                thread = await session.get(Thread, thread_id)
                if thread is None:
                    raise ThreadNotFound(thread_id)

                result = await session.execute(
                    select(ThreadMessage)
                    .where(ThreadMessage.thread_id == thread_id)
                    .order_by(ThreadMessage.sequence.desc())
                    .limit(1)
                )
                last = result.scalar_one_or_none()

                now = utcnow()
                message = ThreadMessage(
                    id=new_id(),
                    thread_id=thread_id,
                    sequence=(last.sequence + 1) if last else 1,
                    role=role,
                    content=content,
                    created_at=max(now, last.created_at) if last else now,
                )
                session.add(message)
        except IntegrityError as e:
            raise StorageFailure(
                f"Concurrent write conflict appending to thread {thread_id}: {e}"
            ) from e
        except SQLAlchemyError as e:
            raise StorageFailure(f"Database error appending message: {e}") from e

        logger.debug(
            "Message appended",
            thread_id=thread_id,
            message_id=message.id,
            role=role,
            sequence=message.sequence,
        )
        return message.id

    async def load_history(
        self, thread_id: str, limit: Optional[int] = None
    ) -> List[MessageRecord]:
        """
        Load the messages of a thread, oldest first.

        Args:
            thread_id: Thread identifier
            limit: Optional cap; when set, the newest ``limit`` messages are
                returned (still oldest first)

        Returns:
            Ordered messages; empty for an unknown thread or a thread with
            no history
        """
        try:
            async with unit_of_work(self.session_factory) as session:
                query = select(ThreadMessage).where(ThreadMessage.thread_id == thread_id)
                if limit is not None:
                    query = query.order_by(ThreadMessage.sequence.desc()).limit(limit)
                    rows = list((await session.execute(query)).scalars())
                    rows.reverse()
                else:
                    query = query.order_by(ThreadMessage.sequence.asc())
                    rows = list((await session.execute(query)).scalars())
                return [_message_record(row) for row in rows]
        except SQLAlchemyError as e:
            raise StorageFailure(f"Database error loading history: {e}") from e
