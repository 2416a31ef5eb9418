"""
Database module for the Recipe Assistant.

Single import point for thread store functionality.
"""

from .database import (
    create_tables,
    drop_tables,
    get_database_url,
    get_engine,
    get_session_factory,
    on_shutdown,
    on_startup,
    ping,
    unit_of_work,
)
from .models import Base, Thread, ThreadMessage
from .repositories import (
    MessageRecord,
    MessagesRepository,
    ThreadRecord,
    ThreadsRepository,
)

__all__ = [
    # Session management
    "get_database_url",
    "get_engine",
    "get_session_factory",
    "unit_of_work",
    # Lifecycle
    "on_startup",
    "on_shutdown",
    # Health
    "ping",
    # Schema
    "create_tables",
    "drop_tables",
    # Models
    "Base",
    "Thread",
    "ThreadMessage",
    # Repositories
    "ThreadsRepository",
    "MessagesRepository",
    "ThreadRecord",
    "MessageRecord",
]
