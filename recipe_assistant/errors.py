"""
Error taxonomy for the question-answering core.

Every failure carries the RunLog collected up to the point it happened so the
caller can diagnose a failed exchange without re-running it.
"""

from typing import List, Optional


class ConversationError(Exception):
    """Base exception for all conversation and persistence failures."""

    def __init__(self, message: str, run_log: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.run_log: List[str] = list(run_log or [])

    def with_run_log(self, run_log: List[str]) -> "ConversationError":
        """Attach the run log collected so far and return self for re-raising."""
        self.run_log = list(run_log)
        return self


class ThreadNotFound(ConversationError):
    """Raised when a thread id is unknown to the thread store."""

    def __init__(self, thread_id: str, run_log: Optional[List[str]] = None):
        super().__init__(f"Thread with id {thread_id} not found", run_log)
        self.thread_id = thread_id


class StorageFailure(ConversationError):
    """Raised when the thread/message store is unreachable or rejects a write."""

    pass


class QueryExecutionFailure(ConversationError):
    """Raised when the graph store rejects or fails a query."""

    pass


class ModelCallFailure(ConversationError):
    """Raised when the model endpoint is unreachable or errors."""

    pass


class PartialPersistFailure(ConversationError):
    """
    Raised when only one half of an exchange was persisted.

    The thread is left with a dangling user message; the caller decides
    whether to repair it.
    """

    def __init__(
        self,
        message: str,
        thread_id: str,
        user_message_id: Optional[str] = None,
        run_log: Optional[List[str]] = None,
    ):
        super().__init__(message, run_log)
        self.thread_id = thread_id
        self.user_message_id = user_message_id


__all__ = [
    "ConversationError",
    "ThreadNotFound",
    "StorageFailure",
    "QueryExecutionFailure",
    "ModelCallFailure",
    "PartialPersistFailure",
]
