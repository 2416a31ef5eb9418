"""
Conversation service: the top-level ``ask`` operation.

Resolves or creates the thread, reloads its history, runs the agent loop,
persists the user/assistant pair and touches the thread. Every call is
stateless at the process level; context is rebuilt from the stores.

Concurrent ``ask`` calls on the same thread are not serialized here. Message
order stays append-only, but callers that need one writer per thread must
serialize requests themselves.
"""

import time
from dataclasses import dataclass, field
from typing import List, Optional

from ..db.repositories import MessagesRepository, ThreadsRepository
from ..errors import (
    ConversationError,
    PartialPersistFailure,
    StorageFailure,
)
from ..utils.logging import get_logger, set_request_context
from .agent_loop import AgentLoopController

logger = get_logger(__name__)


@dataclass
class AskResult:
    """Result of one completed exchange."""

    thread_id: str
    answer_text: str
    run_log: List[str] = field(default_factory=list)


class ConversationService:
    """Entry point that ties thread store, message log and agent loop together."""

    def __init__(
        self,
        threads: ThreadsRepository,
        messages: MessagesRepository,
        agent_loop: AgentLoopController,
    ):
        self.threads = threads
        self.messages = messages
        self.agent_loop = agent_loop

    async def ask(self, question: str, thread_id: Optional[str] = None) -> AskResult:
        """
        Answer a question within a thread.

        Args:
            question: The user's question
            thread_id: Existing thread to continue, or None to start a new one

        Returns:
            AskResult with the thread ID, answer text and run log

        Raises:
            ThreadNotFound: If thread_id is unknown; nothing is persisted
            StorageFailure: If the store fails before anything is persisted
            ModelCallFailure: If the model fails; nothing is persisted
            PartialPersistFailure: If the user message was stored but the
                assistant message was not
        """
        start_time = time.time()
        run_log: List[str] = []

        if thread_id is None:
            try:
                thread_id = await self.threads.create_thread()
            except StorageFailure as e:
                run_log.append(f"Error: {e.message}")
                raise e.with_run_log(run_log)

        set_request_context(thread_id=thread_id)

        try:
            history = await self.messages.load_history(thread_id)
            result = await self.agent_loop.run(question, history)
        except ConversationError as e:
            logger.error(
                "Question failed before persistence",
                error=str(e),
                error_type=type(e).__name__,
            )
            raise e.with_run_log(run_log + e.run_log)

        run_log.extend(result.logs)

        # Validates the thread; a failure here leaves the log untouched
        try:
            user_message_id = await self.messages.append(thread_id, "user", question)
        except ConversationError as e:
            run_log.append(f"Error: {e.message}")
            logger.error(
                "Failed to persist user message",
                error=str(e),
                error_type=type(e).__name__,
            )
            raise e.with_run_log(run_log)

        try:
            await self.messages.append(thread_id, "assistant", result.response)
        except ConversationError as e:
            run_log.append(f"Error: {e.message}")
            logger.error(
                "Exchange partially persisted",
                user_message_id=user_message_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise PartialPersistFailure(
                f"User message stored but assistant message failed: {e.message}",
                thread_id=thread_id,
                user_message_id=user_message_id,
                run_log=run_log,
            ) from e

        try:
            await self.threads.touch(thread_id)
        except StorageFailure as e:
            # Both messages are already durable
            logger.warning("Failed to touch thread", error=str(e))

        logger.info(
            "Question answered",
            iterations=result.iterations,
            forced_stop=result.forced_stop,
            duration_ms=round((time.time() - start_time) * 1000, 2),
        )
        return AskResult(thread_id=thread_id, answer_text=result.response, run_log=run_log)
