"""
Bounded model/tool loop.

The controller drives the conversation between the model and the tool
registry:

    AwaitingModel -> final text                  -> Done
    AwaitingModel -> tool calls -> ExecutingTools -> AwaitingModel

The loop stops after ``max_iterations`` model calls no matter what the model
asks for and returns the best text seen so far. Tool results live only in
the in-memory message list; nothing here touches the message log.
"""

import json
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence

from pydantic_ai.messages import (
    ModelMessage,
    ModelRequest,
    ModelRequestPart,
    ModelResponse,
    SystemPromptPart,
    TextPart,
    ToolCallPart,
    ToolReturnPart,
    UserPromptPart,
)

from ..errors import ModelCallFailure
from ..utils.logging import get_logger, set_request_context
from .model_client import ModelClient
from .tool_registry import ToolRegistry

logger = get_logger(__name__)

DEFAULT_MAX_ITERATIONS = 10
TOOL_RESULT_LOG_CHARS = 200


class ChatTurn(Protocol):
    """A persisted turn: anything with a role and text content."""

    role: str
    content: str


@dataclass
class LoopResult:
    """Outcome of one loop run."""

    response: str
    logs: List[str] = field(default_factory=list)
    iterations: int = 0
    forced_stop: bool = False


def build_messages(
    system_prompt: str, history: Sequence[ChatTurn], question: str
) -> List[ModelMessage]:
    """
    Build the initial message sequence.

    System prompt first, then history oldest first, then the new question.
    Consecutive user turns are grouped into one request so requests and
    responses alternate.
    """
    messages: List[ModelMessage] = []
    pending: List[ModelRequestPart] = [SystemPromptPart(content=system_prompt)]

    for turn in history:
        if turn.role == "assistant":
            if pending:
                messages.append(ModelRequest(parts=pending))
                pending = []
            messages.append(ModelResponse(parts=[TextPart(content=turn.content)]))
        else:
            pending.append(UserPromptPart(content=turn.content))

    pending.append(UserPromptPart(content=question))
    messages.append(ModelRequest(parts=pending))
    return messages


def response_text(response: ModelResponse) -> str:
    return "".join(part.content for part in response.parts if isinstance(part, TextPart))


def _tool_args(call: ToolCallPart) -> Dict[str, Any]:
    try:
        return call.args_as_dict()
    except ValueError:
        logger.warning(
            "Model sent malformed tool arguments",
            tool_name=call.tool_name,
            tool_call_id=call.tool_call_id,
        )
        return {}


class AgentLoopController:
    """
    Drives the bounded model/tool loop for one question.

    The controller holds no per-run state, so one instance can serve
    concurrent runs for different threads.
    """

    def __init__(
        self,
        model_client: ModelClient,
        registry: ToolRegistry,
        system_prompt: str,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
    ):
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self.model_client = model_client
        self.registry = registry
        self.system_prompt = system_prompt
        self.max_iterations = max_iterations

    async def run(
        self, question: str, history: Optional[Sequence[ChatTurn]] = None
    ) -> LoopResult:
        """
        Answer a question, calling tools as the model requests.

        Args:
            question: The new user question
            history: Prior turns of the thread, oldest first

        Returns:
            LoopResult with the final (or best-effort) text and the run log

        Raises:
            ModelCallFailure: If a model call fails; carries the run log
        """
        run_log: List[str] = []
        messages = build_messages(self.system_prompt, history or [], question)
        tools = self.registry.declarations()
        best_text = ""
        start_time = time.time()

        for iteration in range(1, self.max_iterations + 1):
            set_request_context(iteration=iteration)
            try:
                response = await self.model_client.request(messages, tools)
            except Exception as e:
                run_log.append(f"Error: {e}")
                logger.error(
                    "Model call failed",
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise ModelCallFailure(str(e), run_log) from e

            messages.append(response)
            text = response_text(response)
            if text:
                best_text = text

            tool_calls = [p for p in response.parts if isinstance(p, ToolCallPart)]
            if not tool_calls:
                logger.info(
                    "Agent loop completed",
                    iterations=iteration,
                    duration_ms=round((time.time() - start_time) * 1000, 2),
                )
                return LoopResult(response=text, logs=run_log, iterations=iteration)

            returns: List[ModelRequestPart] = []
            for call in tool_calls:
                args = _tool_args(call)
                run_log.append(f"Tool call: {call.tool_name}({json.dumps(args)})")
                result = await self.registry.dispatch(call.tool_name, args)
                run_log.append(f"Tool result: {result[:TOOL_RESULT_LOG_CHARS]}")
                logger.debug(
                    "Tool executed",
                    tool_name=call.tool_name,
                    result_chars=len(result),
                )
                returns.append(
                    ToolReturnPart(
                        tool_name=call.tool_name,
                        content=result,
                        tool_call_id=call.tool_call_id,
                    )
                )
            messages.append(ModelRequest(parts=returns))

        run_log.append(
            f"Loop ceiling of {self.max_iterations} iterations reached; "
            "returning best-effort answer."
        )
        logger.warning(
            "Agent loop hit iteration ceiling",
            max_iterations=self.max_iterations,
            duration_ms=round((time.time() - start_time) * 1000, 2),
        )
        return LoopResult(
            response=best_text,
            logs=run_log,
            iterations=self.max_iterations,
            forced_stop=True,
        )
