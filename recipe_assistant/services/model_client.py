"""
Model client used by the agent loop.

Wraps a single pydantic-ai model request: messages plus tool declarations
in, one ``ModelResponse`` out. Retries and timeouts belong to this layer
(through the provider client), never to the loop.
"""

from typing import List, Optional, Protocol, Sequence

from pydantic_ai.direct import model_request
from pydantic_ai.messages import ModelMessage, ModelResponse
from pydantic_ai.models import Model, ModelRequestParameters
from pydantic_ai.settings import ModelSettings
from pydantic_ai.tools import ToolDefinition

from ..config import Settings
from ..utils.logging import get_logger

logger = get_logger(__name__)


class ModelClient(Protocol):
    """Anything that can answer one model request."""

    async def request(
        self, messages: List[ModelMessage], tools: Sequence[ToolDefinition]
    ) -> ModelResponse: ...


class PydanticAIModelClient:
    """ModelClient backed by ``pydantic_ai.direct.model_request``."""

    def __init__(self, model: Model, settings: Optional[ModelSettings] = None):
        self.model = model
        self.settings = settings

    async def request(
        self, messages: List[ModelMessage], tools: Sequence[ToolDefinition]
    ) -> ModelResponse:
        response = await model_request(
            self.model,
            messages,
            model_settings=self.settings,
            model_request_parameters=ModelRequestParameters(
                function_tools=list(tools),
                allow_text_output=True,
            ),
        )
        logger.debug(
            "Model responded",
            model=response.model_name,
            parts=len(response.parts),
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )
        return response


def build_model(settings: Settings) -> Model:
    """
    Create the Anthropic model from settings.

    The API key is passed explicitly rather than read from the provider's
    environment variable.
    """
    from pydantic_ai.models.anthropic import AnthropicModel
    from pydantic_ai.providers.anthropic import AnthropicProvider

    return AnthropicModel(
        settings.anthropic_model,
        provider=AnthropicProvider(api_key=settings.anthropic_api_key),
    )


def build_model_client(settings: Settings) -> PydanticAIModelClient:
    """Model client configured with token and timeout limits from settings."""
    model_settings = ModelSettings(
        max_tokens=settings.anthropic_max_tokens,
        timeout=float(settings.anthropic_timeout_seconds),
    )
    logger.info(
        "Model client created",
        model=settings.anthropic_model,
        max_tokens=settings.anthropic_max_tokens,
    )
    return PydanticAIModelClient(build_model(settings), model_settings)
