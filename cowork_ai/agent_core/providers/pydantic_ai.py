"""Pydantic AI adapters for the model endpoint seams.

This module implements ``ChatStreamer`` and ``Summarizer`` with Pydantic AI,
plus the conversation title generator. Models are OpenAI-compatible chat
models served either by OpenRouter or by a local Ollama instance.
"""

from __future__ import annotations

import logging
import re
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence, Union

from pydantic_ai import Agent, ModelSettings
from pydantic_ai.direct import model_request_stream
from pydantic_ai.messages import (
    ImageUrl,
    ModelMessage,
    ModelRequest,
    ModelResponse,
    PartDeltaEvent,
    PartStartEvent,
    SystemPromptPart,
    TextPart,
    TextPartDelta,
    ToolCallPart,
    ToolReturnPart,
    UserPromptPart,
)
from pydantic_ai.models import Model, ModelRequestParameters
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.ollama import OllamaProvider
from pydantic_ai.providers.openai import OpenAIProvider
from pydantic_ai.tools import ToolDefinition

from ...core.config import OllamaConfig, OpenRouterConfig
from ..errors import UserAbort, classify_provider_error
from ..schemas.domain import ChatMessage, MessageRole
from ..tools.definitions import ToolSchema
from .base import (
    CancellationHandle,
    StepFinished,
    StreamEvent,
    StreamRequest,
    TextDelta,
    ToolCallRequested,
)

logger = logging.getLogger(__name__)

TITLE_MODELS: Sequence[str] = (
    "google/gemini-2.0-flash-001",
    "google/gemini-flash-1.5",
    "openai/gpt-4o-mini",
    "anthropic/claude-3-haiku",
)
TITLE_PROMPT = (
    "Generate a very short title (3-6 words max) for a conversation that starts with this message. "
    "Return ONLY the title, no quotes, no explanation:\n\n{message}"
)
MAX_TITLE_LENGTH = 50
FALLBACK_TITLE_LENGTH = 40

_TITLE_QUOTES = re.compile(r"^[\"']|[\"']$")
_TITLE_PREFIX = re.compile(r"^(title:?\s*)", re.IGNORECASE)


class ModelFactory:
    """Create Pydantic AI chat models for the configured provider."""

    def __init__(
        self,
        provider: str = "openrouter",
        *,
        openrouter: Optional[OpenRouterConfig] = None,
        ollama: Optional[OllamaConfig] = None,
    ) -> None:
        self._provider = provider.lower()
        self._openrouter = openrouter or OpenRouterConfig()
        self._ollama = ollama or OllamaConfig()
        self._cache: Dict[str, Model] = {}

    @property
    def provider(self) -> str:
        return self._provider

    def create(self, model_name: str) -> Model:
        """Return the model for ``model_name``, building it on first use."""
        model = self._cache.get(model_name)
        if model is None:
            model = self._build(model_name)
            self._cache[model_name] = model
        return model

    def _build(self, model_name: str) -> Model:
        if self._provider == "ollama":
            logger.debug(f"Creating Ollama model: {model_name} at {self._ollama.base_url}")
            return OpenAIChatModel(model_name, provider=OllamaProvider(base_url=self._ollama.base_url))
        if self._provider == "openrouter":
            if not self._openrouter.api_key:
                raise RuntimeError("OPENROUTER_API_KEY environment variable is not set")
            logger.debug(f"Creating OpenRouter model: {model_name}")
            return OpenAIChatModel(
                model_name,
                provider=OpenAIProvider(base_url=self._openrouter.base_url, api_key=self._openrouter.api_key),
            )
        raise ValueError(f"Unsupported provider: {self._provider}")


def _user_content(content: Union[str, List[Dict[str, Any]]]) -> Union[str, List[Any]]:
    if isinstance(content, str):
        return content
    parts: List[Any] = []
    for part in content:
        if part.get("type") == "text":
            parts.append(part.get("text", ""))
        elif part.get("type") == "image" and part.get("image"):
            parts.append(ImageUrl(url=part["image"]))
    return parts


def _text_content(content: Union[str, List[Dict[str, Any]]]) -> str:
    if isinstance(content, str):
        return content
    return "\n".join(part.get("text", "") for part in content if part.get("type") == "text")


def to_model_messages(request: StreamRequest) -> List[ModelMessage]:
    """Translate a stream request into Pydantic AI's message history."""
    messages: List[ModelMessage] = [ModelRequest(parts=[SystemPromptPart(content=request.system_prompt)])]
    for entry in request.messages:
        messages.append(_to_model_message(entry))
    for step in request.steps:
        response_parts: List[Any] = []
        if step.text:
            response_parts.append(TextPart(content=step.text))
        for exchange in step.exchanges:
            response_parts.append(ToolCallPart(tool_name=exchange.name, args=exchange.args, tool_call_id=exchange.id))
        if response_parts:
            messages.append(ModelResponse(parts=response_parts))
        if step.exchanges:
            messages.append(
                ModelRequest(
                    parts=[
                        ToolReturnPart(tool_name=ex.name, content=ex.result, tool_call_id=ex.id)
                        for ex in step.exchanges
                    ]
                )
            )
    return messages


def _to_model_message(entry: ChatMessage) -> ModelMessage:
    if entry.role == MessageRole.assistant:
        return ModelResponse(parts=[TextPart(content=_text_content(entry.content))])
    if entry.role == MessageRole.system:
        return ModelRequest(parts=[SystemPromptPart(content=_text_content(entry.content))])
    return ModelRequest(parts=[UserPromptPart(content=_user_content(entry.content))])


def to_tool_definitions(tools: Sequence[ToolSchema]) -> List[ToolDefinition]:
    return [
        ToolDefinition(name=tool.name, description=tool.description, parameters_json_schema=tool.parameters)
        for tool in tools
    ]


class PydanticAIChatStreamer:
    """``ChatStreamer`` backed by ``pydantic_ai.direct.model_request_stream``."""

    def __init__(self, models: ModelFactory, *, model_settings: Optional[ModelSettings] = None) -> None:
        self._models = models
        self._model_settings = model_settings

    async def stream(self, request: StreamRequest, cancellation: CancellationHandle) -> AsyncIterator[StreamEvent]:
        model = self._models.create(request.model)
        params = ModelRequestParameters(function_tools=to_tool_definitions(request.tools))
        messages = to_model_messages(request)

        try:
            async with model_request_stream(
                model, messages, model_settings=self._model_settings, model_request_parameters=params
            ) as stream:
                async for event in stream:
                    cancellation.raise_if_cancelled()
                    if isinstance(event, PartStartEvent) and isinstance(event.part, TextPart):
                        if event.part.content:
                            yield TextDelta(event.part.content)
                    elif isinstance(event, PartDeltaEvent) and isinstance(event.delta, TextPartDelta):
                        if event.delta.content_delta:
                            yield TextDelta(event.delta.content_delta)
                response = stream.get()
        except UserAbort:
            raise
        except Exception as e:
            error = classify_provider_error(e)
            logger.warning(f"Model stream failed for {request.model}: {type(e).__name__}: {e}")
            raise error from e

        cancellation.raise_if_cancelled()
        for part in response.parts:
            if isinstance(part, ToolCallPart):
                yield ToolCallRequested(id=part.tool_call_id, name=part.tool_name, args=part.args or {})
        yield StepFinished(finish_reason=getattr(response, "finish_reason", None))


class PydanticAISummarizer:
    """``Summarizer`` that runs the compaction prompt through a Pydantic AI agent."""

    def __init__(self, models: ModelFactory, model_name: str, *, max_tokens: int = 2000) -> None:
        self._models = models
        self._model_name = model_name
        self._settings = ModelSettings(max_tokens=max_tokens)
        self._agent: Optional[Agent] = None

    async def summarize(self, prompt: str) -> str:
        if self._agent is None:
            self._agent = Agent(self._models.create(self._model_name))
        logger.debug(f"Summarizing with model: {self._model_name}")
        result = await self._agent.run(prompt, model_settings=self._settings)
        return str(result.output)


def clean_title(raw: str) -> str:
    """Strip quotes and a ``Title:`` prefix, and cap the length."""
    title = raw.strip()
    title = _TITLE_QUOTES.sub("", title)
    title = _TITLE_PREFIX.sub("", title)
    if len(title) > MAX_TITLE_LENGTH:
        title = title[: MAX_TITLE_LENGTH - 3] + "..."
    return title


def fallback_title(user_message: str) -> str:
    if len(user_message) > FALLBACK_TITLE_LENGTH:
        return user_message[:FALLBACK_TITLE_LENGTH] + "..."
    return user_message


class TitleGenerator:
    """Generate a short conversation title, trying fast models in order."""

    def __init__(self, models: ModelFactory, model_names: Sequence[str] = TITLE_MODELS) -> None:
        self._models = models
        self._model_names = list(model_names)

    async def generate(self, user_message: str) -> str:
        prompt = TITLE_PROMPT.format(message=user_message[:300])
        for model_name in self._model_names:
            try:
                logger.debug(f"Trying title model: {model_name}")
                agent = Agent(self._models.create(model_name))
                result = await agent.run(prompt, model_settings=ModelSettings(max_tokens=30))
                title = clean_title(str(result.output))
                if title:
                    logger.info(f"Generated title with {model_name}: {title!r}")
                    return title
            except Exception as e:
                logger.warning(f"Title generation failed with {model_name}: {e}")
        logger.info("All title models failed, using fallback")
        return fallback_title(user_message)
