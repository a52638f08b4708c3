from __future__ import annotations

"""Application-facing facade for the co-working agent.

``CoworkService`` wires the runtime from ``Settings`` so a host (desktop shell,
CLI, test) only has to supply collaborators and call ``send_message``.

Wiring
------

- One ``ApprovalGateway`` per service, shared by the tool registry and the
  run-state registry.
- A ``ToolRegistry`` with every built-in handler, guarded by the
  sensitive-path filter and the shell command guard.
- A ``ContextWindowManager`` whose summarizer and the chat streamer default to
  the Pydantic AI implementations for the configured provider.

Everything in ``CoworkServiceDeps`` can be replaced, which is how tests run
the service without a network.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Mapping, Optional, Sequence

from ..core.config import Settings
from ..core.logging_config import setup_logging
from .context import ContextWindowManager, Summarizer, SystemPromptBuilder
from .policy import ApprovalGateway, CommandGuard, PolicyConfig, SensitivePathFilter
from .policy.models import ApprovalPolicy, SafetyPolicy
from .providers.base import ChatStreamer
from .providers.pydantic_ai import ModelFactory, PydanticAIChatStreamer, PydanticAISummarizer, TitleGenerator
from .repos import ConversationStore, InMemoryConversationStore
from .runtime import AgentLoopController, LoopDeps, RunStateRegistry, RunStateSnapshot, TurnResult
from .schemas.domain import Attachment, Skill, ToolTier
from .tools import ToolArgumentNormalizer, ToolContext, ToolRegistry, default_handlers

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CoworkServiceDeps:
    """Optional overrides for ``CoworkService``.

    Unset fields fall back to: an in-memory store, the Pydantic AI streamer and
    summarizer, a tool context without collaborators, and the default risk tier
    of every tool.
    """

    store: Optional[ConversationStore] = None
    streamer: Optional[ChatStreamer] = None
    summarizer: Optional[Summarizer] = None
    tool_context: ToolContext = field(default_factory=ToolContext)
    skills: Sequence[Skill] = ()
    tool_tiers: Optional[Mapping[str, ToolTier]] = None


class CoworkService:
    """Run chat turns and answer approval requests for one process."""

    def __init__(
        self,
        *,
        settings: Settings,
        deps: Optional[CoworkServiceDeps] = None,
        configure_logging: bool = True,
    ) -> None:
        """
        Build the runtime from ``settings``.

        Args:
            settings: Application settings.
            deps: Collaborator overrides.
            configure_logging: Apply the configured log level and format to the
                root logger. Hosts that own logging pass False.
        """
        if configure_logging:
            setup_logging(settings.log_level, settings.log_format)
        deps = deps or CoworkServiceDeps()
        self._settings = settings
        self._models = ModelFactory(
            settings.agent_loop.provider, openrouter=settings.openrouter, ollama=settings.ollama
        )

        safety_cfg = settings.safety
        approval_policy = ApprovalPolicy(timeout_seconds=settings.approval.timeout_seconds)
        if deps.tool_tiers is not None:
            approval_policy = approval_policy.model_copy(update={"tool_tiers": dict(deps.tool_tiers)})
        policy = PolicyConfig(
            approval_policy=approval_policy,
            safety_policy=SafetyPolicy(app_database_name=safety_cfg.app_database_name, home_dir=safety_cfg.home_dir),
        )
        self._gateway = ApprovalGateway(policy.approval_policy)
        self._tools = ToolRegistry(
            default_handlers(CommandGuard(policy.command_policy)),
            gateway=self._gateway,
            path_filter=SensitivePathFilter(policy.safety_policy),
            normalizer=ToolArgumentNormalizer(settings.agent_loop.provider),
            tiers=policy.approval_policy.tool_tiers,
        )

        context_cfg = settings.context
        summarizer = deps.summarizer
        if summarizer is None:
            summarizer = PydanticAISummarizer(self._models, context_cfg.summary_model)
        streamer = deps.streamer
        if streamer is None:
            streamer = PydanticAIChatStreamer(self._models)

        self._prompts = SystemPromptBuilder(home_dir=safety_cfg.home_dir, skills=deps.skills)
        self._run_states = RunStateRegistry(self._gateway)
        self._controller = AgentLoopController(
            deps=LoopDeps(
                store=deps.store or InMemoryConversationStore(),
                streamer=streamer,
                tools=self._tools,
                context=ContextWindowManager(
                    summarizer,
                    threshold=context_cfg.compaction_threshold,
                    keep_last=context_cfg.keep_last,
                    emergency_keep_last=context_cfg.emergency_keep_last,
                    default_limit=context_cfg.default_limit,
                ),
                prompts=self._prompts,
                tool_context=deps.tool_context,
            ),
            run_states=self._run_states,
            max_steps=settings.agent_loop.max_steps,
        )
        logger.debug(
            f"CoworkService ready: provider={settings.agent_loop.provider} tools={len(self._tools.names())}"
        )

    @property
    def gateway(self) -> ApprovalGateway:
        return self._gateway

    @property
    def tools(self) -> ToolRegistry:
        return self._tools

    @property
    def controller(self) -> AgentLoopController:
        return self._controller

    @property
    def run_states(self) -> RunStateRegistry:
        return self._run_states

    async def send_message(
        self,
        conversation_id: str,
        content: str,
        *,
        model: Optional[str] = None,
        attachments: Optional[Sequence[Attachment]] = None,
    ) -> TurnResult:
        """Run one turn; ``model`` defaults to the configured OpenRouter model."""
        return await self._controller.run_turn(
            conversation_id, content, model or self._settings.openrouter.model, attachments
        )

    def stop(self, conversation_id: Optional[str] = None) -> int:
        return self._controller.stop(conversation_id)

    def approve(self, approval_id: str) -> bool:
        return self._gateway.approve(approval_id)

    def deny(self, approval_id: str) -> bool:
        return self._gateway.deny(approval_id)

    def allow_all_for_session(self, tier: ToolTier) -> None:
        self._gateway.allow_all_for_session(tier)

    def clear_session(self) -> None:
        self._gateway.clear_session()

    def set_skills(self, skills: Sequence[Skill]) -> None:
        self._prompts.set_skills(skills)

    def subscribe(self, listener: Callable[[RunStateSnapshot], None]) -> Callable[[], None]:
        return self._run_states.subscribe(listener)

    async def generate_title(self, user_message: str) -> str:
        """Generate a short conversation title for the first user message."""
        return await TitleGenerator(self._models).generate(user_message)
