"""Tool registry: the single entry point through which the model's tool calls run.

``ToolRegistry.execute`` applies, in order:

1. lookup of the handler by tool name,
2. argument normalization/validation (``ToolArgumentNormalizer``),
3. the sensitive-path deny-list on the handler's ``path_fields``,
4. the approval gateway, when the tool carries a risk tier,
5. the handler's effect, including the handler's own checks (the shell
   command guard runs here, after approval).

Every failure is returned as a structured payload; nothing but cancellation
propagates out of ``execute``.
"""

import asyncio
import logging
from typing import Any, Dict, Iterable, List, Optional

from ..errors import ApprovalDenied, ToolError, ToolExecutionError
from ..policy.approval import ApprovalGateway
from ..policy.models import DEFAULT_TOOL_TIERS
from ..policy.safety import SensitivePathFilter
from ..schemas.domain import ApprovalResolution, ToolTier
from .collaborators import ToolContext
from .definitions import ToolSchema
from .handlers import ToolHandler
from .normalizer import ToolArgumentNormalizer

logger = logging.getLogger(__name__)

_GRANTED = (ApprovalResolution.approved, ApprovalResolution.session)


class ToolRegistry:
    """Registry and executor for tool handlers."""

    def __init__(
        self,
        handlers: Iterable[ToolHandler[Any]],
        *,
        gateway: ApprovalGateway,
        path_filter: Optional[SensitivePathFilter] = None,
        normalizer: Optional[ToolArgumentNormalizer] = None,
        tiers: Optional[Dict[str, ToolTier]] = None,
    ) -> None:
        self._handlers: Dict[str, ToolHandler[Any]] = {}
        self._gateway = gateway
        self._path_filter = path_filter or SensitivePathFilter()
        self._normalizer = normalizer or ToolArgumentNormalizer()
        self._tiers: Dict[str, ToolTier] = dict(tiers if tiers is not None else DEFAULT_TOOL_TIERS)
        for handler in handlers:
            self.register(handler)

    @property
    def gateway(self) -> ApprovalGateway:
        return self._gateway

    def register(self, handler: ToolHandler[Any]) -> None:
        """
        Register a tool handler, replacing any handler with the same name.

        Args:
            handler: ToolHandler instance to register
        """
        self._handlers[handler.name] = handler
        logger.debug(f"Registered tool handler: {handler.name}")

    def get(self, name: str) -> Optional[ToolHandler[Any]]:
        return self._handlers.get(name)

    def has(self, name: str) -> bool:
        return name in self._handlers

    def names(self) -> List[str]:
        return list(self._handlers)

    def tier_of(self, name: str) -> Optional[ToolTier]:
        """Return the risk tier for ``name``; None means unclassified."""
        return self._tiers.get(name)

    def schemas(self) -> List[ToolSchema]:
        """Return the model-facing schema of every registered tool."""
        return [handler.to_schema() for handler in self._handlers.values()]

    async def execute(self, name: str, raw_args: Any, ctx: ToolContext) -> Any:
        """
        Run one tool call requested by the model.

        Args:
            name: Tool name from the model.
            raw_args: Arguments as produced by the model (mapping or JSON text).
            ctx: Collaborators for this call.

        Returns:
            The handler's payload, or ``{"error": True, ...}`` on any failure.
        """
        handler = self._handlers.get(name)
        if handler is None:
            logger.warning(f"Model requested unknown tool: {name}")
            return {
                "error": True,
                "message": f"Unknown tool: {name}",
                "suggestion": f"Use one of: {', '.join(sorted(self._handlers))}",
            }

        try:
            input_data = self._normalizer.parse(name, handler.input_model, raw_args)

            for field in handler.path_fields:
                value = getattr(input_data, field, None)
                if value:
                    self._path_filter.ensure_allowed(name, value)

            tier = self.tier_of(name)
            if tier is not None:
                resolution = await self._gateway.decide(
                    name,
                    input_data.model_dump(by_alias=True, exclude_none=True),
                    tier,
                    conversation_id=ctx.conversation_id,
                )
                if resolution not in _GRANTED:
                    raise ApprovalDenied(name, resolution.value)

            logger.debug(f"Executing tool {name}")
            return await handler.execute(input_data, ctx)

        except ToolError as e:
            logger.info(f"Tool {name} returned error: {e.message}")
            return e.to_payload()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception(f"Tool {name} failed")
            return ToolExecutionError(
                name, str(e) or f"Failed to run {name}", suggestion=handler.failure_suggestion
            ).to_payload()
