"""Provider compatibility adapter for tool-call arguments.

Some providers (notably local models served through Ollama) do not reliably
follow nested JSON schemas. Their tool calls arrive in shapes such as::

    {"function": "readFile", "parameters": {"path": "/tmp/a.txt"}}
    {"question": "Pick one", "options": ["Yes", "No"], "custom_answer": ""}

This module turns those into the canonical arguments each tool declares,
without loosening the tool's own schema:

1. ``normalize_tool_args`` unwraps the ``{"function", "parameters"}`` envelope.
2. The result is validated against the tool's input model.
3. Only when validation fails, a tool-specific repair function runs and the
   repaired arguments are validated again.
4. A second failure raises ``ToolValidationError``, which the registry hands
   back to the model as an error payload so it can retry.

For strict providers only step 2 runs.
"""

import json
import logging
from typing import Any, Callable, Dict, List, Mapping, Type, TypeVar

from pydantic import BaseModel, ValidationError

from ..errors import ToolValidationError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)
RepairFn = Callable[[Dict[str, Any]], Dict[str, Any]]

WEAK_PROVIDERS = frozenset({"ollama"})


def normalize_tool_args(args: Mapping[str, Any]) -> Dict[str, Any]:
    """Unwrap a ``{"function": str, "parameters": {...}}`` envelope; return anything else unchanged."""
    parameters = args.get("function"), args.get("parameters")
    if len(args) == 2 and isinstance(parameters[0], str) and isinstance(parameters[1], Mapping):
        logger.debug(f"Unwrapped tool call envelope for tool: {parameters[0]}")
        return dict(parameters[1])
    return dict(args)


def _repair_options(options: Any) -> List[Dict[str, str]]:
    if not isinstance(options, list) or not options:
        return [{"id": "1", "label": "Yes"}, {"id": "2", "label": "No"}]

    repaired: List[Dict[str, str]] = []
    for i, opt in enumerate(options):
        if isinstance(opt, str):
            repaired.append({"id": str(i + 1), "label": opt})
        elif isinstance(opt, Mapping):
            opt_id = opt.get("id")
            label = opt.get("label")
            repaired.append(
                {
                    "id": opt_id if isinstance(opt_id, str) else str(i + 1),
                    "label": label if isinstance(label, str) else json.dumps(dict(opt)),
                }
            )
        else:
            repaired.append({"id": str(i + 1), "label": str(opt)})
    return repaired


def _resolve_allow_custom(args: Mapping[str, Any]) -> bool:
    if isinstance(args.get("allowCustom"), bool):
        return args["allowCustom"]
    if "custom_answer" in args:
        # An empty string means the field exists and the user may type; only an explicit False disables it.
        return args["custom_answer"] is not False
    return True


def _repair_question_item(item: Any, index: int) -> Any:
    if not isinstance(item, Mapping):
        return item
    repaired = dict(item)
    if not repaired.get("id"):
        repaired["id"] = str(index + 1)
    if isinstance(repaired.get("options"), list):
        repaired["options"] = _repair_options(repaired["options"])
    if "allowCustom" not in repaired:
        repaired["allowCustom"] = _resolve_allow_custom(repaired)
    repaired.pop("custom_answer", None)
    return repaired


def repair_ask_question_args(args: Dict[str, Any]) -> Dict[str, Any]:
    """Coerce simplified ``askQuestion`` arguments into the multi-question shape."""
    if isinstance(args.get("questions"), list):
        return {"questions": [_repair_question_item(q, i) for i, q in enumerate(args["questions"])]}

    if isinstance(args.get("question"), str):
        return {
            "questions": [
                {
                    "id": "1",
                    "question": args["question"],
                    "options": _repair_options(args.get("options")),
                    "allowCustom": _resolve_allow_custom(args),
                }
            ]
        }
    return args


TOOL_REPAIRERS: Dict[str, RepairFn] = {
    "askQuestion": repair_ask_question_args,
}


def repair_tool_args(tool_name: str, args: Dict[str, Any]) -> Dict[str, Any]:
    """Run the repair function registered for ``tool_name``, if any."""
    repair = TOOL_REPAIRERS.get(tool_name)
    if repair is None:
        return args
    repaired = repair(args)
    logger.debug(f"Attempted repair for {tool_name}: {json.dumps(repaired, default=str)}")
    return repaired


def _describe(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "<root>"
        parts.append(f"{loc}: {err.get('msg', 'invalid')}")
    return "; ".join(parts)


def _as_mapping(raw_args: Any) -> Dict[str, Any]:
    if isinstance(raw_args, Mapping):
        return dict(raw_args)
    if isinstance(raw_args, str):
        try:
            decoded = json.loads(raw_args) if raw_args.strip() else {}
        except json.JSONDecodeError:
            return {}
        if isinstance(decoded, Mapping):
            return dict(decoded)
    return {}


class ToolArgumentNormalizer:
    """Validate (and for weak providers, normalize and repair) tool arguments."""

    def __init__(self, provider: str = "openrouter") -> None:
        self._provider = provider.lower()

    @property
    def provider(self) -> str:
        return self._provider

    @property
    def repairs_enabled(self) -> bool:
        return self._provider in WEAK_PROVIDERS

    def parse(self, tool_name: str, input_model: Type[ModelT], raw_args: Any) -> ModelT:
        """
        Turn raw model-supplied arguments into a validated input model.

        Raises:
            ToolValidationError: If the arguments are still invalid after repair.
        """
        args = _as_mapping(raw_args)
        if self.repairs_enabled:
            args = normalize_tool_args(args)

        try:
            return input_model.model_validate(args)
        except ValidationError as first_error:
            if not self.repairs_enabled:
                raise ToolValidationError(tool_name, _describe(first_error)) from first_error
            error = first_error

        repaired = repair_tool_args(tool_name, args)
        try:
            parsed = input_model.model_validate(repaired)
        except ValidationError as retry_error:
            logger.warning(f"Validation failed for {tool_name} (after repair): {_describe(retry_error)}")
            raise ToolValidationError(tool_name, _describe(retry_error)) from error
        logger.info(f"Repair succeeded for {tool_name}")
        return parsed
