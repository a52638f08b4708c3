from __future__ import annotations

import pytest

from cowork_ai.agent_core.errors import ToolValidationError
from cowork_ai.agent_core.tools.definitions import AskQuestionInput, ReadFileInput
from cowork_ai.agent_core.tools.normalizer import (
    ToolArgumentNormalizer,
    normalize_tool_args,
    repair_ask_question_args,
    repair_tool_args,
)


class TestNormalizeToolArgs:
    def test_unwraps_function_envelope(self) -> None:
        args = {"function": "readFile", "parameters": {"path": "/tmp/a.txt"}}

        assert normalize_tool_args(args) == {"path": "/tmp/a.txt"}

    @pytest.mark.parametrize(
        "args",
        [
            {"path": "/tmp/a.txt"},
            {"function": "readFile", "parameters": {"path": "/x"}, "extra": 1},
            {"function": 3, "parameters": {"path": "/x"}},
            {"function": "readFile", "parameters": "path=/x"},
        ],
    )
    def test_leaves_other_shapes_alone(self, args) -> None:
        assert normalize_tool_args(args) == args


class TestAskQuestionRepair:
    def test_single_question_shape(self) -> None:
        repaired = repair_ask_question_args(
            {"question": "Which format?", "options": ["PDF", "Word"], "custom_answer": ""}
        )

        assert repaired == {
            "questions": [
                {
                    "id": "1",
                    "question": "Which format?",
                    "options": [{"id": "1", "label": "PDF"}, {"id": "2", "label": "Word"}],
                    "allowCustom": True,
                }
            ]
        }

    def test_missing_options_default_to_yes_no(self) -> None:
        repaired = repair_ask_question_args({"question": "Continue?", "custom_answer": False})

        question = repaired["questions"][0]
        assert question["options"] == [{"id": "1", "label": "Yes"}, {"id": "2", "label": "No"}]
        assert question["allowCustom"] is False

    def test_questions_list_items_are_repaired(self) -> None:
        repaired = repair_ask_question_args(
            {"questions": [{"question": "Pick", "options": ["A", {"label": "B"}, {"id": "z", "name": "C"}]}]}
        )

        question = repaired["questions"][0]
        assert question["id"] == "1"
        assert question["allowCustom"] is True
        assert question["options"][0] == {"id": "1", "label": "A"}
        assert question["options"][1] == {"id": "2", "label": "B"}
        assert question["options"][2]["id"] == "z"
        assert question["options"][2]["label"] == '{"id": "z", "name": "C"}'

    def test_unknown_tool_is_untouched(self) -> None:
        args = {"path": 1}
        assert repair_tool_args("readFile", args) is args


class TestToolArgumentNormalizer:
    def test_strict_provider_validates_without_repair(self) -> None:
        normalizer = ToolArgumentNormalizer("openrouter")

        parsed = normalizer.parse("readFile", ReadFileInput, '{"path": "/tmp/a.txt"}')
        assert parsed.path == "/tmp/a.txt"

        with pytest.raises(ToolValidationError) as exc_info:
            normalizer.parse("askQuestion", AskQuestionInput, {"question": "Continue?"})
        assert exc_info.value.message.startswith("Invalid arguments for tool askQuestion:")

    def test_strict_provider_does_not_unwrap_envelope(self) -> None:
        normalizer = ToolArgumentNormalizer("openrouter")

        with pytest.raises(ToolValidationError):
            normalizer.parse("readFile", ReadFileInput, {"function": "readFile", "parameters": {"path": "/x"}})

    def test_ollama_unwraps_and_repairs(self) -> None:
        normalizer = ToolArgumentNormalizer("Ollama")
        assert normalizer.repairs_enabled

        parsed = normalizer.parse(
            "askQuestion",
            AskQuestionInput,
            {"function": "askQuestion", "parameters": {"question": "Continue?", "options": ["Yes", "No", "Maybe"]}},
        )

        assert len(parsed.questions) == 1
        assert [o.label for o in parsed.questions[0].options] == ["Yes", "No", "Maybe"]
        assert parsed.questions[0].allow_custom is True

    def test_repair_failure_raises_validation_error(self) -> None:
        normalizer = ToolArgumentNormalizer("ollama")

        with pytest.raises(ToolValidationError):
            normalizer.parse("readFile", ReadFileInput, {"file": "/tmp/a.txt"})

    @pytest.mark.parametrize("raw", ["not json", "", "[1, 2]", None])
    def test_unparseable_arguments_become_empty(self, raw) -> None:
        normalizer = ToolArgumentNormalizer()

        with pytest.raises(ToolValidationError) as exc_info:
            normalizer.parse("readFile", ReadFileInput, raw)
        assert "path" in exc_info.value.message
