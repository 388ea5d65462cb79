"""Tests for the interpretation gateway with a mocked LLM client."""
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from agents.profiler import profile_columns
from models.operations import OperationType, TargetType
from services.llm.client import LLMAPIError, LLMRateLimitError, parse_json_response
from services.llm.interpreter import InterpretationFailure, InterpreterService, parse_operations
from services.llm.prompts import build_interpreter_prompt


def mock_client(response: str) -> MagicMock:
    client = MagicMock()
    client.complete = AsyncMock(return_value=response)
    return client


@pytest.fixture
def stats(people):
    return profile_columns(people)


class TestParseJsonResponse:

    def test_plain_array(self):
        assert parse_json_response('[{"type": "DROP_COLUMN"}]') == [{"type": "DROP_COLUMN"}]

    def test_code_fence(self):
        response = '```json\n[{"type": "DROP_COLUMN", "column": "age"}]\n```'
        assert parse_json_response(response) == [{"type": "DROP_COLUMN", "column": "age"}]

    def test_surrounding_prose(self):
        response = 'Here you go: {"operations": []} Let me know!'
        assert parse_json_response(response) == {"operations": []}

    def test_brackets_inside_strings(self):
        response = '[{"description": "drop rows like [x]"}] trailing ]'
        assert parse_json_response(response) == [{"description": "drop rows like [x]"}]

    def test_malformed(self):
        assert parse_json_response("not json at all") is None
        assert parse_json_response('[{"type": ') is None


class TestParseOperations:

    def test_accepts_array_or_object(self):
        item = {"type": "DROP_COLUMN", "column": "city", "description": "drop city"}
        assert parse_operations([item])[0].column == "city"
        assert parse_operations({"operations": [item]})[0].column == "city"
        assert parse_operations({"something": "else"}) == []
        assert parse_operations("text") == []

    def test_camel_case_fields(self):
        ops = parse_operations([
            {"type": "convert_type", "column": "age", "targetType": "Number", "description": "to number"},
            {"type": "RENAME_COLUMN", "column": "age", "newName": "years", "description": "rename"},
        ])
        assert ops[0].type == OperationType.CONVERT_TYPE
        assert ops[0].target_type == TargetType.NUMBER
        assert ops[1].new_name == "years"

    def test_drops_non_objects_and_invalid_entries(self):
        ops = parse_operations([
            "DROP_COLUMN",
            {"type": "DROP_COLUMN", "column": ["a", "b"], "description": "bad column"},
            {"type": "DROP_COLUMN", "column": "city", "description": "ok"},
        ])
        assert [o.column for o in ops] == ["city"]

    def test_unknown_type_and_missing_description(self):
        ops = parse_operations([{"type": "PIVOT", "column": "age"}])
        assert ops[0].type == OperationType.UNKNOWN
        assert ops[0].description == "PIVOT on 'age'"

    def test_coerces_values_to_column_type(self, stats):
        ops = parse_operations(
            [
                {"type": "FILL_MISSING", "column": "age", "value": "0", "description": "fill"},
                {"type": "FILTER_ROWS", "column": "age", "operator": ">", "value": "25.5", "description": "filter"},
                {"type": "FILL_MISSING", "column": "city", "value": "0", "description": "fill city"},
            ],
            stats,
        )
        assert ops[0].value == 0
        assert ops[1].value == 25.5
        assert ops[2].value == "0"

    def test_value_types_preserved(self):
        ops = parse_operations([
            {"type": "FILL_MISSING", "column": "a", "value": True, "description": "d"},
            {"type": "FILL_MISSING", "column": "a", "value": 1, "description": "d"},
            {"type": "MAP_VALUES", "column": "a", "mapping": {"Y": True, "N": 0}, "description": "d"},
        ])
        assert ops[0].value is True
        assert ops[1].value == 1 and not isinstance(ops[1].value, bool)
        assert ops[2].mapping == {"Y": True, "N": 0}


class TestInterpreterService:

    @pytest.mark.asyncio
    async def test_interpret_returns_operations(self, stats):
        client = mock_client('[{"type": "DROP_MISSING", "column": "age", "description": "drop rows without age"}]')
        service = InterpreterService(client=client)

        ops = await service.interpret("remove rows with no age", stats)

        assert len(ops) == 1
        assert ops[0].type == OperationType.DROP_MISSING
        messages = client.complete.call_args.args[0]
        assert messages[0]["content"] == build_interpreter_prompt()
        assert 'User Request: "remove rows with no age"' in messages[1]["content"]
        assert "age: number, missing: 1" in messages[1]["content"]

    @pytest.mark.asyncio
    async def test_empty_response_is_empty_list(self, stats):
        service = InterpreterService(client=mock_client("   "))
        assert await service.interpret("do something", stats) == []

    @pytest.mark.asyncio
    async def test_empty_array(self, stats):
        service = InterpreterService(client=mock_client("[]"))
        assert await service.interpret("make it pretty", stats) == []

    @pytest.mark.asyncio
    async def test_malformed_response_fails(self, stats):
        service = InterpreterService(client=mock_client("I cannot help with that."))
        with pytest.raises(InterpretationFailure):
            await service.interpret("drop age", stats)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [LLMAPIError("boom"), LLMRateLimitError("slow down")])
    async def test_upstream_errors_fail(self, stats, error):
        client = MagicMock()
        client.complete = AsyncMock(side_effect=error)
        service = InterpreterService(client=client)
        with pytest.raises(InterpretationFailure):
            await service.interpret("drop age", stats)

    @pytest.mark.asyncio
    async def test_missing_api_key_fails(self, stats):
        with patch("services.llm.interpreter.get_llm_client", side_effect=ValueError("no key")):
            service = InterpreterService()
            with pytest.raises(InterpretationFailure, match="API key"):
                await service.interpret("drop age", stats)
