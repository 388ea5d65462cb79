"""Tests for upload, interpretation and the apply workflow."""
import pytest

from models.operations import CleaningOperation, OutcomeStatus
from orchestrator.workflow import (
    APPLIED_MESSAGE,
    INTERPRETATION_ERROR_MESSAGE,
    NO_DATA_MESSAGE,
    NO_OPERATIONS_MESSAGE,
    NOTHING_APPLIED_MESSAGE,
    StaleDatasetError,
    apply_operations,
    interpret_request,
    process_upload,
    run_apply_workflow,
)
from repositories.dataset import DatasetNotFoundError


def make_op(type_: str, description: str = "step", **fields) -> CleaningOperation:
    return CleaningOperation.model_validate({"type": type_, "description": description, **fields})


class TestApplyWorkflow:

    @pytest.mark.asyncio
    async def test_operations_run_in_order(self, people):
        ops = [
            make_op("FILL_MISSING", column="age", value=0),
            make_op("FILTER_ROWS", column="age", operator=">", value=0),
            make_op("RENAME_COLUMN", column="age", new_name="years"),
        ]
        success, message, result, steps = await run_apply_workflow(people, ops)

        assert success
        assert result.columns == ["name", "years", "city"]
        assert [r["name"] for r in result.rows] == ["Alice", "Charlie", "Dana"]
        assert [s.step_num for s in steps] == [1, 2, 3]
        assert message.startswith(APPLIED_MESSAGE)
        assert "Summary: 3/3 operations applied" in message
        assert "Result: 3 rows × 3 columns" in message
        assert people.columns == ["name", "age", "city"]

    @pytest.mark.asyncio
    async def test_skipped_step_does_not_stop_later_steps(self, people):
        ops = [
            make_op("DROP_COLUMN", "drop salary", column="salary"),
            make_op("DROP_COLUMN", "drop city", column="city"),
        ]
        success, message, result, steps = await run_apply_workflow(people, ops)

        assert success
        assert [s.status for s in steps] == [OutcomeStatus.SKIPPED, OutcomeStatus.APPLIED]
        assert result.columns == ["name", "age"]
        assert "⊘ Step 1: drop salary" in message
        assert "✓ Step 2: drop city" in message

    @pytest.mark.asyncio
    async def test_nothing_applied(self, people):
        success, message, result, steps = await run_apply_workflow(
            people, [make_op("UNKNOWN"), make_op("DROP_COLUMN", column="zzz")]
        )
        assert not success
        assert result == people
        assert message.startswith(NOTHING_APPLIED_MESSAGE)

    @pytest.mark.asyncio
    async def test_empty_operation_list(self, people):
        success, _, result, steps = await run_apply_workflow(people, [])
        assert not success
        assert steps == []
        assert result == people

    @pytest.mark.asyncio
    async def test_large_removal_warning(self, people):
        _, _, _, steps = await run_apply_workflow(
            people, [make_op("FILTER_ROWS", column="name", operator="==", value="nobody")]
        )
        assert "dataset is now empty" in steps[0].message

    @pytest.mark.asyncio
    async def test_long_operation_list(self, people):
        ops = [make_op("FILL_MISSING", column="age", value=i) for i in range(40)]
        success, _, result, steps = await run_apply_workflow(people, ops)
        assert success
        assert len(steps) == 40
        assert result.rows[1]["age"] == 0


class TestOrchestration:

    @pytest.mark.asyncio
    async def test_upload_greets(self, repo, sample_csv):
        state = await process_upload(repo, "people.csv", sample_csv, "ds")
        assert await repo.exists("ds")
        assert state.current_version == 1
        assert state.chat_history[0].content == (
            "I've loaded people.csv with 4 rows and 4 columns. How would you like to clean it?"
        )

    @pytest.mark.asyncio
    async def test_interpret_unknown_dataset(self, repo, gateway):
        reply = await interpret_request(repo, gateway, "missing", "drop age")
        assert reply.content == NO_DATA_MESSAGE
        assert gateway.calls == []

    @pytest.mark.asyncio
    async def test_interpret_without_rows(self, repo, gateway):
        await process_upload(repo, "empty.csv", b"a,b\n", "ds")
        reply = await interpret_request(repo, gateway, "ds", "drop a")
        assert reply.content == NO_DATA_MESSAGE
        assert gateway.calls == []

    @pytest.mark.asyncio
    async def test_interpret_suggests_without_applying(self, repo, gateway, sample_csv):
        state = await process_upload(repo, "people.csv", sample_csv, "ds")
        gateway.operations = [make_op("DROP_COLUMN", column="city")]

        reply = await interpret_request(repo, gateway, "ds", "drop city")

        assert reply.content == "I've identified 1 operation to apply."
        assert reply.operations == gateway.operations
        assert reply.dataset_version == 1
        assert "city" in state.dataset.columns
        assert [m.role for m in state.chat_history] == ["assistant", "user", "assistant"]
        request, stats = gateway.calls[0]
        assert request == "drop city"
        assert [s.name for s in stats] == ["name", "age", "city", "active"]

    @pytest.mark.asyncio
    async def test_interpret_nothing_found(self, repo, gateway, sample_csv):
        await process_upload(repo, "people.csv", sample_csv, "ds")
        reply = await interpret_request(repo, gateway, "ds", "make it nice")
        assert reply.content == NO_OPERATIONS_MESSAGE
        assert reply.operations == []

    @pytest.mark.asyncio
    async def test_interpret_failure_becomes_message(self, repo, gateway, sample_csv):
        await process_upload(repo, "people.csv", sample_csv, "ds")
        gateway.error = "API key not found"
        reply = await interpret_request(repo, gateway, "ds", "drop age")
        assert reply.content == INTERPRETATION_ERROR_MESSAGE
        assert reply.operations is None

    @pytest.mark.asyncio
    async def test_apply_bumps_version(self, repo, sample_csv):
        await process_upload(repo, "people.csv", sample_csv, "ds")
        reply, steps, state = await apply_operations(
            repo, "ds", [make_op("DROP_MISSING", column="age")], expected_version=1
        )
        assert state.current_version == 2
        assert len(state.dataset) == 3
        assert reply.dataset_version == 2
        assert state.transformation_log[-1]["step"] == "apply"

    @pytest.mark.asyncio
    async def test_apply_nothing_keeps_version(self, repo, sample_csv):
        await process_upload(repo, "people.csv", sample_csv, "ds")
        _, _, state = await apply_operations(repo, "ds", [make_op("DROP_COLUMN", column="zzz")])
        assert state.current_version == 1

    @pytest.mark.asyncio
    async def test_apply_stale_version(self, repo, sample_csv):
        await process_upload(repo, "people.csv", sample_csv, "ds")
        await apply_operations(repo, "ds", [make_op("DROP_COLUMN", column="city")])
        with pytest.raises(StaleDatasetError):
            await apply_operations(repo, "ds", [make_op("DROP_COLUMN", column="age")], expected_version=1)

    @pytest.mark.asyncio
    async def test_apply_unknown_dataset(self, repo):
        with pytest.raises(DatasetNotFoundError):
            await apply_operations(repo, "missing", [])
