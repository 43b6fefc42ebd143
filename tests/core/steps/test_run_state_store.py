"""Tests for RunState encoding and the filesystem store."""

import json
from pathlib import Path

import pytest

from gtown.core.steps.base import IrreversibleStep, NoOpStep
from gtown.core.steps.branch import (
    CheckoutBranchStep,
    DeleteAncestorBranchesStep,
    DeleteLocalBranchStep,
    DeleteParentBranchStep,
    EnsureHasShippableChangesStep,
    SetParentBranchStep,
)
from gtown.core.steps.merge import (
    AbortMergeStep,
    ContinueMergeStep,
    ContinueSquashMergeStep,
    DiscardOpenChangesStep,
    MergeBranchStep,
    MergeTrackingBranchStep,
    ResetToShaStep,
    SquashMergeBranchStep,
)
from gtown.core.steps.remote import DeleteRemoteBranchStep, PushBranchStep, ResetRemoteBranchStep
from gtown.core.steps.run_state import (
    STEP_TYPES,
    RunState,
    UnfinishedDetails,
    run_state_from_dict,
    step_from_dict,
    step_to_dict,
)
from gtown.core.steps.run_state_store import RealRunStateStore, run_state_dir
from gtown.core.steps.scope import (
    ChangeDirectoryStep,
    RestoreDirectoryStep,
    RestoreOpenChangesStep,
    StashOpenChangesStep,
)
from gtown.core.steps.step_list import StepList, WrapOptions


def _every_step_variant() -> StepList:
    return StepList(
        [
            AbortMergeStep(),
            ChangeDirectoryStep(directory="/repo"),
            CheckoutBranchStep(branch_name="main"),
            ContinueMergeStep(),
            ContinueSquashMergeStep(branch_name="feature", commit_message=None),
            DeleteAncestorBranchesStep(),
            DeleteLocalBranchStep(branch_name="feature", force=True),
            DeleteParentBranchStep(branch_name="feature"),
            DeleteRemoteBranchStep(branch_name="feature", is_tracking=True),
            DiscardOpenChangesStep(),
            EnsureHasShippableChangesStep(branch_name="feature"),
            IrreversibleStep(description="restore deleted branch 'feature'"),
            MergeBranchStep(branch_name="main"),
            MergeTrackingBranchStep(),
            NoOpStep(),
            PushBranchStep(branch_name="main", force=False, undoable=True),
            ResetRemoteBranchStep(branch_name="main", sha="abc123"),
            ResetToShaStep(sha="def456"),
            RestoreDirectoryStep(directory="/repo/src"),
            RestoreOpenChangesStep(),
            SetParentBranchStep(branch_name="child", parent_branch_name="main"),
            SquashMergeBranchStep(branch_name="feature", commit_message="Ship it"),
            StashOpenChangesStep(),
        ]
    )


def _unfinished_state() -> RunState:
    return RunState(
        command="ship",
        initial_branch="feature",
        run_steps=_every_step_variant(),
        undo_steps=StepList([CheckoutBranchStep(branch_name="feature")]),
        abort_steps=StepList([AbortMergeStep(), CheckoutBranchStep(branch_name="feature")]),
        wrap_options=WrapOptions(run_in_git_root=True, stash_open_changes=False),
        pending_stashes=1,
        unfinished=UnfinishedDetails(
            suspended_step=MergeBranchStep(branch_name="main"),
            end_branch="feature",
            end_time="2024-01-01T12:00:00+00:00",
            conflicted_files=["README.md"],
        ),
    )


def test_every_step_type_is_registered() -> None:
    assert set(STEP_TYPES) == {type(step).__name__ for step in _every_step_variant()}


def test_step_record_is_tagged_with_class_name() -> None:
    record = step_to_dict(PushBranchStep(branch_name="main", undoable=True))

    assert record == {
        "type": "PushBranchStep",
        "data": {"branch_name": "main", "force": False, "undoable": True},
    }
    assert step_from_dict(record) == PushBranchStep(branch_name="main", undoable=True)


def test_unknown_step_type_is_rejected() -> None:
    with pytest.raises(ValueError, match="Unknown step type"):
        step_from_dict({"type": "RebaseBranchStep", "data": {}})


def test_step_with_wrong_fields_is_rejected() -> None:
    with pytest.raises(ValueError, match="Malformed data for step CheckoutBranchStep"):
        step_from_dict({"type": "CheckoutBranchStep", "data": {"branch": "main"}})


def test_missing_fields_are_rejected() -> None:
    with pytest.raises(ValueError, match="Malformed run state"):
        run_state_from_dict({"command": "ship"})


def test_store_round_trips_unfinished_state(tmp_path: Path) -> None:
    store = RealRunStateStore(tmp_path / "state")
    state = _unfinished_state()

    store.save(state)
    loaded = store.load()

    assert loaded == state


def test_store_round_trips_finished_state(tmp_path: Path) -> None:
    store = RealRunStateStore(tmp_path)
    state = RunState(
        command="ship",
        initial_branch=None,
        run_steps=StepList(),
        undo_steps=StepList([ResetToShaStep(sha="abc")]),
        abort_steps=StepList(),
    )

    store.save(state)
    loaded = store.load()

    assert loaded == state
    assert loaded is not None
    assert not loaded.is_unfinished


def test_store_writes_json_without_leaving_temp_file(tmp_path: Path) -> None:
    store = RealRunStateStore(tmp_path)

    store.save(_unfinished_state())

    data = json.loads(store.path.read_text(encoding="utf-8"))
    assert data["command"] == "ship"
    assert data["unfinished"]["suspended_step"] == {
        "type": "MergeBranchStep",
        "data": {"branch_name": "main"},
    }
    assert not store.path.with_suffix(".tmp").exists()


def test_load_without_file_returns_none(tmp_path: Path) -> None:
    assert RealRunStateStore(tmp_path).load() is None


def test_clear_removes_file_and_tolerates_missing_file(tmp_path: Path) -> None:
    store = RealRunStateStore(tmp_path)
    store.save(_unfinished_state())

    store.clear()
    store.clear()

    assert not store.path.exists()
    assert store.load() is None


def test_corrupt_file_raises_value_error_naming_the_file(tmp_path: Path) -> None:
    store = RealRunStateStore(tmp_path)
    store.path.write_text("{not json", encoding="utf-8")

    with pytest.raises(ValueError, match="Corrupt run state at") as exc_info:
        store.load()

    assert str(store.path) in str(exc_info.value)


def test_run_state_dir_is_unique_per_repository() -> None:
    state_root = Path("/home/user/.gtown")

    first = run_state_dir(state_root, Path("/work/project"))
    second = run_state_dir(state_root, Path("/work/other project"))

    assert first == state_root / "repos" / "work-project"
    assert second == state_root / "repos" / "work-other-project"
