"""Persistent state of a command run.

A RunState is written when a run completes (so it can be undone) and when it
stops on a conflict (so it can be continued or aborted). The JSON encoding
tags every step with its class name and stores its dataclass fields.
"""

import dataclasses
from dataclasses import dataclass, field
from typing import Any

from gtown.core.steps.base import IrreversibleStep, NoOpStep, Step
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
from gtown.core.steps.scope import (
    ChangeDirectoryStep,
    RestoreDirectoryStep,
    RestoreOpenChangesStep,
    StashOpenChangesStep,
)
from gtown.core.steps.step_list import StepList, WrapOptions

STEP_TYPES: dict[str, type[Step]] = {
    cls.__name__: cls
    for cls in (
        AbortMergeStep,
        ChangeDirectoryStep,
        CheckoutBranchStep,
        ContinueMergeStep,
        ContinueSquashMergeStep,
        DeleteAncestorBranchesStep,
        DeleteLocalBranchStep,
        DeleteParentBranchStep,
        DeleteRemoteBranchStep,
        DiscardOpenChangesStep,
        EnsureHasShippableChangesStep,
        IrreversibleStep,
        MergeBranchStep,
        MergeTrackingBranchStep,
        NoOpStep,
        PushBranchStep,
        ResetRemoteBranchStep,
        ResetToShaStep,
        RestoreDirectoryStep,
        RestoreOpenChangesStep,
        SetParentBranchStep,
        SquashMergeBranchStep,
        StashOpenChangesStep,
    )
}


@dataclass(frozen=True)
class UnfinishedDetails:
    """Why and where a run stopped before its last step.

    Attributes:
        suspended_step: The step that conflicted (or failed); continue runs its
            continue step, skip runs its abort step
        end_branch: Branch checked out when the run stopped
        end_time: ISO 8601 timestamp of the stop
        conflicted_files: Paths the user has to resolve
        reason: Failure message when the run stopped on a hard failure
    """

    suspended_step: Step
    end_branch: str | None
    end_time: str
    conflicted_files: list[str] = field(default_factory=list)
    reason: str | None = None


@dataclass(frozen=True)
class RunState:
    """Everything needed to resume, abort, or undo a command run.

    Attributes:
        command: Name of the command that produced this state (e.g. "ship")
        initial_branch: Branch checked out when the run started
        run_steps: Steps still to execute, not counting the suspended step
        undo_steps: Undo steps of everything executed so far, newest first
        abort_steps: Abort step of the suspended step followed by undo_steps
        wrap_options: Scope options of the original step list
        pending_stashes: Stash entries the run created and could not restore
        unfinished: Set while the run waits for the user
    """

    command: str
    initial_branch: str | None
    run_steps: StepList
    undo_steps: StepList
    abort_steps: StepList
    wrap_options: WrapOptions | None = None
    pending_stashes: int = 0
    unfinished: UnfinishedDetails | None = None

    @property
    def is_unfinished(self) -> bool:
        return self.unfinished is not None


def step_to_dict(step: Step) -> dict[str, Any]:
    name = type(step).__name__
    if STEP_TYPES.get(name) is not type(step):
        raise ValueError(f"Step type {name} cannot be persisted")
    return {"type": name, "data": dataclasses.asdict(step)}


def step_from_dict(data: dict[str, Any]) -> Step:
    name = data.get("type")
    if not isinstance(name, str) or name not in STEP_TYPES:
        raise ValueError(f"Unknown step type: {name!r}")
    fields = data.get("data", {})
    if not isinstance(fields, dict):
        raise ValueError(f"Malformed data for step {name}")
    try:
        return STEP_TYPES[name](**fields)
    except TypeError as e:
        raise ValueError(f"Malformed data for step {name}: {e}") from e


def _steps_to_list(steps: StepList) -> list[dict[str, Any]]:
    return [step_to_dict(step) for step in steps]


def _steps_from_list(data: Any) -> StepList:
    if not isinstance(data, list):
        raise ValueError("Expected a list of steps")
    return StepList(step_from_dict(item) for item in data)


def run_state_to_dict(state: RunState) -> dict[str, Any]:
    """Encode a RunState as JSON-compatible data."""
    unfinished: dict[str, Any] | None = None
    if state.unfinished is not None:
        unfinished = {
            "suspended_step": step_to_dict(state.unfinished.suspended_step),
            "end_branch": state.unfinished.end_branch,
            "end_time": state.unfinished.end_time,
            "conflicted_files": list(state.unfinished.conflicted_files),
            "reason": state.unfinished.reason,
        }

    wrap: dict[str, bool] | None = None
    if state.wrap_options is not None:
        wrap = {
            "run_in_git_root": state.wrap_options.run_in_git_root,
            "stash_open_changes": state.wrap_options.stash_open_changes,
        }

    return {
        "command": state.command,
        "initial_branch": state.initial_branch,
        "run_steps": _steps_to_list(state.run_steps),
        "undo_steps": _steps_to_list(state.undo_steps),
        "abort_steps": _steps_to_list(state.abort_steps),
        "wrap_options": wrap,
        "pending_stashes": state.pending_stashes,
        "unfinished": unfinished,
    }


def run_state_from_dict(data: dict[str, Any]) -> RunState:
    """Decode a RunState encoded by run_state_to_dict.

    Raises:
        ValueError: If required fields are missing or a step is unknown
    """
    try:
        unfinished_data = data.get("unfinished")
        unfinished = None
        if unfinished_data is not None:
            unfinished = UnfinishedDetails(
                suspended_step=step_from_dict(unfinished_data["suspended_step"]),
                end_branch=unfinished_data.get("end_branch"),
                end_time=unfinished_data["end_time"],
                conflicted_files=list(unfinished_data.get("conflicted_files", [])),
                reason=unfinished_data.get("reason"),
            )

        wrap_data = data.get("wrap_options")
        wrap_options = None
        if wrap_data is not None:
            wrap_options = WrapOptions(
                run_in_git_root=bool(wrap_data["run_in_git_root"]),
                stash_open_changes=bool(wrap_data["stash_open_changes"]),
            )

        return RunState(
            command=data["command"],
            initial_branch=data.get("initial_branch"),
            run_steps=_steps_from_list(data["run_steps"]),
            undo_steps=_steps_from_list(data["undo_steps"]),
            abort_steps=_steps_from_list(data["abort_steps"]),
            wrap_options=wrap_options,
            pending_stashes=int(data.get("pending_stashes", 0)),
            unfinished=unfinished,
        )
    except (KeyError, TypeError, AttributeError) as e:
        raise ValueError(f"Malformed run state: {e}") from e
