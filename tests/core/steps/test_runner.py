"""Tests for StepRunner: fresh runs and the continue / abort / skip / undo protocol.

Every invocation gets a fresh StepContext and StepRunner that share one FakeGit
and one FakeRunStateStore, the way separate CLI processes share a repository
and its state file.
"""

from dataclasses import dataclass

import pytest

from gtown.core.branches.fake import FakeBranchHierarchy
from gtown.core.git.fake import FakeGit
from gtown.core.steps.base import IrreversibleStep, Step, StepContext, StepResult
from gtown.core.steps.branch import CheckoutBranchStep, DeleteLocalBranchStep
from gtown.core.steps.errors import ProtocolError
from gtown.core.steps.merge import AbortMergeStep, MergeBranchStep, ResetToShaStep
from gtown.core.steps.remote import DeleteRemoteBranchStep
from gtown.core.steps.run_state import RunState, UnfinishedDetails
from gtown.core.steps.run_state_store import FakeRunStateStore
from gtown.core.steps.runner import RunOptions, RunOutcome, RunResult, StepRunner
from gtown.core.steps.step_list import StepList, WrapOptions
from gtown.core.time.fake import FakeTime
from tests.fakes.user_feedback import FakeUserFeedback
from tests.test_utils.builders import REPO_ROOT, feature_branch_git, make_step_context

INVOCATION_DIR = REPO_ROOT / "src"
STASH_AND_ROOT = WrapOptions(run_in_git_root=True, stash_open_changes=True)


@dataclass(frozen=True)
class FailingStep(Step):
    """Fails with a fixed message."""

    message: str
    abort_on_error: bool = False

    def run(self, ctx: StepContext) -> StepResult:
        return StepResult.failed(self.message)

    def describe(self) -> str:
        return "fail on purpose"

    def should_abort_on_error(self) -> bool:
        return self.abort_on_error


class PlanGenerator:
    """Step list generator that counts how often it was called."""

    def __init__(self, *steps: Step, wrap_options: WrapOptions | None = STASH_AND_ROOT) -> None:
        self._steps = steps
        self._wrap_options = wrap_options
        self.calls = 0

    def __call__(self) -> StepList:
        self.calls += 1
        step_list = StepList(self._steps)
        if self._wrap_options is not None:
            step_list.wrap(
                self._wrap_options, git_root=REPO_ROOT, initial_directory=INVOCATION_DIR
            )
        return step_list


def _invoke(
    git: FakeGit,
    store: FakeRunStateStore,
    options: RunOptions,
    feedback: FakeUserFeedback | None = None,
    branches: FakeBranchHierarchy | None = None,
) -> tuple[RunResult, StepContext]:
    ctx = make_step_context(git=git, branches=branches, feedback=feedback, cwd=INVOCATION_DIR)
    result = StepRunner(ctx, store, FakeTime()).run(options)
    return result, ctx


def _options(generator: PlanGenerator, **flags: bool) -> RunOptions:
    return RunOptions(command="ship", step_list_generator=generator, **flags)


def _conflicting_merge_git() -> FakeGit:
    """Feature branch with uncommitted work whose merge into main conflicts."""
    return feature_branch_git(
        open_changes=["wip.txt"],
        conflicting_merges={("main", "feature")},
    )


def _conflicting_plan() -> PlanGenerator:
    return PlanGenerator(
        CheckoutBranchStep(branch_name="main"),
        MergeBranchStep(branch_name="feature"),
        CheckoutBranchStep(branch_name="feature"),
    )


# ----------------------------------------------------------------------
# Fresh runs
# ----------------------------------------------------------------------


def test_fresh_run_executes_steps_in_order_and_keeps_undo_state() -> None:
    git = feature_branch_git()
    store = FakeRunStateStore()
    generator = PlanGenerator(
        CheckoutBranchStep(branch_name="main"),
        MergeBranchStep(branch_name="feature"),
        wrap_options=None,
    )

    result, _ = _invoke(git, store, _options(generator))

    assert result.outcome is RunOutcome.COMPLETED
    assert result.exit_code == 0
    assert git.checked_out_branches == ["main"]
    assert git.merges == [("main", "feature")]

    state = store.state
    assert state is not None
    assert not state.is_unfinished
    assert state.initial_branch == "feature"
    assert list(state.undo_steps) == [
        ResetToShaStep(sha="sha-main"),
        CheckoutBranchStep(branch_name="feature"),
    ]


def test_fresh_run_restores_stash_and_directory() -> None:
    git = feature_branch_git(open_changes=["wip.txt"])
    store = FakeRunStateStore()
    generator = PlanGenerator(
        CheckoutBranchStep(branch_name="main"),
        CheckoutBranchStep(branch_name="feature"),
    )

    result, ctx = _invoke(git, store, _options(generator))

    assert result.outcome is RunOutcome.COMPLETED
    assert git.stash_count == 1
    assert git.open_changes == ["wip.txt"]
    assert ctx.cwd == INVOCATION_DIR
    assert ctx.pending_stashes == 0


def test_fresh_run_is_refused_while_a_run_is_unfinished() -> None:
    git = _conflicting_merge_git()
    store = FakeRunStateStore()
    _invoke(git, store, _options(_conflicting_plan()))
    saved = store.state

    second = PlanGenerator(CheckoutBranchStep(branch_name="main"))
    with pytest.raises(ProtocolError, match='unfinished "ship" command'):
        _invoke(git, store, _options(second))

    assert second.calls == 0
    assert store.state is saved


def test_finished_state_is_replaced_by_next_run() -> None:
    git = feature_branch_git()
    store = FakeRunStateStore()
    _invoke(git, store, _options(PlanGenerator(CheckoutBranchStep(branch_name="main"))))

    result, _ = _invoke(
        git, store, _options(PlanGenerator(CheckoutBranchStep(branch_name="feature")))
    )

    assert result.outcome is RunOutcome.COMPLETED
    assert store.state is not None
    assert list(store.state.undo_steps) == [CheckoutBranchStep(branch_name="main")]


def test_hard_failure_releases_scope_and_persists_nothing() -> None:
    git = feature_branch_git(open_changes=["wip.txt"])
    store = FakeRunStateStore()
    generator = PlanGenerator(
        CheckoutBranchStep(branch_name="main"),
        FailingStep(message="network unreachable"),
        CheckoutBranchStep(branch_name="feature"),
    )

    result, ctx = _invoke(git, store, _options(generator))

    assert result.outcome is RunOutcome.FAILED
    assert result.exit_code == 1
    assert result.message == "network unreachable"
    assert store.state is None
    assert git.open_changes == ["wip.txt"]
    assert ctx.cwd == INVOCATION_DIR
    # Steps after the failure do not run
    assert git.checked_out_branches == ["main"]


def test_hard_failure_can_be_persisted_when_requested() -> None:
    git = feature_branch_git()
    store = FakeRunStateStore()
    generator = PlanGenerator(
        CheckoutBranchStep(branch_name="main"),
        FailingStep(message="network unreachable"),
        wrap_options=None,
    )
    options = RunOptions(command="ship", step_list_generator=generator, persist_on_failure=True)

    result, _ = _invoke(git, store, options)

    assert result.outcome is RunOutcome.AWAITING_RESOLUTION
    state = store.state
    assert state is not None
    assert state.unfinished is not None
    assert state.unfinished.suspended_step == FailingStep(message="network unreachable")
    assert state.unfinished.reason == "network unreachable"
    assert list(state.abort_steps)[1:] == [CheckoutBranchStep(branch_name="feature")]


def test_failure_of_abort_on_error_step_reverts_the_run() -> None:
    git = feature_branch_git(open_changes=["wip.txt"])
    store = FakeRunStateStore()
    generator = PlanGenerator(
        CheckoutBranchStep(branch_name="main"),
        MergeBranchStep(branch_name="feature"),
        FailingStep(message="nothing to ship", abort_on_error=True),
        CheckoutBranchStep(branch_name="feature"),
    )

    result, ctx = _invoke(git, store, _options(generator))

    assert result.outcome is RunOutcome.FAILED
    assert result.message == "nothing to ship"
    assert store.state is None
    assert git.get_current_branch(ctx.cwd) == "feature"
    assert git.branch_heads["main"] == "sha-main"
    assert git.open_changes == ["wip.txt"]
    assert ctx.cwd == INVOCATION_DIR


# ----------------------------------------------------------------------
# Conflicts and continue
# ----------------------------------------------------------------------


def test_conflict_persists_resumable_state_and_releases_scope() -> None:
    git = _conflicting_merge_git()
    store = FakeRunStateStore()
    feedback = FakeUserFeedback()

    result, ctx = _invoke(git, store, _options(_conflicting_plan()), feedback=feedback)

    assert result.outcome is RunOutcome.AWAITING_RESOLUTION
    assert result.exit_code == 1
    assert result.conflicted_files == ["feature-conflict.txt"]
    assert ctx.cwd == INVOCATION_DIR

    state = store.state
    assert state is not None
    assert state.unfinished == UnfinishedDetails(
        suspended_step=MergeBranchStep(branch_name="feature"),
        end_branch="main",
        end_time="2024-01-01T12:00:00+00:00",
        conflicted_files=["feature-conflict.txt"],
    )
    assert list(state.run_steps) == [CheckoutBranchStep(branch_name="feature")]
    assert list(state.undo_steps) == [
        ResetToShaStep(sha="sha-main"),
        CheckoutBranchStep(branch_name="feature"),
    ]
    assert list(state.abort_steps) == [
        AbortMergeStep(),
        ResetToShaStep(sha="sha-main"),
        CheckoutBranchStep(branch_name="feature"),
    ]
    assert state.wrap_options == STASH_AND_ROOT
    # The stash cannot be popped onto a conflicted tree, so it stays pending
    assert state.pending_stashes == 1
    assert git.stash_depth == 1
    assert len(feedback.messages_at("warning")) == 1


def test_continue_requires_resolved_conflicts() -> None:
    git = _conflicting_merge_git()
    store = FakeRunStateStore()
    generator = _conflicting_plan()
    _invoke(git, store, _options(generator))
    saved = store.state

    with pytest.raises(ProtocolError, match="resolve the conflicts"):
        _invoke(git, store, _options(generator, is_continue=True))

    assert store.state is saved


def test_continue_finishes_merge_and_resumes_remaining_steps() -> None:
    git = _conflicting_merge_git()
    store = FakeRunStateStore()
    generator = _conflicting_plan()
    _invoke(git, store, _options(generator))
    git.resolve_conflicts()

    result, ctx = _invoke(git, store, _options(generator, is_continue=True))

    assert result.outcome is RunOutcome.COMPLETED
    assert generator.calls == 1
    assert git.commits == [("main", None)]
    assert git.get_current_branch(ctx.cwd) == "feature"
    assert git.open_changes == ["wip.txt"]
    assert git.stash_depth == 0
    assert ctx.cwd == INVOCATION_DIR

    state = store.state
    assert state is not None
    assert not state.is_unfinished
    assert list(state.undo_steps) == [
        CheckoutBranchStep(branch_name="main"),
        ResetToShaStep(sha="sha-main"),
        CheckoutBranchStep(branch_name="feature"),
    ]


def test_undo_after_continued_run_restores_pre_run_state() -> None:
    git = _conflicting_merge_git()
    store = FakeRunStateStore()
    generator = _conflicting_plan()
    _invoke(git, store, _options(generator))
    git.resolve_conflicts()
    _invoke(git, store, _options(generator, is_continue=True))

    result, ctx = _invoke(git, store, _options(generator, is_undo=True))

    assert result.outcome is RunOutcome.UNDONE
    assert result.gaps == []
    assert store.state is None
    assert git.get_current_branch(ctx.cwd) == "feature"
    assert git.branch_heads == {"main": "sha-main", "feature": "sha-feature"}
    assert git.open_changes == ["wip.txt"]


# ----------------------------------------------------------------------
# Abort and skip
# ----------------------------------------------------------------------


def test_abort_restores_pre_run_state() -> None:
    git = _conflicting_merge_git()
    store = FakeRunStateStore()
    generator = _conflicting_plan()
    _invoke(git, store, _options(generator))

    result, ctx = _invoke(git, store, _options(generator, is_abort=True))

    assert result.outcome is RunOutcome.ABORTED
    assert result.exit_code == 0
    assert generator.calls == 1
    assert store.state is None
    assert git.aborted_merges == 1
    assert git.get_current_branch(ctx.cwd) == "feature"
    assert git.branch_heads == {"main": "sha-main", "feature": "sha-feature"}
    assert git.open_changes == ["wip.txt"]
    assert git.stash_depth == 0
    assert ctx.cwd == INVOCATION_DIR


def test_skip_reverts_suspended_step_and_resumes() -> None:
    git = _conflicting_merge_git()
    store = FakeRunStateStore()
    generator = _conflicting_plan()
    _invoke(git, store, _options(generator))
    feedback = FakeUserFeedback()
    options = RunOptions(
        command="ship",
        step_list_generator=generator,
        is_skip=True,
        can_skip=lambda: True,
        skip_message_generator=lambda: "Skipping the merge into main",
    )

    result, ctx = _invoke(git, store, options, feedback=feedback)

    assert result.outcome is RunOutcome.COMPLETED
    assert feedback.messages_at("info") == ["Skipping the merge into main"]
    assert git.aborted_merges == 1
    assert git.commits == []
    assert git.get_current_branch(ctx.cwd) == "feature"
    assert git.open_changes == ["wip.txt"]


def test_skip_is_refused_when_step_cannot_be_skipped() -> None:
    git = _conflicting_merge_git()
    store = FakeRunStateStore()
    generator = _conflicting_plan()
    _invoke(git, store, _options(generator))
    saved = store.state

    with pytest.raises(ProtocolError, match="cannot be skipped"):
        _invoke(git, store, _options(generator, is_skip=True))

    assert store.state is saved


# ----------------------------------------------------------------------
# Undo
# ----------------------------------------------------------------------


def test_undo_round_trip_restores_branch_and_head() -> None:
    git = feature_branch_git()
    store = FakeRunStateStore()
    generator = PlanGenerator(
        CheckoutBranchStep(branch_name="main"),
        MergeBranchStep(branch_name="feature"),
    )
    _invoke(git, store, _options(generator))
    assert git.branch_heads["main"] != "sha-main"

    result, ctx = _invoke(git, store, _options(generator, is_undo=True))

    assert result.outcome is RunOutcome.UNDONE
    assert result.exit_code == 0
    assert git.get_current_branch(ctx.cwd) == "feature"
    assert git.branch_heads["main"] == "sha-main"
    assert git.has_tracking_branch(ctx.cwd, "feature")
    assert store.state is None


def test_undo_reports_irreversible_steps_as_gaps() -> None:
    git = feature_branch_git()
    store = FakeRunStateStore()
    generator = PlanGenerator(
        CheckoutBranchStep(branch_name="main"),
        DeleteRemoteBranchStep(branch_name="feature", is_tracking=True),
    )
    _invoke(git, store, _options(generator))

    result, ctx = _invoke(git, store, _options(generator, is_undo=True))

    assert result.outcome is RunOutcome.UNDONE
    assert result.exit_code == 0
    assert result.gaps == ["cannot restore remote branch 'feature'"]
    assert git.get_current_branch(ctx.cwd) == "feature"


def test_undo_halts_at_hard_failure_and_reports_remaining_steps() -> None:
    git = feature_branch_git(current_branch="main")
    store = FakeRunStateStore(
        RunState(
            command="ship",
            initial_branch="main",
            run_steps=StepList(),
            undo_steps=StepList(
                [
                    IrreversibleStep(description="restore deleted branch 'old'"),
                    CheckoutBranchStep(branch_name="old"),
                    ResetToShaStep(sha="sha-feature"),
                ]
            ),
            abort_steps=StepList(),
        )
    )

    result, ctx = _invoke(git, store, _options(PlanGenerator(), is_undo=True))

    assert result.outcome is RunOutcome.FAILED
    assert result.exit_code == 1
    assert result.message is not None
    assert result.message.startswith("Could not checkout old:")
    assert result.gaps == ["cannot restore deleted branch 'old'"]
    assert result.unexecuted == ["reset to sha-feature"]
    assert git.resets == []
    assert ctx.cwd == INVOCATION_DIR
    assert store.state is None


def test_undo_of_deleted_branch_fails_at_checkout() -> None:
    git = feature_branch_git()
    store = FakeRunStateStore()
    generator = PlanGenerator(
        CheckoutBranchStep(branch_name="main"),
        DeleteLocalBranchStep(branch_name="feature", force=True),
    )
    _invoke(git, store, _options(generator))

    result, _ = _invoke(git, store, _options(generator, is_undo=True))

    assert result.outcome is RunOutcome.FAILED
    assert result.gaps == ["cannot restore deleted branch 'feature'"]


def test_undo_of_unfinished_run_is_refused() -> None:
    git = _conflicting_merge_git()
    store = FakeRunStateStore()
    generator = _conflicting_plan()
    _invoke(git, store, _options(generator))

    with pytest.raises(ProtocolError, match="still unfinished"):
        _invoke(git, store, _options(generator, is_undo=True))


# ----------------------------------------------------------------------
# Protocol errors
# ----------------------------------------------------------------------


@pytest.mark.parametrize(
    ("flags", "action"),
    [
        ({"is_continue": True}, "continue"),
        ({"is_abort": True}, "abort"),
        ({"is_skip": True}, "skip"),
        ({"is_undo": True}, "undo"),
    ],
)
def test_control_modes_without_state_are_rejected(flags: dict[str, bool], action: str) -> None:
    git = feature_branch_git()
    store = FakeRunStateStore()
    generator = PlanGenerator(CheckoutBranchStep(branch_name="main"))

    with pytest.raises(ProtocolError, match=f"Nothing to {action}"):
        _invoke(git, store, _options(generator, **flags))

    assert generator.calls == 0
    assert git.checked_out_branches == []
    assert store.save_count == 0
    assert store.clear_count == 0


def test_continue_of_finished_run_is_rejected() -> None:
    git = feature_branch_git()
    store = FakeRunStateStore()
    generator = PlanGenerator(CheckoutBranchStep(branch_name="main"))
    _invoke(git, store, _options(generator))

    with pytest.raises(ProtocolError, match="finished successfully"):
        _invoke(git, store, _options(generator, is_continue=True))


def test_state_of_another_command_is_not_resumed() -> None:
    git = _conflicting_merge_git()
    store = FakeRunStateStore()
    _invoke(git, store, _options(_conflicting_plan()))
    sync_options = RunOptions(
        command="sync", step_list_generator=PlanGenerator(), is_continue=True
    )

    with pytest.raises(ProtocolError, match='belongs to "ship"'):
        _invoke(git, store, sync_options)


def test_conflicting_control_flags_are_rejected() -> None:
    store = FakeRunStateStore()

    with pytest.raises(ProtocolError, match="Only one of"):
        _invoke(
            feature_branch_git(),
            store,
            _options(PlanGenerator(), is_abort=True, is_continue=True),
        )
