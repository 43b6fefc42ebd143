"""Executes step lists and drives the continue / abort / skip / undo protocol.

A fresh run executes the generated step list and, for every step, records
the step's undo step before running it. The outcome of the run decides what
is persisted:

- all steps completed: a finished RunState, kept so the run can be undone
- a step conflicted: an unfinished RunState the user resolves with continue,
  skip or abort
- a step failed hard: nothing (unless the command opts into persisting), or,
  for steps that abort automatically, the run is reverted on the spot

Whenever a run stops early, the scope release steps still pending (restore
stash, restore directory) run immediately.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from gtown.core.steps.base import (
    IrreversibleStep,
    NoOpStep,
    Step,
    StepContext,
    StepOutcome,
    StepResult,
)
from gtown.core.steps.errors import ProtocolError
from gtown.core.steps.run_state import RunState, UnfinishedDetails
from gtown.core.steps.run_state_store import RunStateStore
from gtown.core.steps.step_list import StepList, WrapOptions
from gtown.core.time.abc import Time

logger = logging.getLogger(__name__)

RESTORE_WRAP = WrapOptions(run_in_git_root=True, stash_open_changes=True)


def _cannot_skip() -> bool:
    return False


def _no_skip_message() -> str:
    return ""


@dataclass(frozen=True)
class RunOptions:
    """What a command asks the runner to do.

    Attributes:
        command: Command name; a persisted state only serves the same command
        is_abort: Revert the suspended run
        is_continue: Resume the suspended run after the user resolved conflicts
        is_skip: Revert the suspended step and resume after it
        is_undo: Revert the last completed run
        step_list_generator: Builds the step list of a fresh run. Only called
            for fresh runs, after the protocol checks passed.
        can_skip: Whether the suspended step may be skipped
        skip_message_generator: Text shown when a step is skipped
        persist_on_failure: Keep an unfinished state after a hard failure so the
            run can be continued (re-running the failed step) or aborted
    """

    command: str
    step_list_generator: Callable[[], StepList]
    is_abort: bool = False
    is_continue: bool = False
    is_skip: bool = False
    is_undo: bool = False
    can_skip: Callable[[], bool] = _cannot_skip
    skip_message_generator: Callable[[], str] = _no_skip_message
    persist_on_failure: bool = False


class RunOutcome(Enum):
    COMPLETED = "completed"
    AWAITING_RESOLUTION = "awaiting_resolution"
    FAILED = "failed"
    ABORTED = "aborted"
    UNDONE = "undone"


@dataclass(frozen=True)
class RunResult:
    """How a runner invocation ended.

    Attributes:
        outcome: Final state of the invocation
        message: Failure reason, when there is one
        conflicted_files: Files to resolve (AWAITING_RESOLUTION)
        gaps: Restoration steps that could not be applied (irreversible or
            conflicting); the repository is only partially restored
        unexecuted: Restoration steps skipped after a restoration failure
    """

    outcome: RunOutcome
    message: str | None = None
    conflicted_files: list[str] = field(default_factory=list)
    gaps: list[str] = field(default_factory=list)
    unexecuted: list[str] = field(default_factory=list)

    @property
    def exit_code(self) -> int:
        if self.outcome in (RunOutcome.COMPLETED, RunOutcome.ABORTED, RunOutcome.UNDONE):
            return 0
        return 1


@dataclass(frozen=True)
class _Restoration:
    gaps: list[str]
    failure: str | None
    unexecuted: list[str]


@dataclass
class _Execution:
    command: str
    initial_branch: str | None
    run_steps: StepList
    undo_steps: StepList
    wrap_options: WrapOptions | None


class StepRunner:
    """Runs a command's steps against one repository."""

    def __init__(self, ctx: StepContext, store: RunStateStore, time: Time) -> None:
        self._ctx = ctx
        self._store = store
        self._time = time

    def run(self, options: RunOptions) -> RunResult:
        """Dispatch on the requested mode.

        Raises:
            ProtocolError: If the request does not fit the persisted state.
                Nothing has been changed when this is raised.
        """
        self._validate_flags(options)
        existing = self._store.load()

        if options.is_abort:
            return self._abort(self._require_unfinished(existing, options, "abort"))
        if options.is_skip:
            return self._skip(self._require_unfinished(existing, options, "skip"), options)
        if options.is_continue:
            return self._continue(self._require_unfinished(existing, options, "continue"), options)
        if options.is_undo:
            return self._undo(self._require_finished(existing, options))
        return self._fresh(existing, options)

    # ------------------------------------------------------------------
    # Protocol checks
    # ------------------------------------------------------------------

    def _validate_flags(self, options: RunOptions) -> None:
        modes = [options.is_abort, options.is_continue or options.is_skip, options.is_undo]
        if sum(modes) > 1:
            raise ProtocolError("Only one of --abort, --continue/--skip and --undo can be given")

    def _require_state(
        self, existing: RunState | None, options: RunOptions, action: str
    ) -> RunState:
        if existing is None:
            raise ProtocolError(f'Nothing to {action}: there is no pending "{options.command}" run')
        if existing.command != options.command:
            raise ProtocolError(
                f'The pending run belongs to "{existing.command}", '
                f'not "{options.command}". Use "{existing.command} --{action}" instead.'
            )
        return existing

    def _require_unfinished(
        self, existing: RunState | None, options: RunOptions, action: str
    ) -> RunState:
        state = self._require_state(existing, options, action)
        if not state.is_unfinished:
            raise ProtocolError(
                f'Nothing to {action}: the last "{options.command}" run finished successfully'
            )
        return state

    def _require_finished(self, existing: RunState | None, options: RunOptions) -> RunState:
        state = self._require_state(existing, options, "undo")
        if state.is_unfinished:
            raise ProtocolError(
                f'The "{options.command}" run is still unfinished. '
                "Finish it with --continue or revert it with --abort."
            )
        return state

    def _ensure_conflicts_resolved(self) -> None:
        if self._ctx.git.get_conflicted_files(self._ctx.cwd):
            raise ProtocolError("You must resolve the conflicts before continuing")

    # ------------------------------------------------------------------
    # Modes
    # ------------------------------------------------------------------

    def _fresh(self, existing: RunState | None, options: RunOptions) -> RunResult:
        if existing is not None and existing.is_unfinished:
            raise ProtocolError(
                f'You have an unfinished "{existing.command}" command. '
                f'Run "{existing.command} --continue" or "{existing.command} --abort" first.'
            )

        initial_branch = self._ctx.git.get_current_branch(self._ctx.cwd)
        step_list = options.step_list_generator()
        if existing is not None:
            self._store.clear()

        logger.debug("Starting %s with %d steps", options.command, len(step_list))
        execution = _Execution(
            command=options.command,
            initial_branch=initial_branch,
            run_steps=step_list,
            undo_steps=StepList(),
            wrap_options=step_list.wrap_options,
        )
        return self._execute(execution, options)

    def _continue(self, state: RunState, options: RunOptions) -> RunResult:
        self._ensure_conflicts_resolved()
        assert state.unfinished is not None
        self._store.clear()
        self._ctx.pending_stashes = state.pending_stashes

        head = state.unfinished.suspended_step.create_continue_step()
        logger.debug("Continuing %s with %s", state.command, head.describe())
        execution = _Execution(
            command=state.command,
            initial_branch=state.initial_branch,
            run_steps=self._resume_list(head, state.run_steps, state.wrap_options),
            undo_steps=StepList(state.undo_steps),
            wrap_options=state.wrap_options,
        )
        return self._execute(execution, options)

    def _skip(self, state: RunState, options: RunOptions) -> RunResult:
        if not options.can_skip():
            raise ProtocolError(f'The current step of "{state.command}" cannot be skipped')
        assert state.unfinished is not None
        self._store.clear()
        self._ctx.pending_stashes = state.pending_stashes

        skip_message = options.skip_message_generator()
        if skip_message:
            self._ctx.feedback.info(skip_message)

        head = state.unfinished.suspended_step.create_abort_step()
        logger.debug("Skipping %s", state.unfinished.suspended_step.describe())
        execution = _Execution(
            command=state.command,
            initial_branch=state.initial_branch,
            run_steps=self._resume_list(head, state.run_steps, state.wrap_options),
            undo_steps=StepList(state.undo_steps),
            wrap_options=state.wrap_options,
        )
        return self._execute(execution, options)

    def _abort(self, state: RunState) -> RunResult:
        self._store.clear()
        self._ctx.pending_stashes = state.pending_stashes

        abort_steps = StepList(state.abort_steps)
        head = abort_steps.pop()
        if head is None:
            return RunResult(outcome=RunOutcome.ABORTED)
        restoration = self._restore(self._resume_list(head, abort_steps, RESTORE_WRAP))
        return self._restoration_result(RunOutcome.ABORTED, restoration)

    def _undo(self, state: RunState) -> RunResult:
        self._store.clear()
        steps = StepList(state.undo_steps)
        steps.wrap(RESTORE_WRAP, git_root=self._ctx.repo_root, initial_directory=self._ctx.cwd)
        restoration = self._restore(steps)
        return self._restoration_result(RunOutcome.UNDONE, restoration)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _resume_list(
        self, head: Step, rest: StepList, wrap_options: WrapOptions | None
    ) -> StepList:
        """[head] + rest, with rest re-wrapped in wrap_options.

        The head runs before the stash is taken again, so a resolved merge is
        committed rather than stashed.
        """
        body = StepList(rest)
        if wrap_options is not None:
            body.wrap(wrap_options, git_root=self._ctx.repo_root, initial_directory=self._ctx.cwd)
        steps = StepList([head])
        steps.append_list(body)
        return steps

    def _execute(self, execution: _Execution, options: RunOptions) -> RunResult:
        while True:
            step = execution.run_steps.pop()
            if step is None:
                break

            undo_step = step.create_undo_step(self._ctx)
            if not isinstance(undo_step, NoOpStep):
                execution.undo_steps.prepend(undo_step)

            result = step.run(self._ctx)
            logger.debug("%s -> %s", step.describe(), result.outcome.value)

            if result.outcome is StepOutcome.CONFLICT:
                return self._suspend(execution, step, result)
            if result.outcome is StepOutcome.FAILED:
                if step.should_abort_on_error():
                    return self._abort_automatically(execution, step, result)
                if options.persist_on_failure:
                    return self._suspend(execution, step, result)
                return self._fail(execution, result)

        self._store.save(
            RunState(
                command=execution.command,
                initial_branch=execution.initial_branch,
                run_steps=StepList(),
                undo_steps=execution.undo_steps,
                abort_steps=StepList(),
                wrap_options=execution.wrap_options,
            )
        )
        logger.debug("%s completed", execution.command)
        return RunResult(outcome=RunOutcome.COMPLETED)

    def _suspended_state(self, execution: _Execution, step: Step, result: StepResult) -> RunState:
        abort_steps = StepList([step.create_abort_step()])
        abort_steps.append_list(execution.undo_steps)
        is_conflict = result.outcome is StepOutcome.CONFLICT
        return RunState(
            command=execution.command,
            initial_branch=execution.initial_branch,
            run_steps=StepList(s for s in execution.run_steps if not s.releases_scope),
            undo_steps=StepList(execution.undo_steps),
            abort_steps=abort_steps,
            wrap_options=execution.wrap_options,
            pending_stashes=self._ctx.pending_stashes,
            unfinished=UnfinishedDetails(
                suspended_step=step,
                end_branch=self._ctx.git.get_current_branch(self._ctx.cwd),
                end_time=self._time.now().isoformat(),
                conflicted_files=list(result.conflicted_files),
                reason=None if is_conflict else result.message,
            ),
        )

    def _suspend(self, execution: _Execution, step: Step, result: StepResult) -> RunResult:
        # Persist first so a crash while releasing the scope loses nothing
        state = self._suspended_state(execution, step, result)
        self._store.save(state)
        self._release_scope(execution.run_steps)
        if self._ctx.pending_stashes != state.pending_stashes:
            self._store.save(self._suspended_state(execution, step, result))

        logger.debug("%s suspended at %s", execution.command, step.describe())
        return RunResult(
            outcome=RunOutcome.AWAITING_RESOLUTION,
            message=result.message,
            conflicted_files=list(result.conflicted_files),
        )

    def _fail(self, execution: _Execution, result: StepResult) -> RunResult:
        self._release_scope(execution.run_steps)
        return RunResult(outcome=RunOutcome.FAILED, message=result.message)

    def _abort_automatically(
        self, execution: _Execution, step: Step, result: StepResult
    ) -> RunResult:
        logger.debug("%s failed, aborting automatically", step.describe())
        abort_steps = StepList([step.create_abort_step()])
        abort_steps.append_list(execution.undo_steps)
        restoration = self._restore(abort_steps)
        self._release_scope(execution.run_steps)
        return RunResult(
            outcome=RunOutcome.FAILED,
            message=result.message if restoration.failure is None else restoration.failure,
            gaps=restoration.gaps,
            unexecuted=restoration.unexecuted,
        )

    def _release_scope(self, remaining: StepList) -> None:
        """Run the release steps among remaining, best effort."""
        for step in remaining:
            if not step.releases_scope:
                continue
            result = step.run(self._ctx)
            logger.debug("release %s -> %s", step.describe(), result.outcome.value)
            if not result.is_completed:
                self._ctx.feedback.warning(f"Could not {step.describe()}: {result.message}")

    def _restore(self, steps: StepList) -> _Restoration:
        """Run restoration steps.

        Irreversible steps and conflicts are recorded as gaps and the
        restoration goes on. A hard failure stops it, because the remaining
        steps assume the failed one took effect.
        """
        gaps: list[str] = []
        while True:
            step = steps.pop()
            if step is None:
                return _Restoration(gaps=gaps, failure=None, unexecuted=[])
            if isinstance(step, IrreversibleStep):
                gaps.append(f"cannot {step.description}")
                continue

            result = step.run(self._ctx)
            logger.debug("restore %s -> %s", step.describe(), result.outcome.value)
            if result.outcome is StepOutcome.CONFLICT:
                files = ", ".join(result.conflicted_files)
                gaps.append(f"{step.describe()} ran into conflicts in {files}")
                continue
            if result.outcome is StepOutcome.FAILED:
                failure = f"Could not {step.describe()}: {result.message}"
                # Scope release steps are still needed, the rest no longer apply
                unexecuted = [s.describe() for s in steps if not s.releases_scope]
                self._release_scope(steps)
                return _Restoration(gaps=gaps, failure=failure, unexecuted=unexecuted)

    def _restoration_result(self, outcome: RunOutcome, restoration: _Restoration) -> RunResult:
        if restoration.failure is not None:
            return RunResult(
                outcome=RunOutcome.FAILED,
                message=restoration.failure,
                gaps=restoration.gaps,
                unexecuted=restoration.unexecuted,
            )
        return RunResult(outcome=outcome, gaps=restoration.gaps)
