"""Ordered sequences of steps."""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path

from gtown.core.steps.base import Step
from gtown.core.steps.scope import (
    ChangeDirectoryStep,
    RestoreDirectoryStep,
    RestoreOpenChangesStep,
    StashOpenChangesStep,
)


@dataclass(frozen=True)
class WrapOptions:
    """Which scope a command's step list needs.

    Attributes:
        run_in_git_root: Run every step from the repository root and return to
            the invocation directory afterwards
        stash_open_changes: Stash uncommitted changes first and restore them last
    """

    run_in_git_root: bool
    stash_open_changes: bool


class StepList:
    """Ordered list of steps, consumed from the front."""

    def __init__(self, steps: Iterable[Step] = ()) -> None:
        self._steps: list[Step] = list(steps)
        self._wrap_options: WrapOptions | None = None

    @property
    def steps(self) -> tuple[Step, ...]:
        return tuple(self._steps)

    @property
    def wrap_options(self) -> WrapOptions | None:
        """Options of the wrap() call applied to this list, if any."""
        return self._wrap_options

    def append(self, step: Step) -> None:
        self._steps.append(step)

    def prepend(self, step: Step) -> None:
        self._steps.insert(0, step)

    def append_list(self, other: "StepList") -> None:
        self._steps.extend(other.steps)

    def pop(self) -> Step | None:
        """Remove and return the first step, or None when the list is empty."""
        if not self._steps:
            return None
        return self._steps.pop(0)

    def peek(self) -> Step | None:
        if not self._steps:
            return None
        return self._steps[0]

    def is_empty(self) -> bool:
        return not self._steps

    def wrap(self, options: WrapOptions, *, git_root: Path, initial_directory: Path) -> None:
        """Bracket the list with scope acquisition and release steps.

        Head: change to the repository root, then stash open changes.
        Tail: restore the stash, then return to the initial directory.

        Raises:
            RuntimeError: If the list was already wrapped
        """
        if self._wrap_options is not None:
            raise RuntimeError("StepList.wrap() must only be called once per step list")
        self._wrap_options = options

        if options.stash_open_changes:
            self.prepend(StashOpenChangesStep())
            self.append(RestoreOpenChangesStep())
        if options.run_in_git_root:
            self.prepend(ChangeDirectoryStep(directory=str(git_root)))
            self.append(RestoreDirectoryStep(directory=str(initial_directory)))

    def __len__(self) -> int:
        return len(self._steps)

    def __iter__(self) -> Iterator[Step]:
        return iter(list(self._steps))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, StepList):
            return NotImplemented
        return self._steps == other._steps

    def __repr__(self) -> str:
        return f"StepList({self._steps!r})"
