"""Storage for the RunState of a repository.

There is at most one RunState per repository. Saving replaces it.
"""

import json
import logging
import re
from abc import ABC, abstractmethod
from pathlib import Path

from gtown.core.steps.run_state import RunState, run_state_from_dict, run_state_to_dict

logger = logging.getLogger(__name__)

RUN_STATE_FILENAME = "run-state.json"


def run_state_dir(state_root: Path, repo_root: Path) -> Path:
    """Per-repository state directory: <state_root>/repos/<sanitized repo path>."""
    sanitized = re.sub(r"[^A-Za-z0-9._-]+", "-", str(repo_root)).strip("-")
    return state_root / "repos" / (sanitized or "root")


class RunStateStore(ABC):
    """Load, save and clear the persisted RunState."""

    @abstractmethod
    def load(self) -> RunState | None:
        """Load the persisted state.

        Returns:
            The state, or None when nothing is persisted

        Raises:
            ValueError: If the persisted state cannot be decoded
        """

    @abstractmethod
    def save(self, state: RunState) -> None:
        """Persist state, replacing any previous one."""

    @abstractmethod
    def clear(self) -> None:
        """Remove the persisted state. A no-op when nothing is persisted."""

    @abstractmethod
    def location(self) -> str:
        """Where the state lives, for messages."""


class RealRunStateStore(RunStateStore):
    """JSON file storage.

    Writes go to a temporary sibling that is then moved over the real file,
    so a crash mid-write never leaves a truncated state behind.
    """

    def __init__(self, state_dir: Path) -> None:
        self._path = state_dir / RUN_STATE_FILENAME

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> RunState | None:
        if not self._path.exists():
            return None

        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            if not isinstance(data, dict):
                raise ValueError("expected a JSON object")
            state = run_state_from_dict(data)
        except (json.JSONDecodeError, ValueError) as e:
            raise ValueError(f"Corrupt run state at {self._path}: {e}") from e

        logger.debug("Loaded %s run state from %s", state.command, self._path)
        return state

    def save(self, state: RunState) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        temp_file = self._path.with_suffix(".tmp")
        temp_file.write_text(json.dumps(run_state_to_dict(state), indent=2), encoding="utf-8")
        temp_file.replace(self._path)
        logger.debug("Saved %s run state to %s", state.command, self._path)

    def clear(self) -> None:
        if self._path.exists():
            self._path.unlink()
            logger.debug("Cleared run state at %s", self._path)

    def location(self) -> str:
        return str(self._path)


class FakeRunStateStore(RunStateStore):
    """In-memory storage for tests. Keeps the RunState object as-is."""

    def __init__(self, state: RunState | None = None) -> None:
        self._state = state
        self._save_count = 0
        self._clear_count = 0

    def load(self) -> RunState | None:
        return self._state

    def save(self, state: RunState) -> None:
        self._state = state
        self._save_count += 1

    def clear(self) -> None:
        self._state = None
        self._clear_count += 1

    def location(self) -> str:
        return "<memory>"

    @property
    def state(self) -> RunState | None:
        return self._state

    @property
    def save_count(self) -> int:
        return self._save_count

    @property
    def clear_count(self) -> int:
        return self._clear_count
