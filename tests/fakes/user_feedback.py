"""Fake UserFeedback implementation for testing."""

from gtown.core.user_feedback import UserFeedback


class FakeUserFeedback(UserFeedback):
    """Captures every message instead of printing it.

    Messages are stored with their level prefix ("INFO: ...", "WARNING: ...")
    so tests can assert on ordering across levels.
    """

    def __init__(self) -> None:
        self._messages: list[str] = []

    def info(self, message: str) -> None:
        self._messages.append(f"INFO: {message}")

    def success(self, message: str) -> None:
        self._messages.append(f"SUCCESS: {message}")

    def warning(self, message: str) -> None:
        self._messages.append(f"WARNING: {message}")

    def error(self, message: str) -> None:
        self._messages.append(f"ERROR: {message}")

    @property
    def messages(self) -> list[str]:
        return list(self._messages)

    def messages_at(self, level: str) -> list[str]:
        """Messages of one level, without the prefix."""
        prefix = f"{level.upper()}: "
        return [m.removeprefix(prefix) for m in self._messages if m.startswith(prefix)]
