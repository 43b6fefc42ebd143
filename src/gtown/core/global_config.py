"""Global configuration data structures and loading.

Provides immutable global config data loaded from ~/.gtown/config.toml.
Loaded eagerly at the CLI entry point and stored in GtownContext.
"""

import os
import tomllib
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

import tomlkit


def default_state_root() -> Path:
    return Path.home() / ".gtown"


@dataclass(frozen=True)
class GlobalConfig:
    """Immutable global configuration data.

    Attributes:
        state_root: Directory holding persisted run state for all repositories
        offline: When true, commands skip every operation that talks to a remote
    """

    state_root: Path
    offline: bool = False

    @staticmethod
    def defaults() -> "GlobalConfig":
        return GlobalConfig(state_root=default_state_root(), offline=False)


class GlobalConfigOps(ABC):
    """Abstract interface for global config operations.

    Provides dependency injection for global config access, enabling
    in-memory implementations for tests without touching filesystem.
    """

    @abstractmethod
    def exists(self) -> bool:
        """Check if global config exists."""
        ...

    @abstractmethod
    def load(self) -> GlobalConfig:
        """Load global config.

        Returns:
            GlobalConfig instance with loaded values. Missing keys fall back
            to their defaults.

        Raises:
            FileNotFoundError: If config doesn't exist
            ValueError: If config is malformed
        """
        ...

    @abstractmethod
    def save(self, config: GlobalConfig) -> None:
        """Save global config."""
        ...

    @abstractmethod
    def path(self) -> Path:
        """Get the path to the global config file (for messages and debugging)."""
        ...


def load_or_default(ops: GlobalConfigOps) -> GlobalConfig:
    """Load the global config, or return the defaults when none exists yet."""
    if not ops.exists():
        return GlobalConfig.defaults()
    return ops.load()


class FilesystemGlobalConfigOps(GlobalConfigOps):
    """Production implementation that reads/writes ~/.gtown/config.toml."""

    def exists(self) -> bool:
        return self.path().exists()

    def load(self) -> GlobalConfig:
        config_path = self.path()

        if not config_path.exists():
            raise FileNotFoundError(f"Global config not found at {config_path}")

        try:
            data = tomllib.loads(config_path.read_text(encoding="utf-8"))
        except tomllib.TOMLDecodeError as e:
            raise ValueError(f"Malformed config file {config_path}: {e}") from e

        root = data.get("state_root")
        state_root = Path(root).expanduser() if root else default_state_root()
        offline = data.get("offline", False)
        if not isinstance(offline, bool):
            raise ValueError(f"'offline' must be true or false in {config_path}")

        return GlobalConfig(state_root=state_root, offline=offline)

    def save(self, config: GlobalConfig) -> None:
        """Save global config to ~/.gtown/config.toml.

        Existing comments and unknown keys in the file are preserved.

        Raises:
            PermissionError: If directory or file cannot be written
        """
        config_path = self.path()
        parent = config_path.parent

        if parent.exists() and not os.access(parent, os.W_OK):
            raise PermissionError(
                f"Cannot write to directory: {parent}\n"
                f"The directory exists but is not writable."
            )
        parent.mkdir(parents=True, exist_ok=True)

        if config_path.exists():
            doc = tomlkit.parse(config_path.read_text(encoding="utf-8"))
        else:
            doc = tomlkit.document()
            doc.add(tomlkit.comment("Global gtown configuration"))

        doc["state_root"] = str(config.state_root)
        doc["offline"] = config.offline

        config_path.write_text(tomlkit.dumps(doc), encoding="utf-8")

    def path(self) -> Path:
        return Path.home() / ".gtown" / "config.toml"


class InMemoryGlobalConfigOps(GlobalConfigOps):
    """Test implementation that stores config in memory without touching filesystem."""

    def __init__(self, config: GlobalConfig | None = None) -> None:
        """Initialize in-memory config ops.

        Args:
            config: Initial config state (None = config doesn't exist)
        """
        self._config = config

    def exists(self) -> bool:
        return self._config is not None

    def load(self) -> GlobalConfig:
        if self._config is None:
            raise FileNotFoundError(f"Global config not found at {self.path()}")
        return self._config

    def save(self, config: GlobalConfig) -> None:
        self._config = config

    def path(self) -> Path:
        return Path("/fake/.gtown/config.toml")
