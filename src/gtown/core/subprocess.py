"""Run git and report failures with the operation that was attempted."""

import logging
import subprocess
from collections.abc import Sequence
from pathlib import Path

logger = logging.getLogger(__name__)


def _failure_details(cmd: Sequence[str], error: subprocess.CalledProcessError) -> str:
    lines = [f"Command: {' '.join(cmd)}", f"Exit code: {error.returncode}"]
    for stream, output in (("stdout", error.stdout), ("stderr", error.stderr)):
        if output and output.strip():
            lines.append(f"{stream}: {output.strip()}")
    return "\n".join(lines)


def run_subprocess_with_context(
    cmd: Sequence[str],
    operation_context: str,
    cwd: Path | None = None,
) -> subprocess.CompletedProcess[str]:
    """Run cmd, capturing text output, and fail with a readable RuntimeError.

    Args:
        cmd: Command and arguments to execute
        operation_context: What the command does, used as "Failed to {operation_context}"
        cwd: Working directory for the command

    Raises:
        RuntimeError: If the command exits non-zero or its binary is missing
    """
    logger.debug("Running %s in %s", " ".join(cmd), cwd)
    try:
        return subprocess.run(
            cmd, cwd=cwd, capture_output=True, text=True, encoding="utf-8", check=True
        )
    except subprocess.CalledProcessError as e:
        message = f"Failed to {operation_context}\n{_failure_details(cmd, e)}"
        raise RuntimeError(message) from e
    except FileNotFoundError as e:
        raise RuntimeError(
            f"Command not found while trying to {operation_context}: {cmd[0]}"
        ) from e
