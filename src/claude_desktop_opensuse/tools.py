"""Run external tools and turn their failures into build errors."""

import logging
import subprocess
from pathlib import Path

from .errors import BuildError

logger = logging.getLogger(__name__)


def run_tool(
    command: list[str],
    error: type[BuildError],
    *,
    cwd: Path | None = None,
    env: dict[str, str] | None = None,
    stage: str | None = None,
) -> subprocess.CompletedProcess[str]:
    """Run ``command`` and raise ``error`` if it cannot start or exits nonzero.

    Output is captured so that a failure message carries the tool's exit code
    and stderr.

    Args:
        command: Command line to execute
        error: BuildError subclass raised on failure
        cwd: Working directory for the command
        env: Full environment for the command (inherits ours when None)
        stage: Overrides the stage name reported by the error

    Returns:
        The completed process

    """
    logger.debug('Running: %s', ' '.join(command))
    try:
        result = subprocess.run(
            command,
            cwd=cwd,
            env=env,
            check=False,
            capture_output=True,
            text=True,
        )
    except OSError as e:
        msg = f'Failed to execute {command[0]}: {e}'
        raise error(msg, stage=stage) from e

    if result.returncode != 0:
        raise error(format_failure(command, result), stage=stage)

    return result


def format_failure(command: list[str], result: subprocess.CompletedProcess[str]) -> str:
    """Describe a failed command with its exit code and stderr."""
    message = [f'{command[0]} exited with code {result.returncode}: {" ".join(command)}']
    if result.stderr:
        message.append(result.stderr.strip())
    return '\n'.join(message)
