"""
Shared subprocess utilities for media probing
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, List, Optional

logger = logging.getLogger(__name__)


class SubprocessError(Exception):
    """
    Custom exception for subprocess errors.

    This exception is raised when a subprocess command fails to execute properly.
    It provides a descriptive error message about the failure.
    """

    def __init__(self, message, command=None, returncode=None, stderr=None):
        """
        Initialize the exception with error details.

        Args:
            message: Primary error message
            command: Optional command that was executed (list or str)
            returncode: Optional exit code from the process
            stderr: Optional error output from the process
        """
        self.message = message
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(self.message)

    def __str__(self):
        """Format the error message with available details."""
        parts = [self.message]
        if self.command:
            cmd_str = (
                " ".join(str(c) for c in self.command)
                if isinstance(self.command, list)
                else self.command
            )
            parts.append(f"Command: {cmd_str}")
        if self.returncode is not None:
            parts.append(f"Exit code: {self.returncode}")
        if self.stderr:
            stderr = str(self.stderr)
            if len(stderr) > 500:  # Limit stderr length
                stderr = stderr[:500] + "... [truncated]"
            parts.append(f"Error output: {stderr}")

        return "\n".join(parts)


@dataclass(frozen=True)
class SubprocessResult:
    command: List[str]
    returncode: int
    stdout: str
    stderr: str


async def run_subprocess(
    cmd: List[str],
    operation_name: str = "FFprobe operation",
    custom_logger: Optional[Any] = None,
) -> SubprocessResult:
    """
    Run a subprocess without blocking the event loop.

    The child process is killed if the awaiting task is cancelled, so a
    timed-out probe never outlives its caller.

    Args:
        cmd: Command to run as list of strings
        operation_name: Descriptive name for the operation (for logging)
        custom_logger: Optional logger to use instead of default

    Returns:
        SubprocessResult with decoded stdout/stderr

    Raises:
        SubprocessError: If the process exits non-zero or the binary is missing
    """
    active_logger = custom_logger or logger
    active_logger.debug("Running %s: %s", operation_name, " ".join(str(x) for x in cmd))

    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as e:
        error_msg = (
            f"{operation_name} failed: {cmd[0]} not found. "
            "Please ensure FFmpeg is installed and in PATH."
        )
        active_logger.error(error_msg)
        raise SubprocessError(error_msg, cmd) from e
    except (OSError, PermissionError) as e:
        error_msg = f"{operation_name} failed with OS/Permission error: {e}"
        active_logger.error(error_msg)
        raise SubprocessError(error_msg, cmd) from e

    try:
        stdout, stderr = await proc.communicate()
    except asyncio.CancelledError:
        if proc.returncode is None:
            proc.kill()
            await proc.wait()
        active_logger.debug("%s cancelled; process killed", operation_name)
        raise

    out = stdout.decode("utf-8", errors="replace")
    err = stderr.decode("utf-8", errors="replace")
    if proc.returncode != 0:
        error_msg = f"{operation_name} failed with return code {proc.returncode}"
        if err:
            error_msg += f"\nstderr: {err.strip()}"
        active_logger.debug(error_msg)
        raise SubprocessError(error_msg, cmd, proc.returncode, err)
    return SubprocessResult(command=list(cmd), returncode=proc.returncode, stdout=out, stderr=err)
