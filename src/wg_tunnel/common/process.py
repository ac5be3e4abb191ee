"""Execution of external helper commands."""

import subprocess
from collections.abc import Sequence

from pydantic import BaseModel, ConfigDict

from .exceptions import (
    ExecutionFailedError,
    PermissionDeniedError,
    TimedOutError,
    ToolNotInstalledError,
)
from .logging import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 30.0


class ProcessResult(BaseModel):
    """Captured outcome of a finished command."""

    model_config = ConfigDict(frozen=True)

    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        """True if the command exited with status 0."""
        return self.exit_code == 0


class ProcessExecutor:
    """Runs an executable to completion with a hard timeout.

    Arguments are passed as an argv list, never through a shell. Key material
    must only ever travel inside config files, never as an argument, since
    arguments are visible in process listings.
    """

    def __init__(self, default_timeout: float = DEFAULT_TIMEOUT):
        """Initialize ProcessExecutor.

        Args:
            default_timeout: Timeout in seconds used when run() gets none

        Raises:
            ValueError: If timeout is not positive
        """
        if default_timeout <= 0:
            raise ValueError("Timeout must be positive")
        self.default_timeout = default_timeout

    def run(
        self,
        executable: str,
        args: Sequence[str] = (),
        timeout: float | None = None,
    ) -> ProcessResult:
        """Run a command and capture its exit code and output.

        Args:
            executable: Path or name of the executable
            args: Arguments passed after the executable
            timeout: Seconds before the process is killed

        Returns:
            ProcessResult with exit code, stdout and stderr

        Raises:
            ToolNotInstalledError: If the executable does not exist
            PermissionDeniedError: If the executable may not be run
            TimedOutError: If the command did not finish in time
            ExecutionFailedError: For any other OS level failure
        """
        timeout = self.default_timeout if timeout is None else timeout
        argv = [executable, *args]
        logger.debug("Running command", argv=argv, timeout=timeout)

        try:
            # subprocess.run kills the child when the timeout expires
            completed = subprocess.run(
                argv,
                capture_output=True,
                text=True,
                timeout=timeout,
                check=False,
                stdin=subprocess.DEVNULL,
            )
        except subprocess.TimeoutExpired as e:
            logger.warning("Command timed out", executable=executable, timeout=timeout)
            raise TimedOutError(executable, timeout) from e
        except FileNotFoundError as e:
            raise ToolNotInstalledError(tool=executable) from e
        except PermissionError as e:
            raise PermissionDeniedError(
                f"Not permitted to execute {executable}: {e.strerror}"
            ) from e
        except OSError as e:
            logger.error("Failed to start command", executable=executable, error=str(e))
            raise ExecutionFailedError(None, f"Failed to execute {executable}: {e}") from e

        result = ProcessResult(
            exit_code=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )
        logger.debug(
            "Command finished", executable=executable, exit_code=result.exit_code
        )
        return result

