"""
Shell Executor
--------------
Runs an argument vector on the host and returns combined stdout+stderr.

Rules:
- Never raises: failures are folded into the returned text
- No sandboxing: commands run with the bot's privileges
- No timeout unless one is configured explicitly
"""

from typing import List, Optional
import logging
import re
import shutil
import subprocess


ERROR_PREFIX = "error running command:"

_DISPLAY_NEWLINES = re.compile(r"\s*\n")


def is_failure(output: str) -> bool:
    """True if the output is an executor diagnostic rather than command output."""
    return output.startswith(ERROR_PREFIX)


def format_failure(argv: List[str], reason: str, output: str = "") -> str:
    text = f"{ERROR_PREFIX}\n{' '.join(argv)}\nerror: {reason}"
    if output:
        text += f"\n{output}"
    return text


class ShellExecutor:
    """
    Synchronous process executor.

    The caller blocks until the process exits. `timeout_seconds` is a
    hardening option and is off (None) by default.
    """

    def __init__(self, timeout_seconds: Optional[float] = None, shell: str = "bash"):
        self.timeout_seconds = timeout_seconds
        self.shell = shell
        self._logger = logging.getLogger("bashbot.tools.executor")

    def run(self, argv: List[str]) -> str:
        """Run argv and return its combined output."""
        try:
            completed = subprocess.run(
                argv,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                stdin=subprocess.DEVNULL,
                timeout=self.timeout_seconds,
            )
        except subprocess.TimeoutExpired:
            self._logger.error(f"Command timed out after {self.timeout_seconds}s")
            return format_failure(argv, f"timed out after {self.timeout_seconds} seconds")
        except OSError as e:
            self._logger.error(f"Command could not start: {e}")
            return format_failure(argv, str(e))

        output = completed.stdout.decode("utf-8", errors="replace")
        if completed.returncode != 0:
            self._logger.debug(f"Command exited with status {completed.returncode}")
            return format_failure(argv, f"exit status {completed.returncode}", output)

        self._logger.debug("Output from command: \n" + _DISPLAY_NEWLINES.sub("\\\\n", output))
        return output

    def run_shell(self, script: str) -> str:
        """Run a script string through the configured shell."""
        return self.run([self.shell, "-c", script])

    @staticmethod
    def which(executable: str) -> Optional[str]:
        """Path of an executable on PATH, or None."""
        return shutil.which(executable)
