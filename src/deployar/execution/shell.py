"""Shell runner - one command through ``<shell> -c``.

Translates a (workdir, command) pair into a blocking subprocess call and a
:class:`ShellResult`.  The runner knows nothing about records or stores; the
engine decides what a result means.

Architecture:
    ::

        run_shell("/srv/app", "make deploy", shell="sh")
          │
          ├── subprocess.run(["sh", "-c", "make deploy"], cwd="/srv/app")
          │     ├── OSError (no shell, no workdir, EACCES) → LaunchError
          │     └── completed → ShellResult(exit_code, stdout, stderr)
          │
          └── ShellResult.output → stdout + "\\n" + stderr

    Output is captured per stream and joined after the process exits, so
    lines written to stdout and stderr are not interleaved in time order.

Tags:
    deployar, execution, subprocess, shell

Doc-Types:
    api-reference
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass

from deployar.core.errors import LaunchError


@dataclass(frozen=True)
class ShellResult:
    """Exit status and captured streams of a finished command."""

    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def output(self) -> str:
        return combine_output(self.stdout, self.stderr)


def combine_output(stdout: str, stderr: str) -> str:
    """Join the two streams: stdout, a newline only if both are non-empty, stderr.

    Example:
        >>> combine_output("out", "err")
        'out\\nerr'
        >>> combine_output("", "err")
        'err'
    """
    if stdout and stderr:
        return f"{stdout}\n{stderr}"
    return stdout or stderr


def launch_failure_output(output: str, reason: str) -> str:
    """Append the ``Error: <reason>`` line recorded when a command could not start."""
    line = f"Error: {reason}"
    return f"{output}\n{line}" if output else line


def run_shell(workdir: str, command: str, *, shell: str = "sh") -> ShellResult:
    """Run *command* with ``<shell> -c`` inside *workdir* and wait for it.

    A child terminated by a signal reports the negative signal number as its
    exit code.

    Raises:
        LaunchError: The process could not be started, including when the
            command or workdir holds a NUL byte.
    """
    try:
        proc = subprocess.run(
            [shell, "-c", command],
            cwd=workdir,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            check=False,
        )
    except (OSError, ValueError) as exc:
        raise LaunchError(
            str(exc),
            context={"workdir": workdir, "shell": shell},
            cause=exc,
        ) from exc

    return ShellResult(
        exit_code=proc.returncode,
        stdout=proc.stdout.decode("utf-8", errors="replace"),
        stderr=proc.stderr.decode("utf-8", errors="replace"),
    )
