from __future__ import annotations

import logging
import subprocess

from polyscaffold.errors import ScriptExecutionError


class SubprocessScriptRunner:
    """Runs script steps through the system shell, one at a time."""

    def __init__(self, *, shell: bool = True, env: dict[str, str] | None = None) -> None:
        self.shell = shell
        self.env = env

    def run(self, command: str, *, cwd: str, logger: logging.Logger) -> str:
        try:
            proc = subprocess.run(
                command,
                shell=self.shell,
                cwd=cwd,
                env=self.env,
                check=False,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as exc:
            raise ScriptExecutionError(command, directory=cwd, returncode=None, stderr=str(exc)) from exc

        stdout = (proc.stdout or "").strip()
        stderr = (proc.stderr or "").strip()
        if proc.returncode != 0:
            if stdout:
                logger.debug("Script stdout: %s", stdout)
            if stderr:
                logger.debug("Script stderr: %s", stderr)
            raise ScriptExecutionError(
                command,
                directory=cwd,
                returncode=proc.returncode,
                stdout=stdout,
                stderr=stderr,
            )

        if stdout:
            logger.debug("Script output: %s", stdout)
        return stdout


__all__ = ["SubprocessScriptRunner"]
