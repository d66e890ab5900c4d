from __future__ import annotations

import logging

from polyscaffold.collaborators.scripts import SubprocessScriptRunner


class PnpmRefresher:
    """Runs `pnpm install` at the project root after manifests change."""

    def __init__(self, runner: SubprocessScriptRunner | None = None, *, command: str = "pnpm install") -> None:
        self.runner = runner or SubprocessScriptRunner()
        self.command = command

    def refresh(self, project_dir: str, *, logger: logging.Logger) -> None:
        logger.info("Running %s to install dependencies...", self.command)
        self.runner.run(self.command, cwd=project_dir, logger=logger)
        logger.info("%s completed successfully", self.command)


__all__ = ["PnpmRefresher"]
