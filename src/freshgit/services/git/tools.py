"""Git executable resolution."""

import asyncio
import os
import shutil
from pathlib import Path

from freshgit.exceptions import GitExecutableNotFoundError
from freshgit.logger import get_logger
from freshgit.utils.subprocess_executor import SubprocessExecutor

logger = get_logger(__name__)


class GitToolManager:
    """Locates and validates the git executable used for a run."""

    def __init__(self, configured: str = "git") -> None:
        self.configured = configured

    def get_git_executable(self) -> str:
        """
        Resolve the configured executable to an absolute path.

        Bare names are looked up on PATH, anything containing a path separator
        is taken as a file path.

        Raises:
            GitExecutableNotFoundError: If nothing executable is found
        """
        candidate = Path(self.configured).expanduser()
        if candidate.parent != Path("."):
            if candidate.is_file() and os.access(candidate, os.X_OK):
                return str(candidate)
            raise GitExecutableNotFoundError(self.configured)

        found = shutil.which(self.configured)
        if not found:
            raise GitExecutableNotFoundError(self.configured)
        return found

    async def validate_git_executable(self) -> str:
        """
        Resolve the executable and make sure it runs.

        Returns:
            The resolved executable path

        Raises:
            GitExecutableNotFoundError: If the executable is missing or fails to run
        """
        git_exec = self.get_git_executable()
        try:
            result = await SubprocessExecutor.run(git_exec, "--version", timeout=30)
        except (OSError, asyncio.TimeoutError) as e:
            raise GitExecutableNotFoundError(self.configured) from e

        if result.returncode != 0:
            raise GitExecutableNotFoundError(self.configured)

        # Expected output: "git version 2.x.x"
        logger.debug("Using git", executable=git_exec, version=result.stdout.decode(errors="replace").strip())
        return git_exec
