"""A single clone or update of one repository."""

import asyncio
import os
import shutil
import time
from pathlib import Path

from freshgit.context import RunContext
from freshgit.logger import get_logger
from freshgit.models import FailureReason, OperationMode, OperationOutcome, RepositoryDescriptor
from freshgit.services.credentials import CredentialResolver
from freshgit.utils import InteractivePromptError, SubprocessExecutor, redact_url

logger = get_logger(__name__)

# A clone is staged in "<name>.freshgit-partial" and only renamed into place once git succeeded
STAGING_SUFFIX = ".freshgit-partial"

# Seen on stderr when git or ssh wants someone to type something
PROMPT_MARKERS = ("Username for", "Password for", "Enter passphrase")

STDERR_TAIL_LINES = 20


def staging_path(local_path: Path) -> Path:
    return local_path.with_name(local_path.name + STAGING_SUFFIX)


def is_checkout(path: Path) -> bool:
    """True when ``path`` is a directory holding a ``.git`` directory or gitfile."""
    return path.is_dir() and (path / ".git").exists()


def _stderr_tail(stderr: bytes) -> str:
    lines = [line for line in stderr.decode("utf-8", errors="replace").splitlines() if line.strip()]
    return "\n".join(lines[-STDERR_TAIL_LINES:])


class GitOperation:
    """Runs git for one descriptor and turns every per-repository problem into an outcome."""

    def __init__(self, context: RunContext) -> None:
        self.context = context
        self.credential_resolver = CredentialResolver(context.credentials)

    async def execute(self, descriptor: RepositoryDescriptor, mode: OperationMode) -> OperationOutcome:
        """
        Clone or update ``descriptor``.

        Never raises for a failure of this repository; cancellation is propagated
        after the git process has been killed.
        """
        start = time.monotonic()
        if mode == OperationMode.DOWNLOAD:
            return await self._clone(descriptor, start)
        return await self._update(descriptor, start)

    async def _clone(self, descriptor: RepositoryDescriptor, start: float) -> OperationOutcome:
        mode = OperationMode.DOWNLOAD
        target = descriptor.local_path

        if target.exists() and (not target.is_dir() or any(target.iterdir())):
            logger.info("Repository is already cloned, use update instead", path=str(target))
            return OperationOutcome.failure(
                descriptor, mode, FailureReason.ALREADY_EXISTS, f"{target} already exists and is not empty"
            )

        staging = staging_path(target)
        try:
            if staging.exists():
                logger.warning("Removing leftover partial clone", path=str(staging))
                shutil.rmtree(staging)
            staging.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return OperationOutcome.failure(
                descriptor, mode, FailureReason.FILESYSTEM_ERROR, str(e), time.monotonic() - start
            )

        credential = self.credential_resolver.resolve(descriptor)
        cmd = [self.context.git_executable, "clone"]
        if self.context.config.recursive:
            cmd.append("--recursive")
        cmd += [credential.url, str(staging)]

        logger.info("Cloning repository", url=redact_url(descriptor.source_url), path=str(target))
        outcome = await self._invoke(descriptor, mode, cmd, None, credential.env, start)

        if not outcome.succeeded:
            self._discard(staging)
            return outcome

        try:
            if target.exists():
                # Only an empty directory can be here, checked above
                target.rmdir()
            staging.rename(target)
        except OSError as e:
            logger.error("Could not move clone into place", staging=str(staging), path=str(target), error=str(e))
            self._discard(staging)
            return OperationOutcome.failure(
                descriptor, mode, FailureReason.FILESYSTEM_ERROR, str(e), time.monotonic() - start
            )
        return outcome

    async def _update(self, descriptor: RepositoryDescriptor, start: float) -> OperationOutcome:
        mode = OperationMode.UPDATE
        repo_dir = descriptor.local_path

        if not is_checkout(repo_dir):
            logger.info("Not a git checkout, skipping", path=str(repo_dir))
            return OperationOutcome.failure(
                descriptor, mode, FailureReason.NOT_A_CHECKOUT, f"{repo_dir} is not a git checkout"
            )

        # fetch and pull talk to the remote configured in the checkout, so only the
        # environment (credential helper, askpass) of the resolved credentials applies
        credential = self.credential_resolver.resolve(descriptor)
        git_exec = self.context.git_executable
        if self.context.config.update_command == "pull":
            cmd = [git_exec, "pull", "--ff-only"]
        else:
            cmd = [git_exec, "fetch", "--all", "--tags", "--prune"]

        logger.info("Updating repository", path=str(repo_dir))
        return await self._invoke(descriptor, mode, cmd, repo_dir, credential.env, start)

    async def _invoke(
        self,
        descriptor: RepositoryDescriptor,
        mode: OperationMode,
        cmd: list[str],
        cwd: Path | None,
        extra_env: dict[str, str],
        start: float,
    ) -> OperationOutcome:
        env = {**os.environ, **extra_env}
        timeout = self.context.timeout
        try:
            result = await SubprocessExecutor.run(
                *cmd, cwd=cwd, env=env, timeout=timeout, abort_markers=PROMPT_MARKERS
            )
        except asyncio.TimeoutError:
            return OperationOutcome.failure(
                descriptor, mode, FailureReason.TIMEOUT, f"git did not finish within {timeout:g}s",
                time.monotonic() - start,
            )
        except InteractivePromptError as e:
            return OperationOutcome.failure(
                descriptor, mode, FailureReason.INTERACTIVE_PROMPT,
                f"git asked for input ('{e.marker}'), check credentials", time.monotonic() - start,
            )
        except OSError as e:
            return OperationOutcome.failure(
                descriptor, mode, FailureReason.SPAWN_FAILED, f"could not start git: {e}", time.monotonic() - start
            )

        duration = time.monotonic() - start
        if result.returncode != 0:
            detail = _stderr_tail(result.stderr) or f"git exited with status {result.returncode}"
            logger.warning(
                "Git failed", path=str(descriptor.local_path), mode=mode.value, returncode=result.returncode
            )
            return OperationOutcome.failure(descriptor, mode, FailureReason.NON_ZERO_EXIT, detail, duration)

        logger.debug("Git finished", path=str(descriptor.local_path), mode=mode.value, duration=round(duration, 2))
        return OperationOutcome.success(descriptor, mode, duration)

    def _discard(self, staging: Path) -> None:
        shutil.rmtree(staging, ignore_errors=True)
        if staging.exists():
            logger.warning("Could not remove partial clone", path=str(staging))
