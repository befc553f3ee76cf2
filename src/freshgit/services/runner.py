"""Wiring a whole run together: config, repository lists, scheduler and report."""

import asyncio

from freshgit.context import RunContext
from freshgit.exceptions import ConfigurationInvalidError
from freshgit.logger import get_logger
from freshgit.models import (
    ExecutionPlan,
    ExecutionPolicy,
    MirrorConfig,
    OperationMode,
    RepositoryDescriptor,
    RunSummary,
)
from freshgit.services.aggregator import ResultAggregator
from freshgit.services.git import GitOperation, GitToolManager
from freshgit.services.repo_list import discover_checkouts, read_repo_lists
from freshgit.services.scheduler import ConcurrencyScheduler

logger = get_logger(__name__)


def prepare_src_folder(config: MirrorConfig, mode: OperationMode) -> None:
    """Make sure the destination root exists before anything is scheduled."""
    src_folder = config.src_folder
    if src_folder.is_dir():
        logger.debug("Source folder exists, continuing", path=str(src_folder))
        return
    if mode == OperationMode.DOWNLOAD and config.create_src_folder and not src_folder.exists():
        logger.info("Creating source folder", path=str(src_folder))
        try:
            src_folder.mkdir(parents=True)
        except OSError as e:
            raise ConfigurationInvalidError("config.invalid", path=src_folder, error=e) from e
        return
    raise ConfigurationInvalidError("config.src_folder_missing", path=src_folder)


def collect_descriptors(config: MirrorConfig, mode: OperationMode) -> list[RepositoryDescriptor]:
    """
    Build the descriptor list for this run.

    Downloads always need list files. Updates use the list files when there are
    any and otherwise every checkout found under ``src_folder``.
    """
    if config.files_to_read:
        return read_repo_lists(config.files_to_read, config.src_folder)
    if mode == OperationMode.UPDATE:
        logger.info("No list files configured, searching for checkouts", path=str(config.src_folder))
        return discover_checkouts(config.src_folder)
    raise ConfigurationInvalidError("config.no_input")


def build_plan(
    config: MirrorConfig,
    mode: OperationMode,
    descriptors: list[RepositoryDescriptor],
    jobs: int | None = None,
    sequential: bool = False,
) -> ExecutionPlan:
    policy = ExecutionPolicy.PARALLEL if config.async_exec and not sequential else ExecutionPolicy.SEQUENTIAL
    if policy == ExecutionPolicy.SEQUENTIAL:
        logger.info("Repositories will be processed sequentially")
    else:
        logger.info("Repositories will be processed in parallel")
    return ExecutionPlan(
        descriptors=tuple(descriptors),
        mode=mode,
        policy=policy,
        max_workers=config.max_workers if jobs is None else jobs,
    )


async def run_mirror(
    config: MirrorConfig,
    mode: OperationMode,
    jobs: int | None = None,
    sequential: bool = False,
) -> RunSummary:
    """
    Run one download or update over every configured repository.

    Raises:
        ConfigurationInvalidError: If the setup is unusable (nothing is scheduled)
        AllInputMissingError: If none of the list files exist
    """
    prepare_src_folder(config, mode)
    git_exec = await GitToolManager(config.git_executable).validate_git_executable()
    context = RunContext.from_config(config, git_exec)

    if context.credentials.is_empty:
        logger.info("No credentials configured, private repositories may fail")

    descriptors = collect_descriptors(config, mode)
    plan = build_plan(config, mode, descriptors, jobs=jobs, sequential=sequential)

    scheduler = ConcurrencyScheduler(GitOperation(context))
    aggregator = ResultAggregator(expected=len(descriptors))
    try:
        return await aggregator.consume(scheduler.run(plan))
    except asyncio.CancelledError:
        logger.warning(
            "Interrupted, in-flight git processes were stopped",
            completed=aggregator.summary.total,
            not_completed=len(descriptors) - aggregator.summary.total,
        )
        raise
