"""Repository, operation and outcome models."""

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class OperationMode(str, Enum):
    """Which git operation a run performs."""

    DOWNLOAD = "download"
    UPDATE = "update"


class OperationStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


class FailureReason(str, Enum):
    """Why a single repository operation failed."""

    ALREADY_EXISTS = "already_exists"
    NOT_A_CHECKOUT = "not_a_checkout"
    TIMEOUT = "timeout"
    NON_ZERO_EXIT = "non_zero_exit"
    INTERACTIVE_PROMPT = "interactive_prompt"
    SPAWN_FAILED = "spawn_failed"
    FILESYSTEM_ERROR = "filesystem_error"
    INTERNAL_ERROR = "internal_error"


class ExecutionPolicy(str, Enum):
    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"


class RepositoryDescriptor(BaseModel):
    """A repository source and the local directory it is mirrored into."""

    model_config = ConfigDict(frozen=True)

    source_url: str
    local_path: Path


class Credentials(BaseModel):
    """Authentication settings shared by every git invocation of a run."""

    model_config = ConfigDict(frozen=True)

    username: str | None = None
    password: str | None = None
    askpass: str | None = None

    @property
    def is_empty(self) -> bool:
        return not (self.username or self.password or self.askpass)


class OperationOutcome(BaseModel):
    """Result of one clone or update attempt."""

    model_config = ConfigDict(frozen=True)

    descriptor: RepositoryDescriptor
    mode: OperationMode
    status: OperationStatus
    reason: FailureReason | None = None
    detail: str = ""
    duration: float = 0.0  # seconds

    @property
    def succeeded(self) -> bool:
        return self.status == OperationStatus.SUCCESS

    @classmethod
    def success(cls, descriptor: RepositoryDescriptor, mode: OperationMode, duration: float) -> "OperationOutcome":
        return cls(descriptor=descriptor, mode=mode, status=OperationStatus.SUCCESS, duration=duration)

    @classmethod
    def failure(
        cls,
        descriptor: RepositoryDescriptor,
        mode: OperationMode,
        reason: FailureReason,
        detail: str = "",
        duration: float = 0.0,
    ) -> "OperationOutcome":
        return cls(
            descriptor=descriptor,
            mode=mode,
            status=OperationStatus.FAILURE,
            reason=reason,
            detail=detail,
            duration=duration,
        )


class ExecutionPlan(BaseModel):
    """Everything the scheduler needs for one run."""

    model_config = ConfigDict(frozen=True)

    descriptors: tuple[RepositoryDescriptor, ...]
    mode: OperationMode
    policy: ExecutionPolicy = ExecutionPolicy.SEQUENTIAL
    max_workers: int = Field(default=1, ge=0)

    @property
    def worker_count(self) -> int:
        """Number of concurrent execution slots; 0 max_workers means one per descriptor."""
        if not self.descriptors:
            return 0
        if self.policy == ExecutionPolicy.SEQUENTIAL:
            return 1
        if self.max_workers == 0:
            return len(self.descriptors)
        return min(self.max_workers, len(self.descriptors))


class FailureRecord(BaseModel):
    descriptor: RepositoryDescriptor
    reason: FailureReason
    detail: str = ""


class RunSummary(BaseModel):
    """Aggregate report for a whole run."""

    total: int = 0
    succeeded: int = 0
    failed: int = 0
    failures: list[FailureRecord] = Field(default_factory=list)

    @property
    def exit_code(self) -> int:
        return 0 if self.failed == 0 else 1
