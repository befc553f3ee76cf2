"""Data models for freshgit."""

from .config import MirrorConfig
from .repository import (
    Credentials,
    ExecutionPlan,
    ExecutionPolicy,
    FailureReason,
    FailureRecord,
    OperationMode,
    OperationOutcome,
    OperationStatus,
    RepositoryDescriptor,
    RunSummary,
)

__all__ = [
    "Credentials",
    "ExecutionPlan",
    "ExecutionPolicy",
    "FailureReason",
    "FailureRecord",
    "MirrorConfig",
    "OperationMode",
    "OperationOutcome",
    "OperationStatus",
    "RepositoryDescriptor",
    "RunSummary",
]
