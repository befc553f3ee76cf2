"""Utilities for freshgit."""

from freshgit.utils.subprocess_executor import InteractivePromptError, SubprocessExecutor
from freshgit.utils.urls import redact_url

__all__ = ["InteractivePromptError", "SubprocessExecutor", "redact_url"]
