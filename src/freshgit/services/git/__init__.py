"""Git services."""

from .operation import GitOperation
from .tools import GitToolManager

__all__ = ["GitOperation", "GitToolManager"]
