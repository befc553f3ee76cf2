"""Configuration data models for freshgit."""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MirrorConfig(BaseModel):
    """Contents of the freshgit configuration file."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    src_folder: Path
    files_to_read: list[Path] = Field(default_factory=list)

    # Credentials
    git_username: str | None = None
    git_password: str | None = None
    ssh_askpass: str | None = None

    # Execution
    async_exec: bool = False
    max_workers: int = Field(default=8, ge=0)
    timeout_seconds: float = Field(default=600.0, gt=0)
    recursive: bool = True
    update_command: Literal["fetch", "pull"] = "fetch"
    git_executable: str = "git"
    create_src_folder: bool = False

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["console", "json"] = "console"

    @field_validator("src_folder", mode="before")
    @classmethod
    def expand_src_folder(cls, v: str | Path) -> Path:
        """Expand user path for src_folder."""
        if isinstance(v, str):
            if not v.strip():
                raise ValueError("src_folder must not be empty")
            return Path(v).expanduser()
        return v

    @field_validator("files_to_read", mode="before")
    @classmethod
    def expand_files(cls, v: list[str | Path] | None) -> list[Path]:
        """Expand user paths for the repository list files."""
        if v is None:
            return []
        if not isinstance(v, list):
            return v
        return [Path(p).expanduser() for p in v]

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, v: str) -> str:
        if isinstance(v, str):
            return v.upper()
        return v

    def resolve_relative_to(self, base_dir: Path) -> "MirrorConfig":
        """Return a copy whose relative paths are anchored at ``base_dir``."""
        src = self.src_folder if self.src_folder.is_absolute() else base_dir / self.src_folder
        files = [f if f.is_absolute() else base_dir / f for f in self.files_to_read]
        return self.model_copy(update={"src_folder": src, "files_to_read": files})
