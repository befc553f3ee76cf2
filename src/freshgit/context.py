"""Immutable per-run context shared by the scheduler and every git operation."""

from pydantic import BaseModel, ConfigDict

from freshgit.models import Credentials, MirrorConfig


class RunContext(BaseModel):
    """Built once at startup and never mutated afterwards."""

    model_config = ConfigDict(frozen=True)

    config: MirrorConfig
    credentials: Credentials
    git_executable: str

    @property
    def timeout(self) -> float:
        return self.config.timeout_seconds

    @classmethod
    def from_config(cls, config: MirrorConfig, git_executable: str) -> "RunContext":
        credentials = Credentials(
            username=config.git_username or None,
            password=config.git_password or None,
            askpass=config.ssh_askpass or None,
        )
        return cls(config=config, credentials=credentials, git_executable=git_executable)
