"""Centralized exception hierarchy for freshgit.

Only fatal conditions are raised as exceptions. Per-repository failures are
reported as outcomes and never propagate past the git operation.
"""

_MESSAGES: dict[str, str] = {
    "config.not_found": "Configuration file not found: {path}",
    "config.unreadable": "Could not read configuration file {path}: {error}",
    "config.malformed": "Could not parse configuration file {path}: {error}",
    "config.invalid": "Invalid configuration in {path}: {error}",
    "config.src_folder_missing": "Source folder does not exist: {path}",
    "config.git_not_found": "Git executable not found: {executable}",
    "config.no_input": "No repository list files configured (files_to_read is empty)",
    "input.all_missing": "None of the repository list files exist: {paths}",
}


class FreshgitError(Exception):
    """Base exception for all application-specific errors."""

    def __init__(self, key: str, exit_code: int = 2, **params: object) -> None:
        """
        Initialize the error.

        Args:
            key: Message key (e.g., 'config.not_found')
            exit_code: Process exit status the CLI should use
            **params: Parameters for message formatting
        """
        super().__init__(key)
        self.key = key
        self.exit_code = exit_code
        self.params = params

    def __str__(self) -> str:
        template = _MESSAGES.get(self.key)
        if template is None:
            params_str = ", ".join(f"{k}={v}" for k, v in self.params.items())
            return f"[{self.key}] {params_str}"
        try:
            return template.format(**self.params)
        except KeyError:
            return template


class ConfigurationInvalidError(FreshgitError):
    """Raised when the configuration file is missing, malformed or fails validation."""


class GitExecutableNotFoundError(ConfigurationInvalidError):
    """Raised when the configured git executable cannot be located."""

    def __init__(self, executable: str) -> None:
        super().__init__("config.git_not_found", executable=executable)


class AllInputMissingError(FreshgitError):
    """Raised when every configured repository list file is missing."""

    def __init__(self, paths: list[str]) -> None:
        super().__init__("input.all_missing", paths=", ".join(paths))
