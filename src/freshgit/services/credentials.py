"""Non-interactive authentication for git subprocesses."""

import os
from urllib.parse import quote, urlsplit, urlunsplit

from pydantic import BaseModel, ConfigDict, Field

from freshgit.models import Credentials, RepositoryDescriptor

ENV_GIT_USERNAME = "GIT_USERNAME"
ENV_GIT_PASSWORD = "GIT_PASSWORD"
ENV_GIT_ASKPASS = "GIT_ASKPASS"
ENV_SSH_ASKPASS = "SSH_ASKPASS"
ENV_SSH_ASKPASS_REQUIRE = "SSH_ASKPASS_REQUIRE"
ENV_GIT_TERMINAL_PROMPT = "GIT_TERMINAL_PROMPT"
ENV_GIT_CONFIG_COUNT = "GIT_CONFIG_COUNT"

# Answers "get" from the variables above, ignores "store" and "erase".
# The secret is expanded by the helper's shell and never written into git config.
CREDENTIAL_HELPER = (
    '!f() { test "$1" = get || exit 0; '
    'test -n "$GIT_USERNAME" && echo "username=$GIT_USERNAME"; '
    'echo "password=$GIT_PASSWORD"; }; f'
)


class CredentialContext(BaseModel):
    """Environment additions and the (possibly rewritten) URL for one git invocation."""

    model_config = ConfigDict(frozen=True)

    url: str
    env: dict[str, str] = Field(default_factory=dict)


def _config_env(entries: list[tuple[str, str]]) -> dict[str, str]:
    """
    Express git config entries as GIT_CONFIG_COUNT/KEY_n/VALUE_n variables.

    Entries are appended after any the caller's environment already defines.
    """
    try:
        offset = int(os.environ.get(ENV_GIT_CONFIG_COUNT, "0"))
    except ValueError:
        offset = 0
    env = {ENV_GIT_CONFIG_COUNT: str(offset + len(entries))}
    for i, (key, value) in enumerate(entries, start=offset):
        env[f"GIT_CONFIG_KEY_{i}"] = key
        env[f"GIT_CONFIG_VALUE_{i}"] = value
    return env


class CredentialResolver:
    """Derives git authentication settings from the loaded configuration.

    Nothing is fetched from a secret store: the username goes into https URLs,
    the password reaches git through an inline credential helper reading the
    environment, the askpass helper is handed over as is, and terminal prompts
    are always disabled so a missing credential fails fast.
    """

    def __init__(self, credentials: Credentials) -> None:
        self.credentials = credentials

    def resolve(self, descriptor: RepositoryDescriptor) -> CredentialContext:
        creds = self.credentials
        env = {ENV_GIT_TERMINAL_PROMPT: "0"}

        if creds.askpass:
            env[ENV_GIT_ASKPASS] = creds.askpass
            env[ENV_SSH_ASKPASS] = creds.askpass
            env[ENV_SSH_ASKPASS_REQUIRE] = "force"
        if creds.username:
            env[ENV_GIT_USERNAME] = creds.username
        if creds.password:
            env[ENV_GIT_PASSWORD] = creds.password
            # The empty value clears helpers from the user's git config, so the
            # configured password is the one git uses
            env.update(_config_env([("credential.helper", ""), ("credential.helper", CREDENTIAL_HELPER)]))

        return CredentialContext(url=self._embed_username(descriptor.source_url), env=env)

    def _embed_username(self, url: str) -> str:
        username = self.credentials.username
        if not username:
            return url
        parts = urlsplit(url)
        if parts.scheme not in ("http", "https") or parts.username or not parts.hostname:
            return url
        netloc = f"{quote(username, safe='')}@{parts.netloc}"
        return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))
