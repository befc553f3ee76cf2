import os
from pathlib import Path

import pytest

from freshgit.context import RunContext
from freshgit.models import MirrorConfig, RepositoryDescriptor

# Stand-in for git. Behaviour is driven by environment variables:
#   FAKE_GIT_LOG         append every invocation to this file
#   FAKE_GIT_SLEEP       seconds to sleep before doing anything
#   FAKE_GIT_FAIL_MATCH  fail with exit 128 when the arguments or cwd contain this text
#   FAKE_GIT_PROMPT      print a credential prompt and hang
#   FAKE_GIT_CLONE_SLEEP seconds a clone sleeps after writing its first files
#   FAKE_GIT_ENV_LOG     append the GIT_* environment of every invocation to this file
FAKE_GIT = """#!/bin/sh
if [ -n "$FAKE_GIT_LOG" ]; then
    echo "$PWD $*" >> "$FAKE_GIT_LOG"
fi
if [ -n "$FAKE_GIT_ENV_LOG" ]; then
    env | grep "^GIT_" >> "$FAKE_GIT_ENV_LOG"
fi
if [ "$1" = "--version" ]; then
    echo "git version 2.99.0"
    exit 0
fi
if [ -n "$FAKE_GIT_SLEEP" ]; then
    sleep "$FAKE_GIT_SLEEP"
fi
if [ -n "$FAKE_GIT_FAIL_MATCH" ]; then
    case "$PWD $*" in
        *"$FAKE_GIT_FAIL_MATCH"*)
            echo "remote: Repository not found." >&2
            echo "fatal: repository '$FAKE_GIT_FAIL_MATCH' not found" >&2
            exit 128
            ;;
    esac
fi
if [ -n "$FAKE_GIT_PROMPT" ]; then
    printf "Username for 'https://example.com': " >&2
    sleep 30
fi
case "$1" in
    clone)
        for last; do :; done
        mkdir -p "$last/.git" && echo "cloned" > "$last/README"
        if [ -n "$FAKE_GIT_CLONE_SLEEP" ]; then
            sleep "$FAKE_GIT_CLONE_SLEEP"
        fi
        ;;
    fetch|pull)
        [ -e .git ] || { echo "fatal: not a git repository" >&2; exit 128; }
        ;;
esac
exit 0
"""

posix_only = pytest.mark.skipif(os.name != "posix", reason="fake git is a shell script")


@pytest.fixture
def fake_git(tmp_path: Path) -> Path:
    path = tmp_path / "bin" / "git"
    path.parent.mkdir()
    path.write_text(FAKE_GIT)
    path.chmod(0o755)
    return path


@pytest.fixture
def git_log(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    log = tmp_path / "git.log"
    monkeypatch.setenv("FAKE_GIT_LOG", str(log))
    return log


@pytest.fixture
def src_folder(tmp_path: Path) -> Path:
    folder = tmp_path / "work"
    folder.mkdir()
    return folder


def make_context(src_folder: Path, git: Path, **overrides: object) -> RunContext:
    config = MirrorConfig(src_folder=src_folder, git_executable=str(git), **overrides)
    return RunContext.from_config(config, str(git))


def descriptor(src_folder: Path, name: str) -> RepositoryDescriptor:
    return RepositoryDescriptor(source_url=f"https://example.com/{name}.git", local_path=src_folder / name)
