"""Reading repository lists into descriptors."""

import csv
import os
import re
from collections.abc import Iterable, Iterator
from pathlib import Path
from urllib.parse import urlsplit

from freshgit.exceptions import AllInputMissingError
from freshgit.logger import get_logger
from freshgit.models import RepositoryDescriptor
from freshgit.services.git.operation import STAGING_SUFFIX
from freshgit.utils import redact_url

logger = get_logger(__name__)

URL_SCHEMES = ("http", "https", "ssh", "git", "file")

SHORTHAND_HOSTS = {
    "gh": "github.com",
    "github": "github.com",
    "gl": "gitlab.com",
    "gitlab": "gitlab.com",
    "bb": "bitbucket.org",
    "bitbucket": "bitbucket.org",
}

# user@host:owner/repo.git
SCP_LIKE = re.compile(r"^(?:[^@/\s]+@)?(?P<host>[^:/\s]{2,}):(?P<path>[^\s]+)$")

CSV_COLUMN = "repository"


class UnsupportedIdentifierError(ValueError):
    """Raised when a line is not a repository URL or a known shorthand."""


def expand_identifier(identifier: str) -> tuple[str, list[str]]:
    """
    Turn a repository identifier into a clone URL and its path segments.

    Accepted forms: scheme URLs (http, https, ssh, git, file), scp-like
    ``user@host:owner/repo`` and the ``gh/``, ``gl/``, ``bb/`` shorthands.

    Returns:
        Tuple of (url, path segments)

    Raises:
        UnsupportedIdentifierError: If the identifier cannot be understood
    """
    parts = identifier.split("/")
    if len(parts) == 3 and parts[0].lower() in SHORTHAND_HOSTS and parts[1] and parts[2]:
        host = SHORTHAND_HOSTS[parts[0].lower()]
        return f"https://{host}/{parts[1]}/{parts[2]}", [parts[1], parts[2]]

    if "://" in identifier:
        u = urlsplit(identifier)
        if u.scheme.lower() not in URL_SCHEMES:
            raise UnsupportedIdentifierError(f"unsupported scheme '{u.scheme}'")
        if u.scheme.lower() != "file" and not u.hostname:
            raise UnsupportedIdentifierError("missing host")
        return identifier, _segments(u.path)

    m = SCP_LIKE.match(identifier)
    if m:
        return identifier, _segments(m.group("path"))

    raise UnsupportedIdentifierError("not a URL or known shorthand")


def _segments(path: str) -> list[str]:
    segs = [s for s in path.split("/") if s and s != "."]
    if not segs:
        raise UnsupportedIdentifierError("URL has no repository path")
    if ".." in segs:
        raise UnsupportedIdentifierError("URL path must not contain '..'")
    # Cut ".git" from the end of path
    segs[-1] = segs[-1].removesuffix(".git")
    if not segs[-1]:
        raise UnsupportedIdentifierError("empty repository name")
    return segs


def make_descriptor(identifier: str, src_folder: Path) -> RepositoryDescriptor:
    """Build the descriptor for ``identifier`` mirrored under ``src_folder``."""
    url, segments = expand_identifier(identifier)
    return RepositoryDescriptor(source_url=url, local_path=src_folder.joinpath(*segments))


def _decoded_lines(path: Path) -> Iterator[tuple[int, str]]:
    """Yield (line number, text) for every line of ``path`` that is valid UTF-8."""
    with open(path, "rb") as f:
        for lineno, raw in enumerate(f, start=1):
            try:
                text = raw.decode("utf-8")
            except UnicodeDecodeError as e:
                logger.warning("Skipping line with invalid bytes", file=str(path), line=lineno, error=str(e))
                continue
            if lineno == 1:
                text = text.removeprefix("\ufeff")
            yield lineno, text.rstrip("\r\n")


def _text_identifiers(path: Path) -> Iterator[tuple[int, str]]:
    for lineno, text in _decoded_lines(path):
        entry = text.strip()
        if not entry or entry.startswith("#"):
            continue
        yield lineno, entry


def _csv_identifiers(path: Path) -> Iterator[tuple[int, str]]:
    lines = list(_decoded_lines(path))
    reader = csv.reader(text for _, text in lines)
    header = next(reader, None)
    if header is None:
        return
    normalized = [h.strip().lower() for h in header]
    column = normalized.index(CSV_COLUMN) if CSV_COLUMN in normalized else 0
    if CSV_COLUMN not in normalized:
        logger.warning("CSV has no 'repository' column, using the first one", file=str(path))

    for (lineno, _), row in zip(lines[1:], reader, strict=False):
        if not row or not any(cell.strip() for cell in row):
            continue
        if column >= len(row):
            logger.warning("CSV record is missing the repository column", file=str(path), line=lineno)
            continue
        entry = row[column].strip()
        if entry and not entry.startswith("#"):
            yield lineno, entry


def read_repo_list(path: Path, src_folder: Path) -> list[RepositoryDescriptor]:
    """Read one list file. Unparsable entries are logged and skipped."""
    entries = _csv_identifiers(path) if path.suffix.lower() == ".csv" else _text_identifiers(path)
    descriptors = []
    for lineno, entry in entries:
        try:
            descriptors.append(make_descriptor(entry, src_folder))
        except UnsupportedIdentifierError as e:
            logger.warning(
                "Could not parse repository", file=str(path), line=lineno, entry=redact_url(entry), error=str(e)
            )
    logger.debug("Read repository list", file=str(path), count=len(descriptors))
    return descriptors


def deduplicate(descriptors: Iterable[RepositoryDescriptor]) -> list[RepositoryDescriptor]:
    """
    Keep the first descriptor for every local path, preserving order.

    A descriptor whose local path lies inside, or contains, an already kept one
    is dropped as well: both clones would write into the same directory tree.
    """
    seen: dict[Path, RepositoryDescriptor] = {}
    enclosing: set[Path] = set()
    for d in descriptors:
        kept = seen.get(d.local_path)
        if kept is not None:
            if kept.source_url != d.source_url:
                logger.warning(
                    "Duplicate local path, keeping first source",
                    path=str(d.local_path),
                    kept=redact_url(kept.source_url),
                    dropped=redact_url(d.source_url),
                )
            continue

        outer = next((seen[p] for p in d.local_path.parents if p in seen), None)
        if outer is not None or d.local_path in enclosing:
            logger.warning(
                "Nested local path, skipping",
                path=str(d.local_path),
                source=redact_url(d.source_url),
                conflicts_with=str(outer.local_path) if outer is not None else None,
            )
            continue

        seen[d.local_path] = d
        enclosing.update(d.local_path.parents)
    return list(seen.values())


def read_repo_lists(paths: Iterable[Path], src_folder: Path) -> list[RepositoryDescriptor]:
    """
    Read every list file into one deduplicated, order-stable descriptor list.

    Missing files are skipped with a warning.

    Raises:
        AllInputMissingError: If none of the files exist
    """
    paths = list(paths)
    found = 0
    collected: list[RepositoryDescriptor] = []
    for path in paths:
        if not path.is_file():
            logger.warning("Repository list file not found, skipping", file=str(path))
            continue
        found += 1
        try:
            collected.extend(read_repo_list(path, src_folder))
        except OSError as e:
            logger.warning("Could not read repository list, skipping", file=str(path), error=str(e))

    if paths and found == 0:
        raise AllInputMissingError([str(p) for p in paths])

    return deduplicate(collected)


def discover_checkouts(src_folder: Path) -> list[RepositoryDescriptor]:
    """
    Find every git checkout below ``src_folder``.

    A directory is a checkout when it contains a ``.git`` entry. Checkouts are
    not searched for nested repositories and half-finished clones are ignored.
    """
    found: list[RepositoryDescriptor] = []
    for root, dirs, files in os.walk(src_folder, onerror=_log_walk_error):
        if ".git" in dirs or ".git" in files:
            path = Path(root)
            found.append(RepositoryDescriptor(source_url=str(path), local_path=path))
            dirs[:] = []
            continue
        dirs[:] = sorted(d for d in dirs if not d.endswith(STAGING_SUFFIX))
    return found


def _log_walk_error(error: OSError) -> None:
    logger.error("Could not walk directory", path=error.filename, error=str(error))
