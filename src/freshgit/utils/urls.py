"""URL helpers."""

from urllib.parse import urlsplit, urlunsplit


def redact_url(url: str) -> str:
    """Replace any password embedded in ``url`` with ``***`` so it is safe to log."""
    parts = urlsplit(url)
    if not parts.password:
        return url
    userinfo = f"{parts.username}:***" if parts.username else "***"
    host = parts.hostname or ""
    if parts.port:
        host = f"{host}:{parts.port}"
    return urlunsplit((parts.scheme, f"{userinfo}@{host}", parts.path, parts.query, parts.fragment))
