from __future__ import annotations
from pathlib import Path
from urllib.parse import urlparse

_URL_SCHEMES = ("http", "https", "ftp")


def ensure_dir(p: Path) -> None:
    p.mkdir(parents=True, exist_ok=True)


def is_url(s: str) -> bool:
    """True for absolute http(s)/ftp URLs with a host, or file: URLs with a path."""
    if not isinstance(s, str) or not s.strip() or any(c.isspace() for c in s):
        return False
    try:
        parsed = urlparse(s)
    except ValueError:
        return False
    if parsed.scheme in _URL_SCHEMES:
        return bool(parsed.netloc)
    if parsed.scheme == "file":
        return bool(parsed.path)
    return False
