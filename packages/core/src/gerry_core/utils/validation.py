"""Input validation for user-supplied identifiers and connection settings."""

from __future__ import annotations

import re
from pathlib import Path
from urllib.parse import urlparse

_CHANGE_ID_RE = re.compile(r"^I[0-9a-fA-F]{40}$")
_CHANGE_NUMBER_RE = re.compile(r"^\d+$")
_SERVER_FORBIDDEN = set(" \t\n\r;|&$`")
_USERNAME_FORBIDDEN = set(" \t\n\r;|&$`<>(){}[]\\\"'")


def is_change_number(value: str) -> bool:
    return bool(_CHANGE_NUMBER_RE.match(value or ""))


def validate_change_id(change_id: str) -> str:
    """Accept a change number (``384465``) or a full Change-Id (``I`` + 40 hex)."""
    if not change_id:
        raise ValueError("change ID cannot be empty")
    if is_change_number(change_id) or _CHANGE_ID_RE.match(change_id):
        return change_id
    raise ValueError(f"invalid change ID format: {change_id}")


def validate_server(server: str | None) -> str:
    if not server:
        raise ValueError("server cannot be empty")
    if "://" in server:
        parsed = urlparse(server)
        if parsed.scheme not in ("http", "https", "ssh"):
            raise ValueError(f"unsupported protocol: {parsed.scheme}")
        if not parsed.hostname:
            raise ValueError("server URL missing host")
        return parsed.hostname
    if _SERVER_FORBIDDEN & set(server):
        raise ValueError("server name contains invalid characters")
    return server


def validate_username(username: str | None) -> str:
    if not username:
        raise ValueError("username cannot be empty")
    if len(username) > 255:
        raise ValueError("username too long")
    if _USERNAME_FORBIDDEN & set(username):
        raise ValueError("username contains invalid characters")
    return username


def validate_port(port) -> int:
    try:
        number = int(port)
    except (TypeError, ValueError):
        raise ValueError(f"port must be a number, got {port!r}")
    if not 1 <= number <= 65535:
        raise ValueError("port must be between 1 and 65535")
    return number


def validate_ssh_key(path: str) -> str:
    key = Path(path).expanduser()
    if not key.exists():
        raise ValueError(f"SSH key file does not exist: {path}")
    if key.is_dir():
        raise ValueError(f"SSH key path is a directory, not a file: {path}")
    return str(key)


_UNSAFE_FILENAME_RE = re.compile(r"[^A-Za-z0-9._-]")


def sanitize_filename(name: str) -> str:
    """Reduce ``name`` to a single safe path component (``[A-Za-z0-9._-]``)."""
    if not name:
        raise ValueError("name cannot be empty")
    cleaned = _UNSAFE_FILENAME_RE.sub("_", Path(name).name)
    if cleaned in ("", ".", ".."):
        raise ValueError("name contains only invalid characters")
    return cleaned
