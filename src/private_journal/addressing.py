"""Opaque journal:// identifiers and path-safety checks.

A URI hides an entry's storage path behind URL-safe base64. Passing the
grammar check does not make the decoded path safe to open: callers must also
run is_path_safe() on it before touching the disk.
"""

from __future__ import annotations

import base64
import binascii
import os.path
import re
from urllib.parse import unquote

from .errors import UsageError
from .models import Locality

URI_SCHEME = "journal"

_URI_PATTERN = re.compile(r"journal://(project|user)/([A-Za-z0-9_-]+)")
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")

DENIED_ROOTS = (
    "/etc/",
    "/bin/",
    "/sbin/",
    "/usr/bin/",
    "/usr/sbin/",
    "/boot/",
    "/sys/",
    "/proc/",
    "/dev/",
    "/root/",
)


def encode_uri(path: str, locality: Locality) -> str:
    """Build journal://{locality}/{token} for a storage path."""
    token = base64.urlsafe_b64encode(str(path).encode("utf-8")).decode("ascii").rstrip("=")
    return f"{URI_SCHEME}://{locality.value}/{token}"


def is_valid_uri(uri: str) -> bool:
    """True iff uri is exactly journal://(project|user)/[A-Za-z0-9_-]+."""
    return isinstance(uri, str) and _URI_PATTERN.fullmatch(uri) is not None


def parse_uri(uri: str) -> tuple[Locality, str]:
    """Split a URI into its locality and decoded storage path.

    Raises:
        UsageError: If the URI is malformed or the token is not valid base64
    """
    match = _URI_PATTERN.fullmatch(uri) if isinstance(uri, str) else None
    if match is None:
        raise UsageError(f"Invalid journal URI: {uri!r}")

    locality, token = match.groups()
    padded = token + "=" * (-len(token) % 4)
    try:
        path = base64.urlsafe_b64decode(padded).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as e:
        raise UsageError(f"Invalid journal URI token: {e}") from e
    return Locality(locality), path


def decode_uri(uri: str) -> str:
    """Storage path of a URI. See parse_uri for errors."""
    return parse_uri(uri)[1]


def is_path_safe(path: str) -> bool:
    """Reject paths that are obviously unsafe to read.

    True means "not obviously unsafe", not "inside a journal root".
    """
    if not isinstance(path, str) or not os.path.isabs(path):
        return False

    if _CONTROL_CHARS.search(path):
        return False

    if ".." in path:
        return False

    # Encoded traversal, or any percent-encoding at all
    decoded = unquote(path)
    if decoded != path or ".." in decoded:
        return False

    if "\\" in path and ".." in path:
        return False

    # normpath drops the trailing slash, so "/etc" and "/etc/" both match "/etc/"
    normalized = "/" + os.path.normpath(path).lstrip("/")
    if not normalized.endswith("/"):
        normalized += "/"
    if any(normalized.startswith(root) for root in DENIED_ROOTS):
        return False

    return True
