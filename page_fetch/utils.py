"""Utility helpers for path handling and result output."""

from __future__ import annotations

import re
import string
import sys
from urllib.parse import urlsplit

ALLOWED_PATH_CHARS = frozenset(string.ascii_letters + string.digits + "_.%/-")
DASH_RUN_PATTERN = re.compile(r"-+")
SLASH_RUN_PATTERN = re.compile(r"/+")


def make_filepath(prefix: str, request_url: str) -> str:
    """Map a request URL onto a sanitized path below ``prefix``.

    The query string and fragment are ignored, so requests that differ only
    there resolve to the same path and are told apart by collision suffixes.
    Raises ``ValueError`` if the URL cannot be parsed.
    """
    parts = urlsplit(request_url)
    request_path = parts.path
    if request_path == "/":
        request_path = "/index"

    save_path = f"{prefix}/{parts.hostname or ''}{request_path}"

    # pass order is fixed; double-dot replacement must stay after collapsing
    save_path = "".join(
        char if char in ALLOWED_PATH_CHARS else "-" for char in save_path
    )
    save_path = DASH_RUN_PATTERN.sub("-", save_path)
    save_path = SLASH_RUN_PATTERN.sub("/", save_path)
    save_path = save_path.replace("..", "-")

    if save_path.endswith("/"):
        save_path = save_path[:-1]
    return save_path


def emit(line: str) -> None:
    """Write a result line to stdout."""
    sys.stdout.write(line + "\n")
    sys.stdout.flush()
