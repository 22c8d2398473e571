"""Persist response bodies and their metadata sidecars."""

from __future__ import annotations

import io
import os
from pathlib import Path

from .config import FetchConfig
from .errors import PersistenceError
from .models import InterceptedExchange
from .utils import make_filepath

META_SUFFIX = ".meta"
_SUFFIX_CHARS = ".0123456789"


def save_response(request_url: str, data: bytes, output: str, overwrite: bool) -> str:
    """Write ``data`` to the path derived from ``request_url``.

    Without ``overwrite`` an existing file is never replaced: numbered
    suffixes (``.1``, ``.2``, ...) are tried until a free name is found.
    The probe is not atomic across concurrent writers.
    """
    path = make_filepath(output, request_url)
    Path(path).parent.mkdir(parents=True, exist_ok=True)

    counter = 1
    while not overwrite and os.path.exists(path):
        # strips an earlier numeric suffix, and also any digits or dots the
        # original name happened to end with
        path = f"{path.rstrip(_SUFFIX_CHARS)}.{counter}"
        counter += 1

    Path(path).write_bytes(data)
    return path


def format_meta(parent_url: str, exchange: InterceptedExchange) -> str:
    """Render the sidecar text describing one exchange."""
    buf = io.StringIO()
    buf.write(f"url: {exchange.url}\n")
    buf.write(f"parent: {parent_url}\n")
    buf.write(f"method: {exchange.method}\n")
    buf.write(f"type: {exchange.resource_type}\n")
    buf.write("\n")

    for name, value in exchange.request_headers.items():
        buf.write(f"> {name}: {value}\n")

    if exchange.post_data:
        buf.write(f"\n{exchange.post_data}\n")

    buf.write("\n")

    for name, value in exchange.response_headers:
        buf.write(f"< {name}: {value}\n")
    return buf.getvalue()


def save_meta(path: str, parent_url: str, exchange: InterceptedExchange) -> None:
    """Write the metadata sidecar for ``exchange`` to ``path``."""
    Path(path).write_text(format_meta(parent_url, exchange), encoding="utf-8")


def persist_exchange(
    exchange: InterceptedExchange,
    body: bytes,
    parent_url: str,
    config: FetchConfig,
) -> str:
    """Save the body and sidecar for an exchange, returning the body path."""
    try:
        path = save_response(exchange.url, body, config.output, config.overwrite)
    except (OSError, ValueError) as exc:
        raise PersistenceError(
            exchange.url, f"failed to save response data for {exchange.url}: {exc}"
        ) from exc

    try:
        save_meta(path + META_SUFFIX, parent_url, exchange)
    except OSError as exc:
        raise PersistenceError(
            exchange.url,
            f"failed to save response meta data for {exchange.url}: {exc}",
        ) from exc
    return path
