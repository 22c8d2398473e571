"""Decide which intercepted responses get written to disk."""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Tuple
from urllib.parse import urlsplit

import tldextract

from .config import FetchConfig
from .models import InterceptedExchange

logger = logging.getLogger("page_fetch")

UNKNOWN_CONTENT_TYPE = "unknown"

# bundled public suffix snapshot only; never fetch the list over the network.
# private suffixes (github.io, cloudfront.net) separate their tenants
_TLDX = tldextract.TLDExtract(suffix_list_urls=(), include_psl_private_domains=True)


def content_type_of(headers: Iterable[Tuple[str, str]]) -> str:
    """Return the lower-cased content type, or ``"unknown"`` when absent.

    If the header is repeated the last occurrence wins.
    """
    content_type = UNKNOWN_CONTENT_TYPE
    for name, value in headers:
        if name.lower() == "content-type":
            content_type = value.lower()
    return content_type


def hostname_of(url: str) -> str:
    """Return the hostname of ``url``, or an empty string if it has none."""
    try:
        return urlsplit(url).hostname or ""
    except ValueError:
        return ""


def registrable_domain(hostname: str) -> Optional[str]:
    """Return the eTLD+1 for ``hostname``, or None if it has none."""
    if not hostname:
        return None
    ext = _TLDX(hostname)
    if not ext.domain or not ext.suffix:
        return None
    return f"{ext.domain}.{ext.suffix}"


def is_third_party(base: str, sub: str) -> bool:
    """Whether two hostnames belong to different registrable domains.

    Hostnames without a registrable domain (IP literals, single labels,
    garbage) are treated as the same party.
    """
    base_domain = registrable_domain(base)
    if base_domain is None:
        return False
    sub_domain = registrable_domain(sub)
    if sub_domain is None:
        return False
    return base_domain != sub_domain


def should_save(
    exchange: InterceptedExchange,
    job_url: str,
    config: FetchConfig,
) -> bool:
    """Apply the content-type and party filters to one exchange."""
    content_type = content_type_of(exchange.response_headers)

    # only the first include entry is ever consulted
    if config.includes and config.includes[0].lower() not in content_type:
        return False

    for exclude in config.excludes:
        if exclude.lower() in content_type:
            return False

    if not (config.third_party_only or config.no_third_party):
        return True

    third_party = is_third_party(hostname_of(job_url), hostname_of(exchange.url))
    logger.debug(
        "Party check %s -> %s: %s",
        job_url,
        exchange.url,
        "third-party" if third_party else "first-party",
    )
    if config.third_party_only:
        return third_party
    return not third_party
