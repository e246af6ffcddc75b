"""URL extraction and allow-list host matching."""

from __future__ import annotations

import re
from collections.abc import Iterable
from urllib.parse import urlsplit

_URL_PATTERN = re.compile(r"https?://[^\s)]+")


def extract_urls(text: str) -> list[str]:
    """Return every http(s) URL in the text, in order of appearance."""
    if not text:
        return []
    return _URL_PATTERN.findall(text)


def is_allowed_host(url: str, allowed_hosts: Iterable[str]) -> bool:
    """Return True if the URL's host is an allow-listed host or a subdomain of one.

    Matching is on a label boundary: ``www.jumia.com.ng`` matches
    ``jumia.com.ng`` but ``evil-jumia.com.ng`` and
    ``jumia.com.ng.evil.test`` do not.
    """
    try:
        host = urlsplit(url).hostname
    except ValueError:
        return False
    if not host:
        return False
    host = host.rstrip(".").lower()
    for allowed in allowed_hosts:
        allowed = allowed.lower()
        if host == allowed or host.endswith("." + allowed):
            return True
    return False
