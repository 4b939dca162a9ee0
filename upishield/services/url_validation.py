"""
Strict URL validation and hostname normalization.

Runs before any heuristic scoring. Anything that fails here is treated as
maximally dangerous by the phishing analyzer.
"""

import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlsplit, urlunsplit

SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)
WHITESPACE_RE = re.compile(r"\s")
ILLEGAL_HOST_CHARS_RE = re.compile(r"[@%!_]")
BAD_WWW_PREFIX_RE = re.compile(r"^(?:w{1,2}|w\d+w)$")


@dataclass(frozen=True)
class UrlValidation:
    """Outcome of validate_and_normalize."""
    ok: bool
    normalized_domain: str = ""
    clean_url: str = ""
    protocol: str = ""  # "http" or "https"
    error: Optional[str] = None


def _fail(error: str) -> UrlValidation:
    return UrlValidation(ok=False, error=error)


def validate_and_normalize(raw_url: Optional[str]) -> UrlValidation:
    """
    Validate a user-supplied URL and derive its canonical hostname.

    Rejects missing or malformed schemes, embedded whitespace or credentials,
    unparseable structure, suspicious hostname characters, "--" outside
    punycode and mistyped "www" prefixes. On success the hostname is
    lower-cased and a single leading "www." is removed.
    """
    if not raw_url or not raw_url.strip():
        return _fail("Empty URL provided.")

    url = raw_url

    if not SCHEME_RE.match(url):
        return _fail("Invalid or missing protocol. URL must start with http:// or https://")

    if WHITESPACE_RE.search(url):
        return _fail("URL contains illegal content (whitespace).")

    try:
        parts = urlsplit(url)
        hostname = parts.hostname
        parts.port  # raises ValueError for a malformed port
    except ValueError:
        return _fail("Malformed URL structure.")

    if not hostname:
        return _fail("Malformed URL structure.")

    if "@" in parts.netloc:
        return _fail("URL embeds credentials (@) before the hostname.")

    if ILLEGAL_HOST_CHARS_RE.search(hostname):
        return _fail("Hostname contains illegal or suspicious characters (@, %, !, _).")

    if "--" in hostname and not hostname.startswith("xn--"):
        return _fail('Hostname contains suspicious pattern "--".')

    if hostname.startswith("ww.") and not hostname.startswith("www."):
        return _fail("Invalid subdomain prefix detected: ww")

    labels = hostname.split(".")
    if len(labels) > 2 and BAD_WWW_PREFIX_RE.match(labels[0]):
        return _fail(f"Invalid subdomain prefix detected: {labels[0]}")

    normalized_domain = hostname.lower()
    if normalized_domain.startswith("www."):
        normalized_domain = normalized_domain[4:]

    scheme = parts.scheme.lower()
    clean_url = urlunsplit((
        scheme,
        parts.netloc.lower(),
        parts.path or "/",
        parts.query,
        parts.fragment,
    ))

    return UrlValidation(
        ok=True,
        normalized_domain=normalized_domain,
        clean_url=clean_url,
        protocol=scheme,
    )
