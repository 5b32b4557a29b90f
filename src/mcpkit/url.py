"""URL normalization for user-supplied site references.

Accepts:
- https://www.example.com
- http://www.example.com
- www.example.com
- example.com
"""

import re

from pydantic import HttpUrl, TypeAdapter, ValidationError

from .exceptions import InvalidUrlFormat

_HTTP_URL = TypeAdapter(HttpUrl)
_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://")

ACCEPTED_FORMS_HINT = "Please provide a valid URL (e.g., https://example.com, www.example.com, or example.com)"


def _parse(value: str) -> HttpUrl | None:
    try:
        url = _HTTP_URL.validate_python(value)
    except ValidationError:
        return None
    if not url.host:
        return None
    return url


def normalize_url(value: str) -> HttpUrl:
    """Normalize a site reference into an absolute, scheme-qualified URL.

    Raises:
        InvalidUrlFormat: If the input cannot be parsed as an http(s) URL.
    """
    candidate = value.strip()

    if candidate.lower().startswith(("http://", "https://")):
        url = _parse(candidate)
        if url is None:
            raise InvalidUrlFormat("Invalid URL format")
        return url

    if _SCHEME_RE.match(candidate):
        raise InvalidUrlFormat(f"Invalid URL format. Only http and https are supported. {ACCEPTED_FORMS_HINT}")

    url = _parse(f"https://{candidate}") if candidate else None
    if url is None:
        raise InvalidUrlFormat(f"Invalid URL format. {ACCEPTED_FORMS_HINT}")
    return url


def is_valid_url_input(value: str) -> bool:
    """Check whether a string can be normalized, without raising."""
    try:
        normalize_url(value)
    except InvalidUrlFormat:
        return False
    return True


def domain_of(url: HttpUrl | str) -> str:
    """Host name of a URL, used as the key for per-domain state."""
    if isinstance(url, str):
        url = normalize_url(url)
    return (url.host or "").lower()
