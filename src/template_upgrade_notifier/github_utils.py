from __future__ import annotations

import logging
from typing import Final
from urllib.parse import urlparse

from github import Auth, Github, GithubException
from github.Repository import Repository

# Module-wide logger
logger: logging.Logger = logging.getLogger(__name__)

DEFAULT_API_URL: Final = "https://api.github.com"
DEFAULT_CLONE_BASE_URL: Final = "https://github.com"

# GitHub Enterprise Server serves its REST API below this path on the web host
ENTERPRISE_API_PATH: Final = "/api/v3"

# Page size for every paginated request, including code search
PER_PAGE: Final = 100

_PERMISSION_MARKERS: Final = ("403", "forbidden", "permission")


def get_client(token: str, api_url: str | None = None) -> Github:
    """Get a GitHub client authenticated with the token."""
    return Github(auth=Auth.Token(token), base_url=api_url or DEFAULT_API_URL, per_page=PER_PAGE)


def clone_base_url_for(api_url: str | None) -> str:
    """Derive the git web host from an API base URL.

    ``https://api.github.com`` maps to ``https://github.com`` and a GitHub
    Enterprise URL such as ``https://ghe.example.com/api/v3`` maps to
    ``https://ghe.example.com``.
    """
    if not api_url:
        return DEFAULT_CLONE_BASE_URL

    parsed = urlparse(api_url.rstrip("/"))
    host = parsed.netloc.removeprefix("api.")
    path = parsed.path.removesuffix(ENTERPRISE_API_PATH)
    return f"{parsed.scheme or 'https'}://{host}{path}"


def get_repo(client: Github, full_name: str) -> Repository:
    """Return a lazy repository handle; no request is made until an attribute is needed."""
    return client.get_repo(full_name, lazy=True)


def is_permission_denied(error: GithubException) -> bool:
    """Check whether an API error means the token lacks write access to the repository."""
    if error.status == 403:
        return True
    message = str(error).lower()
    return any(marker in message for marker in _PERMISSION_MARKERS)


def _header(error: GithubException, name: str) -> str | None:
    headers = error.headers or {}
    for key, value in headers.items():
        if key.lower() == name:
            return value
    return None


def retry_after_seconds(error: GithubException) -> float | None:
    """Return the Retry-After delay sent with an error response, if any."""
    value = _header(error, "retry-after")
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        logger.debug(f"Ignoring non-numeric Retry-After header: {value!r}")
        return None


def rate_limit_reset(error: GithubException) -> int | None:
    """Return the X-RateLimit-Reset timestamp sent with an error response, if any."""
    value = _header(error, "x-ratelimit-reset")
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None
