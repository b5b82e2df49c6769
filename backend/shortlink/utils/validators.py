import ipaddress
import re
from typing import Iterable, List, Optional
from urllib.parse import urlparse


MAX_URL_LENGTH = 2048
MAX_TAG_LENGTH = 30
SCHEME_PATTERN = re.compile(r'^https?://', re.IGNORECASE)


def normalize_url(url: str) -> str:
    """
    Trim a URL, add ``https://`` when it has no http(s) scheme, and validate it.

    Args:
        url: The URL as submitted

    Returns:
        The normalized URL

    Raises:
        ValueError: If the URL is not acceptable
    """
    url = (url or "").strip()
    if not url:
        raise ValueError("URL cannot be empty")

    if not SCHEME_PATTERN.match(url):
        url = "https://" + url

    is_valid, error_msg = is_valid_url(url)
    if not is_valid:
        raise ValueError(error_msg)

    return url


def is_valid_url(url: str) -> tuple[bool, str]:
    """
    Validate if a URL is well formed.

    Args:
        url: The URL to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not url:
        return False, "URL cannot be empty"

    if len(url) > MAX_URL_LENGTH:
        return False, f"URL is too long (max {MAX_URL_LENGTH} characters)"

    try:
        result = urlparse(url)
        hostname = result.hostname
    except ValueError as e:
        return False, f"Invalid URL: {e}"

    # Only http and https
    if result.scheme.lower() not in ('http', 'https'):
        return False, "Only HTTP and HTTPS URLs are allowed"

    if not hostname or any(c.isspace() for c in url):
        return False, "Please enter a valid URL"

    # Hostname needs a TLD unless it is an IP literal
    if '.' not in hostname.strip('.'):
        try:
            ipaddress.ip_address(hostname)
        except ValueError:
            return False, "Please enter a valid URL"

    return True, ""


def clean_tags(tags: Optional[Iterable[str]]) -> List[str]:
    """
    Trim tags, drop empty ones and duplicates (first occurrence wins).

    Raises:
        ValueError: If a tag exceeds MAX_TAG_LENGTH
    """
    result: List[str] = []
    for tag in tags or []:
        tag = (tag or "").strip()
        if not tag or tag in result:
            continue
        if len(tag) > MAX_TAG_LENGTH:
            raise ValueError(f"Tag cannot exceed {MAX_TAG_LENGTH} characters")
        result.append(tag)
    return result


def get_client_ip(request) -> str:
    """
    Get client IP address from request.

    Args:
        request: FastAPI request object

    Returns:
        Client IP address
    """
    # Check for X-Forwarded-For header (if behind proxy)
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # Take the first IP in the chain
        return forwarded.split(",")[0].strip()

    # Otherwise use client.host
    return request.client.host if request.client else "unknown"
