import re
import secrets
import string
from typing import Tuple

from .errors import InvalidConfiguration


# URL-safe alphabet: letters, digits, hyphen, underscore (64 symbols)
CHARSET = string.ascii_letters + string.digits + "-_"

SHORT_CODE_MIN_LENGTH = 4
SHORT_CODE_MAX_LENGTH = 20
SLUG_MIN_LENGTH = 3
SLUG_MAX_LENGTH = 50
SLUG_PATTERN = re.compile(r'^[a-zA-Z0-9_-]+$')

# Route prefixes a slug must not shadow
RESERVED_SLUGS = {
    'api', 'r', 'health', 'docs', 'redoc', 'openapi', 'admin', 'static'
}


def generate_short_code(length: int = 10) -> str:
    """
    Generate a random short code.

    Args:
        length: Length of the code (4 to 20 characters)

    Returns:
        A random code drawn from CHARSET

    Note:
        - 8 chars: 64^8 ~ 2.8e14 combinations
        - 10 chars: 64^10 ~ 1.2e18 combinations
    """
    if isinstance(length, bool) or not isinstance(length, int) or length <= 0:
        raise InvalidConfiguration(f"Short code length must be a positive integer, got {length!r}")
    if not SHORT_CODE_MIN_LENGTH <= length <= SHORT_CODE_MAX_LENGTH:
        raise InvalidConfiguration(
            f"Short code length must be between {SHORT_CODE_MIN_LENGTH} and {SHORT_CODE_MAX_LENGTH}"
        )

    return ''.join(secrets.choice(CHARSET) for _ in range(length))


def validate_custom_slug(slug: str) -> Tuple[bool, str]:
    """
    Validate a user-chosen slug.

    Args:
        slug: The custom slug to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not slug:
        return False, "Custom slug cannot be empty"

    if len(slug) < SLUG_MIN_LENGTH:
        return False, f"Custom slug must be at least {SLUG_MIN_LENGTH} characters long"

    if len(slug) > SLUG_MAX_LENGTH:
        return False, f"Custom slug cannot exceed {SLUG_MAX_LENGTH} characters"

    if not SLUG_PATTERN.match(slug):
        return False, "Custom slug can only contain letters, numbers, hyphens, and underscores"

    if slug.lower() in RESERVED_SLUGS:
        return False, f"'{slug}' is a reserved word and cannot be used"

    return True, ""
