"""
Link Allocator: assigns a globally unique code to a new link.

Generated codes are retried under a bounded ``RetryPolicy``; custom slugs
are never retried or altered. The pre-insert existence check is only an
optimisation: the unique indexes are what actually guarantee uniqueness,
so an ``IntegrityError`` at insert time is treated as a collision.
"""

import logging
import time
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy.exc import IntegrityError

from ..config import settings
from ..core.errors import CodeSpaceExhausted, SlugTaken, ValidationFailed
from ..core.shortener import generate_short_code, validate_custom_slug
from ..models import Link
from ..models.link import DEFAULT_TITLE
from ..store import LinkStore
from ..utils.clock import to_naive_utc
from ..utils.validators import clean_tags, normalize_url

logger = logging.getLogger(__name__)


@dataclass
class RetryPolicy:
    """Bounded retry for generated-code collisions"""
    max_attempts: int = 10
    backoff_seconds: float = 0.0  # linear: attempt * backoff_seconds

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(
            max_attempts=settings.MAX_CODE_ATTEMPTS,
            backoff_seconds=settings.CODE_RETRY_BACKOFF_MS / 1000.0,
        )

    def pause(self, attempt: int) -> None:
        if self.backoff_seconds > 0:
            time.sleep(self.backoff_seconds * attempt)


@dataclass
class NewLink:
    """Input for create_link"""
    original_url: str
    custom_slug: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    expires_at: Optional[datetime] = None


def _build_link(owner_id: int, data: NewLink, code: str, custom_slug: Optional[str]) -> Link:
    title = (data.title or "").strip()
    description = (data.description or "").strip()
    return Link(
        short_code=code,
        custom_slug=custom_slug,
        original_url=data.original_url,
        title=title or DEFAULT_TITLE,
        description=description or None,
        owner_id=owner_id,
        tags=list(data.tags),
        expires_at=to_naive_utc(data.expires_at),
        clicks_count=0,
        is_active=True,
    )


def create_link(
    store: LinkStore,
    owner_id: int,
    data: NewLink,
    policy: Optional[RetryPolicy] = None,
    generator: Optional[Callable[[], str]] = None,
) -> Link:
    """
    Create and persist a link with a unique code.

    Args:
        store: Link store bound to the request session
        owner_id: Id of the creating user
        data: Requested link fields
        policy: Retry policy for generated codes
        generator: Zero-argument code factory

    Returns:
        The persisted link

    Raises:
        ValidationFailed: URL or slug is malformed
        SlugTaken: custom slug already used in either namespace
        CodeSpaceExhausted: every generated candidate collided
    """
    policy = policy or RetryPolicy.from_settings()
    generator = generator or (lambda: generate_short_code(settings.SHORT_CODE_LENGTH))

    try:
        data = replace(
            data,
            original_url=normalize_url(data.original_url),
            tags=clean_tags(data.tags),
        )
    except ValueError as e:
        raise ValidationFailed(str(e))

    slug = (data.custom_slug or "").strip()
    if slug:
        return _create_with_slug(store, owner_id, data, slug)

    for attempt in range(1, policy.max_attempts + 1):
        code = generator()

        if store.code_taken(code):
            logger.debug("Generated code %s collides (attempt %d/%d)", code, attempt, policy.max_attempts)
            policy.pause(attempt)
            continue

        try:
            link = store.insert_link(_build_link(owner_id, data, code, None))
        except IntegrityError:
            logger.debug("Code %s taken at insert time (attempt %d/%d)", code, attempt, policy.max_attempts)
            policy.pause(attempt)
            continue

        logger.info("Created link %s -> %s for user %s", link.short_code, link.original_url, owner_id)
        return link

    logger.error("Failed to generate unique short code after %d attempts", policy.max_attempts)
    raise CodeSpaceExhausted()


def _create_with_slug(store: LinkStore, owner_id: int, data: NewLink, slug: str) -> Link:
    is_valid, error_msg = validate_custom_slug(slug)
    if not is_valid:
        raise ValidationFailed(error_msg)

    if store.code_taken(slug):
        logger.warning("Custom slug %s is already taken", slug)
        raise SlugTaken()

    try:
        link = store.insert_link(_build_link(owner_id, data, slug, slug))
    except IntegrityError:
        logger.warning("Custom slug %s taken at insert time", slug)
        raise SlugTaken()

    logger.info("Created link %s -> %s for user %s", slug, link.original_url, owner_id)
    return link


def change_custom_slug(store: LinkStore, link: Link, slug: str) -> None:
    """
    Validate and assign a new custom slug to an existing link (not committed).

    A link created with a slug carries it as its short code too; the short
    code follows the slug so the old one stops resolving and is freed.
    """
    slug = slug.strip()
    if slug == link.custom_slug:
        return

    is_valid, error_msg = validate_custom_slug(slug)
    if not is_valid:
        raise ValidationFailed(error_msg)

    if store.code_taken(slug, exclude_id=link.id):
        raise SlugTaken()

    if link.custom_slug is not None and link.short_code == link.custom_slug:
        link.short_code = slug
    link.custom_slug = slug
