"""
Redirect / click recorder.

Both entry points share ``_record``: the store increments the counter and
appends the event in one transaction, keeping at most
``settings.MAX_CLICK_EVENTS`` events per link.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from ..config import settings
from ..core.errors import LinkNotFound
from ..models import Click, Link
from ..store import LinkStore
from ..utils.clock import utcnow

logger = logging.getLogger(__name__)


@dataclass
class ClickData:
    """Request metadata for one visit. Missing values get defaults."""
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    referer: Optional[str] = None
    country: Optional[str] = None
    city: Optional[str] = None

    def to_click(self, timestamp) -> Click:
        return Click(
            clicked_at=timestamp,
            ip_address=(self.ip_address or "unknown")[:45],
            user_agent=(self.user_agent or "")[:512],
            referer=(self.referer or "")[:512],
            country=(self.country or "")[:100],
            city=(self.city or "")[:100],
        )


def _record(store: LinkStore, link_id: int, click: ClickData, **conditions) -> bool:
    now = utcnow()
    return store.append_click(
        link_id,
        click.to_click(now),
        now=now,
        max_events=settings.MAX_CLICK_EVENTS,
        **conditions
    )


def resolve_and_record(store: LinkStore, code: str, click: Optional[ClickData] = None) -> str:
    """
    Resolve a public code and record the visit.

    Returns:
        The destination URL

    Raises:
        LinkNotFound: unknown code, inactive or expired link
    """
    link = store.find_by_code(code)

    # Activity and expiry are checked here, whatever the lookup filtered
    if link is None or not link.is_resolvable(utcnow()):
        logger.warning("Short code not found or not resolvable: %s", code)
        raise LinkNotFound("Link not found or has expired")

    # The UPDATE re-checks resolvability, in case the link changed since lookup
    if not _record(store, link.id, click or ClickData(), require_resolvable=True):
        raise LinkNotFound("Link not found or has expired")

    logger.debug("Recorded click for %s", code)
    return link.original_url


def record_owner_click(
    store: LinkStore,
    owner_id: int,
    link_id: int,
    click: Optional[ClickData] = None,
) -> Link:
    """
    Record a click on behalf of the link's owner (API-driven simulation).

    Ownership replaces the resolvability condition: owners may record
    clicks on inactive or expired links.

    Raises:
        LinkNotFound: link missing or owned by someone else
    """
    recorded = _record(
        store, link_id, click or ClickData(), owner_id=owner_id, require_resolvable=False
    )
    if not recorded:
        raise LinkNotFound()

    logger.debug("Recorded owner click for link %s", link_id)
    return store.get_link(link_id)
