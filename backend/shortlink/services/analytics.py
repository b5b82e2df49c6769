from datetime import datetime
from typing import List, Optional

from ..config import settings
from ..models import Click, Link
from ..store import LinkStore
from ..utils.clock import start_of_day, utcnow, week_ago


def serialize_click(click: Click) -> dict:
    return {
        "timestamp": click.clicked_at,
        "ipAddress": click.ip_address,
        "userAgent": click.user_agent,
        "referer": click.referer,
        "country": click.country,
        "city": click.city,
    }


def get_clicks_today(store: LinkStore, link_id: int, now: datetime) -> int:
    """Clicks since midnight in the configured timezone"""
    return store.count_clicks_since(link_id, start_of_day(now, settings.TIMEZONE))


def get_clicks_this_week(store: LinkStore, link_id: int, now: datetime) -> int:
    """Clicks in the trailing 7 days, boundary included"""
    return store.count_clicks_since(link_id, week_ago(now))


def get_link_analytics(store: LinkStore, link: Link, now: Optional[datetime] = None) -> dict:
    """
    Click summary for one link.

    Counts are over retained events; totalClicks is the lifetime counter,
    which is unaffected by event eviction.
    """
    now = now or utcnow()
    events: List[Click] = store.click_events(link.id)

    return {
        "totalClicks": link.clicks_count,
        "clicksToday": get_clicks_today(store, link.id, now),
        "clicksThisWeek": get_clicks_this_week(store, link.id, now),
        "lastClickedAt": link.last_clicked_at,
        "clickEvents": [serialize_click(click) for click in events],
    }


def get_owner_summary(store: LinkStore, owner_id: int, now: Optional[datetime] = None) -> dict:
    """Totals across all links of an owner, computed on demand"""
    return store.owner_summary(owner_id, now or utcnow())
