"""
Link Store: persistence of links and their click events.

Thin layer over a SQLAlchemy session. Code uniqueness is enforced by the
unique indexes on ``links.short_code`` and ``links.custom_slug``; callers
inserting links must be ready for ``IntegrityError``. Infrastructure
failures surface as ``StoreUnavailable``.
"""

import functools
import logging
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import and_, case, delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from .core.errors import StoreUnavailable
from .models import Click, Link

logger = logging.getLogger(__name__)

SORT_FIELDS = {
    "createdAt": Link.created_at,
    "clicks": Link.clicks_count,
    "title": Link.title,
}


def translate_store_errors(func_):
    """Roll back and re-raise driver-level failures as StoreUnavailable"""
    @functools.wraps(func_)
    def wrapper(self, *args, **kwargs):
        try:
            return func_(self, *args, **kwargs)
        except OperationalError as exc:
            self.db.rollback()
            logger.error("Store operation %s failed: %s", func_.__name__, exc.orig)
            raise StoreUnavailable(detail=str(exc.orig)) from exc
    return wrapper


def escape_like(text: str) -> str:
    """Make LIKE wildcards in user input match literally (escape char: backslash)"""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def resolvable_clause(now: datetime):
    """SQL form of Link.is_resolvable"""
    return and_(
        Link.is_active.is_(True),
        or_(Link.expires_at.is_(None), Link.expires_at > now),
    )


class LinkStore:
    def __init__(self, db: Session):
        self.db = db

    # Codes

    @translate_store_errors
    def code_taken(self, code: str, exclude_id: Optional[int] = None) -> bool:
        """True if ``code`` is used as a short code or a custom slug by any link"""
        query = self.db.query(Link.id).filter(
            or_(Link.short_code == code, Link.custom_slug == code)
        )
        if exclude_id is not None:
            query = query.filter(Link.id != exclude_id)
        return query.first() is not None

    @translate_store_errors
    def insert_link(self, link: Link) -> Link:
        """
        Persist a new link in its own transaction.

        Raises:
            IntegrityError: a unique constraint rejected the row; the
                transaction has been rolled back
        """
        self.db.add(link)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise
        self.db.refresh(link)
        return link

    @translate_store_errors
    def save(self, link: Link) -> Link:
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise
        self.db.refresh(link)
        return link

    # Lookups

    @translate_store_errors
    def find_by_code(self, code: str) -> Optional[Link]:
        """Find a link by short code or custom slug. No activity/expiry filtering."""
        return self.db.query(Link).filter(
            or_(Link.short_code == code, Link.custom_slug == code)
        ).order_by(Link.id).first()

    @translate_store_errors
    def get_link(self, link_id: int) -> Optional[Link]:
        return self.db.get(Link, link_id, populate_existing=True)

    @translate_store_errors
    def get_owned(self, link_id: int, owner_id: int) -> Optional[Link]:
        return self.db.query(Link).filter(
            Link.id == link_id,
            Link.owner_id == owner_id
        ).populate_existing().first()

    @translate_store_errors
    def list_owned(
        self,
        owner_id: int,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
        sort_by: str = "createdAt",
        ascending: bool = False,
    ) -> Tuple[List[Link], int]:
        query = self.db.query(Link).filter(Link.owner_id == owner_id)

        if search:
            pattern = f"%{escape_like(search.lower())}%"
            query = query.filter(
                func.lower(Link.title).like(pattern, escape="\\") |
                func.lower(Link.original_url).like(pattern, escape="\\") |
                func.lower(Link.custom_slug).like(pattern, escape="\\") |
                func.lower(Link.short_code).like(pattern, escape="\\")
            )

        total = query.count()

        column = SORT_FIELDS.get(sort_by, Link.created_at)
        query = query.order_by(column.asc() if ascending else column.desc(), Link.id.desc())
        links = query.offset((page - 1) * limit).limit(limit).all()
        return links, total

    @translate_store_errors
    def delete_owned(self, link_id: int, owner_id: int) -> bool:
        link = self.get_owned(link_id, owner_id)
        if link is None:
            return False
        self.db.delete(link)
        self.db.commit()
        return True

    # Clicks

    @translate_store_errors
    def append_click(
        self,
        link_id: int,
        click: Click,
        now: datetime,
        max_events: int,
        owner_id: Optional[int] = None,
        require_resolvable: bool = True,
    ) -> bool:
        """
        Record one click in a single transaction.

        The counter is incremented server-side by a conditional UPDATE,
        which also locks the link row, so the event insert and the trim
        of old events are serialized per link.

        Returns:
            False if no link matched the conditions (nothing was written)
        """
        conditions = [Link.id == link_id]
        if require_resolvable:
            conditions.append(resolvable_clause(now))
        if owner_id is not None:
            conditions.append(Link.owner_id == owner_id)

        try:
            result = self.db.execute(
                update(Link)
                .where(*conditions)
                .values(clicks_count=Link.clicks_count + 1, last_clicked_at=click.clicked_at)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                self.db.rollback()
                return False

            click.link_id = link_id
            self.db.add(click)
            self.db.flush()

            # Evict everything older than the newest max_events
            cutoff = self.db.execute(
                select(Click.id)
                .where(Click.link_id == link_id)
                .order_by(Click.id.desc())
                .offset(max_events)
                .limit(1)
            ).scalar()
            if cutoff is not None:
                self.db.execute(
                    delete(Click)
                    .where(Click.link_id == link_id, Click.id <= cutoff)
                    .execution_options(synchronize_session=False)
                )

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return True

    @translate_store_errors
    def click_events(self, link_id: int) -> List[Click]:
        return self.db.query(Click).filter(Click.link_id == link_id).order_by(Click.id).all()

    @translate_store_errors
    def count_clicks_since(self, link_id: int, since: datetime) -> int:
        return self.db.query(func.count(Click.id)).filter(
            Click.link_id == link_id,
            Click.clicked_at >= since
        ).scalar() or 0

    @translate_store_errors
    def owner_summary(self, owner_id: int, now: datetime) -> dict:
        active = case((resolvable_clause(now), 1), else_=0)
        total_links, total_clicks, active_links = self.db.query(
            func.count(Link.id),
            func.coalesce(func.sum(Link.clicks_count), 0),
            func.coalesce(func.sum(active), 0),
        ).filter(Link.owner_id == owner_id).one()

        return {
            "totalLinks": int(total_links),
            "totalClicks": int(total_clicks),
            "activeLinks": int(active_links),
        }
