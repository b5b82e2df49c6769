import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, Request
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import settings
from ..core.errors import LinkNotFound, SlugTaken, ValidationFailed
from ..core.security import get_current_user
from ..database import get_db
from ..models import Link, User
from ..models.link import DEFAULT_TITLE
from ..schemas.link import ClickCreate, LinkCreate, LinkUpdate
from ..services.allocator import NewLink, change_custom_slug, create_link
from ..services.analytics import get_link_analytics, get_owner_summary
from ..services.clicks import ClickData, record_owner_click
from ..store import LinkStore
from ..utils.clock import to_naive_utc
from ..utils.validators import clean_tags, normalize_url

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/links")
limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)


def get_short_url(link: Link) -> str:
    return f"{settings.BASE_URL.rstrip('/')}/r/{link.code}"


def serialize_link(link: Link) -> dict:
    """Owner view of a link. Click events are not included."""
    return {
        "id": link.id,
        "originalUrl": link.original_url,
        "shortCode": link.short_code,
        "customSlug": link.custom_slug,
        "shortUrl": get_short_url(link),
        "title": link.title,
        "description": link.description,
        "tags": link.tags or [],
        "clicks": link.clicks_count,
        "isActive": link.is_active,
        "expiresAt": link.expires_at,
        "lastClickedAt": link.last_clicked_at,
        "createdAt": link.created_at,
        "updatedAt": link.updated_at,
    }


def get_owned_link(store: LinkStore, link_id: int, user: User) -> Link:
    link = store.get_owned(link_id, user.id)
    if link is None:
        raise LinkNotFound()
    return link


@router.post("", status_code=201)
@limiter.limit(f"{settings.RATE_LIMIT_PER_HOUR}/hour")
def create_short_link(
    request: Request,
    link_data: LinkCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Create a short link, with a custom slug or a generated code.

    Rate limited to prevent spam.
    """
    link = create_link(
        LinkStore(db),
        current_user.id,
        NewLink(
            original_url=link_data.original_url,
            custom_slug=link_data.custom_slug,
            title=link_data.title,
            description=link_data.description,
            tags=link_data.tags,
            expires_at=link_data.expires_at,
        ),
    )

    return {
        "success": True,
        "message": "Short link created successfully",
        "data": {"link": serialize_link(link)}
    }


@router.get("")
def get_user_links(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    sort_by: Literal["createdAt", "clicks", "title"] = Query("createdAt", alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query("desc", alias="sortOrder"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """List the current user's links with pagination and search."""
    links, total = LinkStore(db).list_owned(
        current_user.id,
        page=page,
        limit=limit,
        search=search,
        sort_by=sort_by,
        ascending=sort_order == "asc",
    )

    return {
        "success": True,
        "data": {
            "links": [serialize_link(link) for link in links],
            "pagination": {
                "current": page,
                "total": (total + limit - 1) // limit,
                "count": len(links),
                "totalCount": total
            }
        }
    }


@router.get("/summary")
def get_user_summary(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Totals across all of the current user's links."""
    return {
        "success": True,
        "data": {"summary": get_owner_summary(LinkStore(db), current_user.id)}
    }


@router.get("/{link_id}")
def get_link_by_id(
    link_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    link = get_owned_link(LinkStore(db), link_id, current_user)
    return {"success": True, "data": {"link": serialize_link(link)}}


@router.patch("/{link_id}")
def update_link(
    link_id: int,
    link_data: LinkUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Update an owned link. Only the fields present in the body change."""
    store = LinkStore(db)
    link = get_owned_link(store, link_id, current_user)
    fields = link_data.model_fields_set

    try:
        if link_data.original_url is not None:
            link.original_url = normalize_url(link_data.original_url)
        if link_data.tags is not None:
            link.tags = clean_tags(link_data.tags)
    except ValueError as e:
        db.rollback()
        raise ValidationFailed(str(e))

    if link_data.custom_slug is not None:
        change_custom_slug(store, link, link_data.custom_slug)
    if link_data.title is not None:
        link.title = link_data.title.strip() or DEFAULT_TITLE
    if link_data.description is not None:
        link.description = link_data.description.strip() or None
    if "expires_at" in fields:
        link.expires_at = to_naive_utc(link_data.expires_at)
    if link_data.is_active is not None:
        link.is_active = link_data.is_active

    try:
        link = store.save(link)
    except IntegrityError:
        raise SlugTaken()

    logger.info("Updated link %s for user %s", link.id, current_user.id)
    return {
        "success": True,
        "message": "Link updated successfully",
        "data": {"link": serialize_link(link)}
    }


@router.delete("/{link_id}")
def delete_link(
    link_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Delete an owned link, freeing its code and slug."""
    if not LinkStore(db).delete_owned(link_id, current_user.id):
        raise LinkNotFound()

    logger.info("Deleted link %s for user %s", link_id, current_user.id)
    return {"success": True, "message": "Link deleted successfully"}


@router.get("/{link_id}/analytics")
def get_link_analytics_endpoint(
    link_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Click analytics for an owned link."""
    store = LinkStore(db)
    link = get_owned_link(store, link_id, current_user)

    return {
        "success": True,
        "data": {
            "link": {
                **serialize_link(link),
                "analytics": get_link_analytics(store, link)
            }
        }
    }


@router.post("/{link_id}/click")
def record_click(
    link_id: int,
    click_data: Optional[ClickCreate] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Record a click on an owned link (API-driven testing)."""
    click_data = click_data or ClickCreate()
    link = record_owner_click(
        LinkStore(db),
        current_user.id,
        link_id,
        ClickData(
            ip_address=click_data.ip_address,
            user_agent=click_data.user_agent,
            referer=click_data.referer,
        ),
    )

    return {
        "success": True,
        "message": "Click recorded successfully",
        "data": {"link": serialize_link(link)}
    }
