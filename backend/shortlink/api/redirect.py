from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from ..config import settings
from ..database import get_db
from ..services.clicks import ClickData, resolve_and_record
from ..store import LinkStore
from ..utils.validators import get_client_ip

router = APIRouter()


@router.get("/r/{code}")
def redirect_to_url(
    code: str,
    request: Request,
    db: Session = Depends(get_db)
):
    """
    Redirect to the original URL from a short code or custom slug.

    Records click statistics. Unknown, inactive and expired links all
    produce the same 404.
    """
    original_url = resolve_and_record(
        LinkStore(db),
        code,
        ClickData(
            ip_address=get_client_ip(request),
            user_agent=request.headers.get('user-agent'),
            referer=request.headers.get('referer'),
            country=request.headers.get('cf-ipcountry'),
        ),
    )

    response = RedirectResponse(url=original_url, status_code=settings.REDIRECT_STATUS_CODE)
    response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate, max-age=0"
    response.headers["Pragma"] = "no-cache"
    response.headers["Expires"] = "0"

    return response
