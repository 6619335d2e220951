from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import RedirectResponse

from shortlink_app.dependencies import get_link_service, parse_user_handle
from shortlink_app.exceptions import InvalidInputError
from shortlink_app.schemas.link import CreatedLinkResponse, LinkResponse, MessageResponse
from shortlink_app.services.link_service import LinkService

router = APIRouter(prefix="/api", tags=["links"])


def _require_user_handle(value: str):
    handle = parse_user_handle(value)
    if handle is None:
        raise InvalidInputError("userUuid is required")
    return handle


@router.post("/create", response_model=CreatedLinkResponse)
async def create_short_link(
    originalUrl: Optional[str] = Query(None, description="Original (long) URL"),
    userUuid: Optional[str] = Query(None, description="Owner handle, generated when absent"),
    email: Optional[str] = Query(None, description="Email for deactivation notices"),
    clickLimit: Optional[int] = Query(None, description="Requested click limit (default is a floor)"),
    ttlSeconds: Optional[int] = Query(None, description="Requested lifetime in seconds (default is a ceiling)"),
    link_service: LinkService = Depends(get_link_service)
):
    """Create a new short link"""
    user_handle = parse_user_handle(userUuid)
    if not originalUrl or not originalUrl.strip():
        raise InvalidInputError("originalUrl is required")
    
    link = await link_service.create_short_link(
        original_url=originalUrl,
        user_handle=user_handle,
        email=email,
        click_limit=clickLimit,
        ttl_seconds=ttlSeconds,
    )
    return CreatedLinkResponse.from_link(link)


@router.get("/{code}")
async def redirect_to_original_url(
    code: str,
    link_service: LinkService = Depends(get_link_service)
):
    """
    Redirect to the original URL.
    
    Unknown, inactive, exhausted and expired links all answer 400 with a
    human-readable detail.
    """
    original_url = await link_service.resolve_for_redirect(code)
    return RedirectResponse(url=original_url, status_code=status.HTTP_301_MOVED_PERMANENTLY)


@router.delete("/delete/{code}", response_model=MessageResponse)
async def delete_link(
    code: str,
    userUuid: Optional[str] = Query(None, description="Owner handle"),
    link_service: LinkService = Depends(get_link_service)
):
    """Delete a short link (owner only)"""
    user_handle = _require_user_handle(userUuid)
    await link_service.delete_link(user_handle, code)
    return MessageResponse(detail="Link deleted")


@router.put("/editLimit/{code}", response_model=LinkResponse)
async def edit_click_limit(
    code: str,
    newLimit: Optional[int] = Query(None, description="New click limit"),
    userUuid: Optional[str] = Query(None, description="Owner handle"),
    link_service: LinkService = Depends(get_link_service)
):
    """Change the click limit of a short link (owner only)"""
    user_handle = _require_user_handle(userUuid)
    if newLimit is None:
        raise InvalidInputError("newLimit is required")
    return await link_service.edit_click_limit(user_handle, code, newLimit)
