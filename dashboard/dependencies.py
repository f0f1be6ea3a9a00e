"""
Shared route dependencies: service container, input parsing, admin guard.
"""
import hmac
from typing import Optional

from fastapi import Header, HTTPException, Request

from data_sources.payloads import EventCategory, Island, NewsCategory
from feeds.container import Services


def get_services(request: Request) -> Services:
    return request.app.state.services


def parse_island(value: Optional[str], default: Optional[Island] = None) -> Optional[Island]:
    if value is None or value == "":
        return default
    try:
        return Island.parse(value)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def parse_news_category(value: Optional[str]) -> Optional[NewsCategory]:
    if not value:
        return None
    try:
        return NewsCategory(value.strip().lower())
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid news category: {value}")


def parse_event_category(value: Optional[str]) -> Optional[EventCategory]:
    if not value:
        return None
    try:
        return EventCategory(value.strip().lower())
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid event category: {value}")


def require_admin(request: Request, x_admin_token: Optional[str] = Header(None)) -> None:
    """
    Guard for administrative routes.

    503 when no admin token is configured, 401 when the X-Admin-Token
    header is missing or does not match (constant-time compare).
    """
    expected = get_services(request).config.admin_token
    if not expected:
        raise HTTPException(status_code=503, detail="Admin access not configured")
    if not x_admin_token or not hmac.compare_digest(x_admin_token.encode(), expected.encode()):
        raise HTTPException(status_code=401, detail="Invalid admin token")
