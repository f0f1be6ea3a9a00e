from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from dashboard.dependencies import get_services, parse_island
from dashboard.schemas import SubscribeRequest, SubscriptionResponse
from data_sources.payloads import Island
from feeds.container import Services

router = APIRouter(prefix="/api/newsletter", tags=["Newsletter"])


@router.post("", response_model=SubscriptionResponse)
async def subscribe(body: SubscribeRequest, services: Services = Depends(get_services)):
    """
    Subscribe an email address to the daily island briefing and send the welcome email.
    """
    island = parse_island(body.island, default=Island.OAHU)
    result = await services.dispatcher.subscribe(body.email, island)
    if not result.success:
        raise HTTPException(status_code=400, detail=result.message)
    return SubscriptionResponse(success=True, message=result.message, island=island.value)


@router.delete("", response_model=SubscriptionResponse)
def unsubscribe(email: str, token: Optional[str] = None, services: Services = Depends(get_services)):
    """
    Unsubscribe; when a token is given it must match the subscriber's.
    """
    result = services.subscribers.unsubscribe(email, token)
    if not result.success:
        raise HTTPException(status_code=400, detail=result.message)
    return SubscriptionResponse(success=True, message=result.message)
