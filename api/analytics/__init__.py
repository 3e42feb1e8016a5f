"""Engagement tracking endpoint."""

from typing import Any, Dict, Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel

from auth import get_optional_user
from engagement import EngagementTracker, ItemNotFoundError
from ..dependencies import get_tracker

# Create router
router = APIRouter(
    prefix="/analytics",
    tags=["Analytics"]
)

class TrackRequest(BaseModel):
    """Request model for tracking a view or download."""
    item_id: UUID
    type: Literal['view', 'download']
    country: Optional[str] = None

@router.post("", status_code=status.HTTP_201_CREATED)
async def track_event(
    request: TrackRequest,
    response: Response,
    user_id: Optional[str] = Depends(get_optional_user),
    tracker: EngagementTracker = Depends(get_tracker)
) -> Dict[str, Any]:
    """Record an engagement event.

    Returns 201 with the event, or 200 when this user already recorded the
    same event type on the item.
    """
    try:
        event = await tracker.record(request.item_id, user_id, request.type, request.country)
    except ItemNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )

    if event is None:
        response.status_code = status.HTTP_200_OK
        return {'recorded': False, 'message': 'already recorded'}
    return {'recorded': True, 'event': event}
