"""User endpoints: profiles, follows and a user's items."""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Security, status
from pydantic import BaseModel, Field

from auth import get_current_user, get_optional_user
from listings import ListingManager
from reputation import ReputationEngine, SelfFollowError
from ..dependencies import get_listings, get_reputation

# Create router
router = APIRouter(
    prefix="/users",
    tags=["Users"]
)

class UpdateProfileRequest(BaseModel):
    """Request model for updating your profile."""
    bio: str = Field(..., max_length=1000)

@router.put("/me")
async def update_profile(
    request: UpdateProfileRequest,
    user_id: str = Security(get_current_user),
    reputation: ReputationEngine = Depends(get_reputation)
) -> Dict[str, Any]:
    return await reputation.update_bio(user_id, request.bio)

@router.get("/{user_id}")
async def get_profile(
    user_id: str,
    viewer_id: Optional[str] = Depends(get_optional_user),
    reputation: ReputationEngine = Depends(get_reputation)
) -> Dict[str, Any]:
    """Public profile; includes whether the caller follows this user."""
    profile = await reputation.profile(user_id)
    if viewer_id and viewer_id != user_id:
        profile['is_following'] = await reputation.is_following(viewer_id, user_id)
    return profile

@router.get("/{user_id}/items")
async def get_user_items(
    user_id: str,
    listings: ListingManager = Depends(get_listings)
) -> List[Dict[str, Any]]:
    """All items of a user, expired ones included."""
    return await listings.list_user_items(user_id)

@router.post("/{user_id}/follow")
async def follow_user(
    user_id: str,
    follower_id: str = Security(get_current_user),
    reputation: ReputationEngine = Depends(get_reputation)
) -> Dict[str, Any]:
    """Follow a user. Following twice is a no-op reporting followed=false."""
    try:
        followed = await reputation.follow(follower_id, user_id)
    except SelfFollowError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    return {'followed': followed}

@router.delete("/{user_id}/follow")
async def unfollow_user(
    user_id: str,
    follower_id: str = Security(get_current_user),
    reputation: ReputationEngine = Depends(get_reputation)
) -> Dict[str, Any]:
    return {'unfollowed': await reputation.unfollow(follower_id, user_id)}
