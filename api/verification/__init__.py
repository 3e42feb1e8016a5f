"""Creator verification endpoints."""

from typing import Any, Dict
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Security, status
from pydantic import BaseModel

from auth import get_current_user, require_admin
from reputation import (
    ReputationEngine,
    RequirementsNotMetError,
    AlreadyPendingError,
    RequestNotFoundError
)
from ..dependencies import get_reputation

# Create router
router = APIRouter(
    prefix="/verification",
    tags=["Verification"]
)

class ResolveRequest(BaseModel):
    """Request model for an admin verification decision."""
    approved: bool

@router.get("/eligibility")
async def get_eligibility(
    user_id: str = Security(get_current_user),
    reputation: ReputationEngine = Depends(get_reputation)
) -> Dict[str, Any]:
    """Current standing against the verification thresholds."""
    return await reputation.eligibility(user_id)

@router.post("/request")
async def request_verification(
    user_id: str = Security(get_current_user),
    reputation: ReputationEngine = Depends(get_reputation)
) -> Dict[str, Any]:
    """Apply for creator verification."""
    try:
        return await reputation.request_verification(user_id)
    except RequirementsNotMetError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": str(e), "eligibility": e.eligibility}
        )
    except AlreadyPendingError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

@router.post("/{request_id}/resolve")
async def resolve_verification(
    request_id: UUID,
    request: ResolveRequest,
    admin_id: str = Security(require_admin),
    reputation: ReputationEngine = Depends(get_reputation)
) -> Dict[str, Any]:
    """Approve or reject a pending request (admin only)."""
    try:
        return await reputation.resolve_verification(request_id, request.approved)
    except RequestNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
