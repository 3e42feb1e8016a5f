"""Creator earnings endpoint."""

from typing import Any, Dict

from fastapi import APIRouter, Depends, Security

from auth import get_current_user
from reputation import ReputationEngine
from ..dependencies import get_reputation

# Create router
router = APIRouter(
    prefix="/earnings",
    tags=["Earnings"]
)

@router.get("")
async def get_earnings(
    user_id: str = Security(get_current_user),
    reputation: ReputationEngine = Depends(get_reputation)
) -> Dict[str, Any]:
    """Balance, earnings, trailing engagement and verification standing."""
    return await reputation.earnings_overview(user_id)
