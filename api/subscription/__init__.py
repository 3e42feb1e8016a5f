"""Subscription and coin balance endpoints."""

from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Security, status
from pydantic import BaseModel, Field

from auth import get_current_user, require_admin
from ledger import Ledger, LedgerError, SUBSCRIPTION_TIERS
from ..dependencies import get_ledger

# Create router
router = APIRouter(
    prefix="/subscription",
    tags=["Subscription"]
)

class PurchaseTierRequest(BaseModel):
    """Request model for buying a subscription tier."""
    tier: str

class CreditRequest(BaseModel):
    """Request model for crediting coins to a user."""
    user_id: str = Field(..., min_length=1)
    amount: int = Field(..., gt=0)

@router.get("/tiers")
async def list_tiers() -> Dict[str, Any]:
    return SUBSCRIPTION_TIERS

@router.post("/purchase")
async def purchase_tier(
    request: PurchaseTierRequest,
    user_id: str = Security(get_current_user),
    ledger: Ledger = Depends(get_ledger)
) -> Dict[str, Any]:
    """Buy a subscription tier with coins."""
    try:
        subscription = await ledger.purchase_tier(user_id, request.tier)
    except LedgerError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

    return {
        'success': True,
        'tier': subscription['tier'],
        'expires_at': subscription['expires_at'],
        'balance': await ledger.balance(user_id)
    }

@router.get("/status")
async def subscription_status(
    user_id: str = Security(get_current_user),
    ledger: Ledger = Depends(get_ledger)
) -> Dict[str, Any]:
    """Current tier, expiry and balance."""
    return await ledger.summary(user_id)

@router.post("/credit")
async def credit_coins(
    request: CreditRequest,
    admin_id: str = Security(require_admin),
    ledger: Ledger = Depends(get_ledger)
) -> Dict[str, Any]:
    """Credit coins to a user (admin only)."""
    balance = await ledger.credit(request.user_id, request.amount)
    return {'user_id': request.user_id, 'balance': balance}
