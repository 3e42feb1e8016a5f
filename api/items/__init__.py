"""Item endpoints: listings, rescans, stats, ratings, reports and purchases."""

import base64
import binascii
import logging
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Response, Security, status
from pydantic import BaseModel, ConfigDict, Field

from auth import get_current_user, get_optional_user
from engagement import EngagementTracker
from ledger import Ledger, InsufficientFundsError, SelfPurchaseError
from listings import (
    ListingManager,
    ListingNotFoundError,
    ListingPermissionError,
    ListingValidationError,
    PremiumRequiredError
)
from reputation import ReputationEngine, InvalidRatingError, ItemNotFoundError as RatedItemNotFoundError
from safety import SafetyPipeline, ItemNotFoundError as ScannedItemNotFoundError
from safety.reports import ReportManager, InvalidReportError, ReportNotFoundError
from ..dependencies import get_ledger, get_listings, get_pipeline, get_reports, get_reputation, get_tracker

logger = logging.getLogger(__name__)

# Create router
router = APIRouter(
    prefix="/items",
    tags=["Items"]
)

class CreateItemRequest(BaseModel):
    """Request model for creating an item."""
    title: str = Field(..., min_length=1, max_length=200, description="Listing title")
    description: str = Field(..., min_length=1, description="Listing description")
    file_url: str = Field(..., min_length=1, description="Artifact location in the file store")
    file_name: str = Field(..., min_length=1, description="Uploaded artifact name")
    duration: Literal['day', 'week', 'month'] = Field(..., description="Listing duration")
    price: int = Field(default=0, ge=0, description="Price in coins, 0 for free items")
    content: Optional[str] = Field(None, description="Base64 artifact bytes for the structural pre-check")

class ScanResult(BaseModel):
    """Outcome of a rescan."""
    model_config = ConfigDict(populate_by_name=True)

    status: str
    has_marker: bool = Field(..., alias="hasMarker")
    report: Optional[str] = None

class ItemStats(BaseModel):
    """Engagement totals of an item."""
    model_config = ConfigDict(populate_by_name=True)

    views: int
    downloads: int
    earnings: float
    by_country: Dict[str, int] = Field(..., alias="byCountry")

class RateRequest(BaseModel):
    """Request model for rating an item."""
    score: int
    comment: Optional[str] = None

class ReportRequest(BaseModel):
    """Request model for reporting an item."""
    reason: str
    description: Optional[str] = None

def _not_found(item_id: UUID) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Item {item_id} not found"
    )

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_item(
    request: CreateItemRequest,
    user_id: str = Security(get_current_user),
    listings: ListingManager = Depends(get_listings)
) -> Dict[str, Any]:
    """Create an item. It is returned ``pending``; the safety scan runs in the background."""
    content = None
    if request.content:
        try:
            content = base64.b64decode(request.content, validate=True)
        except (binascii.Error, ValueError):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"message": "Content must be base64 encoded", "field": "content"}
            )

    try:
        return await listings.create_item(
            owner_id=user_id,
            title=request.title,
            description=request.description,
            file_url=request.file_url,
            file_name=request.file_name,
            duration=request.duration,
            price=request.price,
            content=content
        )
    except ListingValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": str(e), "field": e.field}
        )
    except PremiumRequiredError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

@router.get("")
async def list_items(
    search: Optional[str] = Query(None, description="Case-insensitive title search"),
    duration: Optional[Literal['day', 'week', 'month']] = Query(None),
    sort_by: Literal['recent', 'trending', 'top_views'] = Query('recent'),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    listings: ListingManager = Depends(get_listings)
) -> List[Dict[str, Any]]:
    """List unexpired items."""
    return await listings.list_items(
        search=search,
        duration=duration,
        sort_by=sort_by,
        limit=limit,
        offset=offset
    )

@router.get("/{item_id}")
async def get_item(
    item_id: UUID,
    x_country: Optional[str] = Header(None),
    user_id: Optional[str] = Depends(get_optional_user),
    listings: ListingManager = Depends(get_listings),
    tracker: EngagementTracker = Depends(get_tracker)
) -> Dict[str, Any]:
    """Get an item and record a view."""
    try:
        item = await listings.get_item(item_id)
    except ListingNotFoundError:
        raise _not_found(item_id)

    await tracker.record(item_id, user_id, 'view', x_country)
    return item

@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_item(
    item_id: UUID,
    user_id: str = Security(get_current_user),
    listings: ListingManager = Depends(get_listings)
) -> Response:
    """Delete one of your own items."""
    try:
        await listings.delete_item(user_id, item_id)
    except ListingNotFoundError:
        raise _not_found(item_id)
    except ListingPermissionError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=str(e)
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)

@router.post("/{item_id}/scan", response_model=ScanResult)
async def rescan_item(
    item_id: UUID,
    user_id: str = Security(get_current_user),
    pipeline: SafetyPipeline = Depends(get_pipeline)
) -> Dict[str, Any]:
    """Re-run the safety scan and return its outcome."""
    try:
        result = await pipeline.rescan(item_id)
    except ScannedItemNotFoundError:
        raise _not_found(item_id)

    logger.info(f"Rescan of {item_id} requested by {user_id}: {result['status']}")
    return result

@router.get("/{item_id}/stats", response_model=ItemStats)
async def get_item_stats(
    item_id: UUID,
    tracker: EngagementTracker = Depends(get_tracker)
) -> Dict[str, Any]:
    """Views, downloads, earnings estimate and per-country breakdown."""
    return await tracker.stats(item_id)

@router.post("/{item_id}/download")
async def download_item(
    item_id: UUID,
    x_country: Optional[str] = Header(None),
    user_id: Optional[str] = Depends(get_optional_user),
    listings: ListingManager = Depends(get_listings),
    tracker: EngagementTracker = Depends(get_tracker)
) -> Dict[str, Any]:
    """Record a download and return the artifact location."""
    try:
        item = await listings.get_item(item_id)
    except ListingNotFoundError:
        raise _not_found(item_id)

    event = await tracker.record(item_id, user_id, 'download', x_country)
    return {
        'file_url': item['file_url'],
        'file_name': item['file_name'],
        'recorded': event is not None
    }

@router.post("/{item_id}/purchase")
async def purchase_item(
    item_id: UUID,
    user_id: str = Security(get_current_user),
    listings: ListingManager = Depends(get_listings),
    ledger: Ledger = Depends(get_ledger)
) -> Dict[str, Any]:
    """Buy a paid item; repeat purchases and free items charge nothing."""
    try:
        item = await listings.get_item(item_id)
        purchase = await ledger.purchase_item(user_id, item)
    except ListingNotFoundError:
        raise _not_found(item_id)
    except (InsufficientFundsError, SelfPurchaseError) as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

    return {
        'purchased': purchase is not None,
        'balance': await ledger.balance(user_id)
    }

@router.post("/{item_id}/rate")
async def rate_item(
    item_id: UUID,
    request: RateRequest,
    user_id: str = Security(get_current_user),
    reputation: ReputationEngine = Depends(get_reputation)
) -> Dict[str, Any]:
    """Rate an item 1-5. Rating the same item again is a no-op."""
    try:
        rating = await reputation.rate(item_id, user_id, request.score, request.comment)
    except InvalidRatingError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": str(e), "field": "score"}
        )
    except RatedItemNotFoundError:
        raise _not_found(item_id)

    if rating is None:
        return {'rated': False, 'message': 'already rated'}
    return {'rated': True, 'rating': rating}

@router.get("/{item_id}/ratings")
async def get_item_ratings(
    item_id: UUID,
    reputation: ReputationEngine = Depends(get_reputation)
) -> Dict[str, Any]:
    return await reputation.item_ratings(item_id)

@router.post("/{item_id}/report", status_code=status.HTTP_201_CREATED)
async def report_item(
    item_id: UUID,
    request: ReportRequest,
    user_id: str = Security(get_current_user),
    reports: ReportManager = Depends(get_reports)
) -> Dict[str, Any]:
    """Report an item for moderation."""
    try:
        return await reports.file_report(item_id, user_id, request.reason, request.description)
    except InvalidReportError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": str(e), "field": "reason"}
        )
    except ReportNotFoundError:
        raise _not_found(item_id)
