"""Listings module for marketplace items.

This module provides functionality for:
- Computing listing expiry from the requested duration
- Gating the month duration behind an active subscription
- Creating items and handing them to the safety pipeline
- Searching, sorting and deleting listings
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

from database import BaseStore
from database.store import ITEM_SORTS
from ledger import Ledger
from safety import SafetyPipeline, has_structural_marker, DEFAULT_MARKER

logger = logging.getLogger(__name__)

# Duration -> lifetime; None never expires
DURATIONS = {
    'day': timedelta(hours=24),
    'week': timedelta(days=7),
    'month': None
}

PREMIUM_DURATION = 'month'

MAX_TITLE_LENGTH = 200

class ListingError(Exception):
    """Base exception for listing operations."""
    pass

class ListingNotFoundError(ListingError):
    """Raised when a listing is not found."""
    pass

class ListingPermissionError(ListingError):
    """Raised when a user acts on a listing they do not own."""
    pass

class ListingValidationError(ListingError):
    """Raised when listing input is invalid."""
    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)

class PremiumRequiredError(ListingError):
    """Raised when the month duration is requested without an active subscription."""
    pass

def compute_expiry(duration: str, now: datetime) -> Optional[datetime]:
    """Expiry timestamp for a listing duration.

    Raises:
        ListingValidationError: If duration is unknown
    """
    if duration not in DURATIONS:
        raise ListingValidationError(f"Invalid duration: {duration}", 'duration')
    lifetime = DURATIONS[duration]
    return now + lifetime if lifetime else None

class ListingLifecycle:
    """Expiry and subscription gate for listing durations."""

    def __init__(self, ledger: Ledger):
        self.ledger = ledger

    async def authorize_duration(
        self,
        user_id: str,
        duration: str,
        now: Optional[datetime] = None
    ) -> bool:
        """Check that a user may list for the requested duration.

        Returns:
            True if the listing is premium

        Raises:
            ListingValidationError: If duration is unknown
            PremiumRequiredError: If month is requested without an active tier
        """
        if duration not in DURATIONS:
            raise ListingValidationError(f"Invalid duration: {duration}", 'duration')

        if duration != PREMIUM_DURATION:
            return False

        if await self.ledger.active_tier(user_id, now) is None:
            raise PremiumRequiredError("An active subscription is required for month listings")
        return True

class ListingManager:
    """Manager class for handling listing operations."""

    def __init__(
        self,
        store: BaseStore,
        ledger: Ledger,
        pipeline: SafetyPipeline,
        marker: str = DEFAULT_MARKER
    ):
        """Initialize the listing manager.

        Args:
            store: Storage backend for items
            ledger: Ledger used for the subscription gate
            pipeline: Safety pipeline new items are submitted to
            marker: Manifest file name required in uploads
        """
        self.store = store
        self.lifecycle = ListingLifecycle(ledger)
        self.pipeline = pipeline
        self.marker = marker

    @staticmethod
    def _validate(title: str, description: str, file_url: str, file_name: str, price: int) -> None:
        if not title or not title.strip():
            raise ListingValidationError("Title is required", 'title')
        if len(title) > MAX_TITLE_LENGTH:
            raise ListingValidationError(f"Title must be at most {MAX_TITLE_LENGTH} characters", 'title')
        if not description or not description.strip():
            raise ListingValidationError("Description is required", 'description')
        if not file_url:
            raise ListingValidationError("File URL is required", 'file_url')
        if not file_name:
            raise ListingValidationError("File name is required", 'file_name')
        if isinstance(price, bool) or not isinstance(price, int) or price < 0:
            raise ListingValidationError("Price must be a non-negative integer", 'price')

    async def create_item(
        self,
        owner_id: str,
        title: str,
        description: str,
        file_url: str,
        file_name: str,
        duration: str,
        price: int = 0,
        content: Optional[bytes] = None,
        now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """Create a new listing.

        The item is persisted ``pending`` and handed to the safety pipeline;
        the scan runs in the background.

        Args:
            owner_id: Creator of the item
            title: Listing title
            description: Listing description
            file_url: Location of the artifact in the file store
            file_name: Name of the uploaded artifact
            duration: 'day', 'week' or 'month'
            price: Price in coins, 0 for free items
            content: Raw artifact bytes for the structural pre-check
            now: Creation time, defaults to the current UTC time

        Returns:
            Dict containing the created item

        Raises:
            ListingValidationError: If input is invalid
            PremiumRequiredError: If month is requested without a subscription;
                nothing is persisted in that case
        """
        self._validate(title, description, file_url, file_name, price)

        now = now or datetime.now(timezone.utc)
        premium = await self.lifecycle.authorize_duration(owner_id, duration, now)

        item = await self.store.create_item({
            'owner_id': owner_id,
            'title': title.strip(),
            'description': description,
            'file_url': file_url,
            'file_name': file_name,
            'has_structural_marker': has_structural_marker(content, file_name, self.marker),
            'duration': duration,
            'premium': premium,
            'expires_at': compute_expiry(duration, now),
            'price': price
        })
        logger.info(f"Created item {item['id']} for {owner_id} ({duration})")

        await self.pipeline.submit(item)
        return item

    async def get_item(self, item_id: UUID) -> Dict[str, Any]:
        """Get an item by id.

        Raises:
            ListingNotFoundError: If the item does not exist
        """
        item = await self.store.get_item(item_id)
        if item is None:
            raise ListingNotFoundError(f"Item {item_id} not found")
        return item

    async def list_items(
        self,
        search: Optional[str] = None,
        duration: Optional[str] = None,
        sort_by: str = 'recent',
        limit: int = 50,
        offset: int = 0,
        now: Optional[datetime] = None
    ) -> List[Dict[str, Any]]:
        """List unexpired items.

        Raises:
            ListingValidationError: If duration or sort_by is unknown
        """
        if duration is not None and duration not in DURATIONS:
            raise ListingValidationError(f"Invalid duration: {duration}", 'duration')
        if sort_by not in ITEM_SORTS:
            raise ListingValidationError(f"Invalid sort: {sort_by}", 'sort_by')

        return await self.store.list_items(
            now or datetime.now(timezone.utc),
            search=search,
            duration=duration,
            sort_by=sort_by,
            limit=limit,
            offset=offset
        )

    async def list_user_items(self, owner_id: str) -> List[Dict[str, Any]]:
        """All of a user's items, expired ones included."""
        return await self.store.list_user_items(owner_id)

    async def delete_item(self, owner_id: str, item_id: UUID) -> None:
        """Delete a listing.

        Raises:
            ListingNotFoundError: If the item does not exist
            ListingPermissionError: If owner_id does not own the item
        """
        item = await self.get_item(item_id)
        if item['owner_id'] != owner_id:
            raise ListingPermissionError("You can only delete your own items")

        if not await self.store.delete_item(item_id):
            raise ListingNotFoundError(f"Item {item_id} not found")
        logger.info(f"Deleted item {item_id}")

# Export public interface
__all__ = [
    'ListingManager',
    'ListingLifecycle',
    'compute_expiry',
    'DURATIONS',
    'PREMIUM_DURATION',
    'ListingError',
    'ListingNotFoundError',
    'ListingPermissionError',
    'ListingValidationError',
    'PremiumRequiredError'
]
