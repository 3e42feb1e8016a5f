"""Engagement tracking for marketplace items.

Views and downloads are recorded at most once per (item, user, event type).
The storage layer enforces that with a unique index; a conflicting insert is
reported back as "already recorded" instead of an error. Anonymous visitors
carry no user id and are therefore counted every time.
"""

import logging
from typing import Any, Dict, Optional
from uuid import UUID

from database import BaseStore

logger = logging.getLogger(__name__)

EVENT_TYPES = ('view', 'download')
UNKNOWN_COUNTRY = 'Unknown'

# Display estimate of creator revenue per engagement event, in coins
EARNINGS_PER_VIEW = 0.01
EARNINGS_PER_DOWNLOAD = 0.10

class EngagementError(Exception):
    """Base class for engagement tracking errors."""
    pass

class InvalidEventTypeError(EngagementError):
    """Raised when an unsupported event type is recorded."""
    pass

class ItemNotFoundError(EngagementError):
    """Raised when the tracked item does not exist."""
    pass

def estimate_earnings(views: int, downloads: int) -> float:
    return round(views * EARNINGS_PER_VIEW + downloads * EARNINGS_PER_DOWNLOAD, 2)

class EngagementTracker:
    """Records deduplicated view/download events and reports item stats."""

    def __init__(self, store: BaseStore):
        self.store = store

    async def record(
        self,
        item_id: UUID,
        user_id: Optional[str],
        event_type: str,
        country: Optional[str] = None
    ) -> Optional[Dict[str, Any]]:
        """Record an engagement event.

        Args:
            item_id: Item being viewed or downloaded
            user_id: Acting user, or None for anonymous visitors
            event_type: 'view' or 'download'
            country: Country label, stored as 'Unknown' when missing

        Returns:
            The new event row, or None if this user already recorded this
            event type on this item

        Raises:
            InvalidEventTypeError: If event_type is not supported
            ItemNotFoundError: If the item does not exist
        """
        if event_type not in EVENT_TYPES:
            raise InvalidEventTypeError(f"Unsupported event type: {event_type}")

        if await self.store.get_item(item_id) is None:
            raise ItemNotFoundError(f"Item {item_id} not found")

        event = await self.store.record_event(
            item_id, user_id, event_type, country or UNKNOWN_COUNTRY
        )
        if event is None:
            logger.debug(f"{event_type} of {item_id} by {user_id} already recorded")
        return event

    async def stats(self, item_id: UUID) -> Dict[str, Any]:
        """Totals, earnings estimate and per-country breakdown for an item.

        A missing item yields zeros rather than an error.
        """
        item = await self.store.get_item(item_id)
        if item is None:
            return {'views': 0, 'downloads': 0, 'earnings': 0.0, 'by_country': {}}

        return {
            'views': item['views'],
            'downloads': item['downloads'],
            'earnings': estimate_earnings(item['views'], item['downloads']),
            'by_country': await self.store.country_breakdown(item_id)
        }

# Export public interface
__all__ = [
    'EngagementTracker',
    'EVENT_TYPES',
    'UNKNOWN_COUNTRY',
    'estimate_earnings',
    'EngagementError',
    'InvalidEventTypeError',
    'ItemNotFoundError'
]
