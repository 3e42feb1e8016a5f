"""Reputation engine: trust scores, follow graph and creator verification.

Trust score
    Bayesian average of every rating on the creator's items, pulled toward a
    neutral prior of 3 stars weighted as 5 phantom ratings, then mapped from
    the 1-5 star range onto 0-100::

        avg = (PRIOR_WEIGHT * PRIOR_MEAN + sum(scores)) / (PRIOR_WEIGHT + n)
        score = (avg - 1) / 4 * 100

    No ratings gives 50. Raising any single rating never lowers the score.

Verification eligibility
    Followers plus download and view events on the creator's items over the
    trailing three calendar months. All three thresholds must hold.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

from dateutil.relativedelta import relativedelta

from database import BaseStore, blank_account

logger = logging.getLogger(__name__)

PRIOR_MEAN = 3
PRIOR_WEIGHT = 5
MIN_RATING = 1
MAX_RATING = 5

FOLLOWER_THRESHOLD = 500
DOWNLOAD_THRESHOLD = 5000
VIEW_THRESHOLD = 10000
TRAILING_MONTHS = 3

class ReputationError(Exception):
    """Base class for reputation errors."""
    pass

class InvalidRatingError(ReputationError):
    """Raised when a rating is outside 1-5."""
    pass

class SelfFollowError(ReputationError):
    """Raised when a user tries to follow themselves."""
    pass

class ItemNotFoundError(ReputationError):
    """Raised when a rated item does not exist."""
    pass

class RequirementsNotMetError(ReputationError):
    """Raised when a verification request fails the eligibility thresholds."""
    def __init__(self, eligibility: Dict[str, Any]):
        self.eligibility = eligibility
        super().__init__("Verification requirements not met")

class AlreadyPendingError(ReputationError):
    """Raised when a verification request is already awaiting review."""
    pass

class RequestNotFoundError(ReputationError):
    """Raised when a verification request is missing or already resolved."""
    pass

def compute_trust_score(scores: List[int]) -> float:
    """Map a rating history onto a 0-100 trust score."""
    avg = (PRIOR_WEIGHT * PRIOR_MEAN + sum(scores)) / (PRIOR_WEIGHT + len(scores))
    return round((avg - MIN_RATING) / (MAX_RATING - MIN_RATING) * 100, 2)

def trailing_window_start(now: datetime) -> datetime:
    return now - relativedelta(months=TRAILING_MONTHS)

class ReputationEngine:
    """Computes trust and verification eligibility, manages follows and ratings."""

    def __init__(self, store: BaseStore):
        """Initialize the engine.

        Args:
            store: Storage backend for accounts, ratings, follows and requests
        """
        self.store = store

    # Trust

    async def trust_score(self, user_id: str) -> float:
        """Recompute and persist a creator's trust score."""
        scores = await self.store.owner_rating_scores(user_id)
        score = compute_trust_score(scores)
        await self.store.set_trust_score(user_id, score)
        logger.debug(f"Trust score for {user_id}: {score} from {len(scores)} ratings")
        return score

    async def rate(
        self,
        item_id: UUID,
        rater_id: str,
        score: int,
        comment: Optional[str] = None
    ) -> Optional[Dict[str, Any]]:
        """Rate an item and refresh its creator's trust score.

        Returns:
            The rating row, or None if this user already rated the item

        Raises:
            InvalidRatingError: If score is outside 1-5
            ItemNotFoundError: If the item does not exist
        """
        if isinstance(score, bool) or not isinstance(score, int) or not MIN_RATING <= score <= MAX_RATING:
            raise InvalidRatingError(f"Rating must be between {MIN_RATING} and {MAX_RATING}")

        item = await self.store.get_item(item_id)
        if item is None:
            raise ItemNotFoundError(f"Item {item_id} not found")

        rating = await self.store.create_rating(item_id, rater_id, score, comment)
        if rating is None:
            logger.debug(f"{rater_id} already rated item {item_id}")
            return None

        await self.trust_score(item['owner_id'])
        return rating

    async def item_ratings(self, item_id: UUID) -> Dict[str, Any]:
        ratings = await self.store.item_ratings(item_id)
        count = len(ratings)
        average = round(sum(r['score'] for r in ratings) / count, 2) if count else None
        return {'ratings': ratings, 'count': count, 'average': average}

    # Follow graph

    async def follow(self, follower_id: str, followed_id: str) -> bool:
        """Follow a user.

        Returns:
            True if a new edge was created, False if it already existed

        Raises:
            SelfFollowError: If both ids are the same
        """
        if follower_id == followed_id:
            raise SelfFollowError("You cannot follow yourself")
        created = await self.store.create_follow(follower_id, followed_id)
        if not created:
            logger.debug(f"{follower_id} already follows {followed_id}")
        return created

    async def unfollow(self, follower_id: str, followed_id: str) -> bool:
        """Remove a follow edge; False if there was none."""
        return await self.store.delete_follow(follower_id, followed_id)

    async def is_following(self, follower_id: str, followed_id: str) -> bool:
        return await self.store.is_following(follower_id, followed_id)

    async def profile(self, user_id: str) -> Dict[str, Any]:
        account = await self.store.get_account(user_id) or blank_account(user_id)
        return {
            'user_id': user_id,
            'bio': account.get('bio'),
            'followers': account['followers'],
            'following': account['following'],
            'total_earnings': account['total_earnings'],
            'coins': account['coins'],
            'verified': account['verified'],
            'trust_score': account['trust_score']
        }

    async def update_bio(self, user_id: str, bio: str) -> Dict[str, Any]:
        await self.store.update_bio(user_id, bio)
        return await self.profile(user_id)

    # Verification

    async def eligibility(self, user_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Evaluate creator verification thresholds.

        Returns:
            Dict with the raw counts, one boolean per threshold and can_apply
        """
        now = now or datetime.now(timezone.utc)
        account = await self.store.get_account(user_id) or blank_account(user_id)
        totals = await self.store.owner_event_totals(user_id, trailing_window_start(now))

        followers = account['followers']
        downloads = totals.get('download', 0)
        views = totals.get('view', 0)

        meets_followers = followers >= FOLLOWER_THRESHOLD
        meets_downloads = downloads >= DOWNLOAD_THRESHOLD
        meets_views = views >= VIEW_THRESHOLD

        return {
            'followers': followers,
            'trailing_downloads': downloads,
            'trailing_views': views,
            'meets_followers': meets_followers,
            'meets_downloads': meets_downloads,
            'meets_views': meets_views,
            'can_apply': meets_followers and meets_downloads and meets_views
        }

    async def request_verification(self, user_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Submit a creator verification request.

        Raises:
            RequirementsNotMetError: If any threshold fails
            AlreadyPendingError: If a request is already pending
        """
        eligibility = await self.eligibility(user_id, now)
        if not eligibility['can_apply']:
            raise RequirementsNotMetError(eligibility)

        request = await self.store.create_verification_request(
            user_id,
            eligibility['followers'],
            eligibility['trailing_downloads'],
            eligibility['trailing_views']
        )
        if request is None:
            raise AlreadyPendingError("A verification request is already pending")

        logger.info(f"Verification request {request['id']} submitted by {user_id}")
        return request

    async def resolve_verification(self, request_id: UUID, approved: bool) -> Dict[str, Any]:
        """Approve or reject a pending request.

        Raises:
            RequestNotFoundError: If the request is missing or not pending
        """
        status = 'approved' if approved else 'rejected'
        request = await self.store.resolve_verification_request(request_id, status)
        if request is None:
            raise RequestNotFoundError(f"No pending verification request {request_id}")
        logger.info(f"Verification request {request_id} {status}")
        return request

    async def earnings_overview(self, user_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Everything the creator earnings page shows."""
        account = await self.store.get_account(user_id) or blank_account(user_id)
        eligibility = await self.eligibility(user_id, now)
        items = await self.store.list_user_items(user_id)
        last_request = await self.store.latest_verification_request(user_id)

        return {
            'coins': account['coins'],
            'total_earnings': account['total_earnings'],
            'followers': account['followers'],
            'trailing_downloads': eligibility['trailing_downloads'],
            'trailing_views': eligibility['trailing_views'],
            'items_count': len(items),
            'verified': account['verified'],
            'trust_score': account['trust_score'],
            'eligibility': {
                'meets_followers': eligibility['meets_followers'],
                'meets_downloads': eligibility['meets_downloads'],
                'meets_views': eligibility['meets_views'],
                'can_apply': eligibility['can_apply']
            },
            'last_verification_request': last_request
        }

# Export public interface
__all__ = [
    'ReputationEngine',
    'compute_trust_score',
    'trailing_window_start',
    'FOLLOWER_THRESHOLD',
    'DOWNLOAD_THRESHOLD',
    'VIEW_THRESHOLD',
    'ReputationError',
    'InvalidRatingError',
    'SelfFollowError',
    'ItemNotFoundError',
    'RequirementsNotMetError',
    'AlreadyPendingError',
    'RequestNotFoundError'
]
