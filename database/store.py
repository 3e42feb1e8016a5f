"""Storage interface for the marketplace core.

Every manager (ledger, engagement, reputation, safety, listings) talks to
storage through a BaseStore. PostgresStore is the production implementation
on top of an asyncpg pool. All shared counters move through single atomic
statements (``SET x = x + 1``), uniqueness is enforced by indexes and every
multi-row mutation runs inside one transaction.
"""
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

import asyncpg
from asyncpg.exceptions import CheckViolationError

from .exceptions import NegativeBalanceError

logger = logging.getLogger(__name__)

ITEM_SORTS = {
    'recent': 'created_at DESC',
    'trending': '(views + downloads) DESC, created_at DESC',
    'top_views': 'views DESC, created_at DESC'
}

def _row(record: Optional[asyncpg.Record]) -> Optional[Dict[str, Any]]:
    return dict(record) if record is not None else None

def blank_account(user_id: str) -> Dict[str, Any]:
    """Account values of a user with no row yet, matching the column defaults."""
    return {
        'user_id': user_id,
        'coins': 0,
        'total_earnings': 0,
        'followers': 0,
        'following': 0,
        'verified': False,
        'trust_score': 50.0,
        'bio': None,
        'created_at': None
    }


class BaseStore(ABC):
    """Repository contract shared by the managers.

    Methods returning ``Optional`` use ``None`` for "nothing changed"
    (duplicate insert, missing row), never for errors.
    """

    # Accounts

    @abstractmethod
    async def ensure_account(self, user_id: str) -> Dict[str, Any]:
        """Return the user's account, creating an empty one if needed."""

    @abstractmethod
    async def get_account(self, user_id: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    async def add_coins(self, user_id: str, amount: int) -> int:
        """Atomically add coins and return the new balance."""

    @abstractmethod
    async def subtract_coins(self, user_id: str, amount: int) -> int:
        """Atomically remove coins and return the new balance.

        Raises:
            NegativeBalanceError: If the balance would drop below zero
        """

    @abstractmethod
    async def set_trust_score(self, user_id: str, score: float) -> None:
        ...

    @abstractmethod
    async def update_bio(self, user_id: str, bio: str) -> Dict[str, Any]:
        ...

    # Subscriptions

    @abstractmethod
    async def purchase_subscription(
        self, user_id: str, tier: str, cost: int, expires_at: datetime
    ) -> Dict[str, Any]:
        """Debit ``cost`` and insert a subscription row in one transaction.

        Raises:
            NegativeBalanceError: If the user cannot afford the tier
        """

    @abstractmethod
    async def latest_subscription(self, user_id: str) -> Optional[Dict[str, Any]]:
        ...

    # Items

    @abstractmethod
    async def create_item(self, item: Dict[str, Any]) -> Dict[str, Any]:
        ...

    @abstractmethod
    async def get_item(self, item_id: UUID) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    async def list_items(
        self,
        now: datetime,
        search: Optional[str] = None,
        duration: Optional[str] = None,
        sort_by: str = 'recent',
        limit: int = 50,
        offset: int = 0
    ) -> List[Dict[str, Any]]:
        """List unexpired items."""

    @abstractmethod
    async def list_user_items(self, owner_id: str) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    async def delete_item(self, item_id: UUID) -> bool:
        ...

    @abstractmethod
    async def list_pending_items(self) -> List[Dict[str, Any]]:
        """List pending items no scan has finished for, oldest first."""

    @abstractmethod
    async def set_safety_state(
        self, item_id: UUID, state: str, report: Optional[str]
    ) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    async def purchase_item(
        self, item_id: UUID, buyer_id: str, seller_id: str, price: int
    ) -> Optional[Dict[str, Any]]:
        """Record a purchase and move coins from buyer to seller.

        Returns:
            The purchase row, or None if the buyer already owns the item

        Raises:
            NegativeBalanceError: If the buyer cannot afford the price
        """

    # Engagement

    @abstractmethod
    async def record_event(
        self, item_id: UUID, user_id: Optional[str], event_type: str, country: str
    ) -> Optional[Dict[str, Any]]:
        """Insert an event and bump the item counter in one transaction.

        Returns:
            The event row, or None if (item, user, type) was already recorded
        """

    @abstractmethod
    async def country_breakdown(self, item_id: UUID) -> Dict[str, int]:
        ...

    @abstractmethod
    async def owner_event_totals(self, owner_id: str, since: datetime) -> Dict[str, int]:
        """Count events per type on all of an owner's items since ``since``."""

    # Follow graph

    @abstractmethod
    async def create_follow(self, follower_id: str, followed_id: str) -> bool:
        ...

    @abstractmethod
    async def delete_follow(self, follower_id: str, followed_id: str) -> bool:
        ...

    @abstractmethod
    async def is_following(self, follower_id: str, followed_id: str) -> bool:
        ...

    # Ratings

    @abstractmethod
    async def create_rating(
        self, item_id: UUID, rater_id: str, score: int, comment: Optional[str]
    ) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    async def item_ratings(self, item_id: UUID) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    async def owner_rating_scores(self, owner_id: str) -> List[int]:
        ...

    # Reports

    @abstractmethod
    async def create_report(
        self, item_id: UUID, reporter_id: str, reason: str, description: Optional[str]
    ) -> Dict[str, Any]:
        ...

    @abstractmethod
    async def set_report_status(self, report_id: UUID, status: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    async def list_reports(self, status: Optional[str] = None) -> List[Dict[str, Any]]:
        ...

    # Verification

    @abstractmethod
    async def create_verification_request(
        self, user_id: str, followers: int, downloads: int, views: int
    ) -> Optional[Dict[str, Any]]:
        """Insert a pending request, or return None if one is already pending."""

    @abstractmethod
    async def latest_verification_request(self, user_id: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    async def resolve_verification_request(
        self, request_id: UUID, status: str
    ) -> Optional[Dict[str, Any]]:
        """Move a pending request to approved/rejected.

        Approval sets the account's verified flag in the same transaction.
        Returns None if the request does not exist or is no longer pending.
        """


class PostgresStore(BaseStore):
    """BaseStore backed by an asyncpg connection pool."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    # Accounts

    async def _ensure_account(self, conn, user_id: str) -> None:
        await conn.execute(
            'INSERT INTO accounts (user_id) VALUES ($1) ON CONFLICT (user_id) DO NOTHING',
            user_id
        )

    async def ensure_account(self, user_id: str) -> Dict[str, Any]:
        async with self.pool.acquire() as conn:
            await self._ensure_account(conn, user_id)
            return _row(await conn.fetchrow(
                'SELECT * FROM accounts WHERE user_id = $1', user_id
            ))

    async def get_account(self, user_id: str) -> Optional[Dict[str, Any]]:
        async with self.pool.acquire() as conn:
            return _row(await conn.fetchrow(
                'SELECT * FROM accounts WHERE user_id = $1', user_id
            ))

    async def add_coins(self, user_id: str, amount: int) -> int:
        async with self.pool.acquire() as conn:
            return await conn.fetchval(
                '''
                INSERT INTO accounts (user_id, coins) VALUES ($1, $2)
                ON CONFLICT (user_id) DO UPDATE
                SET coins = accounts.coins + EXCLUDED.coins
                RETURNING coins
                ''',
                user_id,
                amount
            )

    async def _subtract_coins(self, conn, user_id: str, amount: int) -> int:
        await self._ensure_account(conn, user_id)
        try:
            return await conn.fetchval(
                '''
                UPDATE accounts
                SET coins = coins - $2
                WHERE user_id = $1
                RETURNING coins
                ''',
                user_id,
                amount
            )
        except CheckViolationError as e:
            raise NegativeBalanceError(f"Balance of {user_id} cannot cover {amount}") from e

    async def subtract_coins(self, user_id: str, amount: int) -> int:
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                return await self._subtract_coins(conn, user_id, amount)

    async def set_trust_score(self, user_id: str, score: float) -> None:
        async with self.pool.acquire() as conn:
            await conn.execute(
                '''
                INSERT INTO accounts (user_id, trust_score) VALUES ($1, $2)
                ON CONFLICT (user_id) DO UPDATE SET trust_score = EXCLUDED.trust_score
                ''',
                user_id,
                score
            )

    async def update_bio(self, user_id: str, bio: str) -> Dict[str, Any]:
        async with self.pool.acquire() as conn:
            return _row(await conn.fetchrow(
                '''
                INSERT INTO accounts (user_id, bio) VALUES ($1, $2)
                ON CONFLICT (user_id) DO UPDATE SET bio = EXCLUDED.bio
                RETURNING *
                ''',
                user_id,
                bio
            ))

    # Subscriptions

    async def purchase_subscription(
        self, user_id: str, tier: str, cost: int, expires_at: datetime
    ) -> Dict[str, Any]:
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                await self._subtract_coins(conn, user_id, cost)
                return _row(await conn.fetchrow(
                    '''
                    INSERT INTO subscriptions (user_id, tier, expires_at)
                    VALUES ($1, $2, $3)
                    RETURNING *
                    ''',
                    user_id,
                    tier,
                    expires_at
                ))

    async def latest_subscription(self, user_id: str) -> Optional[Dict[str, Any]]:
        async with self.pool.acquire() as conn:
            return _row(await conn.fetchrow(
                '''
                SELECT * FROM subscriptions
                WHERE user_id = $1
                ORDER BY created_at DESC
                LIMIT 1
                ''',
                user_id
            ))

    # Items

    async def create_item(self, item: Dict[str, Any]) -> Dict[str, Any]:
        async with self.pool.acquire() as conn:
            return _row(await conn.fetchrow(
                '''
                INSERT INTO items (
                    owner_id, title, description, file_url, file_name,
                    safety_state, has_structural_marker, duration, premium,
                    expires_at, price
                ) VALUES ($1, $2, $3, $4, $5, 'pending', $6, $7, $8, $9, $10)
                RETURNING *
                ''',
                item['owner_id'],
                item['title'],
                item['description'],
                item['file_url'],
                item['file_name'],
                item['has_structural_marker'],
                item['duration'],
                item['premium'],
                item['expires_at'],
                item['price']
            ))

    async def get_item(self, item_id: UUID) -> Optional[Dict[str, Any]]:
        async with self.pool.acquire() as conn:
            return _row(await conn.fetchrow('SELECT * FROM items WHERE id = $1', item_id))

    async def list_items(
        self,
        now: datetime,
        search: Optional[str] = None,
        duration: Optional[str] = None,
        sort_by: str = 'recent',
        limit: int = 50,
        offset: int = 0
    ) -> List[Dict[str, Any]]:
        query = 'SELECT * FROM items WHERE (expires_at IS NULL OR expires_at > $1)'
        params: List[Any] = [now]

        if search:
            params.append(f"%{search}%")
            query += f" AND title ILIKE ${len(params)}"

        if duration:
            params.append(duration)
            query += f" AND duration = ${len(params)}"

        query += f" ORDER BY {ITEM_SORTS.get(sort_by, ITEM_SORTS['recent'])}"
        params.extend([limit, offset])
        query += f" LIMIT ${len(params) - 1} OFFSET ${len(params)}"

        async with self.pool.acquire() as conn:
            return [dict(r) for r in await conn.fetch(query, *params)]

    async def list_user_items(self, owner_id: str) -> List[Dict[str, Any]]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                'SELECT * FROM items WHERE owner_id = $1 ORDER BY created_at DESC',
                owner_id
            )
            return [dict(r) for r in rows]

    async def delete_item(self, item_id: UUID) -> bool:
        async with self.pool.acquire() as conn:
            result = await conn.execute('DELETE FROM items WHERE id = $1', item_id)
            return result != 'DELETE 0'

    async def list_pending_items(self) -> List[Dict[str, Any]]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                '''
                SELECT * FROM items
                WHERE safety_state = 'pending'
                AND safety_report IS NULL
                ORDER BY created_at
                '''
            )
            return [dict(r) for r in rows]

    async def set_safety_state(
        self, item_id: UUID, state: str, report: Optional[str]
    ) -> Optional[Dict[str, Any]]:
        async with self.pool.acquire() as conn:
            return _row(await conn.fetchrow(
                '''
                UPDATE items
                SET safety_state = $2,
                    safety_report = $3,
                    updated_at = now()
                WHERE id = $1
                RETURNING *
                ''',
                item_id,
                state,
                report
            ))

    async def purchase_item(
        self, item_id: UUID, buyer_id: str, seller_id: str, price: int
    ) -> Optional[Dict[str, Any]]:
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                purchase = await conn.fetchrow(
                    '''
                    INSERT INTO purchases (item_id, buyer_id, price)
                    VALUES ($1, $2, $3)
                    ON CONFLICT (item_id, buyer_id) DO NOTHING
                    RETURNING *
                    ''',
                    item_id,
                    buyer_id,
                    price
                )
                if purchase is None:
                    return None

                await self._subtract_coins(conn, buyer_id, price)
                await conn.execute(
                    '''
                    INSERT INTO accounts (user_id, coins, total_earnings) VALUES ($1, $2, $2)
                    ON CONFLICT (user_id) DO UPDATE
                    SET coins = accounts.coins + EXCLUDED.coins,
                        total_earnings = accounts.total_earnings + EXCLUDED.total_earnings
                    ''',
                    seller_id,
                    price
                )
                return dict(purchase)

    # Engagement

    async def record_event(
        self, item_id: UUID, user_id: Optional[str], event_type: str, country: str
    ) -> Optional[Dict[str, Any]]:
        counter = 'views' if event_type == 'view' else 'downloads'
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                event = await conn.fetchrow(
                    '''
                    INSERT INTO engagement_events (item_id, user_id, event_type, country)
                    VALUES ($1, $2, $3, $4)
                    ON CONFLICT DO NOTHING
                    RETURNING *
                    ''',
                    item_id,
                    user_id,
                    event_type,
                    country
                )
                if event is None:
                    return None

                await conn.execute(
                    f'UPDATE items SET {counter} = {counter} + 1 WHERE id = $1',
                    item_id
                )
                return dict(event)

    async def country_breakdown(self, item_id: UUID) -> Dict[str, int]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                '''
                SELECT country, COUNT(*) AS count
                FROM engagement_events
                WHERE item_id = $1
                GROUP BY country
                ''',
                item_id
            )
            return {r['country']: r['count'] for r in rows}

    async def owner_event_totals(self, owner_id: str, since: datetime) -> Dict[str, int]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                '''
                SELECT e.event_type, COUNT(*) AS count
                FROM engagement_events e
                JOIN items i ON i.id = e.item_id
                WHERE i.owner_id = $1
                AND e.created_at >= $2
                GROUP BY e.event_type
                ''',
                owner_id,
                since
            )
            totals = {'view': 0, 'download': 0}
            totals.update({r['event_type']: r['count'] for r in rows})
            return totals

    # Follow graph

    async def create_follow(self, follower_id: str, followed_id: str) -> bool:
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                await self._ensure_account(conn, follower_id)
                await self._ensure_account(conn, followed_id)
                inserted = await conn.fetchval(
                    '''
                    INSERT INTO follows (follower_id, followed_id)
                    VALUES ($1, $2)
                    ON CONFLICT DO NOTHING
                    RETURNING true
                    ''',
                    follower_id,
                    followed_id
                )
                if not inserted:
                    return False

                await conn.execute(
                    'UPDATE accounts SET followers = followers + 1 WHERE user_id = $1',
                    followed_id
                )
                await conn.execute(
                    'UPDATE accounts SET following = following + 1 WHERE user_id = $1',
                    follower_id
                )
                return True

    async def delete_follow(self, follower_id: str, followed_id: str) -> bool:
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                result = await conn.execute(
                    'DELETE FROM follows WHERE follower_id = $1 AND followed_id = $2',
                    follower_id,
                    followed_id
                )
                if result == 'DELETE 0':
                    return False

                await conn.execute(
                    'UPDATE accounts SET followers = followers - 1 WHERE user_id = $1',
                    followed_id
                )
                await conn.execute(
                    'UPDATE accounts SET following = following - 1 WHERE user_id = $1',
                    follower_id
                )
                return True

    async def is_following(self, follower_id: str, followed_id: str) -> bool:
        async with self.pool.acquire() as conn:
            return await conn.fetchval(
                '''
                SELECT EXISTS(
                    SELECT 1 FROM follows
                    WHERE follower_id = $1 AND followed_id = $2
                )
                ''',
                follower_id,
                followed_id
            )

    # Ratings

    async def create_rating(
        self, item_id: UUID, rater_id: str, score: int, comment: Optional[str]
    ) -> Optional[Dict[str, Any]]:
        async with self.pool.acquire() as conn:
            return _row(await conn.fetchrow(
                '''
                INSERT INTO ratings (item_id, rater_id, score, comment)
                VALUES ($1, $2, $3, $4)
                ON CONFLICT (item_id, rater_id) DO NOTHING
                RETURNING *
                ''',
                item_id,
                rater_id,
                score,
                comment
            ))

    async def item_ratings(self, item_id: UUID) -> List[Dict[str, Any]]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                'SELECT * FROM ratings WHERE item_id = $1 ORDER BY created_at DESC',
                item_id
            )
            return [dict(r) for r in rows]

    async def owner_rating_scores(self, owner_id: str) -> List[int]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                '''
                SELECT r.score
                FROM ratings r
                JOIN items i ON i.id = r.item_id
                WHERE i.owner_id = $1
                ''',
                owner_id
            )
            return [r['score'] for r in rows]

    # Reports

    async def create_report(
        self, item_id: UUID, reporter_id: str, reason: str, description: Optional[str]
    ) -> Dict[str, Any]:
        async with self.pool.acquire() as conn:
            return _row(await conn.fetchrow(
                '''
                INSERT INTO reports (item_id, reporter_id, reason, description)
                VALUES ($1, $2, $3, $4)
                RETURNING *
                ''',
                item_id,
                reporter_id,
                reason,
                description
            ))

    async def set_report_status(self, report_id: UUID, status: str) -> Optional[Dict[str, Any]]:
        async with self.pool.acquire() as conn:
            return _row(await conn.fetchrow(
                '''
                UPDATE reports
                SET status = $2, reviewed_at = now()
                WHERE id = $1
                RETURNING *
                ''',
                report_id,
                status
            ))

    async def list_reports(self, status: Optional[str] = None) -> List[Dict[str, Any]]:
        async with self.pool.acquire() as conn:
            if status:
                rows = await conn.fetch(
                    'SELECT * FROM reports WHERE status = $1 ORDER BY created_at',
                    status
                )
            else:
                rows = await conn.fetch('SELECT * FROM reports ORDER BY created_at')
            return [dict(r) for r in rows]

    # Verification

    async def create_verification_request(
        self, user_id: str, followers: int, downloads: int, views: int
    ) -> Optional[Dict[str, Any]]:
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                await self._ensure_account(conn, user_id)
                return _row(await conn.fetchrow(
                    '''
                    INSERT INTO verification_requests (
                        user_id, followers_snapshot, downloads_snapshot, views_snapshot
                    ) VALUES ($1, $2, $3, $4)
                    ON CONFLICT DO NOTHING
                    RETURNING *
                    ''',
                    user_id,
                    followers,
                    downloads,
                    views
                ))

    async def latest_verification_request(self, user_id: str) -> Optional[Dict[str, Any]]:
        async with self.pool.acquire() as conn:
            return _row(await conn.fetchrow(
                '''
                SELECT * FROM verification_requests
                WHERE user_id = $1
                ORDER BY created_at DESC
                LIMIT 1
                ''',
                user_id
            ))

    async def resolve_verification_request(
        self, request_id: UUID, status: str
    ) -> Optional[Dict[str, Any]]:
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                request = await conn.fetchrow(
                    '''
                    UPDATE verification_requests
                    SET status = $2, resolved_at = now()
                    WHERE id = $1 AND status = 'pending'
                    RETURNING *
                    ''',
                    request_id,
                    status
                )
                if request is None:
                    return None

                if status == 'approved':
                    await conn.execute(
                        'UPDATE accounts SET verified = true WHERE user_id = $1',
                        request['user_id']
                    )
                return dict(request)
