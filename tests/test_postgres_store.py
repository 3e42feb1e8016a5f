"""Tests for PostgresStore against a live database.

Set MARKETPLACE_TEST_DB_URL to a disposable PostgreSQL database to run them.
Every test works on fresh user ids, so no tables are truncated.
"""

import asyncio
import os
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import pytest
import pytest_asyncio

from database import init_db, close as close_db, PostgresStore
from database.exceptions import NegativeBalanceError

TEST_DB_URL = os.environ.get('MARKETPLACE_TEST_DB_URL')

pytestmark = pytest.mark.skipif(
    not TEST_DB_URL,
    reason="MARKETPLACE_TEST_DB_URL not set"
)

def user(name: str) -> str:
    return f"{name}-{uuid.uuid4().hex[:8]}"

@pytest_asyncio.fixture
async def pg_store():
    """Create a PostgresStore on a fresh connection pool."""
    pool = await init_db(TEST_DB_URL)
    yield PostgresStore(pool)
    await close_db()

@pytest_asyncio.fixture
async def pg_item(pg_store) -> Dict[str, Any]:
    """A pending item owned by a fresh creator."""
    owner = user("creator")
    await pg_store.ensure_account(owner)
    return await pg_store.create_item({
        'owner_id': owner,
        'title': "Advanced Garage",
        'description': "Garage system with persistent vehicles",
        'file_url': "https://files.example.com/garage.zip",
        'file_name': "garage.zip",
        'has_structural_marker': True,
        'duration': 'week',
        'premium': False,
        'expires_at': None,
        'price': 0
    })

@pytest.mark.asyncio
async def test_concurrent_debits_never_overdraw(pg_store):
    """Test racing debits are cut off by the balance check constraint."""
    buyer = user("buyer")
    await pg_store.add_coins(buyer, 100)

    results = await asyncio.gather(
        *(pg_store.subtract_coins(buyer, 30) for _ in range(10)),
        return_exceptions=True
    )

    succeeded = [r for r in results if not isinstance(r, Exception)]
    rejected = [r for r in results if isinstance(r, NegativeBalanceError)]
    assert len(succeeded) == 3
    assert len(rejected) == 7
    assert (await pg_store.get_account(buyer))['coins'] == 10

@pytest.mark.asyncio
async def test_overdraw_leaves_subscription_untouched(pg_store):
    """Test a failed tier debit inserts no subscription row."""
    buyer = user("buyer")
    await pg_store.add_coins(buyer, 10)

    with pytest.raises(NegativeBalanceError):
        await pg_store.purchase_subscription(buyer, 'monthly', 500, datetime.now(timezone.utc) + timedelta(days=30))

    assert await pg_store.latest_subscription(buyer) is None
    assert (await pg_store.get_account(buyer))['coins'] == 10

@pytest.mark.asyncio
async def test_duplicate_event_counts_once(pg_store, pg_item):
    """Test the unique index turns a repeated view into a no-op."""
    viewer = user("viewer")

    first, second = await asyncio.gather(
        pg_store.record_event(pg_item['id'], viewer, 'view', 'SE'),
        pg_store.record_event(pg_item['id'], viewer, 'view', 'SE')
    )

    assert [first is None, second is None].count(True) == 1
    assert (await pg_store.get_item(pg_item['id']))['views'] == 1

@pytest.mark.asyncio
async def test_anonymous_events_never_deduplicated(pg_store, pg_item):
    """Test events without a user all count."""
    for _ in range(3):
        assert await pg_store.record_event(pg_item['id'], None, 'download', 'Unknown') is not None

    item = await pg_store.get_item(pg_item['id'])
    assert item['downloads'] == 3
    assert await pg_store.country_breakdown(pg_item['id']) == {'Unknown': 3}

@pytest.mark.asyncio
async def test_one_pending_verification_request(pg_store):
    """Test the partial unique index allows a single pending request."""
    creator = user("creator")

    first = await pg_store.create_verification_request(creator, 500, 5000, 10000)
    second = await pg_store.create_verification_request(creator, 500, 5000, 10000)

    assert first['status'] == 'pending'
    assert second is None

    await pg_store.resolve_verification_request(first['id'], 'rejected')
    again = await pg_store.create_verification_request(creator, 600, 5000, 10000)
    assert again['status'] == 'pending'

@pytest.mark.asyncio
async def test_follow_then_unfollow_restores_counters(pg_store):
    """Test both follow counters move together and return to zero."""
    fan, creator = user("fan"), user("creator")

    assert await pg_store.create_follow(fan, creator) is True
    assert await pg_store.create_follow(fan, creator) is False
    assert (await pg_store.get_account(creator))['followers'] == 1
    assert (await pg_store.get_account(fan))['following'] == 1

    assert await pg_store.delete_follow(fan, creator) is True
    assert await pg_store.delete_follow(fan, creator) is False
    assert (await pg_store.get_account(creator))['followers'] == 0
    assert (await pg_store.get_account(fan))['following'] == 0

@pytest.mark.asyncio
async def test_list_pending_items(pg_store, pg_item):
    """Test unscanned items are listed and finished or held ones are not."""
    pending = [i['id'] for i in await pg_store.list_pending_items()]
    assert pg_item['id'] in pending

    await pg_store.set_safety_state(pg_item['id'], 'pending', "Awaiting manual review.")
    assert pg_item['id'] not in [i['id'] for i in await pg_store.list_pending_items()]
