"""Tests for engagement tracking."""

import uuid

import pytest

from engagement import InvalidEventTypeError, ItemNotFoundError, estimate_earnings

@pytest.mark.asyncio
async def test_duplicate_view_counts_once(tracker, store, item):
    """Test the same user viewing twice increments views by exactly one."""
    first = await tracker.record(item['id'], "alice", 'view', 'DE')
    second = await tracker.record(item['id'], "alice", 'view', 'DE')

    assert first is not None
    assert second is None
    assert (await store.get_item(item['id']))['views'] == 1

@pytest.mark.asyncio
async def test_view_and_download_are_separate(tracker, store, item):
    """Test dedup is per event type."""
    await tracker.record(item['id'], "alice", 'view')
    await tracker.record(item['id'], "alice", 'download')

    updated = await store.get_item(item['id'])
    assert updated['views'] == 1
    assert updated['downloads'] == 1

@pytest.mark.asyncio
async def test_anonymous_events_always_count(tracker, store, item):
    """Test anonymous visitors are never deduplicated."""
    for _ in range(3):
        assert await tracker.record(item['id'], None, 'view') is not None

    assert (await store.get_item(item['id']))['views'] == 3

@pytest.mark.asyncio
async def test_stats(tracker, item):
    """Test stats report totals, earnings and countries."""
    await tracker.record(item['id'], "alice", 'view', 'DE')
    await tracker.record(item['id'], "bob", 'view', None)
    await tracker.record(item['id'], "bob", 'download', 'US')

    stats = await tracker.stats(item['id'])

    assert stats['views'] == 2
    assert stats['downloads'] == 1
    assert stats['earnings'] == 0.12
    assert stats['by_country'] == {'DE': 1, 'Unknown': 1, 'US': 1}

@pytest.mark.asyncio
async def test_stats_for_missing_item(tracker):
    """Test stats of an unknown item are all zeros."""
    stats = await tracker.stats(uuid.uuid4())
    assert stats == {'views': 0, 'downloads': 0, 'earnings': 0.0, 'by_country': {}}

@pytest.mark.asyncio
async def test_record_rejects_bad_input(tracker, item):
    """Test unknown event types and items are rejected."""
    with pytest.raises(InvalidEventTypeError):
        await tracker.record(item['id'], "alice", 'like')

    with pytest.raises(ItemNotFoundError):
        await tracker.record(uuid.uuid4(), "alice", 'view')

def test_estimate_earnings():
    """Test the earnings estimate rounds to cents."""
    assert estimate_earnings(0, 0) == 0.0
    assert estimate_earnings(150, 3) == 1.8
