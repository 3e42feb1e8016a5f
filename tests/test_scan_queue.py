"""Tests for the background scan queue."""

import asyncio
import uuid

import pytest

from api import create_app, lifespan
from config import DEFAULTS, validate_settings
from safety import SafetyPipeline
from workers.scan_queue import ScanQueue

from conftest import OWNER, FakeClassifier, make_zip
from memory_store import MemoryStore

@pytest.mark.asyncio
async def test_queue_runs_handler():
    """Test queued ids reach the handler."""
    handled = []

    async def handler(item_id):
        handled.append(item_id)

    queue = ScanQueue(concurrency=2)
    queue.start(handler)
    ids = [uuid.uuid4() for _ in range(5)]
    for item_id in ids:
        queue.enqueue(item_id)

    await asyncio.wait_for(queue.join(), timeout=1)
    await queue.stop()

    assert sorted(handled) == sorted(ids)
    assert not queue.running

@pytest.mark.asyncio
async def test_failing_handler_keeps_worker_alive():
    """Test a handler error is logged and the worker moves on."""
    handled = []

    async def handler(item_id):
        if not handled:
            handled.append(None)
            raise RuntimeError("boom")
        handled.append(item_id)

    queue = ScanQueue(concurrency=1)
    queue.start(handler)
    second = uuid.uuid4()
    queue.enqueue(uuid.uuid4())
    queue.enqueue(second)

    await asyncio.wait_for(queue.join(), timeout=1)
    await queue.stop()

    assert handled == [None, second]

@pytest.mark.asyncio
async def test_pipeline_through_queue(store, item, classifier):
    """Test a submitted item is scanned by the queue workers."""
    queue = ScanQueue(concurrency=1)
    pipeline = SafetyPipeline(store, classifier, queue=queue)
    queue.start(pipeline.scan)

    await pipeline.submit(item)
    await asyncio.wait_for(queue.join(), timeout=1)
    await queue.stop()

    assert (await store.get_item(item['id']))['safety_state'] == 'clean'

@pytest.mark.asyncio
async def test_pending_scans_survive_restart():
    """Test scans cut off by a shutdown are finished by the next process."""
    store = MemoryStore()
    settings = validate_settings(dict(DEFAULTS, scan_workers='1'))

    stalled = create_app(store=store, classifier=FakeClassifier(delay=10), settings=settings)
    async with lifespan(stalled):
        for title in ("Advanced Garage", "Tuning Shop"):
            await stalled.state.listings.create_item(
                OWNER, title, "Persistent vehicles",
                "https://files.example.com/garage.zip", "garage.zip", 'week',
                content=make_zip("fxmanifest.lua")
            )

    assert [i['safety_state'] for i in store.items.values()] == ['pending', 'pending']

    healthy = create_app(store=store, classifier=FakeClassifier(), settings=settings)
    async with lifespan(healthy):
        await asyncio.wait_for(healthy.state.scan_queue.join(), timeout=1)

    assert [i['safety_state'] for i in store.items.values()] == ['clean', 'clean']
