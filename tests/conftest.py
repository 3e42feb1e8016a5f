"""Shared fixtures for the marketplace test suite."""

import asyncio
import io
import uuid
import zipfile
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import pytest
import pytest_asyncio

from engagement import EngagementTracker
from ledger import Ledger
from listings import ListingManager
from reputation import ReputationEngine
from safety import SafetyPipeline, ClassifierVerdict, ClassifierUnavailable
from safety.reports import ReportManager

from memory_store import MemoryStore

OWNER = "creator-1"
BUYER = "buyer-1"

class FakeClassifier:
    """Scripted classifier: returns a fixed verdict, raises, or stalls."""

    def __init__(
        self,
        verdict: str = 'clean',
        report: str = 'No issues found.',
        fail_times: int = 0,
        delay: float = 0.0
    ):
        self.verdict = verdict
        self.report = report
        self.fail_times = fail_times
        self.delay = delay
        self.calls = 0

    async def classify(self, title: str, description: str, structural_marker_present: bool) -> ClassifierVerdict:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.calls <= self.fail_times:
            raise ClassifierUnavailable("quota exceeded", 429)
        return ClassifierVerdict(verdict=self.verdict, report=self.report)

def make_zip(*names: str) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, 'w') as archive:
        for name in names:
            archive.writestr(name, "-- lua")
    return buffer.getvalue()

def seed_events(
    store: MemoryStore,
    item_id: uuid.UUID,
    event_type: str,
    count: int,
    created_at: Optional[datetime] = None
) -> None:
    """Append engagement events straight into the store."""
    created_at = created_at or datetime.now(timezone.utc)
    for _ in range(count):
        store.events.append({
            'id': uuid.uuid4(),
            'item_id': item_id,
            'user_id': None,
            'event_type': event_type,
            'country': 'Unknown',
            'created_at': created_at
        })

@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()

@pytest.fixture
def classifier() -> FakeClassifier:
    return FakeClassifier()

@pytest.fixture
def ledger(store) -> Ledger:
    return Ledger(store)

@pytest.fixture
def tracker(store) -> EngagementTracker:
    return EngagementTracker(store)

@pytest.fixture
def reputation(store) -> ReputationEngine:
    return ReputationEngine(store)

@pytest.fixture
def reports(store) -> ReportManager:
    return ReportManager(store)

@pytest.fixture
def pipeline(store, classifier) -> SafetyPipeline:
    return SafetyPipeline(store, classifier, timeout=0.5, max_attempts=2, retry_factor=0.01)

@pytest.fixture
def listing_manager(store, ledger, pipeline) -> ListingManager:
    return ListingManager(store, ledger, pipeline)

@pytest_asyncio.fixture
async def item(store) -> Dict[str, Any]:
    """A pending item with a manifest, owned by OWNER."""
    return await store.create_item({
        'owner_id': OWNER,
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
