"""Content-safety pipeline for newly submitted items.

Every item starts ``pending``. Classification runs out-of-band on the scan
queue and finishes with exactly one terminal write:

- no structural marker: ``infected``, regardless of the classifier
- classifier failed after all attempts: ``clean`` with a "could not
  complete" report (``open`` policy) or left ``pending`` for manual review
  (``closed`` policy)
- otherwise the classifier's verdict and report are stored verbatim

``rescan`` resets an item to ``pending`` and runs the same pipeline inline.
"""
import asyncio
import logging
from enum import Enum
from typing import Any, Dict, Optional, Protocol, Set, Tuple
from uuid import UUID

import backoff

from database import BaseStore
from .classifier import ClassifierUnavailable, ClassifierVerdict, HttpClassifier
from .precheck import DEFAULT_MARKER, has_structural_marker

logger = logging.getLogger(__name__)

MISSING_MARKER_REPORT = "missing required manifest marker — rejected automatically."
SCAN_INCOMPLETE_REPORT = "Automatic scan could not complete; published without a classifier verdict."
MANUAL_REVIEW_REPORT = "Automatic scan could not complete; awaiting manual review."

class SafetyState(str, Enum):
    PENDING = 'pending'
    CLEAN = 'clean'
    INFECTED = 'infected'

class SafetyError(Exception):
    """Base class for safety pipeline errors."""
    pass

class ItemNotFoundError(SafetyError):
    """Raised when a scanned item does not exist."""
    pass

class Classifier(Protocol):
    async def classify(
        self, title: str, description: str, structural_marker_present: bool
    ) -> ClassifierVerdict:
        ...

class ScanScheduler(Protocol):
    def enqueue(self, item_id: UUID) -> None:
        ...

def finalize(
    has_marker: bool,
    verdict: Optional[ClassifierVerdict],
    fail_open: bool = True
) -> Tuple[SafetyState, str]:
    """Decide the terminal state of a scan.

    Args:
        has_marker: Result of the structural pre-check
        verdict: Classifier answer, None if classification failed
        fail_open: Publish as clean when the classifier failed

    Returns:
        (state, report) to persist
    """
    if not has_marker:
        return SafetyState.INFECTED, MISSING_MARKER_REPORT
    if verdict is None:
        if fail_open:
            return SafetyState.CLEAN, SCAN_INCOMPLETE_REPORT
        return SafetyState.PENDING, MANUAL_REVIEW_REPORT
    return SafetyState(verdict.verdict), verdict.report

class SafetyPipeline:
    """Classifies items and writes their terminal safety state."""

    def __init__(
        self,
        store: BaseStore,
        classifier: Classifier,
        queue: Optional[ScanScheduler] = None,
        timeout: float = 30.0,
        max_attempts: int = 2,
        fail_policy: str = 'open',
        retry_factor: float = 1.0
    ):
        """Initialize the pipeline.

        Args:
            store: Storage backend for items
            classifier: External classifier client
            queue: Scan queue to schedule work on; without one, scans run as
                detached tasks on the running loop
            timeout: Upper bound for a single classifier attempt, in seconds
            max_attempts: Classifier attempts per scan
            fail_policy: 'open' or 'closed'
            retry_factor: Base delay of the exponential backoff between attempts
        """
        self.store = store
        self.classifier = classifier
        self.queue = queue
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.fail_open = fail_policy == 'open'
        self.retry_factor = retry_factor
        self._tasks: Set[asyncio.Task] = set()

    async def submit(self, item: Dict[str, Any]) -> None:
        """Schedule classification of a freshly created item.

        Returns as soon as the scan is scheduled; the item stays ``pending``.
        """
        if self.queue is not None:
            self.queue.enqueue(item['id'])
        else:
            task = asyncio.create_task(self.scan(item['id']))
            self._tasks.add(task)
            task.add_done_callback(self._scan_done)
        logger.info(f"Item {item['id']} submitted for safety scan")

    async def resume_pending(self) -> int:
        """Reschedule items left pending by a previous process.

        Items held for manual review under the closed fail policy already
        carry a report and are not picked up again.

        Returns:
            Number of items rescheduled
        """
        items = await self.store.list_pending_items()
        for item in items:
            await self.submit(item)
        if items:
            logger.info(f"Rescheduled {len(items)} pending scans")
        return len(items)

    def _scan_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Background scan failed: {task.exception()}")

    async def _classify_once(self, item: Dict[str, Any]) -> ClassifierVerdict:
        try:
            return await asyncio.wait_for(
                self.classifier.classify(
                    item['title'],
                    item['description'],
                    item['has_structural_marker']
                ),
                timeout=self.timeout
            )
        except asyncio.TimeoutError:
            raise ClassifierUnavailable(f"Classifier timed out after {self.timeout}s")

    async def _classify(self, item: Dict[str, Any]) -> Optional[ClassifierVerdict]:
        """Run the classifier with retries; None once every attempt failed."""
        attempt = backoff.on_exception(
            backoff.expo,
            ClassifierUnavailable,
            max_tries=self.max_attempts,
            factor=self.retry_factor,
            logger=logger
        )(self._classify_once)

        try:
            return await attempt(item)
        except ClassifierUnavailable as e:
            logger.warning(f"Classifier unavailable for item {item['id']}: {e}")
            return None

    async def scan(self, item_id: UUID) -> Optional[Dict[str, Any]]:
        """Classify an item and persist the outcome.

        Returns:
            The updated item, or None if it was deleted in the meantime
        """
        item = await self.store.get_item(item_id)
        if item is None:
            logger.warning(f"Item {item_id} disappeared before its scan")
            return None

        if item['has_structural_marker']:
            verdict = await self._classify(item)
        else:
            verdict = None

        state, report = finalize(item['has_structural_marker'], verdict, self.fail_open)
        updated = await self.store.set_safety_state(item_id, state.value, report)
        logger.info(f"Item {item_id} scanned: {state.value}")
        return updated

    async def rescan(self, item_id: UUID) -> Dict[str, Any]:
        """Reset an item to pending and scan it again inline.

        Raises:
            ItemNotFoundError: If the item does not exist
        """
        if await self.store.set_safety_state(item_id, SafetyState.PENDING.value, None) is None:
            raise ItemNotFoundError(f"Item {item_id} not found")

        item = await self.scan(item_id)
        if item is None:
            raise ItemNotFoundError(f"Item {item_id} not found")

        return {
            'status': item['safety_state'],
            'has_marker': item['has_structural_marker'],
            'report': item['safety_report']
        }

    async def drain(self) -> None:
        """Wait for detached scans started without a queue."""
        if self._tasks:
            await asyncio.wait(list(self._tasks))

# Export public interface
__all__ = [
    'SafetyPipeline',
    'SafetyState',
    'finalize',
    'has_structural_marker',
    'HttpClassifier',
    'ClassifierVerdict',
    'ClassifierUnavailable',
    'DEFAULT_MARKER',
    'MISSING_MARKER_REPORT',
    'SCAN_INCOMPLETE_REPORT',
    'MANUAL_REVIEW_REPORT',
    'SafetyError',
    'ItemNotFoundError'
]
