"""User reports against marketplace items and their moderation."""
import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from database import BaseStore

logger = logging.getLogger(__name__)

REPORT_REASONS = ('malware', 'spam', 'copyright', 'inappropriate', 'other')
REPORT_STATUSES = ('pending', 'reviewed', 'valid', 'invalid')
REVIEW_STATUSES = ('reviewed', 'valid', 'invalid')

class ReportError(Exception):
    """Base class for report errors."""
    pass

class InvalidReportError(ReportError):
    """Raised when a report or review carries an unknown reason or status."""
    pass

class ReportNotFoundError(ReportError):
    """Raised when a report or its item does not exist."""
    pass

class ReportManager:
    """Files and reviews item reports."""

    def __init__(self, store: BaseStore):
        self.store = store

    async def file_report(
        self,
        item_id: UUID,
        reporter_id: str,
        reason: str,
        description: Optional[str] = None
    ) -> Dict[str, Any]:
        """File a report against an item.

        Raises:
            InvalidReportError: If reason is unknown
            ReportNotFoundError: If the item does not exist
        """
        if reason not in REPORT_REASONS:
            raise InvalidReportError(f"Invalid report reason: {reason}")

        if await self.store.get_item(item_id) is None:
            raise ReportNotFoundError(f"Item {item_id} not found")

        report = await self.store.create_report(item_id, reporter_id, reason, description)
        logger.info(f"Report {report['id']} filed against item {item_id} ({reason})")
        return report

    async def review_report(self, report_id: UUID, status: str) -> Dict[str, Any]:
        """Record a moderator decision on a report.

        Raises:
            InvalidReportError: If status is not a review outcome
            ReportNotFoundError: If the report does not exist
        """
        if status not in REVIEW_STATUSES:
            raise InvalidReportError(f"Invalid review status: {status}")

        report = await self.store.set_report_status(report_id, status)
        if report is None:
            raise ReportNotFoundError(f"Report {report_id} not found")

        logger.info(f"Report {report_id} marked {status}")
        return report

    async def list_reports(self, status: Optional[str] = None) -> List[Dict[str, Any]]:
        if status is not None and status not in REPORT_STATUSES:
            raise InvalidReportError(f"Invalid report status: {status}")
        return await self.store.list_reports(status)

__all__ = [
    'ReportManager',
    'REPORT_REASONS',
    'REVIEW_STATUSES',
    'ReportError',
    'InvalidReportError',
    'ReportNotFoundError'
]
