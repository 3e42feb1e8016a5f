"""Tests for item reports."""

import uuid

import pytest

from safety.reports import InvalidReportError, ReportNotFoundError

@pytest.mark.asyncio
async def test_file_and_review(reports, item):
    """Test a report starts pending and can be reviewed."""
    report = await reports.file_report(item['id'], "alice", 'malware', "Calls home on start")
    assert report['status'] == 'pending'

    reviewed = await reports.review_report(report['id'], 'valid')
    assert reviewed['status'] == 'valid'
    assert reviewed['reviewed_at'] is not None

    assert await reports.list_reports('pending') == []
    assert [r['id'] for r in await reports.list_reports('valid')] == [report['id']]

@pytest.mark.asyncio
async def test_report_validation(reports, item):
    """Test unknown reasons, statuses, items and reports are rejected."""
    with pytest.raises(InvalidReportError):
        await reports.file_report(item['id'], "alice", 'ugly')

    with pytest.raises(ReportNotFoundError):
        await reports.file_report(uuid.uuid4(), "alice", 'spam')

    with pytest.raises(InvalidReportError):
        await reports.review_report(uuid.uuid4(), 'pending')

    with pytest.raises(ReportNotFoundError):
        await reports.review_report(uuid.uuid4(), 'invalid')

    with pytest.raises(InvalidReportError):
        await reports.list_reports('archived')
