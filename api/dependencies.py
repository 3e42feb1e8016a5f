"""Request-scoped access to the managers held on app.state."""

from fastapi import Request

from engagement import EngagementTracker
from ledger import Ledger
from listings import ListingManager
from reputation import ReputationEngine
from safety import SafetyPipeline
from safety.reports import ReportManager

def get_ledger(request: Request) -> Ledger:
    return request.app.state.ledger

def get_tracker(request: Request) -> EngagementTracker:
    return request.app.state.tracker

def get_reputation(request: Request) -> ReputationEngine:
    return request.app.state.reputation

def get_pipeline(request: Request) -> SafetyPipeline:
    return request.app.state.pipeline

def get_listings(request: Request) -> ListingManager:
    return request.app.state.listings

def get_reports(request: Request) -> ReportManager:
    return request.app.state.reports
