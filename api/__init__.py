"""REST API module for the script marketplace.

This module provides HTTP endpoints for:
- Creating, browsing and deleting items
- Safety rescans and item reports
- View/download tracking and item stats
- Coin balances, subscriptions and paid items
- Follows, ratings, profiles and creator verification
- System health
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings_conf
from database import BaseStore, PostgresStore, init_db, close as db_close
from engagement import EngagementTracker
from ledger import Ledger
from listings import ListingManager
from reputation import ReputationEngine
from safety import SafetyPipeline, HttpClassifier
from safety.reports import ReportManager
from workers.scan_queue import ScanQueue

logger = logging.getLogger(__name__)

LOCATION_PREFIXES = ('body', 'query', 'path', 'header')

def _wire_managers(app: FastAPI, store: BaseStore, queue: ScanQueue) -> None:
    """Build the domain managers on top of a store and attach them to app.state."""
    settings = app.state.settings
    classifier = app.state.classifier or HttpClassifier(
        settings['classifier_url'],
        settings['classifier_api_key'] or None,
        settings['classifier_timeout']
    )

    pipeline = SafetyPipeline(
        store,
        classifier,
        queue=queue,
        timeout=settings['classifier_timeout'],
        max_attempts=settings['classifier_max_attempts'],
        fail_policy=settings['scan_fail_policy']
    )
    ledger = Ledger(store)

    app.state.store = store
    app.state.scan_queue = queue
    app.state.pipeline = pipeline
    app.state.ledger = ledger
    app.state.tracker = EngagementTracker(store)
    app.state.reputation = ReputationEngine(store)
    app.state.reports = ReportManager(store)
    app.state.listings = ListingManager(store, ledger, pipeline, settings['manifest_marker'])

# Lifecycle management
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle startup and shutdown events."""
    logger.info("Initializing API...")
    settings = app.state.settings

    owns_pool = app.state.store is None
    if owns_pool:
        pool = await init_db(settings['db_url'])
        store = PostgresStore(pool)
    else:
        store = app.state.store

    queue = ScanQueue(settings['scan_workers'])
    _wire_managers(app, store, queue)
    queue.start(app.state.pipeline.scan)
    await app.state.pipeline.resume_pending()

    yield

    logger.info("Shutting down API...")
    await queue.stop()
    if owns_pool:
        await db_close()
        app.state.store = None

async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Answer malformed requests with 400 and the offending field."""
    error = exc.errors()[0] if exc.errors() else {}
    loc = [str(part) for part in error.get('loc', ()) if part not in LOCATION_PREFIXES]
    logger.debug(f"Rejected request to {request.url.path}: {error}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            'message': error.get('msg', 'Invalid request'),
            'field': '.'.join(loc) or None
        }
    )

def create_app(
    store: Optional[BaseStore] = None,
    classifier: Any = None,
    settings: Optional[Dict[str, Any]] = None
) -> FastAPI:
    """Create the FastAPI application.

    Args:
        store: Storage backend; without one the lifespan opens a Postgres pool
        classifier: Classifier client; defaults to HttpClassifier from settings
        settings: Validated settings, defaults to settings.conf
    """
    app = FastAPI(
        title="Script Marketplace API",
        description="Safety, engagement, economy and reputation services for the script marketplace",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.settings = settings or settings_conf
    app.state.store = store
    app.state.classifier = classifier

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    # Import and include all routers
    from .items import router as items_router
    from .analytics import router as analytics_router
    from .subscription import router as subscription_router
    from .users import router as users_router
    from .verification import router as verification_router
    from .earnings import router as earnings_router
    from .reports import router as reports_router
    from .system import router as system_router

    for router in (
        items_router,
        analytics_router,
        subscription_router,
        users_router,
        verification_router,
        earnings_router,
        reports_router,
        system_router
    ):
        app.include_router(router, prefix="/api")

    return app

app = create_app()

__all__ = ['app', 'create_app', 'lifespan']
