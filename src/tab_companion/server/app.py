"""
FastAPI application for the Tab Companion backend.

This server provides endpoints for:
- Clustering a batch of tabs
- Retrieving the current clusters
- Closing tabs and exporting a cluster report
"""

from contextlib import asynccontextmanager
from datetime import datetime, UTC
from typing import AsyncIterator

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from tab_companion.config import get_logger, get_settings
from tab_companion.agents.models import ClusterSet, ScanBatch, TabItem
from tab_companion.agents.orchestrator import TabOrchestrator, build_orchestrator
from tab_companion.server.models import (
    TabsClusterRequest,
    TabsCloseRequest,
    TabsCloseResponse,
    ExportResponse,
    HealthResponse,
)

logger = get_logger(__name__)

# ============================================================================
# FastAPI App Initialization
# ============================================================================


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    """Close the orchestrator's service clients on shutdown."""
    global _orchestrator
    yield
    if _orchestrator is not None:
        await _orchestrator.aclose()
        _orchestrator = None


app = FastAPI(
    title="Tab Companion API",
    description="Hybrid clustering of open browser tabs",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware for browser extension
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "chrome-extension://*",
        "http://localhost:*",
        "https://localhost:*",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ============================================================================
# Global State (In-memory)
# ============================================================================

_orchestrator: TabOrchestrator | None = None
_current_result: ClusterSet | None = None
_current_items: list[TabItem] = []


def get_orchestrator() -> TabOrchestrator:
    """Get or create the global TabOrchestrator instance."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = build_orchestrator(get_settings())
    return _orchestrator


# ============================================================================
# API Endpoints
# ============================================================================


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(UTC).isoformat(),
    )


@app.post("/api/tabs/cluster", response_model=ClusterSet)
async def cluster_tabs(request: TabsClusterRequest):
    """
    Cluster a batch of tabs and make the result the current session.

    Args:
        request: Tabs with extracted content, optional deadline and concurrency

    Returns:
        Clusters covering every submitted tab, with per-tab statuses
    """
    global _current_result, _current_items

    settings = get_settings()
    try:
        items = [TabItem(**tab.model_dump()) for tab in request.tabs]
        batch = ScanBatch(
            items=items,
            deadline_seconds=request.deadline_seconds or settings.scan_deadline_seconds,
            concurrency=request.concurrency or settings.scan_concurrency,
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    result = await get_orchestrator().run(batch)

    _current_result = result
    _current_items = items
    logger.info(f"Clustered {result.total_items} tabs into {len(result.clusters)} clusters")
    return result


@app.get("/api/tabs/clusters", response_model=ClusterSet)
async def get_clusters():
    """
    Get the clusters of the current session.

    Returns:
        The current ClusterSet, or an empty one if nothing was clustered yet
    """
    if _current_result is None:
        return ClusterSet()
    return _current_result


@app.post("/api/tabs/close", response_model=TabsCloseResponse)
async def close_tabs(request: TabsCloseRequest):
    """
    Remove closed tabs from the current session.

    Clusters left without tabs are dropped.

    Args:
        request: IDs of the tabs the host closed

    Returns:
        Counts of closed and remaining tabs and clusters
    """
    global _current_result, _current_items

    if _current_result is None:
        return TabsCloseResponse(status="success", closed_tabs=0, remaining_tabs=0, remaining_clusters=0)

    before = _current_result.total_items
    _current_result = _current_result.without_items(request.tab_ids)
    closed = set(request.tab_ids)
    _current_items = [item for item in _current_items if item.id not in closed]

    closed_count = before - _current_result.total_items
    logger.info(f"Closed {closed_count} tabs, {len(_current_result.clusters)} clusters remain")

    return TabsCloseResponse(
        status="success",
        closed_tabs=closed_count,
        remaining_tabs=_current_result.total_items,
        remaining_clusters=len(_current_result.clusters),
    )


@app.get("/api/tabs/export", response_model=ExportResponse)
async def export_clusters():
    """
    Export the current clusters as a report.

    Returns:
        Timestamp, total tab count and groups with their tabs
    """
    result = _current_result if _current_result is not None else ClusterSet()
    return result.to_report(_current_items)
