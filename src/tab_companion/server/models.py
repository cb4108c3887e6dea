"""
Pydantic models for API request/response validation.
"""

from typing import Optional
from pydantic import BaseModel, Field


# ============================================================================
# Request Models
# ============================================================================


class TabInput(BaseModel):
    """Input model for a browser tab with its extracted content."""

    id: int
    url: str
    title: Optional[str] = ""
    text: Optional[str] = ""
    description: Optional[str] = ""
    headings: list[str] = Field(default_factory=list)
    language: Optional[str] = None
    extraction_failed: bool = False


class TabsClusterRequest(BaseModel):
    """Request model for /api/tabs/cluster endpoint."""

    tabs: list[TabInput]
    deadline_seconds: Optional[float] = Field(default=None, gt=0.0)
    concurrency: Optional[int] = Field(default=None, ge=1)


class TabsCloseRequest(BaseModel):
    """Request model for /api/tabs/close endpoint."""

    tab_ids: list[int]


# ============================================================================
# Response Models
# ============================================================================


class TabsCloseResponse(BaseModel):
    """Response model for /api/tabs/close endpoint."""

    status: str
    closed_tabs: int
    remaining_tabs: int
    remaining_clusters: int


class ExportedTab(BaseModel):
    """A tab in an exported report."""

    id: int
    title: str
    url: str


class ExportedGroup(BaseModel):
    """A cluster in an exported report."""

    id: str
    name: str
    tab_count: int
    confidence: float
    summary: list[str] = Field(default_factory=list)
    tabs: list[ExportedTab] = Field(default_factory=list)


class ExportResponse(BaseModel):
    """Response model for /api/tabs/export endpoint."""

    timestamp: str
    total_tabs: int
    groups: list[ExportedGroup] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """Response model for /health endpoint."""

    status: str
    version: str = "0.1.0"
    timestamp: str
