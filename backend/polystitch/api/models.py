"""
Pydantic data models for the polystitch API.

These models define the shapes of requests and responses used by the
backend.  Coordinates must be finite: the assembler does not validate
its input, so NaN and infinity are refused here at the boundary.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List

from pydantic import BaseModel, Field


class PathPoint(BaseModel):
    """Single 3D point."""

    x: float = Field(..., allow_inf_nan=False)
    y: float = Field(..., allow_inf_nan=False)
    z: float = Field(..., allow_inf_nan=False)


class Segment(BaseModel):
    """A line segment between two points."""

    p1: PathPoint = Field(..., description="First endpoint")
    p2: PathPoint = Field(..., description="Second endpoint")


class SessionCreateRequest(BaseModel):
    """Request body for opening an assembly session."""

    scale: float | None = Field(
        default=None,
        gt=0.0,
        allow_inf_nan=False,
        description="Quantisation scale; keys are round(coordinate * scale). Defaults to the server setting.",
    )


class SessionInfo(BaseModel):
    """Summary of a live assembly session."""

    sessionId: str = Field(..., description="Unique identifier for the session")
    scale: float = Field(..., description="Quantisation scale fixed for the session")
    createdAt: datetime = Field(..., description="Timestamp of when the session was opened")
    pathCount: int = Field(..., description="Number of live paths")
    vertexCount: int = Field(..., description="Number of distinct quantised vertices")


class SegmentBatchRequest(BaseModel):
    """Request body carrying segments to ingest."""

    segments: List[Segment] = Field(..., description="Segments in ingestion order")


class IngestResponse(BaseModel):
    """Outcome of ingesting a batch of segments."""

    accepted: int = Field(..., description="Segments that created, extended or merged paths")
    ignored: int = Field(..., description="Segments whose endpoints already lay on one path")
    rejected: List[int] = Field(
        default_factory=list,
        description="Batch positions of segments refused because they touch a path interior",
    )
    pathCount: int = Field(..., description="Number of live paths after the batch")


class PathBBox(BaseModel):
    """Axis‑aligned bounding box of a path."""

    min: List[float] = Field(..., description="Minimum x, y, z coordinates of the path")
    max: List[float] = Field(..., description="Maximum x, y, z coordinates of the path")


class AssembledPath(BaseModel):
    """One assembled polyline."""

    index: int = Field(..., description="Position of the path in this response")
    points: List[PathPoint] = Field(..., description="Ordered points from front to back")
    length: float = Field(..., description="Sum of segment lengths along the path")
    bbox: PathBBox = Field(..., description="Bounding box around the path")


class PathsResponse(BaseModel):
    """Every live path of a session or a one‑shot assembly."""

    paths: List[AssembledPath] = Field(..., description="Assembled paths in unspecified order")
    metadata: Dict[str, Any] = Field(
        ..., description="Counters such as scale, merges, ignored and rejected segments"
    )


class AssembleRequest(BaseModel):
    """Request body for the stateless one‑shot assembly endpoint."""

    segments: List[Segment] = Field(..., description="Segments in ingestion order")
    scale: float | None = Field(
        default=None,
        gt=0.0,
        allow_inf_nan=False,
        description="Quantisation scale; defaults to the server setting",
    )
