"""
Routes for assembly sessions and one‑shot assembly.

A session is a long‑lived assembler held in memory by the server.
Clients open a session, post batches of segments in any order and read
back the assembled polylines (as JSON or CSV) whenever they like.  The
stateless ``/assemble`` endpoint runs the same algorithm over a single
batch without keeping anything on the server.
"""

from __future__ import annotations

import csv
import io
import logging
from typing import List, Sequence

from fastapi import APIRouter, HTTPException, Response

from .models import (
    AssembleRequest,
    AssembledPath,
    IngestResponse,
    PathBBox,
    PathPoint,
    PathsResponse,
    Segment,
    SegmentBatchRequest,
    SessionCreateRequest,
    SessionInfo,
)
from ..services.assembler import AssemblyStats, PathAssembler
from ..services.geometry import bounding_box, polyline_length
from ..services.quantize import Point
from ..services.session_store import Session, SessionNotFoundError, default_store

logger = logging.getLogger(__name__)

router = APIRouter()


def _session_info(session: Session) -> SessionInfo:
    assembler = session.assembler
    return SessionInfo(
        sessionId=session.session_id,
        scale=assembler.scale,
        createdAt=session.created_at,
        pathCount=assembler.path_count,
        vertexCount=assembler.vertex_count,
    )


def _segment_pairs(segments: Sequence[Segment]) -> list[tuple[Point, Point]]:
    return [
        (Point(s.p1.x, s.p1.y, s.p1.z), Point(s.p2.x, s.p2.y, s.p2.z))
        for s in segments
    ]


def _assembled_path(index: int, points: List[Point]) -> AssembledPath:
    # Live paths always hold at least two points, so the bounds exist.
    lo, hi = bounding_box(points)
    return AssembledPath(
        index=index,
        points=[PathPoint(x=p.x, y=p.y, z=p.z) for p in points],
        length=polyline_length(points),
        bbox=PathBBox(min=list(lo), max=list(hi)),
    )


def _paths_response(paths: List[List[Point]], stats: AssemblyStats, scale: float) -> PathsResponse:
    assembled = [_assembled_path(i, points) for i, points in enumerate(paths)]
    metadata = {
        "scale": scale,
        "paths": stats.paths,
        "vertices": stats.vertices,
        "segments": stats.segments,
        "created": stats.created,
        "extended": stats.extended,
        "merged": stats.merged,
        "ignored": stats.ignored,
        "rejected": stats.rejected,
    }
    return PathsResponse(paths=assembled, metadata=metadata)


def _get_session(session_id: str) -> Session:
    try:
        return default_store.get(session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Session not found") from None


@router.post("/sessions", response_model=SessionInfo, status_code=201)
async def create_session(body: SessionCreateRequest | None = None) -> SessionInfo:
    """Open a new assembly session.

    The quantisation scale is fixed for the lifetime of the session.
    When omitted the server default (``POLYSTITCH_SCALE``) is used.
    """
    scale = body.scale if body is not None else None
    session = default_store.create(scale=scale)
    return _session_info(session)


@router.get("/sessions", response_model=List[SessionInfo])
async def list_sessions() -> List[SessionInfo]:
    return [_session_info(s) for s in default_store.list()]


@router.get("/sessions/{session_id}", response_model=SessionInfo)
async def get_session(session_id: str) -> SessionInfo:
    return _session_info(_get_session(session_id))


@router.delete("/sessions/{session_id}", status_code=204)
async def delete_session(session_id: str) -> Response:
    try:
        default_store.delete(session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Session not found") from None
    return Response(status_code=204)


@router.post("/sessions/{session_id}/lines", response_model=IngestResponse)
async def add_lines(session_id: str, body: SegmentBatchRequest) -> IngestResponse:
    """Ingest a batch of segments into a session.

    Segments that would attach to the interior of an existing path are
    skipped and reported by their position in ``rejected``; the rest
    of the batch is still applied.
    """
    session = _get_session(session_id)
    try:
        report = default_store.ingest(session.session_id, _segment_pairs(body.segments))
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Session not found") from None
    if report.rejected:
        logger.info(
            "Session %s: %d of %d segments rejected",
            session_id,
            len(report.rejected),
            len(body.segments),
        )
    return IngestResponse(
        accepted=report.accepted,
        ignored=report.ignored,
        rejected=report.rejected,
        pathCount=session.assembler.path_count,
    )


@router.get("/sessions/{session_id}/paths", response_model=PathsResponse)
async def get_paths(session_id: str) -> PathsResponse:
    session = _get_session(session_id)
    try:
        paths, stats = default_store.snapshot(session.session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Session not found") from None
    return _paths_response(paths, stats, session.assembler.scale)


@router.get("/sessions/{session_id}/paths/export")
async def export_paths(session_id: str) -> Response:
    """Export every path of a session as CSV.

    Columns are ``path,index,x,y,z``: the path number, the position of
    the point within its path and the coordinates.
    """
    session = _get_session(session_id)
    try:
        paths, _ = default_store.snapshot(session.session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Session not found") from None
    output = io.StringIO()
    writer = csv.writer(output, lineterminator="\n")
    writer.writerow(["path", "index", "x", "y", "z"])
    for path_no, points in enumerate(paths):
        for idx, p in enumerate(points):
            writer.writerow([path_no, idx, p.x, p.y, p.z])
    return Response(content=output.getvalue(), media_type="text/csv")


@router.post("/assemble", response_model=PathsResponse)
async def assemble(body: AssembleRequest) -> PathsResponse:
    """Assemble a single batch of segments without creating a session."""
    assembler = PathAssembler(body.scale)
    assembler.add_lines(_segment_pairs(body.segments))
    paths = assembler.enumerate_paths()
    response = _paths_response(paths, assembler.stats(), assembler.scale)
    assembler.close()
    return response
