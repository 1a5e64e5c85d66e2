"""
REST API endpoints for stream management.

Every endpoint is a thin call into the lifecycle controller or the batch
coordinator; domain errors are mapped to HTTP status codes by the handlers
registered in :mod:`ytlive.web.server`.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, Request, Response
from pydantic import BaseModel, ConfigDict, Field

from ...domain.schedule import ScheduleConfig
from ...runtime.batch_coordinator import BatchOperation
from ...runtime.context import StreamRuntime

router = APIRouter(prefix="/api/streams", tags=["streams"])


def get_runtime(request: Request) -> StreamRuntime:
    return request.app.state.runtime


# ============================================================================
# Pydantic Models for Request/Response
# ============================================================================


class DurationBody(BaseModel):
    hours: int = Field(0, description="Hours (not range-checked)")
    minutes: int = Field(0, description="Minutes (not range-checked)")
    seconds: int = Field(0, description="Seconds (not range-checked)")


class AbsoluteBody(BaseModel):
    datetime: str = Field(..., description="Naive local date-time, e.g. 2025-06-01T18:30:00")
    timezone: str = Field(..., description="IANA timezone name, e.g. Europe/Berlin")


class ScheduleBody(BaseModel):
    """Stop policy; only the block matching ``type`` is read."""
    type: str = Field("manual", description="manual | duration | absolute")
    duration: DurationBody | None = None
    absolute: AbsoluteBody | None = None

    def to_config(self) -> ScheduleConfig:
        return ScheduleConfig.from_dict(self.model_dump())


class StreamCreate(BaseModel):
    """Request model for creating a stream."""
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., description="Display name")
    destination_key: str = Field(..., alias="destinationKey", description="Stream key at the destination")
    media_path: str = Field(..., alias="mediaPath", description="Local media file to broadcast")
    schedule: ScheduleBody | None = Field(None, description="Stop policy (manual when omitted)")
    start_immediately: bool = Field(False, alias="startImmediately", description="Start right after creating")


class StreamUpdate(BaseModel):
    """Request model for editing a stream; omitted fields are left unchanged."""
    model_config = ConfigDict(populate_by_name=True)

    name: str | None = None
    destination_key: str | None = Field(None, alias="destinationKey")
    media_path: str | None = Field(None, alias="mediaPath")
    schedule: ScheduleBody | None = None


class BatchRequest(BaseModel):
    """Request model for batch operations; omit ``ids`` to use the server-side selection."""
    ids: list[str] | None = Field(None, description="Stream ids to operate on")


# ============================================================================
# Stream Endpoints
# ============================================================================


@router.get("")
def list_streams(
    sort: str | None = Query(None, description="created_at | name | status"),
    order: str = Query("asc", pattern="^(asc|desc)$", description="Sort order"),
    runtime: StreamRuntime = Depends(get_runtime),
) -> dict[str, Any]:
    """List all streams."""
    records = runtime.controller.list_streams(sort, descending=order == "desc")
    return {"status": "ok", "streams": [r.to_dict() for r in records], "count": len(records)}


@router.post("", status_code=201)
def create_stream(body: StreamCreate, runtime: StreamRuntime = Depends(get_runtime)) -> dict[str, Any]:
    """Create a stream, optionally starting it."""
    record = runtime.controller.add_stream(
        body.name,
        body.destination_key,
        body.media_path,
        schedule=body.schedule.to_config() if body.schedule else None,
        start_immediately=body.start_immediately,
    )
    return {"status": "ok", "stream": record.to_dict()}


@router.post("/batch/{operation}")
def batch_operation(
    operation: BatchOperation,
    body: BatchRequest,
    runtime: StreamRuntime = Depends(get_runtime),
) -> dict[str, Any]:
    """Apply start/stop/delete to many streams; never fails as a whole."""
    result = runtime.coordinator.apply(operation, body.ids)
    return {"status": "ok", **result.to_dict()}


@router.get("/{stream_id}")
def get_stream(stream_id: str, runtime: StreamRuntime = Depends(get_runtime)) -> dict[str, Any]:
    return {"status": "ok", "stream": runtime.controller.get_stream(stream_id).to_dict()}


@router.patch("/{stream_id}")
def update_stream(
    stream_id: str,
    body: StreamUpdate,
    runtime: StreamRuntime = Depends(get_runtime),
) -> dict[str, Any]:
    """Edit a stream that is not live or stopping."""
    record = runtime.controller.update_stream(
        stream_id,
        name=body.name,
        destination_key=body.destination_key,
        media_path=body.media_path,
        schedule=body.schedule.to_config() if body.schedule else None,
    )
    return {"status": "ok", "stream": record.to_dict()}


@router.post("/{stream_id}/start")
def start_stream(stream_id: str, runtime: StreamRuntime = Depends(get_runtime)) -> dict[str, Any]:
    record = runtime.controller.start_stream(stream_id)
    return {"status": "ok", "stream": record.to_dict()}


@router.post("/{stream_id}/stop")
def stop_stream(stream_id: str, runtime: StreamRuntime = Depends(get_runtime)) -> dict[str, Any]:
    record = runtime.controller.stop_stream(stream_id)
    return {"status": "ok", "stream": record.to_dict()}


@router.delete("/{stream_id}", status_code=204)
def delete_stream(stream_id: str, runtime: StreamRuntime = Depends(get_runtime)) -> Response:
    runtime.controller.delete_stream(stream_id)
    return Response(status_code=204)
