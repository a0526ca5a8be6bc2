"""Progress tracking API endpoints for comparison runs."""
from __future__ import annotations

import asyncio
import json
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from backend.api.deps import get_progress_tracker
from backend.core.errors import ResourceNotFoundError
from backend.core.logging import get_logger
from backend.services.progress_tracker import ProgressStatus, ProgressTracker, ProgressType

logger = get_logger(__name__)
router = APIRouter(prefix="/api/v1/progress", tags=["Progress"])

HEARTBEAT_SECONDS = 30.0


class ProgressTaskResponse(BaseModel):
    """Progress task response model."""
    task_id: str
    task_type: ProgressType
    description: str
    status: ProgressStatus
    total_steps: Optional[int]
    current_step: int
    progress_percent: float
    metadata: dict
    created_at: Optional[str]
    started_at: Optional[str]
    completed_at: Optional[str]
    error_message: Optional[str]
    current_message: Optional[str]
    duration_seconds: Optional[float]
    items_per_second: Optional[float]
    estimated_seconds_remaining: Optional[float]


@router.get("/tasks/{task_id}", response_model=ProgressTaskResponse)
async def get_task(
    task_id: str,
    tracker: ProgressTracker = Depends(get_progress_tracker),
) -> ProgressTaskResponse:
    """Get progress information for a specific run."""
    task = tracker.get_task(task_id)
    if not task:
        raise ResourceNotFoundError("Progress task", task_id)
    return ProgressTaskResponse(**task)


@router.get("/active", response_model=List[ProgressTaskResponse])
async def get_active_tasks(
    tracker: ProgressTracker = Depends(get_progress_tracker),
) -> List[ProgressTaskResponse]:
    """Get all currently running comparison runs."""
    return [ProgressTaskResponse(**task) for task in tracker.get_active_tasks()]


@router.get("/recent", response_model=List[ProgressTaskResponse])
async def get_recent_tasks(
    limit: int = Query(default=50, ge=1, le=200, description="Maximum number of tasks to return"),
    tracker: ProgressTracker = Depends(get_progress_tracker),
) -> List[ProgressTaskResponse]:
    """Get recent runs sorted by creation time."""
    return [ProgressTaskResponse(**task) for task in tracker.get_recent_tasks(limit=limit)]


@router.delete("/cleanup")
async def cleanup_old_tasks(
    older_than_hours: int = Query(default=24, ge=1, le=168, description="Remove tasks older than this many hours"),
    tracker: ProgressTracker = Depends(get_progress_tracker),
) -> dict:
    """Clean up old finished tasks."""
    removed_count = tracker.cleanup_finished_tasks(older_than_hours=older_than_hours)
    return {
        "status": "completed",
        "removed_count": removed_count,
        "older_than_hours": older_than_hours,
    }


@router.get("/tasks/{task_id}/stream")
async def stream_progress(
    task_id: str,
    tracker: ProgressTracker = Depends(get_progress_tracker),
):
    """
    Stream progress updates of one run using Server-Sent Events (SSE).

    The stream ends once the run completes, fails or is cancelled.
    """
    task = tracker.get_task(task_id)
    if not task:
        raise ResourceNotFoundError("Progress task", task_id)
    queue = tracker.subscribe_task(task_id)

    async def event_generator():
        try:
            yield f"data: {json.dumps({'event': 'connected', 'task': task})}\n\n"
            if task["status"] not in (ProgressStatus.PENDING, ProgressStatus.RUNNING):
                return
            while True:
                try:
                    update = await asyncio.wait_for(queue.get(), timeout=HEARTBEAT_SECONDS)
                except asyncio.TimeoutError:
                    yield f"data: {json.dumps({'event': 'heartbeat'})}\n\n"
                    continue
                yield f"data: {json.dumps(update)}\n\n"
                if update["event"] in ("completed", "failed", "cancelled"):
                    break
        finally:
            tracker.unsubscribe_task(task_id, queue)

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable Nginx buffering
        },
    )
