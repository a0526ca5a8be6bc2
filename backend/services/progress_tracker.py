"""Progress tracking service for comparison runs."""
from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Any
from uuid import uuid4

from backend.services.base_service import BaseService, singleton
from backend.core.logging import get_logger

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProgressStatus(str, Enum):
    """Progress task status."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class ProgressType(str, Enum):
    """Progress task types."""
    COMPARISON_RUN = "comparison_run"


class ProgressTask:
    """Progress task representation."""

    def __init__(
        self,
        task_id: str,
        task_type: ProgressType,
        description: str,
        total_steps: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None
    ):
        self.task_id = task_id
        self.task_type = task_type
        self.description = description
        self.status = ProgressStatus.PENDING
        self.total_steps = total_steps
        self.current_step = 0
        self.progress_percent = 0.0
        self.metadata = metadata or {}
        self.created_at = _utcnow()
        self.started_at: Optional[datetime] = None
        self.completed_at: Optional[datetime] = None
        self.error_message: Optional[str] = None
        self.current_message: Optional[str] = None
        self.items_per_second: Optional[float] = None
        self.estimated_seconds_remaining: Optional[float] = None
        self._listeners: List[asyncio.Queue] = []

    @property
    def finished(self) -> bool:
        return self.status in (ProgressStatus.COMPLETED, ProgressStatus.FAILED, ProgressStatus.CANCELLED)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "task_id": self.task_id,
            "task_type": self.task_type,
            "description": self.description,
            "status": self.status,
            "total_steps": self.total_steps,
            "current_step": self.current_step,
            "progress_percent": self.progress_percent,
            "metadata": self.metadata,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "error_message": self.error_message,
            "current_message": self.current_message,
            "duration_seconds": self._calculate_duration(),
            "items_per_second": self.items_per_second,
            "estimated_seconds_remaining": self.estimated_seconds_remaining
        }

    def _calculate_duration(self) -> Optional[float]:
        """Calculate task duration in seconds."""
        if not self.started_at:
            return None
        end_time = self.completed_at or _utcnow()
        return (end_time - self.started_at).total_seconds()


@singleton
class ProgressTracker(BaseService):
    """In-memory progress of comparison runs, one task per run."""

    def _initialize(self) -> None:
        self._tasks: Dict[str, ProgressTask] = {}

    def create_task(
        self,
        task_type: ProgressType,
        description: str,
        total_steps: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> str:
        """Create a new progress task."""
        self._ensure_initialized()

        task_id = str(uuid4())
        self._tasks[task_id] = ProgressTask(
            task_id=task_id,
            task_type=task_type,
            description=description,
            total_steps=total_steps,
            metadata=metadata
        )

        logger.info(
            "progress_task_created",
            task_id=task_id,
            task_type=task_type.value,
            description=description,
            total_steps=total_steps,
        )
        return task_id

    def _get(self, task_id: str) -> ProgressTask:
        self._ensure_initialized()
        if task_id not in self._tasks:
            raise ValueError(f"Task {task_id} not found")
        return self._tasks[task_id]

    def start_task(self, task_id: str) -> None:
        """Mark a task as started."""
        task = self._get(task_id)
        task.status = ProgressStatus.RUNNING
        task.started_at = _utcnow()
        self._notify_listeners(task, "started")

    def advance(self, task_id: str, message: Optional[str] = None) -> None:
        """Record one more finished step."""
        task = self._get(task_id)
        self.update_progress(task_id, current_step=task.current_step + 1, message=message)

    def update_progress(
        self,
        task_id: str,
        current_step: Optional[int] = None,
        message: Optional[str] = None
    ) -> None:
        """Update task progress."""
        task = self._get(task_id)

        if current_step is not None:
            task.current_step = current_step
            if task.total_steps:
                task.progress_percent = (current_step / task.total_steps) * 100

        if message:
            task.current_message = message

        # 计算速度和剩余时间
        if task.started_at and task.current_step > 0:
            total_elapsed = (_utcnow() - task.started_at).total_seconds()
            if total_elapsed > 0:
                task.items_per_second = task.current_step / total_elapsed
                if task.total_steps and task.current_step < task.total_steps:
                    remaining_items = task.total_steps - task.current_step
                    task.estimated_seconds_remaining = remaining_items / task.items_per_second

        logger.debug(
            "progress_task_updated",
            task_id=task_id,
            current_step=task.current_step,
            progress_percent=task.progress_percent,
            message=message,
        )
        self._notify_listeners(task, "progress")

    def complete_task(self, task_id: str, message: Optional[str] = None) -> None:
        """Mark a task as completed."""
        task = self._get(task_id)
        task.status = ProgressStatus.COMPLETED
        task.completed_at = _utcnow()
        task.progress_percent = 100.0
        if message:
            task.current_message = message

        logger.info(
            "progress_task_completed",
            task_id=task_id,
            duration_seconds=task._calculate_duration()
        )
        self._notify_listeners(task, "completed")

    def fail_task(self, task_id: str, error_message: str) -> None:
        """Mark a task as failed."""
        task = self._get(task_id)
        task.status = ProgressStatus.FAILED
        task.completed_at = _utcnow()
        task.error_message = error_message

        logger.error(
            "progress_task_failed",
            task_id=task_id,
            error_message=error_message,
            duration_seconds=task._calculate_duration()
        )
        self._notify_listeners(task, "failed")

    def cancel_task(self, task_id: str) -> None:
        """Mark a task as cancelled."""
        task = self._get(task_id)
        task.status = ProgressStatus.CANCELLED
        task.completed_at = _utcnow()

        logger.info("progress_task_cancelled", task_id=task_id)
        self._notify_listeners(task, "cancelled")

    def get_task(self, task_id: str) -> Optional[Dict[str, Any]]:
        """Get task information."""
        self._ensure_initialized()
        task = self._tasks.get(task_id)
        return task.to_dict() if task else None

    def get_active_tasks(self) -> List[Dict[str, Any]]:
        """Get all active (running) tasks."""
        self._ensure_initialized()
        return [
            task.to_dict()
            for task in self._tasks.values()
            if task.status == ProgressStatus.RUNNING
        ]

    def get_recent_tasks(self, limit: int = 50) -> List[Dict[str, Any]]:
        """Get recent tasks sorted by creation time."""
        self._ensure_initialized()
        sorted_tasks = sorted(
            self._tasks.values(),
            key=lambda t: t.created_at,
            reverse=True
        )
        return [task.to_dict() for task in sorted_tasks[:limit]]

    def subscribe_task(self, task_id: str) -> asyncio.Queue:
        """Subscribe to updates for a specific task."""
        task = self._get(task_id)
        queue: asyncio.Queue = asyncio.Queue()
        task._listeners.append(queue)
        return queue

    def unsubscribe_task(self, task_id: str, queue: asyncio.Queue) -> None:
        """Unsubscribe from task updates."""
        self._ensure_initialized()
        task = self._tasks.get(task_id)
        if task and queue in task._listeners:
            task._listeners.remove(queue)

    def _notify_listeners(self, task: ProgressTask, event: str) -> None:
        update = {"event": event, "task": task.to_dict()}
        for queue in task._listeners[:]:
            try:
                queue.put_nowait(update)
            except asyncio.QueueFull:
                task._listeners.remove(queue)

    def cleanup_finished_tasks(self, older_than_hours: int = 24) -> int:
        """Drop finished tasks older than the cutoff."""
        self._ensure_initialized()

        now = _utcnow()
        cutoff_seconds = older_than_hours * 3600
        stale = [
            task_id
            for task_id, task in self._tasks.items()
            if task.finished and task.completed_at
            and (now - task.completed_at).total_seconds() > cutoff_seconds
        ]
        for task_id in stale:
            del self._tasks[task_id]

        logger.info(
            "progress_tasks_cleaned_up",
            removed_count=len(stale),
            older_than_hours=older_than_hours
        )
        return len(stale)
