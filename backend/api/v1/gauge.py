"""Gauge rendering API: the frame a radial similarity gauge should draw."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Query
from pydantic import BaseModel

from backend.core.config import get_settings
from backend.services.gauge import (
    GAUGE_CIRCUMFERENCE,
    GAUGE_RADIUS,
    GAUGE_STROKE,
    frame_after,
    traffic_light,
)

router = APIRouter(prefix="/api/v1/gauge", tags=["Gauge"])


class GaugeFrameResponse(BaseModel):
    target: float
    value: float
    display: str
    color: str
    light: str
    radius: int
    stroke: int
    circumference: float
    dash: float
    gap: float
    finished: bool


@router.get("", response_model=GaugeFrameResponse, summary="Gauge frame for a similarity percent")
async def gauge_frame(
    value: float = Query(..., ge=0, le=100, description="Target similarity percent"),
    elapsed_ms: Optional[float] = Query(
        default=None,
        ge=0,
        description="Time since the first frame; omitted means the animation has finished",
    ),
) -> GaugeFrameResponse:
    duration_ms = get_settings().gauge_duration_ms
    frame = frame_after(value, duration_ms if elapsed_ms is None else elapsed_ms, duration_ms)
    return GaugeFrameResponse(
        target=value,
        value=frame.value,
        display=f"{frame.value:.2f}%",
        color=frame.color,
        light=traffic_light(frame.value),
        radius=GAUGE_RADIUS,
        stroke=GAUGE_STROKE,
        circumference=GAUGE_CIRCUMFERENCE,
        dash=frame.dash,
        gap=frame.gap,
        finished=frame.finished,
    )
