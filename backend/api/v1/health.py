from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException

from backend.api.deps import get_document_directory, get_orchestrator
from backend.core.config import get_settings
from backend.core.logging import get_logger
from backend.services.comparison_orchestrator import ComparisonOrchestrator
from backend.services.document_directory import DocumentDirectoryClient

router = APIRouter()
logger = get_logger(__name__)


@router.get("/")
async def health_check(
    orchestrator: ComparisonOrchestrator = Depends(get_orchestrator),
) -> Dict[str, Any]:
    """
    健康检查

    返回应用的基本健康状态
    """
    settings = get_settings()
    return {
        "status": "healthy",
        "version": settings.version,
        "comparison_running": orchestrator.running,
        "concurrency": settings.comparison_concurrency,
    }


@router.get("/ready")
async def readiness_check(
    directory: DocumentDirectoryClient = Depends(get_document_directory),
) -> Dict[str, Any]:
    """
    就绪检查

    The document store must answer before comparisons can be generated.
    """
    if not await directory.ping():
        logger.warning("readiness_check_failed", service=directory.service_name)
        raise HTTPException(status_code=503, detail=f"Service not ready: {directory.service_name} unreachable")
    return {"ready": True, "services": {directory.service_name: "ok"}}


@router.get("/live")
async def liveness_check() -> Dict[str, str]:
    """
    存活检查

    简单的存活探针，用于Kubernetes等容器编排工具
    """
    return {"status": "alive"}
