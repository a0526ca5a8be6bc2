from backend.services import ServiceFactory
from backend.services.comparison_orchestrator import ComparisonOrchestrator
from backend.services.document_directory import DocumentDirectoryClient
from backend.services.progress_tracker import ProgressTracker


def get_orchestrator() -> ComparisonOrchestrator:
    """获取比对编排服务"""
    return ServiceFactory.get_comparison_orchestrator()


def get_document_directory() -> DocumentDirectoryClient:
    """获取文档目录客户端"""
    return ServiceFactory.get_document_directory()


def get_progress_tracker() -> ProgressTracker:
    """获取进度跟踪服务"""
    return ServiceFactory.get_progress_tracker()
