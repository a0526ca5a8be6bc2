"""
服务工厂 - 统一的服务创建和管理
Following Linus principle: Simple and practical service management
"""
from functools import lru_cache
from typing import TYPE_CHECKING

# 避免循环导入，使用TYPE_CHECKING
if TYPE_CHECKING:
    from backend.services.comparison_orchestrator import ComparisonOrchestrator
    from backend.services.document_directory import DocumentDirectoryClient
    from backend.services.progress_tracker import ProgressTracker
    from backend.services.scorer_client import SimilarityScorerClient


class ServiceFactory:
    """
    服务工厂 - 提供统一的服务访问接口

    HTTP clients and the orchestrator are process-wide; ``reset`` drops them
    (used on shutdown and by tests).
    """

    @staticmethod
    @lru_cache()
    def get_scorer_client() -> 'SimilarityScorerClient':
        """获取评分服务客户端"""
        from backend.services.scorer_client import SimilarityScorerClient
        return SimilarityScorerClient()

    @staticmethod
    @lru_cache()
    def get_document_directory() -> 'DocumentDirectoryClient':
        """获取文档目录客户端"""
        from backend.services.document_directory import DocumentDirectoryClient
        return DocumentDirectoryClient()

    @staticmethod
    def get_progress_tracker() -> 'ProgressTracker':
        """获取进度跟踪服务 (单例)"""
        from backend.services.progress_tracker import ProgressTracker
        return ProgressTracker()

    @staticmethod
    @lru_cache()
    def get_comparison_orchestrator() -> 'ComparisonOrchestrator':
        """获取比对编排服务"""
        from backend.services.comparison_orchestrator import ComparisonOrchestrator
        return ComparisonOrchestrator(
            scorer=ServiceFactory.get_scorer_client(),
            listing=ServiceFactory.get_document_directory(),
            progress_tracker=ServiceFactory.get_progress_tracker(),
        )

    @staticmethod
    async def close() -> None:
        """Close cached HTTP clients and forget every cached service."""
        if ServiceFactory.get_scorer_client.cache_info().currsize:
            await ServiceFactory.get_scorer_client().close()
        if ServiceFactory.get_document_directory.cache_info().currsize:
            await ServiceFactory.get_document_directory().close()
        ServiceFactory.reset()

    @staticmethod
    def reset() -> None:
        ServiceFactory.get_scorer_client.cache_clear()
        ServiceFactory.get_document_directory.cache_clear()
        ServiceFactory.get_comparison_orchestrator.cache_clear()
