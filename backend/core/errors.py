"""
错误处理模块 - 定义自定义异常类和错误处理逻辑
遵循简单性原则：清晰的错误分类和有意义的错误消息
"""
from enum import Enum
from typing import Optional, Any, Dict, List, TYPE_CHECKING

from fastapi import status

if TYPE_CHECKING:
    from backend.models.documents import PairwiseResult


class ErrorCode(str, Enum):
    """错误代码枚举"""
    # 客户端错误
    INVALID_SELECTION = "INVALID_SELECTION"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    RUN_IN_PROGRESS = "RUN_IN_PROGRESS"
    RUN_CANCELLED = "RUN_CANCELLED"

    # 服务端错误
    INTERNAL_ERROR = "INTERNAL_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"

    # 外部服务错误
    SCORER_FAILED = "SCORER_FAILED"


class BaseApplicationError(Exception):
    """应用基础异常类"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.status_code = status_code
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典格式"""
        return {
            "error_code": self.error_code.value,
            "message": self.message,
            "details": self.details
        }


# 客户端错误 (4xx)
class ValidationError(BaseApplicationError):
    """Selection cannot produce a comparable pair set; raised before any scorer call."""
    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)

        super().__init__(
            message=message,
            error_code=ErrorCode.INVALID_SELECTION,
            details=details,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY
        )


class ResourceNotFoundError(BaseApplicationError):
    """资源不存在错误"""
    def __init__(self, resource_type: str, resource_id: Optional[str] = None):
        message = f"{resource_type} not found"
        details = {"resource_type": resource_type}
        if resource_id:
            details["resource_id"] = resource_id
            message = f"{resource_type} with id '{resource_id}' not found"

        super().__init__(
            message=message,
            error_code=ErrorCode.RESOURCE_NOT_FOUND,
            details=details,
            status_code=status.HTTP_404_NOT_FOUND
        )


class ComparisonInProgressError(BaseApplicationError):
    """A comparison run is already in flight"""
    def __init__(self, run_id: str):
        super().__init__(
            message="A comparison run is already in progress",
            error_code=ErrorCode.RUN_IN_PROGRESS,
            details={"run_id": run_id},
            status_code=status.HTTP_409_CONFLICT
        )


class RunCancelledError(BaseApplicationError):
    """The run was torn down; late results were discarded"""
    def __init__(self, run_id: str, discarded: int = 0):
        super().__init__(
            message=f"Comparison run '{run_id}' was cancelled",
            error_code=ErrorCode.RUN_CANCELLED,
            details={"run_id": run_id, "discarded_results": discarded},
            status_code=status.HTTP_409_CONFLICT
        )


# 服务端错误 (5xx)
class ServiceUnavailableError(BaseApplicationError):
    """服务不可用错误"""
    def __init__(self, service_name: str, reason: Optional[str] = None):
        message = f"{service_name} service is currently unavailable"
        details = {"service": service_name}
        if reason:
            message = f"{message}: {reason}"
            details["reason"] = reason

        super().__init__(
            message=message,
            error_code=ErrorCode.SERVICE_UNAVAILABLE,
            details=details,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE
        )


# 外部服务错误
class ScorerFailure(BaseApplicationError):
    """External scorer call failed or returned a malformed result"""
    def __init__(
        self,
        message: str,
        *,
        document_ids: Optional[tuple] = None,
        pair_index: Optional[int] = None,
        original_error: Optional[Exception] = None,
    ):
        details: Dict[str, Any] = {}
        if document_ids:
            details["document_ids"] = list(document_ids)
        if pair_index is not None:
            details["pair_index"] = pair_index
        if original_error is not None:
            details["original_error"] = str(original_error)

        self.pair_index = pair_index
        self.document_ids = document_ids
        # Filled by the executor only when partial results are preserved
        self.partial_results: Optional[List["PairwiseResult"]] = None
        self.scorer_calls: Optional[int] = None

        super().__init__(
            message=f"Similarity scorer error: {message}",
            error_code=ErrorCode.SCORER_FAILED,
            details=details,
            status_code=status.HTTP_502_BAD_GATEWAY
        )

    def for_pair(self, pair_index: int, document_ids: tuple) -> "ScorerFailure":
        """Attach the failing pair's position once the executor knows it."""
        self.pair_index = pair_index
        self.document_ids = document_ids
        self.details["pair_index"] = pair_index
        self.details["document_ids"] = list(document_ids)
        return self


