"""
结构化日志配置模块 - 使用structlog实现JSON格式日志
日志即文档：每个事件都携带 run / pair 上下文
"""
import logging
import sys
from typing import Any

import structlog
from structlog.types import FilteringBoundLogger, Processor


def configure_logging(
    level: str = "INFO",
    json_logs: bool = True,
) -> None:
    """
    配置结构化日志系统

    Args:
        level: 日志级别 (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: 是否输出JSON格式日志
    """

    # 设置Python标准日志级别
    log_level = getattr(logging, level.upper(), logging.INFO)

    # 配置处理器链
    processors: list[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),

        # 添加异常信息格式化
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    # 根据环境选择渲染器
    if json_logs:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # 配置标准库日志
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )


def get_logger(
    name: str,
    **initial_context: Any
) -> FilteringBoundLogger:
    """
    获取结构化日志记录器

    Args:
        name: 日志记录器名称（通常使用模块名）
        **initial_context: 初始上下文数据

    Returns:
        配置好的日志记录器
    """
    logger = structlog.get_logger(name)

    if initial_context:
        logger = logger.bind(**initial_context)

    return logger


# 预定义的日志事件类型
class LogEvent:
    """标准化的日志事件类型"""

    # 应用生命周期
    APP_STARTED = "app_started"
    APP_STOPPED = "app_stopped"

    # 比对运行
    COMPARISON_RUN_STARTED = "comparison_run_started"
    COMPARISON_RUN_COMPLETED = "comparison_run_completed"
    COMPARISON_RUN_FAILED = "comparison_run_failed"
    COMPARISON_RUN_REJECTED = "comparison_run_rejected"
    COMPARISON_RUN_CANCELLED = "comparison_run_cancelled"

    PAIRS_GENERATED = "pairs_generated"
    PAIR_SCORED = "pair_scored"
    PAIR_FAILED = "pair_failed"
    DISPATCH_HALTED = "dispatch_halted"

    # 外部服务
    SCORER_CALL = "scorer_call"
    SCORER_ERROR = "scorer_error"
    DIRECTORY_CALL = "document_directory_call"
    DIRECTORY_ERROR = "document_directory_error"

    # 图谱
    GRAPH_BUILT = "graph_built"
    DUPLICATE_EDGE_REPLACED = "duplicate_edge_replaced"
