from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from backend.api.v1 import health, documents, compare, progress, gauge
from backend.core.config import get_settings
from backend.core.errors import BaseApplicationError
from backend.core.logging import LogEvent, configure_logging, get_logger
from backend.core.middleware import ErrorHandlerMiddleware, error_handler
from backend.services import ServiceFactory

settings = get_settings()

# 配置结构化日志
configure_logging(settings.log_level, settings.json_logs)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    logger.info(
        LogEvent.APP_STARTED,
        version=settings.version,
        scorer_base_url=settings.scorer_base_url,
        concurrency=settings.comparison_concurrency,
        api_prefix=settings.api_v1_prefix,
    )
    try:
        yield
    finally:
        # 关闭时释放 HTTP 连接池
        await ServiceFactory.close()
        logger.info(LogEvent.APP_STOPPED)


app = FastAPI(
    title=settings.project_name,
    version=settings.version,
    openapi_url=f"{settings.api_v1_prefix}/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# 中间件配置 - 安全的 CORS 设置
origins = settings.get_cors_origins()
# 浏览器规范：当 allow_origins 为 "*" 时，不能允许 credentials
allow_credentials = settings.cors_allow_credentials and origins != ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(ErrorHandlerMiddleware)

# 错误处理
app.add_exception_handler(BaseApplicationError, error_handler)

# 路由注册
app.include_router(
    health.router,
    prefix=f"{settings.api_v1_prefix}/health",
    tags=["health"],
)

# API routers
app.include_router(documents.router)
app.include_router(compare.router)
app.include_router(progress.router)
app.include_router(gauge.router)

# Prometheus监控
Instrumentator().instrument(app).expose(app)


@app.get("/")
async def root():
    """根路径"""
    return {
        "name": settings.project_name,
        "version": settings.version,
        "docs": "/docs",
        "api_prefix": settings.api_v1_prefix,
    }


@app.get(f"{settings.api_v1_prefix}")
async def api_root():
    """API根路径"""
    return {
        "version": "v1",
        "endpoints": {
            "health": f"{settings.api_v1_prefix}/health",
            "documents": "/api/v1/documents",
            "folders": "/api/v1/folders",
            "similar": "/api/v1/similar/{document_id}",
            "comparisons": "/api/v1/comparisons",
            "graph": "/api/v1/comparisons/latest/graph",
            "progress": "/api/v1/progress",
            "gauge": "/api/v1/gauge",
        },
    }
