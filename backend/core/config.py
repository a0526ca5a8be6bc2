"""
配置管理 - 使用Pydantic Settings实现环境变量管理
Scorer endpoint, dispatch limits and graph defaults all come from the environment.
"""
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """应用配置类 - 所有配置项通过环境变量管理"""

    # API配置
    api_v1_prefix: str = Field(default="/api/v1", description="API路由前缀")
    project_name: str = Field(default="Document Similarity Graph", description="项目名称")
    version: str = Field(default="1.0.0", description="版本号")

    # 外部服务 (document store + similarity scorer share one base URL)
    scorer_base_url: str = Field(default="http://localhost:8088", description="Scorer / document store base URL")
    scorer_timeout: float = Field(default=30.0, description="Per-request timeout in seconds")
    scorer_max_attempts: int = Field(
        default=1,
        ge=1,
        description="Transport attempts per scorer call; 1 scores every pair exactly once",
    )

    # 比对执行配置
    comparison_concurrency: int = Field(default=1, ge=1, description="Maximum in-flight scorer calls per run")
    preserve_partial_results: bool = Field(
        default=False,
        description="Keep results collected before the first scorer failure",
    )

    # 图谱 / 展示配置
    default_similarity_threshold: float = Field(default=40.0, ge=0, le=100, description="初始相似度阈值")
    gauge_duration_ms: float = Field(default=1000.0, gt=0, description="仪表动画时长(毫秒)")

    # 日志配置
    log_level: str = Field(default="INFO", description="日志级别")
    json_logs: bool = Field(default=True, description="是否输出JSON格式日志")

    # CORS 配置
    # 以逗号分隔的允许来源列表，例如："http://localhost:5173,https://your.app"
    cors_allow_origins: str = Field(default="http://localhost:5173", description="允许的跨域来源，逗号分隔")
    cors_allow_credentials: bool = Field(default=False, description="是否允许携带凭据")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"  # 忽略未定义的环境变量
    )

    @property
    def is_sequential(self) -> bool:
        """Whether runs dispatch one scorer call at a time"""
        return self.comparison_concurrency == 1

    def get_cors_origins(self) -> list[str]:
        """返回允许的 CORS 来源列表"""
        raw = (self.cors_allow_origins or "").strip()
        if not raw:
            return ["*"]
        # 拆分并清理空白
        return [o.strip() for o in raw.split(",") if o.strip()]


@lru_cache()
def get_settings() -> Settings:
    """
    获取配置单例
    使用lru_cache确保全局只有一个Settings实例
    """
    return Settings()
