"""Version 1 API routers."""

from . import health, documents, compare, progress, gauge

__all__ = ["health", "documents", "compare", "progress", "gauge"]
