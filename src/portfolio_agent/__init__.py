"""Portfolio agent tool dispatch package."""

from .config import AppConfig, DispatchConfig, StatusCacheConfig
from .types import AccessLevel, ToolDefinition, ToolResult

__all__ = [
    "AccessLevel",
    "AppConfig",
    "DispatchConfig",
    "StatusCacheConfig",
    "ToolDefinition",
    "ToolResult",
]
