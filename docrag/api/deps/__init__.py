"""
Dependency injection.

Exports FastAPI dependency factories.
"""

from .dependencies import (
    ServiceCache,
    get_extractor,
    get_pipeline,
    get_service_cache,
    get_settings_dependency,
)

__all__ = [
    "ServiceCache",
    "get_extractor",
    "get_pipeline",
    "get_service_cache",
    "get_settings_dependency",
]
