"""
Prometheus metrics for the repolens FastAPI application
"""

from prometheus_client import (
    CollectorRegistry,
    GCCollector,
    Info,
    PlatformCollector,
    ProcessCollector,
)

APP_LABEL = "repolens"


def create_registry(version: str) -> CollectorRegistry:
    """Registry with the default process, platform and GC metrics plus an app info metric.

    Every application gets a registry of its own.
    """
    registry = CollectorRegistry()
    ProcessCollector(registry=registry)
    PlatformCollector(registry=registry)
    GCCollector(registry=registry)
    Info("repolens_app", "Application build information", registry=registry).info(
        {"app": APP_LABEL, "version": version}
    )
    return registry
