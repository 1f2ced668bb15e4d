"""
Health Check Endpoints
System health and monitoring endpoints
"""

import time
from typing import Any, Dict

from fastapi import APIRouter, Depends
import psutil
import structlog

from inventory_api.core.config import settings
from inventory_api.core.container import ServiceContainer
from inventory_api.core.database import check_database_health
from inventory_api.core.deps import get_container
from inventory_api.schemas.base import HealthCheck, HealthStatus

logger = structlog.get_logger()
router = APIRouter()


def _usage_status(percent: float, degraded_at: float, unhealthy_at: float) -> HealthStatus:
    if percent >= unhealthy_at:
        return HealthStatus.UNHEALTHY
    if percent >= degraded_at:
        return HealthStatus.DEGRADED
    return HealthStatus.HEALTHY


def _host_checks() -> Dict[str, Any]:
    memory = psutil.virtual_memory()
    disk = psutil.disk_usage("/")
    disk_percent = round((disk.used / disk.total) * 100, 2)
    return {
        "memory": {
            "status": _usage_status(memory.percent, 90, 95).value,
            "usage_percent": memory.percent,
            "available_gb": round(memory.available / (1024**3), 2),
        },
        "disk": {
            "status": _usage_status(disk_percent, 85, 95).value,
            "usage_percent": disk_percent,
            "free_gb": round(disk.free / (1024**3), 2),
        },
    }


@router.get("/", response_model=HealthCheck)
async def health_check(container: ServiceContainer = Depends(get_container)) -> HealthCheck:
    """
    Health of the database, the permission cache and the host

    Returns:
        Health status with detailed checks
    """
    checks: Dict[str, Any] = {}
    overall_status = HealthStatus.HEALTHY

    started = time.perf_counter()
    db_healthy = container.engine is not None and await check_database_health(container.engine)
    checks["database"] = {
        "status": HealthStatus.HEALTHY.value if db_healthy else HealthStatus.UNHEALTHY.value,
        "response_time_ms": round((time.perf_counter() - started) * 1000, 2),
    }
    if not db_healthy:
        overall_status = HealthStatus.UNHEALTHY

    checks["permission_cache"] = {"status": HealthStatus.HEALTHY.value, **container.cache.stats()}

    try:
        host = _host_checks()
    except OSError as e:
        logger.warning("Host metrics unavailable", error=str(e))
        host = {}
    for name, check in host.items():
        checks[name] = check
        if check["status"] == HealthStatus.UNHEALTHY.value:
            overall_status = HealthStatus.UNHEALTHY
        elif check["status"] == HealthStatus.DEGRADED.value and overall_status == HealthStatus.HEALTHY:
            overall_status = HealthStatus.DEGRADED

    if overall_status != HealthStatus.HEALTHY:
        logger.warning("Health check not healthy", status=overall_status.value, checks=checks)

    return HealthCheck(
        status=overall_status,
        service=settings.SERVICE_NAME,
        version=settings.SERVICE_VERSION,
        checks=checks,
    )
