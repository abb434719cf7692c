"""
Health check aggregation — deep health probe for all subsystems.

Checks:
    • Management platform session (connected user)
    • Channel defaults (port / retry / authentication values are usable)

Returns a structured health report suitable for:
    - Kubernetes liveness/readiness probes
    - Load balancer health checks
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from starlette.concurrency import run_in_threadpool

from channel_provisioner.app.channels.models import (
    AuthenticationMode,
    FreshDeliveryParameters,
)
from channel_provisioner.app.channels.platform import ManagementPlatform, get_platform
from channel_provisioner.app.core.config import settings
from channel_provisioner.app.core.errors import ChannelProvisioningError

logger = logging.getLogger(__name__)


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"  # partial functionality
    UNHEALTHY = "unhealthy"


@dataclass
class ComponentHealth:
    name: str
    status: HealthStatus = HealthStatus.HEALTHY
    latency_ms: float = 0.0
    message: str = ""
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "name": self.name,
            "status": self.status.value,
            "latency_ms": round(self.latency_ms, 2),
        }
        if self.message:
            d["message"] = self.message
        if self.details:
            d["details"] = self.details
        return d


@dataclass
class HealthReport:
    status: HealthStatus = HealthStatus.HEALTHY
    version: str = settings.APP_VERSION
    environment: str = settings.ENVIRONMENT
    timestamp: str = ""
    uptime_seconds: float = 0.0
    components: List[ComponentHealth] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "version": self.version,
            "environment": self.environment,
            "timestamp": self.timestamp or datetime.now(timezone.utc).isoformat(),
            "uptime_seconds": round(self.uptime_seconds, 1),
            "components": [c.to_dict() for c in self.components],
        }


_start_time = time.monotonic()


def check_platform(platform: Optional[ManagementPlatform] = None) -> ComponentHealth:
    """A platform without a connected session cannot provision anything."""
    comp = ComponentHealth(name="management_platform")
    start = time.monotonic()
    owned = platform is None
    try:
        if owned:
            platform = get_platform()
        user = platform.current_user()
        comp.message = "Session available"
        comp.details = {"provider": platform.name, "user": user}
    except ChannelProvisioningError as e:
        comp.status = HealthStatus.UNHEALTHY
        comp.message = e.message
        comp.details = {"provider": settings.PLATFORM_PROVIDER}
    except Exception as e:
        comp.status = HealthStatus.UNHEALTHY
        comp.message = str(e)
        comp.details = {"provider": settings.PLATFORM_PROVIDER}
    finally:
        if owned and platform is not None:
            platform.close()
    comp.latency_ms = (time.monotonic() - start) * 1000
    return comp


def check_channel_defaults() -> ComponentHealth:
    """Configured defaults must pass the same checks as request values."""
    comp = ComponentHealth(name="channel_defaults")
    start = time.monotonic()
    try:
        FreshDeliveryParameters(
            server_address="health.invalid",
            from_address="health@invalid",
            port=settings.DEFAULT_SMTP_PORT,
            retry_minutes=settings.DEFAULT_RETRY_MINUTES,
            authentication=AuthenticationMode.parse(settings.DEFAULT_AUTHENTICATION),
        )
        comp.details = {
            "port": settings.DEFAULT_SMTP_PORT,
            "retry_minutes": settings.DEFAULT_RETRY_MINUTES,
            "authentication": settings.DEFAULT_AUTHENTICATION,
        }
    except ChannelProvisioningError as e:
        comp.status = HealthStatus.DEGRADED
        comp.message = e.message
    comp.latency_ms = (time.monotonic() - start) * 1000
    return comp


async def run_health_check(platform: Optional[ManagementPlatform] = None) -> HealthReport:
    """
    Run all checks and aggregate the worst status.

    The platform check uses a blocking client, so it runs in the threadpool.
    """
    components = [
        await run_in_threadpool(check_platform, platform),
        check_channel_defaults(),
    ]

    status = HealthStatus.HEALTHY
    if any(c.status == HealthStatus.UNHEALTHY for c in components):
        status = HealthStatus.UNHEALTHY
    elif any(c.status == HealthStatus.DEGRADED for c in components):
        status = HealthStatus.DEGRADED

    if status != HealthStatus.HEALTHY:
        logger.warning("Health check %s: %s", status.value, [
            c.name for c in components if c.status != HealthStatus.HEALTHY
        ])

    return HealthReport(
        status=status,
        uptime_seconds=time.monotonic() - _start_time,
        components=components,
    )
