"""
platform.py — Management-platform collaborator.

The provisioning core only ever talks to the platform through
``ManagementPlatform``:

    lookup_channel_by_display_name(name)  → ChannelRef | None
    lookup_channel_by_id(identity)        → ChannelRef | None
    current_user()                        → "DOMAIN\\user"  (or UpstreamUnavailableError)
    persist_endpoint(endpoint)            → insert when identity is None, else update
    persist_channel(definition)           → insert when identity is None, else update

Providers:
    simulation  — InMemoryPlatform, process-local store (default; tests, demos)
    http        — HttpManagementPlatform, JSON over the management REST API

Persistence errors are not caught here; they reach the caller unchanged.
"""

from __future__ import annotations

import logging
import threading
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import httpx

from channel_provisioner.app.channels.models import (
    ChannelDefinition,
    ChannelRef,
    DeliveryEndpoint,
)
from channel_provisioner.app.core.config import settings
from channel_provisioner.app.core.errors import (
    InvalidConfigurationError,
    UpstreamUnavailableError,
)

logger = logging.getLogger(__name__)


class ManagementPlatform(ABC):
    """Administration surface of the monitoring platform."""

    name: str = "platform"

    @abstractmethod
    def lookup_channel_by_display_name(self, name: str) -> Optional[ChannelRef]:
        ...

    @abstractmethod
    def lookup_channel_by_id(self, identity: str) -> Optional[ChannelRef]:
        ...

    @abstractmethod
    def current_user(self) -> str:
        ...

    @abstractmethod
    def persist_endpoint(self, endpoint: DeliveryEndpoint) -> DeliveryEndpoint:
        ...

    @abstractmethod
    def persist_channel(self, definition: ChannelDefinition) -> ChannelDefinition:
        ...

    def close(self) -> None:
        """Release connections; nothing to do for in-process providers."""


# ═══════════════════════════════════════════════════════════════════════════
# Simulation Provider
# ═══════════════════════════════════════════════════════════════════════════

class InMemoryPlatform(ManagementPlatform):
    """
    Process-local platform used by the simulation provider and in tests.

    Records every persistence call in ``calls`` as (kind, operation, identity)
    tuples, e.g. ("endpoint", "insert", "3f2a…").

    Demo and test use only: the store lives in process memory and is lost
    on restart. Sync routes share one instance across threadpool workers,
    so every mutation holds ``_lock``. ``calls`` and ``lookups`` keep at
    most ``history_limit`` entries.
    """

    name = "simulation"

    def __init__(
        self,
        connected_user: Optional[str] = "CONTOSO\\scom-admin",
        channels: Optional[List[ChannelRef]] = None,
        history_limit: int = 1000,
    ):
        self.connected_user = connected_user
        self.history_limit = history_limit
        self._lock = threading.Lock()
        self.channels: Dict[str, ChannelRef] = {}
        self.endpoints: Dict[str, DeliveryEndpoint] = {}
        self.definitions: Dict[str, ChannelDefinition] = {}
        self.calls: List[tuple] = []
        self.lookups: List[tuple] = []
        for ref in channels or []:
            self.add_channel(ref)

    def add_channel(self, ref: ChannelRef) -> None:
        """Seed an existing channel (and its endpoint)."""
        with self._lock:
            self.channels[ref.identity] = ref
            endpoint = ref.action.endpoint
            if endpoint.identity:
                self.endpoints[endpoint.identity] = endpoint

    def _record(self, history: List[tuple], entry: tuple) -> None:
        history.append(entry)
        if len(history) > self.history_limit:
            del history[:-self.history_limit]

    def lookup_channel_by_display_name(self, name: str) -> Optional[ChannelRef]:
        with self._lock:
            self._record(self.lookups, ("display_name", name))
            matches = [c for c in self.channels.values() if c.display_name == name]
        if len(matches) > 1:
            logger.warning(
                "%d channels named '%s'; using the first match", len(matches), name,
            )
        return matches[0] if matches else None

    def lookup_channel_by_id(self, identity: str) -> Optional[ChannelRef]:
        wanted = identity.strip("{}").lower()
        with self._lock:
            self._record(self.lookups, ("id", identity))
            for key, ref in self.channels.items():
                if key.lower() == wanted:
                    return ref
        return None

    def current_user(self) -> str:
        if not self.connected_user:
            raise UpstreamUnavailableError(self.name, "no connected management session")
        return self.connected_user

    def persist_endpoint(self, endpoint: DeliveryEndpoint) -> DeliveryEndpoint:
        with self._lock:
            operation = "update" if endpoint.identity else "insert"
            if endpoint.identity is None:
                endpoint.identity = str(uuid.uuid4())
            self.endpoints[endpoint.identity] = endpoint
            self._record(self.calls, ("endpoint", operation, endpoint.identity))
        logger.info(
            "[SIMULATION] Endpoint %s: %s (%s:%d)",
            endpoint.display_name, operation,
            endpoint.primary_server_address, endpoint.port,
            extra={"endpoint_id": endpoint.identity},
        )
        return endpoint

    def persist_channel(self, definition: ChannelDefinition) -> ChannelDefinition:
        with self._lock:
            operation = "update" if definition.identity else "insert"
            if definition.identity is None:
                definition.identity = str(uuid.uuid4())
            self.definitions[definition.identity] = definition
            self._record(self.calls, ("channel", operation, definition.identity))
        logger.info(
            "[SIMULATION] Channel '%s': %s",
            definition.display_name, operation,
            extra={"channel_id": definition.identity},
        )
        return definition

    def count_calls(self, kind: str, operation: Optional[str] = None) -> int:
        with self._lock:
            return sum(
                1 for k, op, _ in self.calls
                if k == kind and (operation is None or op == operation)
            )


# ═══════════════════════════════════════════════════════════════════════════
# HTTP Provider
# ═══════════════════════════════════════════════════════════════════════════

class HttpManagementPlatform(ManagementPlatform):
    """
    Management REST API client.

    Routes (relative to ``base_url``):
        GET  /session                         → {"user": "DOMAIN\\user"}
        GET  /channels?display_name=…         → [channel, …]
        GET  /channels/{id}                   → channel | 404
        POST /endpoints,  PUT /endpoints/{id}
        POST /channels,   PUT /channels/{id}

    Usage:
        with HttpManagementPlatform("https://scom.example.com/api") as platform:
            platform.current_user()
    """

    name = "http"

    def __init__(
        self,
        base_url: str,
        *,
        token: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "HttpManagementPlatform":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _get(self, path: str, **params: Any) -> Optional[Any]:
        try:
            response = self._client.get(path, params=params or None)
        except httpx.TransportError as e:
            raise UpstreamUnavailableError(self.name, str(e), path=path) from e
        if response.status_code == 404:
            return None
        if response.status_code in (401, 403):
            raise UpstreamUnavailableError(
                self.name, f"session rejected ({response.status_code})", path=path,
            )
        response.raise_for_status()
        return self._decode(response, path)

    def _decode(self, response: httpx.Response, path: str) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamUnavailableError(
                self.name, f"malformed response body ({e})", path=path,
            ) from e

    def lookup_channel_by_display_name(self, name: str) -> Optional[ChannelRef]:
        data = self._get("/channels", display_name=name) or []
        if len(data) > 1:
            logger.warning(
                "%d channels named '%s'; using the first match", len(data), name,
            )
        return ChannelRef.from_dict(data[0]) if data else None

    def lookup_channel_by_id(self, identity: str) -> Optional[ChannelRef]:
        data = self._get(f"/channels/{identity.strip('{}')}")
        return ChannelRef.from_dict(data) if data else None

    def current_user(self) -> str:
        data = self._get("/session")
        user = (data or {}).get("user")
        if not user:
            raise UpstreamUnavailableError(self.name, "no connected management session")
        return user

    def _store(self, collection: str, identity: Optional[str], body: Dict[str, Any]) -> Dict[str, Any]:
        if identity is None:
            path = f"/{collection}"
            response = self._client.post(path, json=body)
        else:
            path = f"/{collection}/{identity}"
            response = self._client.put(path, json=body)
        response.raise_for_status()
        return self._decode(response, path)

    def persist_endpoint(self, endpoint: DeliveryEndpoint) -> DeliveryEndpoint:
        stored = self._store("endpoints", endpoint.identity, endpoint.to_dict())
        endpoint.identity = stored.get("identity", endpoint.identity)
        logger.info(
            "Endpoint %s stored", endpoint.display_name,
            extra={"endpoint_id": endpoint.identity},
        )
        return endpoint

    def persist_channel(self, definition: ChannelDefinition) -> ChannelDefinition:
        stored = self._store("channels", definition.identity, definition.to_dict())
        definition.identity = stored.get("identity", definition.identity)
        logger.info(
            "Channel '%s' stored", definition.display_name,
            extra={"channel_id": definition.identity},
        )
        return definition


# ═══════════════════════════════════════════════════════════════════════════
# Provider Selection
# ═══════════════════════════════════════════════════════════════════════════

_simulation_platform: Optional[InMemoryPlatform] = None


def get_platform() -> ManagementPlatform:
    """Return the platform configured by PLATFORM_PROVIDER."""
    global _simulation_platform

    provider = settings.PLATFORM_PROVIDER.lower()
    if provider == "simulation":
        if _simulation_platform is None:
            _simulation_platform = InMemoryPlatform(connected_user=settings.SIMULATION_USER)
        return _simulation_platform
    if provider == "http":
        return HttpManagementPlatform(
            settings.PLATFORM_API_URL,
            token=settings.PLATFORM_API_TOKEN,
            timeout=settings.PLATFORM_TIMEOUT_SECONDS,
        )
    raise InvalidConfigurationError(
        f"Unknown platform provider: {settings.PLATFORM_PROVIDER}",
        field="PLATFORM_PROVIDER",
    )
