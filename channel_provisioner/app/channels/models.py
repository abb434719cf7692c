"""
models.py — Shared data structures for notification channel provisioning.

Defines:
    • AuthenticationMode   — SMTP authentication against the relay
    • IdentifierKind       — opaque id vs. display name for clone sources
    • DeliveryEndpoint     — SMTP server connection details
    • ChannelAction        — delivery settings of an existing channel
    • ChannelRef           — an existing channel returned by the platform
    • ChannelSettings      — resolved settings (FreshSettings / ClonedSettings)
    • ChannelDefinition    — the final channel ready for submission
    • FreshDeliveryParameters, ProvisioningRequest, ProvisioningResult

═══════════════════════════════════════════════════════════════════════════
ENDPOINT OWNERSHIP
═══════════════════════════════════════════════════════════════════════════

    Settings variant    Endpoint source              owns_endpoint
    ────────────────    ─────────────────────────    ─────────────
    FreshSettings       built for this invocation    True
    ClonedSettings      existing channel's action    False

An owned endpoint is mutable until it is handed to the platform. A
borrowed endpoint is a back-reference to a platform object: nothing in
this package writes to it, and it is never submitted for insertion.

An ``identity`` of None on an endpoint or channel means "not persisted
yet"; the platform inserts it and assigns one. A present identity means
the object is updated in place.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from channel_provisioner.app.core.errors import InvalidConfigurationError

MIN_PORT = 0
MAX_PORT = 65535
DEFAULT_ENCODING = "utf-8"

Header = Tuple[str, str]


# ═══════════════════════════════════════════════════════════════════════════
# Enums
# ═══════════════════════════════════════════════════════════════════════════

class AuthenticationMode(str, Enum):
    """How the platform authenticates against the SMTP relay."""
    ANONYMOUS = "Anonymous"
    NTLM      = "Ntlm"

    @classmethod
    def parse(cls, value: "str | AuthenticationMode") -> "AuthenticationMode":
        if isinstance(value, cls):
            return value
        for mode in cls:
            if mode.value.lower() == str(value).strip().lower():
                return mode
        valid = [m.value for m in cls]
        raise InvalidConfigurationError(
            f"Invalid authentication mode '{value}'. Must be one of: {valid}",
            field="authentication",
        )


class IdentifierKind(str, Enum):
    """Shape of a clone-source identifier."""
    OPAQUE_ID    = "opaque_id"
    DISPLAY_NAME = "display_name"


# ═══════════════════════════════════════════════════════════════════════════
# Platform Objects
# ═══════════════════════════════════════════════════════════════════════════

@dataclass
class DeliveryEndpoint:
    """
    SMTP server connection details used by a channel.

    Attributes
    ----------
    display_name, description : str
    primary_server_address : str
        Host name or address of the SMTP relay.
    port : int
        0–65535.
    authentication : AuthenticationMode
    retry_interval_seconds : int
        Delay before the platform retries a failed send; > 0.
    identity : str | None
        Platform-assigned id; None until persisted.
    """
    display_name: str
    description: str
    primary_server_address: str
    port: int = 25
    authentication: AuthenticationMode = AuthenticationMode.ANONYMOUS
    retry_interval_seconds: int = 300
    identity: Optional[str] = None

    def __post_init__(self) -> None:
        if not MIN_PORT <= self.port <= MAX_PORT:
            raise InvalidConfigurationError(
                f"Port {self.port} is outside {MIN_PORT}-{MAX_PORT}",
                field="port",
            )
        if self.retry_interval_seconds <= 0:
            raise InvalidConfigurationError(
                "Retry interval must be positive",
                field="retry_interval_seconds",
            )

    @property
    def is_persisted(self) -> bool:
        return self.identity is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "identity": self.identity,
            "display_name": self.display_name,
            "description": self.description,
            "primary_server_address": self.primary_server_address,
            "port": self.port,
            "authentication": self.authentication.value,
            "retry_interval_seconds": self.retry_interval_seconds,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeliveryEndpoint":
        return cls(
            display_name=data.get("display_name", ""),
            description=data.get("description", ""),
            primary_server_address=data["primary_server_address"],
            port=int(data.get("port", 25)),
            authentication=AuthenticationMode.parse(
                data.get("authentication", AuthenticationMode.ANONYMOUS)
            ),
            retry_interval_seconds=int(data.get("retry_interval_seconds", 300)),
            identity=data.get("identity"),
        )


@dataclass
class ChannelAction:
    """Delivery settings carried by an existing channel."""
    endpoint: DeliveryEndpoint
    from_address: str
    reply_to_address: str
    body_encoding: str = DEFAULT_ENCODING
    subject_encoding: str = DEFAULT_ENCODING

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChannelAction":
        return cls(
            endpoint=DeliveryEndpoint.from_dict(data["endpoint"]),
            from_address=data.get("from_address", ""),
            reply_to_address=data.get("reply_to_address", ""),
            body_encoding=data.get("body_encoding", DEFAULT_ENCODING),
            subject_encoding=data.get("subject_encoding", DEFAULT_ENCODING),
        )


@dataclass
class ChannelRef:
    """An existing channel as returned by a platform lookup."""
    identity: str
    display_name: str
    action: ChannelAction

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChannelRef":
        return cls(
            identity=data["identity"],
            display_name=data.get("display_name", ""),
            action=ChannelAction.from_dict(data["action"]),
        )


@dataclass(frozen=True)
class ChannelIdentifier:
    """A clone-source identifier, classified once."""
    kind: IdentifierKind
    value: str


# ═══════════════════════════════════════════════════════════════════════════
# Resolved Settings
# ═══════════════════════════════════════════════════════════════════════════

@dataclass
class ChannelSettings(ABC):
    """Normalized delivery settings shared by both resolution paths."""
    description: str
    endpoint: DeliveryEndpoint
    from_address: str
    reply_to_address: str
    body_encoding: str = DEFAULT_ENCODING
    subject_encoding: str = DEFAULT_ENCODING

    @property
    @abstractmethod
    def owns_endpoint(self) -> bool:
        ...

    @property
    @abstractmethod
    def resolution_mode(self) -> str:
        ...


@dataclass
class FreshSettings(ChannelSettings):
    """Settings built from explicit delivery parameters."""

    @property
    def owns_endpoint(self) -> bool:
        return True

    @property
    def resolution_mode(self) -> str:
        return "fresh"


@dataclass
class ClonedSettings(ChannelSettings):
    """Settings copied from an existing channel; the endpoint is borrowed."""
    source_channel_id: str = ""
    source_display_name: str = ""

    @property
    def owns_endpoint(self) -> bool:
        return False

    @property
    def resolution_mode(self) -> str:
        return "clone"


# ═══════════════════════════════════════════════════════════════════════════
# Final Artifact
# ═══════════════════════════════════════════════════════════════════════════

@dataclass
class ChannelDefinition:
    """A complete channel ready to be handed to the platform."""
    subject_template: str
    body_template: str
    display_name: str
    description: str
    is_html: bool
    endpoint: DeliveryEndpoint
    from_address: str
    reply_to_address: str
    body_encoding: str = DEFAULT_ENCODING
    subject_encoding: str = DEFAULT_ENCODING
    headers: List[Header] = field(default_factory=list)
    identity: Optional[str] = None

    @property
    def is_high_importance(self) -> bool:
        return len(self.headers) > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "identity": self.identity,
            "display_name": self.display_name,
            "description": self.description,
            "subject_template": self.subject_template,
            "body_template": self.body_template,
            "is_html": self.is_html,
            "headers": [{"name": n, "value": v} for n, v in self.headers],
            "from_address": self.from_address,
            "reply_to_address": self.reply_to_address,
            "body_encoding": self.body_encoding,
            "subject_encoding": self.subject_encoding,
            "endpoint": self.endpoint.to_dict(),
        }


# ═══════════════════════════════════════════════════════════════════════════
# Invocation Inputs / Outputs
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class FreshDeliveryParameters:
    """
    Fully resolved fresh-path configuration.

    Validated on construction so the resolver never sees out-of-range
    values.
    """
    server_address: str
    from_address: str
    port: int = 25
    retry_minutes: int = 5
    authentication: AuthenticationMode = AuthenticationMode.ANONYMOUS

    def __post_init__(self) -> None:
        if not self.server_address or not self.server_address.strip():
            raise InvalidConfigurationError(
                "SMTP server address is required", field="server_address",
            )
        if not self.from_address or not self.from_address.strip():
            raise InvalidConfigurationError(
                "From address is required", field="from_address",
            )
        if not MIN_PORT <= self.port <= MAX_PORT:
            raise InvalidConfigurationError(
                f"Port {self.port} is outside {MIN_PORT}-{MAX_PORT}",
                field="port",
            )
        if self.retry_minutes < 1:
            raise InvalidConfigurationError(
                f"Retry interval must be a positive number of minutes, got {self.retry_minutes}",
                field="retry_minutes",
            )
        object.__setattr__(
            self, "authentication", AuthenticationMode.parse(self.authentication)
        )

    @property
    def retry_interval_seconds(self) -> int:
        return self.retry_minutes * 60


@dataclass
class ProvisioningRequest:
    """
    Everything the invoking layer supplies for one provisioning run.

    Exactly one of the fresh group (server_address / from_address) or
    clone_source must be given; the provisioning service enforces this.
    """
    server_address: Optional[str] = None
    from_address: Optional[str] = None
    port: Optional[int] = None
    retry_minutes: Optional[int] = None
    authentication: Optional[str] = None
    clone_source: Optional[str] = None
    high_importance: bool = False
    plain_text: bool = False
    console_url: Optional[str] = None
    dry_run: bool = False

    @property
    def has_fresh_parameters(self) -> bool:
        return any(
            v not in (None, "")
            for v in (
                self.server_address, self.from_address, self.port,
                self.retry_minutes, self.authentication,
            )
        )

    @property
    def has_clone_source(self) -> bool:
        return bool(self.clone_source and self.clone_source.strip())

    @property
    def is_html(self) -> bool:
        return not self.plain_text


@dataclass
class ProvisioningResult:
    """Outcome of a provisioning run."""
    definition: ChannelDefinition
    resolution_mode: str
    dry_run: bool = False
    endpoint_created: bool = False
    endpoint_reused: bool = False
    persisted: bool = False
    console_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "resolution_mode": self.resolution_mode,
            "dry_run": self.dry_run,
            "persisted": self.persisted,
            "endpoint_created": self.endpoint_created,
            "endpoint_reused": self.endpoint_reused,
            "console_url": self.console_url,
            "channel": self.definition.to_dict(),
        }
