"""
FastAPI route: notification channel provisioning endpoints.

Provides endpoints to:
    POST /api/v1/channels             — provision a channel (honours dry_run)
    POST /api/v1/channels/preview     — what-if: build without storing
    GET  /api/v1/channels/templates   — render templates for a set of flags
    GET  /api/v1/channels/health      — service health
"""

from __future__ import annotations

from typing import Any, Dict, Iterator, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from channel_provisioner.app.channels.models import (
    AuthenticationMode,
    ProvisioningRequest,
)
from channel_provisioner.app.channels.platform import (
    ManagementPlatform,
    get_platform,
)
from channel_provisioner.app.channels.provisioning_service import provision_channel
from channel_provisioner.app.channels.templates import (
    build_body,
    build_display_name,
    build_subject,
    extract_field_labels,
)
from channel_provisioner.app.channels.url_normalizer import normalize_console_url

router = APIRouter(prefix="/api/v1/channels", tags=["notification-channels"])


# ---------------------------------------------------------------------------
# Request / Response Schemas
# ---------------------------------------------------------------------------

class ChannelRequest(BaseModel):
    """
    Provision a channel from SMTP parameters or from an existing channel.

    Supply either server_address + from_address (optionally port,
    retry_minutes, authentication) or clone_source, never both.
    """
    # Fresh delivery parameters
    server_address: Optional[str] = Field(None, examples=["mail.example.com"])
    from_address: Optional[str] = Field(None, examples=["ops@example.com"])
    port: Optional[int] = Field(None, ge=0, le=65535, examples=[25])
    retry_minutes: Optional[int] = Field(None, ge=1, examples=[5])
    authentication: Optional[AuthenticationMode] = Field(
        None, examples=["Anonymous"],
        description="Anonymous / Ntlm",
    )

    # Clone source
    clone_source: Optional[str] = Field(
        None, examples=["Ops mail"],
        description="Id (8-4-4-4-12 hex) or display name of an existing channel",
    )

    # Options
    high_importance: bool = Field(False, description="Add priority headers")
    plain_text: bool = Field(False, description="Plain-text body instead of HTML")
    console_url: Optional[str] = Field(
        None, examples=["squaredup.example.com"],
        description="Alternate web console used for alert/object links",
    )
    dry_run: bool = Field(False, description="Build the channel without storing it")


class HeaderOut(BaseModel):
    name: str
    value: str


class EndpointOut(BaseModel):
    identity: Optional[str]
    display_name: str
    description: str
    primary_server_address: str
    port: int
    authentication: str
    retry_interval_seconds: int


class ChannelOut(BaseModel):
    identity: Optional[str]
    display_name: str
    description: str
    subject_template: str
    body_template: str
    is_html: bool
    headers: List[HeaderOut]
    from_address: str
    reply_to_address: str
    body_encoding: str
    subject_encoding: str
    endpoint: EndpointOut


class ProvisioningResponse(BaseModel):
    """Provisioning outcome."""
    resolution_mode: str
    dry_run: bool
    persisted: bool
    endpoint_created: bool
    endpoint_reused: bool
    console_url: Optional[str]
    channel: ChannelOut


# ---------------------------------------------------------------------------
# Helper Functions
# ---------------------------------------------------------------------------

def platform_dependency() -> Iterator[ManagementPlatform]:
    """Yield the configured platform and release it after the request."""
    platform = get_platform()
    try:
        yield platform
    finally:
        platform.close()


def _to_request(body: ChannelRequest, *, force_dry_run: bool = False) -> ProvisioningRequest:
    """Convert Pydantic model to dataclass."""
    return ProvisioningRequest(
        server_address=body.server_address,
        from_address=body.from_address,
        port=body.port,
        retry_minutes=body.retry_minutes,
        authentication=body.authentication.value if body.authentication else None,
        clone_source=body.clone_source,
        high_importance=body.high_importance,
        plain_text=body.plain_text,
        console_url=body.console_url,
        dry_run=body.dry_run or force_dry_run,
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=ProvisioningResponse,
    summary="Provision a notification channel",
    description=(
        "Builds a channel from SMTP parameters or by cloning an existing "
        "channel's delivery settings, then stores it unless dry_run is set."
    ),
)
def create_channel(
    body: ChannelRequest,
    platform: ManagementPlatform = Depends(platform_dependency),
):
    result = provision_channel(_to_request(body), platform)
    return result.to_dict()


@router.post(
    "/preview",
    response_model=ProvisioningResponse,
    summary="Preview a notification channel",
    description="Same as POST /api/v1/channels with dry_run forced on.",
)
def preview_channel(
    body: ChannelRequest,
    platform: ManagementPlatform = Depends(platform_dependency),
):
    result = provision_channel(_to_request(body, force_dry_run=True), platform)
    return result.to_dict()


@router.get(
    "/templates",
    summary="Render channel templates",
    description="Subject, body and display name for a set of flags. No platform call.",
)
def render_templates(
    plain_text: bool = Query(False),
    high_importance: bool = Query(False),
    console_url: Optional[str] = Query(None),
) -> Dict[str, Any]:
    is_html = not plain_text
    url = normalize_console_url(console_url)
    body = build_body(is_html, url)
    return {
        "display_name": build_display_name(is_html, high_importance, url is not None),
        "subject_template": build_subject(),
        "body_template": body,
        "fields": extract_field_labels(body, is_html),
        "console_url": url,
    }


@router.get(
    "/health",
    summary="Channel service health check",
)
def health():
    return {
        "status": "healthy",
        "service": "notification-channels",
        "authentication_modes": [m.value for m in AuthenticationMode],
    }
