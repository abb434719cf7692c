"""
provisioning_service.py — End-to-end channel provisioning.

═══════════════════════════════════════════════════════════════════════════
FLOW
═══════════════════════════════════════════════════════════════════════════

    ┌──────────────────────┐
    │ 1. Exclusivity check │  fresh parameters XOR clone source
    └──────────┬───────────┘  (no platform call before this passes)
               ▼
    ┌──────────────────────┐
    │ 2. Normalise URL     │  console_url → absolute URL | None
    └──────────┬───────────┘
               ▼
    ┌──────────────────────┐
    │ 3. Resolve settings  │  fresh: new endpoint, "Created on … by …"
    │                      │  clone: borrowed endpoint, "modified copy of …"
    └──────────┬───────────┘
               ▼
    ┌──────────────────────┐
    │ 4. Assemble          │  subject / body / display name / headers
    └──────────┬───────────┘
               ▼
    ┌──────────────────────┐
    │ 5. Persist           │  owned + unpersisted endpoint first, then the
    │    (skipped on       │  channel that references it
    │     dry run)         │
    └──────────────────────┘

The definition is complete in memory before the first persistence call,
so a failure during validation or resolution leaves nothing behind.
Persistence errors propagate unchanged; there is no retry.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from channel_provisioner.app.channels.assembler import assemble_channel
from channel_provisioner.app.channels.models import (
    AuthenticationMode,
    ChannelSettings,
    FreshDeliveryParameters,
    ProvisioningRequest,
    ProvisioningResult,
)
from channel_provisioner.app.channels.platform import ManagementPlatform
from channel_provisioner.app.channels.settings_resolver import (
    classify_identifier,
    resolve_cloned_settings,
    resolve_fresh_settings,
)
from channel_provisioner.app.channels.templates import build_description
from channel_provisioner.app.channels.url_normalizer import normalize_console_url
from channel_provisioner.app.core.config import settings as app_settings
from channel_provisioner.app.core.errors import InvalidConfigurationError

logger = logging.getLogger(__name__)


def check_exclusivity(request: ProvisioningRequest) -> None:
    """Exactly one parameter group must be supplied."""
    fresh = request.has_fresh_parameters
    clone = request.has_clone_source

    if fresh and clone:
        raise InvalidConfigurationError(
            "Specify either SMTP delivery parameters or a channel to clone, not both",
            field="clone_source",
        )
    if not fresh and not clone:
        raise InvalidConfigurationError(
            "Specify SMTP delivery parameters (server_address, from_address) "
            "or a channel to clone",
        )
    if fresh and not (request.server_address and request.from_address):
        missing = "from_address" if request.server_address else "server_address"
        raise InvalidConfigurationError(
            "SMTP delivery parameters require both server_address and from_address",
            field=missing,
        )


def fresh_parameters_from(request: ProvisioningRequest) -> FreshDeliveryParameters:
    """Fill unset fresh-path values from configured defaults."""
    return FreshDeliveryParameters(
        server_address=request.server_address or "",
        from_address=request.from_address or "",
        port=(
            request.port if request.port is not None
            else app_settings.DEFAULT_SMTP_PORT
        ),
        retry_minutes=(
            request.retry_minutes if request.retry_minutes is not None
            else app_settings.DEFAULT_RETRY_MINUTES
        ),
        authentication=AuthenticationMode.parse(
            request.authentication or app_settings.DEFAULT_AUTHENTICATION
        ),
    )


def _format_timestamp(now: datetime) -> str:
    return now.strftime(app_settings.DESCRIPTION_TIMESTAMP_FORMAT)


def resolve_settings(
    request: ProvisioningRequest,
    platform: ManagementPlatform,
    now: datetime,
) -> ChannelSettings:
    """Run whichever resolution path the request selects."""
    timestamp = _format_timestamp(now)

    if request.has_clone_source:
        identifier = classify_identifier(request.clone_source)
        return resolve_cloned_settings(identifier, platform, timestamp)

    params = fresh_parameters_from(request)
    description = build_description(
        base_display_name=None,
        now_timestamp=timestamp,
        connected_user=platform.current_user(),
    )
    return resolve_fresh_settings(params, description)


def provision_channel(
    request: ProvisioningRequest,
    platform: ManagementPlatform,
    now: Optional[datetime] = None,
) -> ProvisioningResult:
    """
    Build a notification channel and, unless ``request.dry_run``, store it.

    Parameters
    ----------
    request : ProvisioningRequest
    platform : ManagementPlatform
    now : datetime, optional
        Creation time recorded in the description; defaults to local now.

    Returns
    -------
    ProvisioningResult
        Carries the full definition on dry runs as well.
    """
    check_exclusivity(request)

    console_url = normalize_console_url(request.console_url)
    if console_url is not None and console_url != request.console_url:
        logger.info("Console URL normalised: '%s' → '%s'", request.console_url, console_url)

    channel_settings = resolve_settings(request, platform, now or datetime.now())

    definition = assemble_channel(
        channel_settings,
        is_html=request.is_html,
        high_importance=request.high_importance,
        console_url=console_url,
    )

    result = ProvisioningResult(
        definition=definition,
        resolution_mode=channel_settings.resolution_mode,
        dry_run=request.dry_run,
        endpoint_reused=not channel_settings.owns_endpoint,
        console_url=console_url,
    )

    if request.dry_run:
        logger.info(
            "What if: would create channel '%s' (%s)",
            definition.display_name, channel_settings.resolution_mode,
            extra={"dry_run": True, "display_name": definition.display_name},
        )
        return result

    endpoint = definition.endpoint
    if channel_settings.owns_endpoint and not endpoint.is_persisted:
        platform.persist_endpoint(endpoint)
        result.endpoint_created = True

    platform.persist_channel(definition)
    result.persisted = True

    logger.info(
        "Channel '%s' provisioned (%s) using endpoint %s",
        definition.display_name, channel_settings.resolution_mode, endpoint.identity,
        extra={
            "channel_id": definition.identity,
            "endpoint_id": endpoint.identity,
            "resolution_mode": channel_settings.resolution_mode,
        },
    )
    return result
