"""
settings_resolver.py — Build a ChannelSettings record from one of two sources.

    Fresh path    FreshDeliveryParameters ──► new DeliveryEndpoint (owned)
                                              from = reply-to = from_address
                                              encodings = utf-8

    Clone path    "3f2a…-…" / "Ops mail"  ──► classify once
                                              ├─ OPAQUE_ID    → lookup_channel_by_id
                                              └─ DISPLAY_NAME → lookup_channel_by_display_name
                                              copy encodings, addressing and the
                                              endpoint *reference* from the channel

Which path runs is the caller's choice; the exclusivity check lives in
the provisioning service.
"""

from __future__ import annotations

import logging
import re

from channel_provisioner.app.channels.models import (
    ChannelIdentifier,
    ClonedSettings,
    DEFAULT_ENCODING,
    DeliveryEndpoint,
    FreshDeliveryParameters,
    FreshSettings,
    IdentifierKind,
)
from channel_provisioner.app.channels.platform import ManagementPlatform
from channel_provisioner.app.channels.templates import build_description
from channel_provisioner.app.core.errors import (
    InvalidConfigurationError,
    NotFoundError,
)

logger = logging.getLogger(__name__)

_OPAQUE_ID_RE = re.compile(
    r"^\{?[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}\}?$"
)


def endpoint_display_name(params: FreshDeliveryParameters) -> str:
    return f"SMTP {params.server_address}:{params.port} ({params.authentication.value})"


# ═══════════════════════════════════════════════════════════════════════════
# Fresh Path
# ═══════════════════════════════════════════════════════════════════════════

def resolve_fresh_settings(
    params: FreshDeliveryParameters, description: str,
) -> FreshSettings:
    """
    Build settings around a brand-new delivery endpoint.

    Parameters
    ----------
    params : FreshDeliveryParameters
    description : str
        Used for both the endpoint and the channel; normally produced by
        ``build_description`` without a base name.
    """
    endpoint = DeliveryEndpoint(
        display_name=endpoint_display_name(params),
        description=description,
        primary_server_address=params.server_address.strip(),
        port=params.port,
        authentication=params.authentication,
        retry_interval_seconds=params.retry_interval_seconds,
        identity=None,
    )
    from_address = params.from_address.strip()
    return FreshSettings(
        description=description,
        endpoint=endpoint,
        from_address=from_address,
        reply_to_address=from_address,
        body_encoding=DEFAULT_ENCODING,
        subject_encoding=DEFAULT_ENCODING,
    )


# ═══════════════════════════════════════════════════════════════════════════
# Clone Path
# ═══════════════════════════════════════════════════════════════════════════

def classify_identifier(value: str) -> ChannelIdentifier:
    """
    Decide whether a clone source is a platform id or a display name.

    Anything that is not a well-formed 8-4-4-4-12 hex id (optionally in
    braces) is treated as a display name.
    """
    if value is None or not value.strip():
        raise InvalidConfigurationError(
            "Clone source identifier is empty", field="clone_source",
        )
    text = value.strip()
    if _OPAQUE_ID_RE.match(text):
        return ChannelIdentifier(IdentifierKind.OPAQUE_ID, text.strip("{}").lower())
    return ChannelIdentifier(IdentifierKind.DISPLAY_NAME, text)


def resolve_cloned_settings(
    identifier: ChannelIdentifier,
    platform: ManagementPlatform,
    now_timestamp: str,
) -> ClonedSettings:
    """
    Copy delivery settings from an existing channel.

    The endpoint is reused by reference and must not be modified; the new
    channel only points at it.

    Raises
    ------
    NotFoundError
        No channel matches the identifier.
    UpstreamUnavailableError
        Propagated from the platform.
    """
    if identifier.kind is IdentifierKind.OPAQUE_ID:
        ref = platform.lookup_channel_by_id(identifier.value)
    else:
        ref = platform.lookup_channel_by_display_name(identifier.value)

    if ref is None:
        raise NotFoundError(
            "Notification channel",
            **{identifier.kind.value: identifier.value},
        )

    logger.info(
        "Cloning settings from channel '%s' (%s)", ref.display_name, ref.identity,
        extra={"resolution_mode": "clone"},
    )

    action = ref.action
    return ClonedSettings(
        description=build_description(
            base_display_name=ref.display_name or ref.identity,
            now_timestamp=now_timestamp,
            connected_user="",
        ),
        endpoint=action.endpoint,
        from_address=action.from_address,
        reply_to_address=action.reply_to_address,
        body_encoding=action.body_encoding,
        subject_encoding=action.subject_encoding,
        source_channel_id=ref.identity,
        source_display_name=ref.display_name,
    )
