"""
assembler.py — Merge resolved settings and format flags into a ChannelDefinition.
"""

from __future__ import annotations

from typing import List, Optional

from channel_provisioner.app.channels.models import (
    ChannelDefinition,
    ChannelSettings,
    Header,
)
from channel_provisioner.app.channels.templates import (
    build_body,
    build_display_name,
    build_subject,
)

HIGH_IMPORTANCE_HEADERS: List[Header] = [
    ("Importance", "High"),
    ("X-Priority", "1"),
    ("X-MSMail-Priority", "High"),
]


def priority_headers(high_importance: bool) -> List[Header]:
    return list(HIGH_IMPORTANCE_HEADERS) if high_importance else []


def assemble_channel(
    settings: ChannelSettings,
    is_html: bool,
    high_importance: bool,
    console_url: Optional[str] = None,
) -> ChannelDefinition:
    """
    Build the channel definition; nothing is persisted.

    ``console_url`` must already be normalised. The result always has
    ``identity=None``: both paths create a new channel, only the endpoint
    may be an existing one.
    """
    return ChannelDefinition(
        subject_template=build_subject(),
        body_template=build_body(is_html, console_url),
        display_name=build_display_name(
            is_html, high_importance, uses_alternate_console=console_url is not None,
        ),
        description=settings.description,
        is_html=is_html,
        endpoint=settings.endpoint,
        from_address=settings.from_address,
        reply_to_address=settings.reply_to_address,
        body_encoding=settings.body_encoding,
        subject_encoding=settings.subject_encoding,
        headers=priority_headers(high_importance),
        identity=None,
    )
