"""
templates.py — Subject, body, display name and description for a channel.

Every string produced here is a *template*: it embeds platform
placeholder tokens ($Data/…$, $Target/…$, $MPElement$) that the
monitoring platform substitutes when it sends a notification. This module
never evaluates them; they are copied into the output verbatim.

═══════════════════════════════════════════════════════════════════════════
BODY STRUCTURE
═══════════════════════════════════════════════════════════════════════════

Both renderings are driven by the same ordered field table, so HTML and
plain text always expose the same fields in the same order:

    Severity · Monitor alert · Resolution state · Alert name · Source ·
    Path · Description · Alert link · Object link · Subscription ID

    HTML        <tr><th>Label</th><td …>value</td></tr> per field, inside a
                fixed document. Severity 0/1/2 and resolution state "New"
                are styled through CSS classes built from the placeholder
                values (class="severity-$…Severity$").
    Plain text  "Label: value" per line.

═══════════════════════════════════════════════════════════════════════════
CONSOLE LINKS
═══════════════════════════════════════════════════════════════════════════

    console_url is None   → links are built from the subscription server's
                            WebConsoleUrl placeholder (platform-relative)
    console_url is given  → console_url + /drilldown/scomalert?id=…
                            console_url + /drilldown/scomobject?id=…
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

# ═══════════════════════════════════════════════════════════════════════════
# Placeholder Tokens
# ═══════════════════════════════════════════════════════════════════════════

def _data(name: str) -> str:
    return f"$Data[Default='Not Present']/Context/DataItem/{name}$"


def _unescaped(name: str) -> str:
    return f"$UnescapedData/Context/DataItem/{name}$"


SEVERITY = _data("Severity")
IS_MONITOR_ALERT = _data("IsMonitorAlert")
RESOLUTION_STATE = _data("ResolutionStateName")
ALERT_NAME = _data("AlertName")
ENTITY_DISPLAY_NAME = _data("ManagedEntityDisplayName")
ENTITY_PATH = _data("ManagedEntityPath")
ALERT_DESCRIPTION = _data("AlertDescription")
SUBSCRIPTION_ID = "$MPElement$"

ALERT_ID = _unescaped("AlertId")
ENTITY_ID = _unescaped("ManagedEntity")

WEB_CONSOLE_URL = (
    '$Target/Property[Type="Notification!Microsoft.SystemCenter.'
    'AlertNotificationSubscriptionServer"]/WebConsoleUrl$'
)

# Link suffixes
DEFAULT_ALERT_LINK = f"{WEB_CONSOLE_URL}?DisplayMode=Pivot&AlertID={ALERT_ID}"
DEFAULT_OBJECT_LINK = f"{WEB_CONSOLE_URL}?DisplayMode=Pivot&MonitoringObjectId={ENTITY_ID}"
ALTERNATE_ALERT_SUFFIX = f"/drilldown/scomalert?id={ALERT_ID}"
ALTERNATE_OBJECT_SUFFIX = f"/drilldown/scomobject?id={ENTITY_ID}"

# ── Display name labels ──
FORMAT_LABELS = {True: "HTML", False: "Plain text"}
CONSOLE_LABELS = {True: "Squared Up Console", False: "SCOM Web Console"}
IMPORTANCE_LABELS = {True: "High", False: "Normal"}

SUBJECT_TEMPLATE = f"[{RESOLUTION_STATE}] {ALERT_NAME}"

COPY_DESCRIPTION_TEMPLATE = (
    "This is a modified copy of the '{base}' channel. Any changes to the "
    "connection details of the original channel will be used automatically "
    "by this channel."
)
CREATED_DESCRIPTION_TEMPLATE = "Created on {timestamp} by {user}"


# ═══════════════════════════════════════════════════════════════════════════
# Field Table
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class BodyField:
    """One labelled line of the notification body."""
    label: str
    value: str
    css_class: Optional[str] = None   # HTML only
    is_link: bool = False


def build_links(console_url: Optional[str]) -> Tuple[str, str]:
    """Return (alert_link, object_link) templates."""
    if console_url is None:
        return DEFAULT_ALERT_LINK, DEFAULT_OBJECT_LINK
    return (
        f"{console_url}{ALTERNATE_ALERT_SUFFIX}",
        f"{console_url}{ALTERNATE_OBJECT_SUFFIX}",
    )


def body_fields(console_url: Optional[str]) -> List[BodyField]:
    """Ordered field table shared by the HTML and plain-text bodies."""
    alert_link, object_link = build_links(console_url)
    return [
        BodyField("Severity", SEVERITY, css_class=f"severity-{SEVERITY}"),
        BodyField("Monitor alert", IS_MONITOR_ALERT),
        BodyField("Resolution state", RESOLUTION_STATE,
                  css_class=f"state-{RESOLUTION_STATE}"),
        BodyField("Alert name", ALERT_NAME),
        BodyField("Source", ENTITY_DISPLAY_NAME),
        BodyField("Path", ENTITY_PATH),
        BodyField("Description", ALERT_DESCRIPTION),
        BodyField("Alert link", alert_link, is_link=True),
        BodyField("Object link", object_link, is_link=True),
        BodyField("Subscription ID", SUBSCRIPTION_ID),
    ]


# ═══════════════════════════════════════════════════════════════════════════
# Body Rendering
# ═══════════════════════════════════════════════════════════════════════════

_HTML_STYLE = """<style type="text/css">
  body { font-family: Segoe UI, Arial, sans-serif; font-size: 10pt; color: #333333; }
  .banner { padding: 10px 14px; color: #ffffff; font-size: 13pt; }
  table.alert { border-collapse: collapse; margin-top: 8px; }
  table.alert th { text-align: left; padding: 4px 12px 4px 0; white-space: nowrap; vertical-align: top; }
  table.alert td { padding: 4px 8px; }
  .severity-0 { background-color: #2e7d32; color: #ffffff; }
  .severity-1 { background-color: #f9a825; color: #000000; }
  .severity-2 { background-color: #c62828; color: #ffffff; }
  .state-New { background-color: #fff59d; font-weight: bold; }
</style>"""


def _render_html_row(f: BodyField) -> str:
    cls = f' class="{f.css_class}"' if f.css_class else ""
    value = f'<a href="{f.value}">{f.value}</a>' if f.is_link else f.value
    return f"    <tr><th>{f.label}</th><td{cls}>{value}</td></tr>"


def _render_html(fields: List[BodyField]) -> str:
    rows = "\n".join(_render_html_row(f) for f in fields)
    return (
        "<!DOCTYPE html>\n"
        "<html>\n"
        "<head>\n"
        '<meta http-equiv="Content-Type" content="text/html; charset=utf-8" />\n'
        f"{_HTML_STYLE}\n"
        "</head>\n"
        "<body>\n"
        f'  <div class="banner severity-{SEVERITY}">{ALERT_NAME}</div>\n'
        '  <table class="alert">\n'
        f"{rows}\n"
        "  </table>\n"
        "</body>\n"
        "</html>\n"
    )


def _render_plain(fields: List[BodyField]) -> str:
    return "".join(f"{f.label}: {f.value}\n" for f in fields)


def build_body(is_html: bool, console_url: Optional[str] = None) -> str:
    """
    Render the notification body template.

    Parameters
    ----------
    is_html : bool
        HTML document when True, "Label: value" lines otherwise.
    console_url : str | None
        Normalised alternate console URL; None uses the default console.
    """
    fields = body_fields(console_url)
    return _render_html(fields) if is_html else _render_plain(fields)


_HTML_LABEL_RE = re.compile(r"<th>([^<]+)</th>")
_PLAIN_LABEL_RE = re.compile(r"^([A-Za-z][A-Za-z ]*): ", re.MULTILINE)


def extract_field_labels(body: str, is_html: bool) -> List[str]:
    """Recover the ordered field labels from a rendered body."""
    pattern = _HTML_LABEL_RE if is_html else _PLAIN_LABEL_RE
    return pattern.findall(body)


# ═══════════════════════════════════════════════════════════════════════════
# Display Name / Subject / Description
# ═══════════════════════════════════════════════════════════════════════════

def build_display_name(
    is_html: bool, high_importance: bool, uses_alternate_console: bool,
) -> str:
    return (
        f"{FORMAT_LABELS[bool(is_html)]} Notifications"
        f" - {CONSOLE_LABELS[bool(uses_alternate_console)]}"
        f" - {IMPORTANCE_LABELS[bool(high_importance)]} importance"
    )


def build_subject() -> str:
    return SUBJECT_TEMPLATE


def build_description(
    base_display_name: Optional[str],
    now_timestamp: str,
    connected_user: str,
) -> str:
    """
    Channel description.

    A copy of an existing channel names its origin; a fresh channel
    records when and by whom it was created.
    """
    if base_display_name:
        return COPY_DESCRIPTION_TEMPLATE.format(base=base_display_name)
    return CREATED_DESCRIPTION_TEMPLATE.format(
        timestamp=now_timestamp, user=connected_user,
    )
