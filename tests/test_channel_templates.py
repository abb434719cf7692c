"""
test_channel_templates.py — Tests for console URL normalisation and the
content template generator.

Covers:
    • URL normalisation (scheme defaulting, trailing slash, idempotence, errors)
    • Body rendering (HTML vs. plain text, console links, CSS classes)
    • Field parity between the two renderings
    • Display name, subject and description builders

Run with:
    pytest tests/test_channel_templates.py -v
"""

from __future__ import annotations

import pytest

from channel_provisioner.app.channels.templates import (
    ALERT_NAME,
    ALTERNATE_ALERT_SUFFIX,
    ALTERNATE_OBJECT_SUFFIX,
    DEFAULT_ALERT_LINK,
    DEFAULT_OBJECT_LINK,
    RESOLUTION_STATE,
    SEVERITY,
    SUBSCRIPTION_ID,
    WEB_CONSOLE_URL,
    body_fields,
    build_body,
    build_description,
    build_display_name,
    build_links,
    build_subject,
    extract_field_labels,
)
from channel_provisioner.app.channels.url_normalizer import normalize_console_url
from channel_provisioner.app.core.errors import InvalidConfigurationError


EXPECTED_FIELDS = [
    "Severity",
    "Monitor alert",
    "Resolution state",
    "Alert name",
    "Source",
    "Path",
    "Description",
    "Alert link",
    "Object link",
    "Subscription ID",
]

CONSOLE = "https://squaredup.example.com"


# ═══════════════════════════════════════════════════════════════════════════
# Section 1: URL Normalizer
# ═══════════════════════════════════════════════════════════════════════════

class TestNormalizeConsoleUrl:
    """Test normalize_console_url."""

    @pytest.mark.parametrize("value", [None, "", "   ", "/"])
    def test_absent_returns_none(self, value):
        assert normalize_console_url(value) is None

    def test_missing_scheme_gets_http(self):
        assert normalize_console_url("example.com/x") == "http://example.com/x"

    def test_trailing_slash_removed(self):
        assert normalize_console_url("https://example.com/x/") == "https://example.com/x"

    def test_multiple_trailing_slashes_removed(self):
        assert normalize_console_url("http://example.com///") == "http://example.com"

    def test_scheme_check_is_case_insensitive(self):
        assert normalize_console_url("HTTPS://Example.com") == "HTTPS://Example.com"

    def test_surrounding_whitespace_trimmed(self):
        assert normalize_console_url("  example.com:8080  ") == "http://example.com:8080"

    @pytest.mark.parametrize("value", [
        "example.com/x",
        "https://example.com/x/",
        "http://squaredup:8080/",
        "squaredup.contoso.local/SquaredUp",
        "HTTPS://Example.com//",
    ])
    def test_idempotent(self, value):
        once = normalize_console_url(value)
        assert normalize_console_url(once) == once

    @pytest.mark.parametrize("value", [
        "http://",
        "https://",
        "ftp://example.com",
        "exa mple.com",
        "http://:80",
        "example.com:notaport",
        'example.com/"><th>Injected</th>',
        "example.com/<script>",
        "example.com/a>b",
        "example.com/`cmd`",
        "example.com/{id}",
        "example.com/a|b",
        "example.com\\path",
        "example.com/a^b",
        "example.com/100%",
        "example.com/%zz",
    ])
    def test_malformed_url_rejected(self, value):
        with pytest.raises(InvalidConfigurationError) as exc_info:
            normalize_console_url(value)
        assert exc_info.value.details["field"] == "console_url"
        assert exc_info.value.status_code == 422

    @pytest.mark.parametrize("value", [
        "squaredup.example.com:8443/SquaredUp/~ops;v=1?tenant=a&x=(b)",
        "https://user@console.example.com/path%20with%20space#frag",
        "http://[2001:db8::1]:8080/drilldown",
    ])
    def test_unusual_but_valid_url_accepted(self, value):
        once = normalize_console_url(value)
        assert once.lower().startswith(("http://", "https://"))
        assert normalize_console_url(once) == once


# ═══════════════════════════════════════════════════════════════════════════
# Section 2: Console Links
# ═══════════════════════════════════════════════════════════════════════════

class TestBuildLinks:
    """Test build_links."""

    def test_default_console_uses_platform_placeholders(self):
        alert_link, object_link = build_links(None)
        assert alert_link == DEFAULT_ALERT_LINK
        assert object_link == DEFAULT_OBJECT_LINK
        assert alert_link.startswith(WEB_CONSOLE_URL)
        assert "://" not in alert_link

    def test_alternate_console_prefixes_url(self):
        alert_link, object_link = build_links(CONSOLE)
        assert alert_link == CONSOLE + ALTERNATE_ALERT_SUFFIX
        assert object_link == CONSOLE + ALTERNATE_OBJECT_SUFFIX
        assert WEB_CONSOLE_URL not in alert_link


# ═══════════════════════════════════════════════════════════════════════════
# Section 3: Body Rendering
# ═══════════════════════════════════════════════════════════════════════════

class TestBuildBody:
    """Test build_body for both formats."""

    def test_html_is_a_document(self):
        body = build_body(True)
        assert body.startswith("<!DOCTYPE html>")
        assert "</html>" in body
        assert "<table" in body

    def test_plain_has_no_markup(self):
        body = build_body(False)
        assert "<" not in body
        assert body.count("\n") == len(EXPECTED_FIELDS)

    def test_html_severity_classes(self):
        body = build_body(True)
        for band in ("severity-0", "severity-1", "severity-2"):
            assert f".{band}" in body
        assert f'class="severity-{SEVERITY}"' in body

    def test_html_new_state_highlight(self):
        body = build_body(True)
        assert ".state-New" in body
        assert f'class="state-{RESOLUTION_STATE}"' in body

    def test_html_links_are_anchors(self):
        body = build_body(True, CONSOLE)
        alert_link, object_link = build_links(CONSOLE)
        assert f'<a href="{alert_link}">' in body
        assert f'<a href="{object_link}">' in body

    def test_default_console_body_has_no_hostname(self):
        for is_html in (True, False):
            body = build_body(is_html, None)
            assert "://" not in body
            assert WEB_CONSOLE_URL in body

    def test_alternate_console_body_contains_url(self):
        for is_html in (True, False):
            body = build_body(is_html, CONSOLE)
            assert CONSOLE + ALTERNATE_ALERT_SUFFIX in body
            assert WEB_CONSOLE_URL not in body

    def test_placeholders_passed_through_verbatim(self):
        for is_html in (True, False):
            body = build_body(is_html)
            assert ALERT_NAME in body
            assert SUBSCRIPTION_ID in body
            assert "$Data[Default='Not Present']/Context/DataItem/AlertDescription$" in body

    def test_deterministic(self):
        assert build_body(True, CONSOLE) == build_body(True, CONSOLE)
        assert build_body(False) == build_body(False)


class TestFormatParity:
    """HTML and plain text must expose the same fields in the same order."""

    @pytest.mark.parametrize("console_url", [None, CONSOLE])
    def test_same_ordered_labels(self, console_url):
        html_labels = extract_field_labels(build_body(True, console_url), is_html=True)
        plain_labels = extract_field_labels(build_body(False, console_url), is_html=False)
        assert html_labels == plain_labels == EXPECTED_FIELDS

    @pytest.mark.parametrize("console_url", [None, CONSOLE])
    def test_same_values(self, console_url):
        html = build_body(True, console_url)
        plain = build_body(False, console_url)
        for f in body_fields(console_url):
            assert f.value in html
            assert f"{f.label}: {f.value}" in plain

    @pytest.mark.parametrize("raw", [
        "squaredup.example.com:8443/SquaredUp/~ops;v=1?tenant=a&x=(b)",
        "https://user@console.example.com/path%20with%20space",
        "http://[2001:db8::1]:8080/drilldown",
    ])
    def test_parity_holds_for_any_accepted_url(self, raw):
        console_url = normalize_console_url(raw)
        html_labels = extract_field_labels(build_body(True, console_url), is_html=True)
        plain_labels = extract_field_labels(build_body(False, console_url), is_html=False)
        assert html_labels == plain_labels == EXPECTED_FIELDS


# ═══════════════════════════════════════════════════════════════════════════
# Section 4: Display Name / Subject / Description
# ═══════════════════════════════════════════════════════════════════════════

class TestBuildDisplayName:
    """Test build_display_name."""

    def test_html_alternate_high(self):
        assert (
            build_display_name(True, True, True)
            == "HTML Notifications - Squared Up Console - High importance"
        )

    def test_plain_default_normal(self):
        assert (
            build_display_name(False, False, False)
            == "Plain text Notifications - SCOM Web Console - Normal importance"
        )

    def test_html_default_high(self):
        assert (
            build_display_name(True, True, False)
            == "HTML Notifications - SCOM Web Console - High importance"
        )

    def test_all_combinations_distinct(self):
        names = {
            build_display_name(h, i, c)
            for h in (True, False) for i in (True, False) for c in (True, False)
        }
        assert len(names) == 8


class TestBuildSubject:
    def test_contains_state_and_alert_name(self):
        subject = build_subject()
        assert RESOLUTION_STATE in subject
        assert ALERT_NAME in subject
        assert subject.index(RESOLUTION_STATE) < subject.index(ALERT_NAME)


class TestBuildDescription:
    """Test build_description."""

    def test_copy_description(self):
        text = build_description("Ops mail", "2026-10-17 09:30:00", "CONTOSO\\jdoe")
        assert text == (
            "This is a modified copy of the 'Ops mail' channel. Any changes to "
            "the connection details of the original channel will be used "
            "automatically by this channel."
        )

    def test_created_description(self):
        text = build_description(None, "2026-10-17 09:30:00", "CONTOSO\\jdoe")
        assert text == "Created on 2026-10-17 09:30:00 by CONTOSO\\jdoe"

    def test_empty_base_name_treated_as_absent(self):
        text = build_description("", "now", "user")
        assert text.startswith("Created on now")

    def test_base_name_with_braces_kept_verbatim(self):
        text = build_description("Mail {prod}", "now", "user")
        assert "'Mail {prod}'" in text
