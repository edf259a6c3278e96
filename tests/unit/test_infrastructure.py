"""Unit tests for the infrastructure layer: HTTP client and widget rendering."""

import io

import httpx
import pytest

from infrastructure.captcha.widget import (
    CHALLENGE_FIELD,
    RESPONSE_FIELD,
    WidgetFields,
    render_widget,
    write_widget,
)
from infrastructure.http_client import HttpClient


# ── HttpClient ────────────────────────────────────────────────────────────────


class TestHttpClient:
    async def test_stream_uses_transport_and_releases_body(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, text="true\n")

        async with HttpClient(transport=httpx.MockTransport(handler)) as client:
            async with client.stream("POST", "https://authority.test/verify") as resp:
                body = await resp.aread()
            assert resp.is_closed

        assert body == b"true\n"
        assert seen[0].method == "POST"

    async def test_timeout_is_configured(self):
        async with HttpClient(timeout=1.5) as client:
            assert client._client.timeout.read == 1.5

    async def test_context_manager(self):
        async with HttpClient() as client:
            assert client is not None


# ── Widget ────────────────────────────────────────────────────────────────────


class TestWidget:
    def test_embeds_key_and_error_code(self):
        html = render_widget(WidgetFields("pubkey123", "incorrect-captcha-sol"))
        assert (
            "https://www.google.com/recaptcha/api/challenge"
            "?k=pubkey123&error=incorrect-captcha-sol" in html
        )
        assert (
            "https://www.google.com/recaptcha/api/noscript"
            "?k=pubkey123&error=incorrect-captcha-sol" in html
        )

    def test_empty_error_code(self):
        html = render_widget(WidgetFields("pubkey123"))
        assert "?k=pubkey123&error=\"" in html

    def test_contains_form_fields(self):
        html = render_widget(WidgetFields("k"))
        assert f'name="{CHALLENGE_FIELD}"' in html
        assert f'name="{RESPONSE_FIELD}" value="manual_challenge"' in html
        assert "<noscript>" in html

    def test_custom_api_server(self):
        html = render_widget(WidgetFields("k"), api_server="https://captcha.test/api/")
        assert 'src="https://captcha.test/api/challenge?k=k&error="' in html

    def test_values_are_url_encoded(self):
        html = render_widget(WidgetFields("a b", '"><script>'))
        assert "k=a%20b" in html
        assert "<script>&" not in html
        assert '"><script>' not in html

    def test_write_matches_render(self):
        fields = WidgetFields("pubkey123", "expired")
        buf = io.StringIO()
        write_widget(buf, fields)
        assert buf.getvalue() == render_widget(fields)
