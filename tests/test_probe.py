"""Probe classification against mocked HTTP responses."""
import httpx
import pytest
import respx

from uptime_watchdog.schemas.probe import is_up_status
from uptime_watchdog.services.probe import build_client, probe_target

URL = "https://probe.test/health"


@pytest.fixture
def client():
    c = build_client(timeout=2)
    yield c
    c.close()


class TestIsUpStatus:
    @pytest.mark.parametrize("code", [200, 204, 301, 302, 399])
    def test_up_codes(self, code):
        assert is_up_status(code)

    @pytest.mark.parametrize("code", [0, 199, 400, 404, 500, 503])
    def test_down_codes(self, code):
        assert not is_up_status(code)


class TestProbeTarget:
    @respx.mock
    def test_ok_response(self, client):
        respx.get(URL).mock(return_value=httpx.Response(200, text="ok"))

        result = probe_target(client, "svc", URL)

        assert result.is_up is True
        assert result.http_status == 200
        assert result.error_message is None
        assert result.target == "svc"
        assert result.url == URL
        assert result.latency_ms >= 0

    @respx.mock
    def test_redirect_is_not_followed_and_counts_as_up(self, client):
        route = respx.get(URL).mock(return_value=httpx.Response(302, headers={"Location": "https://elsewhere.test/"}))
        other = respx.get("https://elsewhere.test/").mock(return_value=httpx.Response(500))

        result = probe_target(client, "svc", URL)

        assert route.called
        assert not other.called
        assert result.is_up is True
        assert result.http_status == 302

    @respx.mock
    def test_server_error_is_down(self, client):
        respx.get(URL).mock(return_value=httpx.Response(503))

        result = probe_target(client, "svc", URL)

        assert result.is_up is False
        assert result.http_status == 503
        assert result.error_message == "HTTP 503"

    @respx.mock
    def test_connection_error_is_down_with_zero_status(self, client):
        respx.get(URL).mock(side_effect=httpx.ConnectError("Connection refused"))

        result = probe_target(client, "svc", URL)

        assert result.is_up is False
        assert result.http_status == 0
        assert "Connection refused" in result.error_message

    @respx.mock
    def test_timeout_is_down(self, client):
        respx.get(URL).mock(side_effect=httpx.ReadTimeout("Read timed out"))

        result = probe_target(client, "svc", URL)

        assert result.is_up is False
        assert result.http_status == 0
        assert result.error_message.startswith("timeout")

    def test_invalid_url_never_raises(self, client):
        result = probe_target(client, "broken", "not a url")

        assert result.is_up is False
        assert result.http_status == 0
        assert result.error_message
