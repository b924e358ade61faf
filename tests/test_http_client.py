"""Tests for the HTTP transport."""
import json
from unittest import mock

import httpx
import pytest

from appint_toolkit.connections.domains.context import ClientContext
from appint_toolkit.connections.domains.errors import TransportError
from appint_toolkit.connections.domains.http_client import HttpClient, connections_url

from .conftest import CONNECTIONS_PATH, PROJECT, REGION


class TestHttpClient:
    def test_get_sends_bearer_token(self, http, api):
        api.json("GET", CONNECTIONS_PATH, {"connections": []})

        assert http.request(connections_url(http.ctx)) == {"connections": []}
        assert api.requests[0].headers["Authorization"] == "Bearer test-token"

    def test_body_defaults_to_post(self, http, api):
        api.json("POST", CONNECTIONS_PATH, {"name": "operations/1"})

        http.request(connections_url(http.ctx), body={"description": "d"}, params={"connectionId": "c"})

        request = api.requests[0]
        assert request.method == "POST"
        assert request.url.params["connectionId"] == "c"
        assert json.loads(request.content) == {"description": "d"}

    def test_error_status_raises_transport_error(self, http):
        with pytest.raises(TransportError) as exc_info:
            http.request(f"{connections_url(http.ctx)}/missing")
        assert exc_info.value.status_code == 404

    def test_empty_body_is_empty_dict(self, http, api):
        api.add("DELETE", f"{CONNECTIONS_PATH}/c", httpx.Response(200))
        assert http.request(f"{connections_url(http.ctx)}/c", method="DELETE") == {}

    def test_prints_response_when_enabled(self, http, api, capsys):
        api.json("GET", CONNECTIONS_PATH, {"connections": []})
        http.ctx.print_response = True

        http.request(connections_url(http.ctx))

        assert json.loads(capsys.readouterr().out) == {"connections": []}

    def test_suppressed_output_prints_nothing(self, http, api, capsys):
        api.json("GET", CONNECTIONS_PATH, {"connections": []})
        http.ctx.print_response = True

        with http.ctx.suppressed_output():
            http.request(connections_url(http.ctx))

        assert capsys.readouterr().out == ""
        assert http.ctx.print_response is True

    def test_uses_application_default_credentials_without_token(self, api):
        api.json("GET", CONNECTIONS_PATH, {})
        ctx = ClientContext(project_id=PROJECT, region=REGION, print_response=False)
        credentials = mock.MagicMock(valid=False, token="adc-token")
        client = HttpClient(ctx, transport=httpx.MockTransport(api.handler))

        with mock.patch("google.auth.default", return_value=(credentials, PROJECT)):
            client.request(connections_url(ctx))

        credentials.refresh.assert_called_once()
        assert api.requests[0].headers["Authorization"] == "Bearer adc-token"


class TestClientContext:
    def test_suppressed_output_restores_on_error(self):
        ctx = ClientContext(project_id=PROJECT, region=REGION)
        with pytest.raises(RuntimeError):
            with ctx.suppressed_output():
                assert ctx.print_response is False
                raise RuntimeError("boom")
        assert ctx.print_response is True

    def test_nested_suppression_restores_previous_value(self):
        ctx = ClientContext(project_id=PROJECT, region=REGION)
        with ctx.suppressed_output():
            with ctx.suppressed_output():
                pass
            assert ctx.print_response is False
        assert ctx.print_response is True

    def test_from_sources_prefers_arguments(self, monkeypatch):
        monkeypatch.setenv("GCP_PROJECT", "env-project")
        monkeypatch.setenv("GCP_REGION", "env-region")
        ctx = ClientContext.from_sources(project_id="flag-project")
        assert ctx.project_id == "flag-project"
        assert ctx.region == "env-region"
