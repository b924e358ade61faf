"""HTTP transport for Google REST APIs."""
import json
import logging
from typing import Any, Dict, Optional, Union

import google.auth
import google.auth.exceptions
import google.auth.transport.requests
import httpx

from .context import ClientContext
from .errors import TransportError

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/cloud-platform"]
CONNECTORS_API = "https://connectors.googleapis.com/v1"


def connections_url(ctx: ClientContext) -> str:
    return f"{CONNECTORS_API}/projects/{ctx.project_id}/locations/{ctx.region}/connections"


def endpoint_attachments_url(ctx: ClientContext) -> str:
    return f"{CONNECTORS_API}/projects/{ctx.project_id}/locations/{ctx.region}/endpointAttachments"


def operations_url(ctx: ClientContext) -> str:
    return f"{CONNECTORS_API}/projects/{ctx.project_id}/locations/{ctx.region}/operations"


def sfdc_instances_url(ctx: ClientContext) -> str:
    return (f"https://{ctx.region}-integrations.googleapis.com/v1/projects/{ctx.project_id}"
            f"/locations/{ctx.region}/sfdcInstances")


class HttpClient:
    """Authenticated JSON client that prints responses when the context allows it."""

    def __init__(self, ctx: ClientContext, transport: Optional[httpx.BaseTransport] = None,
                 timeout: float = 60.0):
        self.ctx = ctx
        self._transport = transport
        self._timeout = timeout
        self._client = None
        self._credentials = None

    @property
    def client(self) -> httpx.Client:
        """Lazy-initialize client."""
        if self._client is None:
            self._client = httpx.Client(transport=self._transport, timeout=self._timeout)
        return self._client

    def _access_token(self) -> str:
        if self.ctx.token:
            return self.ctx.token
        try:
            if self._credentials is None:
                self._credentials, _ = google.auth.default(scopes=SCOPES)
            if not self._credentials.valid:
                self._credentials.refresh(google.auth.transport.requests.Request())
        except google.auth.exceptions.GoogleAuthError as e:
            raise TransportError(f"Unable to obtain an access token: {e}") from e
        return self._credentials.token

    def request(self, url: str, body: Union[None, str, bytes, Dict[str, Any]] = None,
                method: Optional[str] = None, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Send a request and return the decoded JSON response.

        Args:
            url: Full request URL
            body: JSON payload, either serialized or as a dict
            method: HTTP method; defaults to POST when a body is given, GET otherwise
            params: Query parameters

        Returns:
            Parsed response body, or an empty dict for an empty response

        Raises:
            TransportError: On network failures and non-2xx responses
        """
        method = method or ("POST" if body is not None else "GET")
        headers = {"Authorization": f"Bearer {self._access_token()}"}
        content = None
        if body is not None:
            headers["Content-Type"] = "application/json"
            content = body if isinstance(body, (str, bytes)) else json.dumps(body)

        logger.debug(f"{method} {url} params={params}")
        try:
            response = self.client.request(method, url, content=content, headers=headers, params=params)
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {url} failed: {e}", url=url) from e

        if response.is_error:
            raise TransportError(
                f"{method} {url} returned {response.status_code}: {response.text}",
                status_code=response.status_code,
                body=response.text,
                url=url,
            )

        if not response.content:
            payload: Dict[str, Any] = {}
        else:
            try:
                payload = response.json()
            except ValueError as e:
                raise TransportError(f"{method} {url} returned a non-JSON body", url=url) from e

        self.print_payload(payload)
        return payload

    def print_payload(self, payload: Dict[str, Any]) -> None:
        if self.ctx.print_response:
            print(json.dumps(payload, indent=2))

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
