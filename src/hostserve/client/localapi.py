"""HTTP client for the local control daemon.

The daemon owns the live serve config and knows the node's identity. It
exposes a small JSON API on a loopback address:

    GET  /localapi/v0/status        -> {"Self": {"DNSName": "node.example.ts.net."}, ...}
    GET  /localapi/v0/serve-config  -> serve config document, or null
    POST /localapi/v0/serve-config  <- serve config document

Example:
    with LocalAPIClient("http://127.0.0.1:41112") as client:
        config = client.get_serve_config()
        name = client.self_dns_name()
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from hostserve.core.exceptions import LocalAPIError, MalformedDocumentError
from hostserve.serve.document import ServeConfig

logger = structlog.get_logger()

STATUS_PATH = "/localapi/v0/status"
SERVE_CONFIG_PATH = "/localapi/v0/serve-config"


class LocalAPIClient:
    """Synchronous client for the local control daemon.

    Args:
        base_url: Daemon address, e.g. ``http://127.0.0.1:41112``.
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport (used by tests).
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.Client | None = None

    def __enter__(self) -> LocalAPIClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self.client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise LocalAPIError(f"{method} {path} failed: {e}") from e

        logger.debug("Local API response", method=method, path=path, status=response.status_code)
        return response

    def _raise_for_status(self, response: httpx.Response, method: str, path: str) -> None:
        if response.is_success:
            return
        detail = response.text.strip() or response.reason_phrase
        raise LocalAPIError(
            f"{method} {path}: {response.status_code} {detail}",
            status_code=response.status_code,
        )

    def status(self) -> dict[str, Any]:
        """Return the daemon status document."""
        response = self._request("GET", STATUS_PATH)
        self._raise_for_status(response, "GET", STATUS_PATH)
        try:
            data = response.json()
        except ValueError as e:
            raise LocalAPIError(f"GET {STATUS_PATH}: invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise LocalAPIError(f"GET {STATUS_PATH}: expected an object")
        return data

    def self_dns_name(self) -> str | None:
        """Return the node's DNS name as reported by the daemon, if any."""
        self_node = self.status().get("Self")
        if not isinstance(self_node, dict):
            return None
        name = self_node.get("DNSName")
        return name if isinstance(name, str) and name else None

    def get_serve_config(self) -> ServeConfig | None:
        """Fetch the current serve config; None when none is set."""
        response = self._request("GET", SERVE_CONFIG_PATH)
        if response.status_code == 404:
            return None
        self._raise_for_status(response, "GET", SERVE_CONFIG_PATH)

        body = response.content.strip()
        if not body or body == b"null":
            return None
        try:
            return ServeConfig.from_json(body)
        except MalformedDocumentError as e:
            raise LocalAPIError(f"GET {SERVE_CONFIG_PATH}: {e.message}") from e

    def set_serve_config(self, config: ServeConfig) -> None:
        """Replace the serve config held by the daemon."""
        response = self._request("POST", SERVE_CONFIG_PATH, json=config.to_dict())
        self._raise_for_status(response, "POST", SERVE_CONFIG_PATH)
