"""Low-level HTTP client for the SCIM 2.0 directory API.

Handles bearer authentication, request timeouts and error translation.
"""
from __future__ import annotations
import os
from typing import Any, Optional, Dict

import requests

from .exceptions import DirectoryAPIError, DirectoryUnavailableError, MalformedResourceError

REQUEST_TIMEOUT = 5


class ScimClient:
    """Read-only HTTP client for a SCIM 2.0 directory.

    Usage:
        client = ScimClient("https://sram.surf.nl/api/scim/v2", token="...")
        response = client.get("/Groups/abc")
    """

    def __init__(self, base_url: Optional[str] = None, token: Optional[str] = None, timeout: float = REQUEST_TIMEOUT):
        """Initialize SCIM client.

        Args:
            base_url: SCIM base URL (defaults to SRAM_SCIM_URL env var)
            token: Bearer token (defaults to SRAM_SCIM_SECRET env var)
            timeout: Per-request timeout in seconds
        """
        self.base_url = (base_url or os.environ.get("SRAM_SCIM_URL", "https://sram.surf.nl/api/scim/v2")).rstrip("/")
        self._token = token if token is not None else os.environ.get("SRAM_SCIM_SECRET", "")
        self.timeout = timeout

    @classmethod
    def from_config(cls, cfg) -> "ScimClient":
        return cls(cfg.scim_url, token=cfg.scim_secret, timeout=cfg.directory_timeout)

    def get(self, path: str, params: Optional[Dict] = None) -> requests.Response:
        """Execute GET request against the directory.

        Args:
            path: API endpoint path (e.g., "/Groups/abc")
            params: Query parameters

        Returns:
            Response object

        Raises:
            DirectoryAPIError: On HTTP error status
            DirectoryUnavailableError: On connection failure, timeout or any other transport error
        """
        url = f"{self.base_url}{path}"
        headers = {
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/scim+json",
        }
        try:
            resp = requests.get(url, params=params, headers=headers, timeout=self.timeout)
        except requests.Timeout:
            raise DirectoryUnavailableError(url, f"timed out after {self.timeout}s")
        except requests.ConnectionError as exc:
            raise DirectoryUnavailableError(url, str(exc))
        except requests.RequestException as exc:
            raise DirectoryUnavailableError(url, f"{type(exc).__name__}: {exc}")
        self._handle_error(resp, url)
        return resp

    def get_json(self, path: str, params: Optional[Dict] = None) -> Dict[str, Any]:
        """Execute GET request and decode the JSON object body.

        Raises:
            MalformedResourceError: Body is not a JSON object (e.g. a proxy error page)
            DirectoryAPIError, DirectoryUnavailableError: As for get()
        """
        resp = self.get(path, params=params)
        try:
            payload = resp.json()
        except ValueError as exc:
            raise MalformedResourceError(f"{path}: response is not JSON ({exc})")
        if not isinstance(payload, dict):
            raise MalformedResourceError(f"{path}: expected a JSON object, got {type(payload).__name__}")
        return payload

    def _handle_error(self, resp: requests.Response, url: str) -> None:
        """Raise DirectoryAPIError if response status indicates error."""
        if resp.status_code >= 400:
            raise DirectoryAPIError(resp.status_code, resp.text, url)
