# grafana/api_client.py
from __future__ import annotations

import base64
import http.client
import json
import urllib.error
import urllib.request
from typing import Any, Optional
from urllib.parse import quote, urljoin

from ..errors import APIError
from ..ui.console import get_console


class GrafanaClient:
    """HTTP client for the Grafana folder and dashboard APIs."""

    def __init__(self, base_url: str, user: str, password: str, timeout: Optional[float] = None):
        """
        Initialize API client.

        Args:
            base_url: Base URL of the Grafana server (e.g., "https://grafana.example.com/grafana")
            user: Basic auth user name
            password: Basic auth password
            timeout: Seconds to wait for each request
        """
        # Ensure base_url doesn't end with /
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        token = base64.b64encode(f"{user}:{password}".encode("utf-8")).decode("ascii")
        self._auth = f"Basic {token}"

    def _request(
        self,
        method: str,
        path: str,
        body: Optional[bytes] = None,
    ) -> Any:
        """
        Make an HTTP request to the API.

        Args:
            method: HTTP method (POST, DELETE)
            path: API path (e.g., "/api/folders")
            body: Optional JSON encoded request body

        Returns:
            Parsed JSON response, or the raw text if it is not JSON

        Raises:
            APIError: On transport failure or an HTTP status >= 400
        """
        console = get_console()
        url = urljoin(self.base_url + "/", path.lstrip("/"))

        req_headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "Authorization": self._auth,
        }
        req = urllib.request.Request(url, data=body, headers=req_headers, method=method)
        console.print_debug(f"{method} {url}")

        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as response:
                response_data = response.read().decode("utf-8", errors="replace")
        except urllib.error.HTTPError as e:
            error_body = e.read().decode("utf-8", errors="replace") if e.fp else ""
            raise APIError(
                f"API request failed: {method} {url}: {e.code} {e.reason}",
                status=e.code,
                body=error_body,
            )
        except urllib.error.URLError as e:
            raise APIError(f"Network error: {method} {url}: {e.reason}")
        except TimeoutError:
            raise APIError(f"Timed out after {self.timeout}s: {method} {url}")
        except http.client.HTTPException as e:
            raise APIError(f"Bad HTTP response: {method} {url}: {e!r}")

        console.print_debug(response_data)
        if not response_data:
            return {}
        try:
            return json.loads(response_data)
        except json.JSONDecodeError:
            return response_data

    def create_folder(self, folder_uid: str, title: str) -> Any:
        """
        Create the folder, or keep it if one with this uid already exists.

        overwrite=true makes repeated calls succeed.
        """
        payload = {"uid": folder_uid, "title": title, "overwrite": True}
        return self._request("POST", "/api/folders", json.dumps(payload).encode("utf-8"))

    def import_dashboard(self, dashboard_json: str, folder_uid: str) -> Any:
        """
        Upload a dashboard into a folder, replacing any dashboard with the same uid.

        Args:
            dashboard_json: The dashboard document as compact JSON text
            folder_uid: uid of the folder that receives the dashboard
        """
        # the dashboard is embedded verbatim, as produced by jq
        body = (
            '{"dashboard": ' + dashboard_json
            + ', "folderUid": ' + json.dumps(folder_uid)
            + ', "overwrite": true}'
        )
        return self._request("POST", "/api/dashboards/db", body.encode("utf-8"))

    def delete_folder(self, folder_uid: str) -> Any:
        """Delete a folder together with every dashboard in it."""
        return self._request("DELETE", f"/api/folders/{quote(folder_uid, safe='')}")
