"""ArgoCD API client using httpx."""

from typing import Any

import httpx

from logstackctl.config import ArgoCDConfig
from logstackctl.core.exceptions import ArgoCDError, AuthenticationError
from logstackctl.core.logging import StructuredLogger

logger = StructuredLogger(__name__)


class ArgoCDClient:
    """Client for ArgoCD REST API."""

    def __init__(self, config: ArgoCDConfig):
        self._config = config
        self._client: httpx.Client | None = None

    @property
    def configured(self) -> bool:
        """Whether both server URL and token are available."""
        return bool(self._config.get_url() and self._config.get_token())

    @property
    def client(self) -> httpx.Client:
        """Get or create HTTP client."""
        if self._client is None:
            url = self._config.get_url()
            token = self._config.get_token()

            if not url:
                raise ArgoCDError("ArgoCD URL not configured")
            if not token:
                raise AuthenticationError("ArgoCD token not configured")

            headers = {
                "Authorization": f"Bearer {token}",
                "Content-Type": "application/json",
            }

            self._client = httpx.Client(
                base_url=url.rstrip("/"),
                headers=headers,
                timeout=self._config.timeout,
                verify=not self._config.insecure,
            )

            logger.debug("Created ArgoCD client", url=url)

        return self._client

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        """Make an API request."""
        try:
            response = self.client.request(method, path, **kwargs)
            response.raise_for_status()

            if response.content:
                return response.json()
            return None

        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            try:
                error_data = e.response.json()
                message = error_data.get("message", str(e))
            except ValueError:
                message = e.response.text or str(e)
            raise ArgoCDError(message, status_code=status_code)

        except httpx.RequestError as e:
            raise ArgoCDError(f"Request failed: {e}")

    def get(self, path: str, **kwargs: Any) -> Any:
        """Make a GET request."""
        return self._request("GET", path, **kwargs)

    def post(self, path: str, **kwargs: Any) -> Any:
        """Make a POST request."""
        return self._request("POST", path, **kwargs)

    def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            self._client.close()
            self._client = None

    def __enter__(self) -> "ArgoCDClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def get_user_info(self) -> dict[str, Any]:
        """Get the session user info (verifies the token is accepted)."""
        return self.get("/api/v1/session/userinfo")

    def sync_application(
        self,
        name: str,
        revision: str | None = None,
        prune: bool = False,
        dry_run: bool = False,
    ) -> dict[str, Any]:
        """Trigger sync for an application."""
        payload: dict[str, Any] = {
            "prune": prune,
            "dryRun": dry_run,
        }
        if revision:
            payload["revision"] = revision
        return self.post(f"/api/v1/applications/{name}/sync", json=payload)

