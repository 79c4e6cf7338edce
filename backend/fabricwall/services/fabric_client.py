"""
Fabric REST Client - Bearer-token calls against the Fabric and Power BI REST APIs.

Every non-2xx response is raised as FabricApiError (AccessDeniedError for 403)
carrying the platform's own error text. Callers decide whether that ends a
provisioning step or becomes a failed check.
"""

from typing import Any, Optional

import httpx

from fabricwall.config import settings
from fabricwall.exceptions import AccessDeniedError, FabricApiError
from fabricwall.logger import logger


class FabricClient:
    """Thin synchronous client for the workspace, OneLake and Power BI endpoints."""

    def __init__(
        self,
        token: str,
        fabric_base: Optional[str] = None,
        powerbi_base: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.fabric_base = (fabric_base or settings.FABRIC_API_BASE).rstrip("/")
        self.powerbi_base = (powerbi_base or settings.POWERBI_API_BASE).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.HTTP_TIMEOUT
        self._client = httpx.Client(
            headers={
                "Authorization": f"Bearer {token}",
                "Content-Type": "application/json",
                "User-Agent": "fabricwall/1.0",
            },
            timeout=self.timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "FabricClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def request(
        self,
        method: str,
        url: str,
        json: Any = None,
        params: Optional[dict] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """Send one request and return the decoded JSON body (None when empty).

        Raises:
            AccessDeniedError: on 403
            FabricApiError: on any other non-2xx status
            httpx.HTTPError: on timeouts and connection failures
        """
        logger.debug(f"{method} {url}")
        kwargs: dict = {"json": json, "params": params}
        if timeout is not None:
            kwargs["timeout"] = timeout

        response = self._client.request(method, url, **kwargs)

        if response.status_code >= 400:
            raise self._error_from(response)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    def _error_from(self, response: httpx.Response) -> FabricApiError:
        """Build the exception for a failed response from its error body."""
        error_code = None
        message = response.reason_phrase or "request failed"

        try:
            body = response.json()
        except ValueError:
            body = None

        if isinstance(body, dict):
            # Fabric: {"errorCode": ..., "message": ...}
            # Power BI: {"error": {"code": ..., "message": ...}}
            inner = body.get("error") if isinstance(body.get("error"), dict) else body
            error_code = inner.get("errorCode") or inner.get("code")
            message = inner.get("message") or message
        elif response.text:
            message = response.text[:400]

        url = str(response.request.url) if response.request else ""
        cls = AccessDeniedError if response.status_code == 403 else FabricApiError
        logger.debug(f"API error {response.status_code} {error_code or ''} from {url}")
        return cls(response.status_code, message, error_code=error_code, url=url)

    def _fabric(self, path: str) -> str:
        return f"{self.fabric_base}/{path.lstrip('/')}"

    def _powerbi(self, path: str) -> str:
        return f"{self.powerbi_base}/{path.lstrip('/')}"

    def _list(self, url: str, params: Optional[dict] = None) -> list[dict]:
        """Collect a paged Fabric list (value + continuationUri/continuationToken)."""
        items: list[dict] = []
        body = self.request("GET", url, params=params)
        while True:
            items.extend((body or {}).get("value", []))
            next_uri = (body or {}).get("continuationUri")
            if not next_uri:
                return items
            body = self.request("GET", next_uri)

    # ------------------------------------------------------------------
    # Workspaces
    # ------------------------------------------------------------------

    def list_workspaces(self, timeout: Optional[float] = None) -> list[dict]:
        body = self.request("GET", self._fabric("workspaces"), timeout=timeout)
        return (body or {}).get("value", [])

    def get_workspace(self, workspace_id: str) -> dict:
        return self.request("GET", self._fabric(f"workspaces/{workspace_id}"))

    def create_workspace(self, display_name: str, capacity_id: Optional[str] = None, description: str = "") -> dict:
        payload: dict = {"displayName": display_name, "description": description}
        if capacity_id:
            payload["capacityId"] = capacity_id
        return self.request("POST", self._fabric("workspaces"), json=payload)

    def list_items(self, workspace_id: str) -> list[dict]:
        return self._list(self._fabric(f"workspaces/{workspace_id}/items"))

    # ------------------------------------------------------------------
    # Role assignments
    # ------------------------------------------------------------------

    def list_role_assignments(self, workspace_id: str) -> list[dict]:
        return self._list(self._fabric(f"workspaces/{workspace_id}/roleAssignments"))

    def add_role_assignment(self, workspace_id: str, payload: dict) -> dict:
        return self.request("POST", self._fabric(f"workspaces/{workspace_id}/roleAssignments"), json=payload)

    # ------------------------------------------------------------------
    # OneLake data access roles and shortcuts
    # ------------------------------------------------------------------

    def list_data_access_roles(self, workspace_id: str, item_id: str) -> list[dict]:
        return self._list(self._fabric(f"workspaces/{workspace_id}/items/{item_id}/dataAccessRoles"))

    def put_data_access_roles(self, workspace_id: str, item_id: str, roles: dict) -> Any:
        return self.request(
            "PUT",
            self._fabric(f"workspaces/{workspace_id}/items/{item_id}/dataAccessRoles"),
            json=roles,
        )

    def list_shortcuts(self, workspace_id: str, item_id: str) -> list[dict]:
        return self._list(self._fabric(f"workspaces/{workspace_id}/items/{item_id}/shortcuts"))

    def create_shortcut(self, workspace_id: str, item_id: str, payload: dict) -> dict:
        return self.request(
            "POST",
            self._fabric(f"workspaces/{workspace_id}/items/{item_id}/shortcuts"),
            json=payload,
        )

    # ------------------------------------------------------------------
    # Power BI
    # ------------------------------------------------------------------

    def list_datasets(self, group_id: str) -> list[dict]:
        body = self.request("GET", self._powerbi(f"groups/{group_id}/datasets"))
        return (body or {}).get("value", [])

    def list_dataset_users(self, group_id: str, dataset_id: str) -> list[dict]:
        body = self.request("GET", self._powerbi(f"groups/{group_id}/datasets/{dataset_id}/users"))
        return (body or {}).get("value", [])


def principal_ids(role_assignments: list[dict]) -> set[str]:
    """Principal object ids from a roleAssignments listing."""
    ids = set()
    for assignment in role_assignments:
        principal = assignment.get("principal") or {}
        pid = principal.get("id") or assignment.get("id")
        if pid:
            ids.add(pid)
    return ids
