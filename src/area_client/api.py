# src/area_client/api.py

from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional

from .dispatcher import RequestDispatcher
from .exceptions import AuthenticationRequiredError

if TYPE_CHECKING:
    from .manager import SessionManager


def _items(data: Any, key: str) -> List[Any]:
    """Collections come back either bare or nested under ``key``."""
    if isinstance(data, list):
        return data
    if isinstance(data, Mapping):
        return data.get(key) or []
    return []


def _field(data: Any, key: str) -> Any:
    """Unnest ``{key: value}`` when the record came back wrapped."""
    if isinstance(data, Mapping) and key in data:
        return data[key]
    return data


class AuthApi:
    """Credential endpoints. None of them carry the bearer except ``me``."""

    def __init__(self, dispatcher: RequestDispatcher):
        self.dispatcher = dispatcher

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        return await self.dispatcher.request(
            "POST", "/auth/login", json={"email": email, "password": password}, authenticate=False
        )

    async def register(self, user_data: Mapping[str, Any]) -> Dict[str, Any]:
        return await self.dispatcher.request("POST", "/auth/register", json=dict(user_data), authenticate=False)

    async def logout(self, refresh_token: str) -> None:
        await self.dispatcher.request(
            "POST", "/auth/logout", json={"refreshToken": refresh_token}, authenticate=False
        )

    async def me(self) -> Dict[str, Any]:
        if not self.dispatcher.session.access_token:
            raise AuthenticationRequiredError("No access token available")
        return await self.dispatcher.request("GET", "/auth/me")

    async def refresh(self, refresh_token: str) -> Dict[str, Any]:
        return await self.dispatcher.request(
            "POST", "/auth/refresh", json={"refreshToken": refresh_token}, authenticate=False
        )


class AreaApi:
    """
    Collection and mutation endpoints for services, connections, areas and
    workflows.

    While a session exists every call first goes through
    ``SessionManager.ensure_valid_token`` so no request leaves with a token
    already known to be stale. Without a session calls go out anonymously.
    """

    def __init__(self, dispatcher: RequestDispatcher, manager: "SessionManager"):
        self.dispatcher = dispatcher
        self.manager = manager

    async def _call(self, method: str, path: str, **kwargs) -> Any:
        if self.manager.session.is_authenticated:
            await self.manager.ensure_valid_token()
        return await self.dispatcher.request(method, path, **kwargs)

    # --- services ---

    async def get_services(self, has_actions: Optional[bool] = None, has_reactions: Optional[bool] = None) -> List[Dict]:
        params = {
            "hasActions": "true" if has_actions else None,
            "hasReactions": "true" if has_reactions else None,
        }
        return _items(await self._call("GET", "/api/services", params=params), "services")

    async def get_service(self, service_type: str) -> Dict[str, Any]:
        return await self._call("GET", f"/api/services/{service_type}")

    async def get_service_actions(self, service_type: str) -> List[Dict]:
        return _items(await self._call("GET", f"/api/services/{service_type}/actions"), "actions")

    async def get_service_reactions(self, service_type: str) -> List[Dict]:
        return _items(await self._call("GET", f"/api/services/{service_type}/reactions"), "reactions")

    async def get_service_stats(self) -> Dict[str, Any]:
        return await self._call("GET", "/api/services/stats")

    # --- service connections ---

    async def get_connected_services(self) -> List[Dict]:
        return _items(await self._call("GET", "/api/service-connections"), "connections")

    async def disconnect_service(self, connection_id) -> None:
        await self._call("DELETE", f"/api/service-connections/{connection_id}")

    async def refresh_service_token(self, connection_id) -> Any:
        return await self._call("POST", f"/api/service-connections/{connection_id}/refresh")

    async def get_gmail_auth_url(self) -> Dict[str, Any]:
        return await self._call("GET", "/api/services/gmail/auth-url")

    async def connect_discord(self, bot_token: str, channel_id: str) -> Any:
        return await self._call(
            "POST", "/api/services/discord/connect", json={"botToken": bot_token, "channelId": channel_id}
        )

    async def test_discord_connection(self, bot_token: str, channel_id: str) -> Any:
        return await self._call(
            "POST", "/api/services/discord/test", json={"botToken": bot_token, "channelId": channel_id}
        )

    # --- dashboard ---

    async def get_dashboard_stats(self) -> Dict[str, Any]:
        return _field(await self._call("GET", "/api/dashboard/stats"), "stats")

    # --- areas ---

    async def get_areas(self, active_only: bool = False) -> List[Dict]:
        params = {"activeOnly": "true"} if active_only else None
        return _items(await self._call("GET", "/api/areas", params=params), "areas")

    async def get_area(self, area_id) -> Dict[str, Any]:
        return await self._call("GET", f"/api/areas/{area_id}")

    async def create_area(self, area_data: Mapping[str, Any]) -> Dict[str, Any]:
        return await self._call("POST", "/api/areas", json=dict(area_data))

    async def delete_area(self, area_id) -> None:
        await self._call("DELETE", f"/api/areas/{area_id}")

    async def toggle_area_status(self, area_id) -> Dict[str, Any]:
        current = await self.get_area(area_id)
        return await self._call("PUT", f"/api/areas/{area_id}/status", json={"active": not current.get("active")})

    async def get_logs(self, area_id, filters: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        return await self._call("GET", f"/api/areas/{area_id}/logs", params=dict(filters or {}))

    # --- workflows ---

    async def get_workflows(self, active_only: bool = False) -> List[Dict]:
        params = {"activeOnly": "true"} if active_only else None
        return _items(await self._call("GET", "/api/workflows", params=params), "workflows")

    async def get_workflow(self, workflow_id) -> Dict[str, Any]:
        data = await self._call("GET", f"/api/workflows/{workflow_id}")
        return _field(data, "workflow")

    async def create_workflow(self, workflow_data: Mapping[str, Any]) -> Dict[str, Any]:
        data = await self._call("POST", "/api/workflows", json=dict(workflow_data))
        return _field(data, "workflow")

    async def update_workflow(self, workflow_id, workflow_data: Mapping[str, Any]) -> Dict[str, Any]:
        data = await self._call("PUT", f"/api/workflows/{workflow_id}", json=dict(workflow_data))
        return _field(data, "workflow")

    async def update_workflow_status(self, workflow_id, active: bool) -> Dict[str, Any]:
        data = await self._call("PATCH", f"/api/workflows/{workflow_id}/status", json={"active": active})
        return _field(data, "workflow")

    async def delete_workflow(self, workflow_id) -> None:
        await self._call("DELETE", f"/api/workflows/{workflow_id}")

    async def execute_workflow(self, workflow_id) -> Any:
        return await self._call("POST", f"/api/workflows/{workflow_id}/execute")

    async def get_workflow_stats(self, workflow_id) -> Dict[str, Any]:
        data = await self._call("GET", f"/api/workflows/{workflow_id}/stats")
        return _field(data, "stats")

    async def get_available_nodes(self) -> Any:
        return await self._call("GET", "/api/workflows/available-nodes")
