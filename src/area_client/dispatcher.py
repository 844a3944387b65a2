# src/area_client/dispatcher.py

from typing import Any, Dict, Mapping, Optional

import httpx
from fastapi import status
from loguru import logger

from .config import Settings, settings as default_settings
from .envelope import is_failure_envelope, unwrap_api_response
from .exceptions import (
    ApiError,
    AuthenticationRequiredError,
    RequestFailedError,
    SessionExpiredError,
    TransportError,
)
from .session import SessionContext


class RequestDispatcher:
    """
    Issues every backend request.

    Attaches the held bearer token, unwraps the response envelope and turns
    a 401 into either a session teardown (token was attached) or a plain
    authentication-required failure (anonymous call).
    """

    def __init__(
        self,
        session: SessionContext,
        settings: Settings = default_settings,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.session = session
        self.settings = settings
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=settings.AREA_REQUEST_TIMEOUT)

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> "RequestDispatcher":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def url_for(self, path: str) -> str:
        return f"{self.settings.api_base_url}{path}"

    def build_headers(self, token: Optional[str], headers: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
        result = {"Content-Type": "application/json"}
        if token:
            result["Authorization"] = f"Bearer {token}"
        if headers:
            result.update(headers)
        return result

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
        authenticate: bool = True,
    ) -> Any:
        token = self.session.access_token if authenticate else None
        url = self.url_for(path)
        query = {k: v for k, v in (params or {}).items() if v is not None}

        logger.debug("{} {} (bearer: {})", method, path, "yes" if token else "no")
        try:
            response = await self.client.request(
                method,
                url,
                json=json,
                params=query or None,
                headers=self.build_headers(token, headers),
            )
        except httpx.RequestError as e:
            logger.warning("Request error on {} {}: {}", method, path, e)
            raise TransportError() from e
        logger.debug("{} {} -> {}", method, path, response.status_code)

        if response.status_code == status.HTTP_401_UNAUTHORIZED:
            if token:
                logger.warning("Held token rejected on {} {}, purging session", method, path)
                # Only tear down if the rejected token is still the one held.
                if self.session.access_token == token:
                    self.session.purge("access token rejected")
                raise SessionExpiredError()
            payload = _try_json(response)
            if is_failure_envelope(payload):
                unwrap_api_response(payload, AuthenticationRequiredError, response.status_code)
            raise AuthenticationRequiredError()

        if not response.is_success:
            payload = _try_json(response)
            if is_failure_envelope(payload):
                unwrap_api_response(payload, ApiError, response.status_code)
            raise RequestFailedError(response.status_code)

        if not response.content:
            return None
        try:
            payload = response.json()
        except ValueError as e:
            raise TransportError("Invalid JSON in response", response.status_code) from e
        return unwrap_api_response(payload, ApiError, response.status_code)


def _try_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None
