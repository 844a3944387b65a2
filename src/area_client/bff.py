# src/area_client/bff.py

from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, Request, status
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel, ConfigDict

from .client import AreaClient
from .config import settings
from .exceptions import (
    AreaClientError,
    AuthenticationRequiredError,
    RefreshFailedError,
    SessionExpiredError,
    TransportError,
)
from .log import configure_logging
from .session import SessionView


# --- Pydantic Models for Request Bodies ---
class LoginRequest(BaseModel):
    email: str
    password: str


class RegisterRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    email: str
    password: str
    username: Optional[str] = None
    fullName: Optional[str] = None


def error_status(error: AreaClientError) -> int:
    if isinstance(error, (SessionExpiredError, RefreshFailedError, AuthenticationRequiredError)):
        return status.HTTP_401_UNAUTHORIZED
    if isinstance(error, TransportError):
        return status.HTTP_502_BAD_GATEWAY
    return error.status_code or status.HTTP_400_BAD_REQUEST


def create_app(client: Optional[AreaClient] = None) -> FastAPI:
    """
    UI-facing app over one AreaClient.

    Every failure leaves as ``{"success": false, "message": ...}``; an
    expired session also carries ``Location: /login`` for the UI to follow.
    """
    client = client or AreaClient(settings)

    app = FastAPI(
        title="AREA client BFF",
        description="Session and authenticated-request layer for the AREA web UI.",
        version="0.1.0"
    )
    app.state.client = client

    def get_client(request: Request) -> AreaClient:
        return request.app.state.client

    @app.exception_handler(AreaClientError)
    async def area_client_error_handler(request: Request, exc: AreaClientError):
        headers = {"Location": "/login"} if isinstance(exc, (SessionExpiredError, RefreshFailedError)) else None
        logger.debug("BFF: {} {} failed: {}", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=error_status(exc), content=exc.to_dict(), headers=headers)

    @app.on_event("startup")
    async def startup_event():
        configure_logging()
        logger.info("--- AREA client BFF starting up ---")
        logger.info("API base URL: {}", client.settings.api_base_url)
        logger.info("Credential storage: {}", client.settings.AREA_CREDENTIALS_FILE or "memory")

    @app.on_event("shutdown")
    async def shutdown_event():
        await client.aclose()

    @app.get("/api/bff/session", response_model=SessionView)
    async def get_session(area: AreaClient = Depends(get_client)) -> SessionView:
        return area.session.snapshot()

    @app.post("/api/bff/login")
    async def login(body: LoginRequest, area: AreaClient = Depends(get_client)) -> Dict[str, Any]:
        await area.manager.login(body.email, body.password)
        return {"success": True, "data": area.session.snapshot().model_dump(mode="json")}

    @app.post("/api/bff/register")
    async def register(body: RegisterRequest, area: AreaClient = Depends(get_client)) -> Dict[str, Any]:
        user = await area.manager.register(body.model_dump(exclude_none=True))
        return {"success": True, "data": user}

    @app.post("/api/bff/logout")
    async def logout(area: AreaClient = Depends(get_client)) -> Dict[str, Any]:
        await area.manager.logout()
        return {"success": True, "message": "Logged out"}

    @app.get("/api/bff/me")
    async def me(area: AreaClient = Depends(get_client)) -> Dict[str, Any]:
        user = await area.manager.get_current_user()
        return {"success": True, "data": user}

    @app.get("/api/bff/logs")
    async def logs(request: Request, area: AreaClient = Depends(get_client)) -> Dict[str, Any]:
        result = await area.logs.get_all_logs(dict(request.query_params))
        return {"success": True, "data": result.model_dump(by_alias=True)}

    return app
