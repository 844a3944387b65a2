# src/area_client/manager.py

import asyncio
from typing import Any, Callable, Dict, Mapping, Optional

from loguru import logger
from pydantic import ValidationError

from .api import AuthApi
from .config import Settings, settings as default_settings
from .exceptions import (
    ApiError,
    AreaClientError,
    AuthenticationRequiredError,
    NotAuthenticatedError,
    RefreshFailedError,
    SessionExpiredError,
)
from .session import SessionContext, SessionStatus
from .storage import Credentials, expiry_from_now, now_ms


class SessionManager:
    """
    Login, registration, logout and token upkeep for one SessionContext.

    State moves anonymous -> authenticating -> authenticated on login and
    authenticated -> refreshing -> authenticated on refresh. A failed
    refresh and every logout end in anonymous.
    """

    def __init__(
        self,
        session: SessionContext,
        auth_api: AuthApi,
        settings: Settings = default_settings,
        clock: Optional[Callable[[], int]] = None,
    ):
        self.session = session
        self.auth_api = auth_api
        self.settings = settings
        self.clock = clock or now_ms
        self._refresh_task: Optional[asyncio.Task] = None

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        self.session.set_error(None)
        self.session.begin(SessionStatus.AUTHENTICATING)
        try:
            response = await self.auth_api.login(email, password)
            credentials = _credentials_from(response, self.clock())
            self.session.adopt(credentials)
        except AreaClientError as e:
            self.session.set_error(e.message or "Login failed")
            raise
        finally:
            self.session.settle(transitional=True)

        logger.info("Logged in as user {}", credentials.user.get("id"))
        return response

    async def register(self, user_data: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Create an account. Does not log in: the caller sends the user on to
        the login surface.
        """
        self.session.set_error(None)
        self.session.begin()
        try:
            return await self.auth_api.register(user_data)
        except AreaClientError as e:
            self.session.set_error(e.message or "Registration failed")
            raise
        finally:
            self.session.settle()

    async def logout(self) -> None:
        self.session.begin()
        try:
            refresh_token = self.session.refresh_token
            if refresh_token:
                await self.auth_api.logout(refresh_token)
        except AreaClientError as e:
            # Revocation is a notification; local logout happens regardless.
            logger.warning("Logout notification failed: {}", e.message)
        finally:
            self.session.purge("logout")
            self.session.settle()
        logger.info("Logged out")

    async def get_current_user(self) -> Dict[str, Any]:
        if not self.session.access_token:
            raise AuthenticationRequiredError("No access token available")

        self.session.set_error(None)
        self.session.begin()
        try:
            await self.ensure_valid_token()
            user = await self.auth_api.me()
            credentials = self.session.credentials
            if credentials is not None:
                self.session.adopt(_with_user(credentials, user))
            return user
        except (AuthenticationRequiredError, SessionExpiredError, RefreshFailedError) as e:
            self.session.purge("current user request rejected")
            self.session.set_error(e.message)
            raise
        except AreaClientError as e:
            self.session.set_error(e.message or "Failed to fetch user")
            raise
        finally:
            self.session.settle()

    async def refresh_access_token(self) -> str:
        """
        Exchange the refresh token for a new access token.

        Concurrent callers share one in-flight exchange. Any failure purges
        the whole session and raises RefreshFailedError.
        """
        if self._refresh_task is None:
            self._refresh_task = asyncio.create_task(self._refresh())
            self._refresh_task.add_done_callback(self._refresh_done)
        return await asyncio.shield(self._refresh_task)

    def _refresh_done(self, task: asyncio.Task) -> None:
        if self._refresh_task is task:
            self._refresh_task = None

    async def _refresh(self) -> str:
        credentials = self.session.credentials
        if credentials is None:
            raise RefreshFailedError("No refresh token available")
        refresh_token = credentials.refresh_token

        self.session.begin(SessionStatus.REFRESHING)
        try:
            response = await self.auth_api.refresh(refresh_token)
            update = {
                "access_token": response["accessToken"],
                "token_expiry": expiry_from_now(response.get("expiresIn"), self.clock()),
            }
            if response.get("user"):
                update["user"] = response["user"]
            refreshed = Credentials.model_validate({**credentials.model_dump(), **update})
        except (AreaClientError, KeyError, TypeError, ValidationError) as e:
            message = e.message if isinstance(e, AreaClientError) else None
            logger.warning("Token refresh failed: {}", message or e)
            if self.session.refresh_token == refresh_token:
                self.session.purge("refresh failed")
            raise RefreshFailedError(message) from e
        finally:
            self.session.settle(transitional=True)

        if self.session.refresh_token != refresh_token:
            # Logged out (or into another account) while the exchange was in flight.
            logger.info("Discarding refresh result for a session that has since ended")
            raise NotAuthenticatedError()
        self.session.adopt(refreshed)
        logger.info("Access token refreshed")
        return refreshed.access_token

    def is_token_expired(self) -> bool:
        """True when no expiry is known or it falls within the refresh buffer."""
        expiry = self.session.token_expiry
        if expiry is None:
            return True
        return self.clock() >= expiry - self.settings.refresh_buffer_ms

    async def ensure_valid_token(self) -> str:
        """
        The access token to send, refreshed first if it is expired or about
        to be.
        """
        if not self.session.is_authenticated:
            raise NotAuthenticatedError()
        if self.is_token_expired():
            await self.refresh_access_token()
        return self.session.access_token

    def clear_error(self) -> None:
        self.session.set_error(None)


def _with_user(credentials: Credentials, user: Any) -> Credentials:
    try:
        return Credentials.model_validate({**credentials.model_dump(), "user": user})
    except ValidationError as e:
        raise ApiError("User response did not contain a user profile") from e


def _credentials_from(response: Any, now: int) -> Credentials:
    try:
        return Credentials.from_auth_response(response, now)
    except (KeyError, TypeError, ValidationError) as e:
        raise ApiError("Login response did not contain a complete credential set") from e
