# src/area_client/session.py

from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from loguru import logger
from pydantic import BaseModel, ConfigDict

from .storage import CredentialStore, Credentials


class SessionStatus(str, Enum):
    ANONYMOUS = "anonymous"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    REFRESHING = "refreshing"


class SessionView(BaseModel):
    """
    Read-only projection of the session handed to everything outside the
    session manager. Holds no refresh token.
    """
    model_config = ConfigDict(frozen=True)

    status: SessionStatus
    user: Optional[Dict[str, Any]] = None
    access_token: Optional[str] = None
    is_authenticated: bool = False
    is_loading: bool = False
    error: Optional[str] = None


class SessionContext:
    """
    The one session of a running client.

    Constructed once at application start and injected into the dispatcher
    and the session manager. Restores itself from the credential store if a
    complete snapshot is found there. The manager is the only writer, except
    for ``purge`` which the dispatcher also calls when a held token is
    rejected.
    """

    def __init__(self, store: Optional[CredentialStore] = None):
        self.store = store if store is not None else CredentialStore()
        self._credentials: Optional[Credentials] = self.store.load()
        self._status = SessionStatus.AUTHENTICATED if self._credentials else SessionStatus.ANONYMOUS
        self._pending = 0
        self._error: Optional[str] = None
        self._listeners: List[Callable[[SessionView], None]] = []
        if self._credentials:
            logger.info("Session restored from storage for user {}", self._credentials.user.get("id"))

    # --- read accessors ---

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def credentials(self) -> Optional[Credentials]:
        return self._credentials

    @property
    def is_authenticated(self) -> bool:
        return self._credentials is not None

    @property
    def access_token(self) -> Optional[str]:
        return self._credentials.access_token if self._credentials else None

    @property
    def refresh_token(self) -> Optional[str]:
        return self._credentials.refresh_token if self._credentials else None

    @property
    def user(self) -> Optional[Dict[str, Any]]:
        return self._credentials.user if self._credentials else None

    @property
    def token_expiry(self) -> Optional[int]:
        return self._credentials.token_expiry if self._credentials else None

    @property
    def is_loading(self) -> bool:
        return self._pending > 0 or self._status in (SessionStatus.AUTHENTICATING, SessionStatus.REFRESHING)

    @property
    def error(self) -> Optional[str]:
        return self._error

    def snapshot(self) -> SessionView:
        return SessionView(
            status=self._status,
            user=self.user,
            access_token=self.access_token,
            is_authenticated=self.is_authenticated,
            is_loading=self.is_loading,
            error=self._error,
        )

    def subscribe(self, listener: Callable[[SessionView], None]) -> Callable[[], None]:
        """Call ``listener`` with a fresh view after every change. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # --- mutations (session manager, and dispatcher for purge) ---

    def begin(self, status: Optional[SessionStatus] = None) -> None:
        """Enter a transitional status, or just mark an operation in progress."""
        if status is None:
            self._pending += 1
        else:
            self._status = status
        self._notify()

    def settle(self, transitional: bool = False) -> None:
        """Leave the transitional status (or end the in-progress operation)."""
        if transitional:
            self._status = SessionStatus.AUTHENTICATED if self._credentials else SessionStatus.ANONYMOUS
        else:
            self._pending = max(0, self._pending - 1)
        self._notify()

    def set_error(self, message: Optional[str]) -> None:
        self._error = message
        self._notify()

    def adopt(self, credentials: Credentials) -> None:
        """Persist and take on a full credential set."""
        self.store.save(credentials)
        self._credentials = credentials
        self._status = SessionStatus.AUTHENTICATED
        self._notify()

    def purge(self, reason: str) -> None:
        """Drop the session everywhere: storage first, then memory."""
        had_session = self._credentials is not None
        self.store.clear()
        self._credentials = None
        self._status = SessionStatus.ANONYMOUS
        self._error = None
        if had_session:
            logger.info("Session purged ({})", reason)
        self._notify()

    def _notify(self) -> None:
        if not self._listeners:
            return
        view = self.snapshot()
        for listener in list(self._listeners):
            listener(view)
