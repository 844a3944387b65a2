# src/area_client/client.py

from typing import Optional

import httpx

from .aggregation import LogAggregator
from .api import AreaApi, AuthApi
from .config import Settings, settings as default_settings
from .dispatcher import RequestDispatcher
from .manager import SessionManager
from .prompts import PromptQueue
from .session import SessionContext
from .storage import CredentialStore, KeyValueStorage, storage_from_settings


class AreaClient:
    """Wires one session through every component. Build once per application."""

    def __init__(
        self,
        settings: Settings = default_settings,
        storage: Optional[KeyValueStorage] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        clock=None,
    ):
        self.settings = settings
        self.session = SessionContext(CredentialStore(storage if storage is not None else storage_from_settings(settings)))
        self.dispatcher = RequestDispatcher(self.session, settings, client=http_client)
        self.auth = AuthApi(self.dispatcher)
        self.manager = SessionManager(self.session, self.auth, settings, clock=clock)
        self.api = AreaApi(self.dispatcher, self.manager)
        self.logs = LogAggregator(self.api, settings)
        self.prompts = PromptQueue()

    async def aclose(self) -> None:
        await self.dispatcher.aclose()

    async def __aenter__(self) -> "AreaClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
