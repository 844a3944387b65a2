# src/area_client/__init__.py

from .aggregation import AggregatedLogs, LogAggregator
from .api import AreaApi, AuthApi
from .client import AreaClient
from .dispatcher import RequestDispatcher
from .envelope import unwrap_api_response
from .exceptions import (
    ApiError,
    AreaClientError,
    AuthenticationRequiredError,
    NotAuthenticatedError,
    RefreshFailedError,
    RequestFailedError,
    SessionExpiredError,
    TransportError,
)
from .manager import SessionManager
from .prompts import PromptQueue
from .session import SessionContext, SessionStatus, SessionView
from .storage import CredentialStore, Credentials, JsonFileStorage, MemoryStorage

__version__ = "0.1.0"
