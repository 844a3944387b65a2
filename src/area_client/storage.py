# src/area_client/storage.py

import json
import os
import tempfile
import time
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Protocol, runtime_checkable

from loguru import logger
from pydantic import BaseModel, ConfigDict

ACCESS_TOKEN_KEY = "accessToken"
REFRESH_TOKEN_KEY = "refreshToken"
USER_KEY = "user"
TOKEN_EXPIRY_KEY = "tokenExpiry"

CREDENTIAL_KEYS = (ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY, USER_KEY, TOKEN_EXPIRY_KEY)


def now_ms() -> int:
    return int(time.time() * 1000)


def expiry_from_now(expires_in: Optional[float], now: Optional[int] = None) -> Optional[int]:
    """Absolute expiry in ms epoch for a lifetime given in seconds."""
    if expires_in is None:
        return None
    return (now if now is not None else now_ms()) + int(expires_in * 1000)


class Credentials(BaseModel):
    """
    The durable part of a session.

    All three credential fields are required, so a partial set cannot be
    represented; ``token_expiry`` may be unknown.
    """
    model_config = ConfigDict(frozen=True)

    access_token: str
    refresh_token: str
    user: Dict[str, Any]
    token_expiry: Optional[int] = None  # ms since epoch

    @classmethod
    def from_auth_response(cls, response: Mapping[str, Any], now: Optional[int] = None) -> "Credentials":
        return cls(
            access_token=response["accessToken"],
            refresh_token=response["refreshToken"],
            user=response["user"],
            token_expiry=expiry_from_now(response.get("expiresIn"), now),
        )


@runtime_checkable
class KeyValueStorage(Protocol):
    """String key-value storage with group writes."""

    def get(self, key: str) -> Optional[str]:
        ...

    def write_many(self, items: Mapping[str, Optional[str]]) -> None:
        """Apply all writes as one unit; a None value removes the key."""
        ...


class MemoryStorage:
    def __init__(self, initial: Optional[Mapping[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def write_many(self, items: Mapping[str, Optional[str]]) -> None:
        _apply(self._data, items)

    def keys(self):
        return set(self._data)


class JsonFileStorage:
    """
    Key-value storage kept as one JSON object on disk.

    Each group write rewrites the whole file through a temporary file and
    ``os.replace``, so readers see either the old or the new snapshot.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def _read(self) -> Dict[str, str]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Credential file {} is not valid JSON, ignoring it", self.path)
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def _write(self, data: Mapping[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fp:
                json.dump(dict(data), fp)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def get(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def write_many(self, items: Mapping[str, Optional[str]]) -> None:
        data = self._read()
        _apply(data, items)
        self._write(data)


class CredentialStore:
    """Mirror of the session's durable fields in key-value storage."""

    def __init__(self, storage: Optional[KeyValueStorage] = None):
        self.storage = storage if storage is not None else MemoryStorage()

    def load(self) -> Optional[Credentials]:
        access_token = self.storage.get(ACCESS_TOKEN_KEY)
        refresh_token = self.storage.get(REFRESH_TOKEN_KEY)
        raw_user = self.storage.get(USER_KEY)
        if not (access_token and refresh_token and raw_user):
            return None

        try:
            user = json.loads(raw_user)
        except json.JSONDecodeError:
            logger.warning("Stored user profile is not valid JSON, treating session as absent")
            return None
        if not isinstance(user, dict):
            return None

        return Credentials(
            access_token=access_token,
            refresh_token=refresh_token,
            user=user,
            token_expiry=_parse_expiry(self.storage.get(TOKEN_EXPIRY_KEY)),
        )

    def save(self, credentials: Credentials) -> None:
        self.storage.write_many({
            ACCESS_TOKEN_KEY: credentials.access_token,
            REFRESH_TOKEN_KEY: credentials.refresh_token,
            USER_KEY: json.dumps(credentials.user),
            TOKEN_EXPIRY_KEY: None if credentials.token_expiry is None else str(credentials.token_expiry),
        })

    def clear(self) -> None:
        self.storage.write_many(dict.fromkeys(CREDENTIAL_KEYS))


def _apply(data: Dict[str, str], items: Mapping[str, Optional[str]]) -> None:
    for key, value in items.items():
        if value is None:
            data.pop(key, None)
        else:
            data[key] = value


def _parse_expiry(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def storage_from_settings(settings) -> KeyValueStorage:
    if settings.AREA_CREDENTIALS_FILE:
        return JsonFileStorage(settings.AREA_CREDENTIALS_FILE)
    return MemoryStorage()
