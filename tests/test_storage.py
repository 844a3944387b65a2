"""Tests for the credential store and its storage backends."""

import json

import pytest

from area_client.storage import (
    ACCESS_TOKEN_KEY,
    CREDENTIAL_KEYS,
    REFRESH_TOKEN_KEY,
    TOKEN_EXPIRY_KEY,
    USER_KEY,
    CredentialStore,
    Credentials,
    JsonFileStorage,
    MemoryStorage,
    expiry_from_now,
)

from conftest import NOW


class TestCredentialStore:

    @pytest.fixture(params=["memory", "file"])
    def store(self, request, tmp_path):
        if request.param == "memory":
            return CredentialStore(MemoryStorage())
        return CredentialStore(JsonFileStorage(tmp_path / "creds" / "credentials.json"))

    def test_save_then_load_round_trips(self, store, credentials):
        store.save(credentials)
        assert store.load() == credentials

    def test_round_trip_without_expiry(self, store):
        creds = Credentials(access_token="a", refresh_token="r", user={"id": 7})
        store.save(creds)
        assert store.load() == creds

    def test_clear_removes_all_four_slots(self, store, credentials):
        store.save(credentials)
        store.clear()
        assert store.load() is None
        for key in CREDENTIAL_KEYS:
            assert store.storage.get(key) is None

    def test_empty_storage_loads_nothing(self, store):
        assert store.load() is None

    @pytest.mark.parametrize("missing", [ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY, USER_KEY])
    def test_partial_snapshot_is_treated_as_absent(self, credentials, missing):
        storage = MemoryStorage()
        CredentialStore(storage).save(credentials)
        storage.write_many({missing: None})
        assert CredentialStore(storage).load() is None

    def test_missing_expiry_still_loads(self, credentials):
        storage = MemoryStorage()
        CredentialStore(storage).save(credentials)
        storage.write_many({TOKEN_EXPIRY_KEY: None})
        loaded = CredentialStore(storage).load()
        assert loaded is not None
        assert loaded.token_expiry is None

    def test_corrupt_user_is_treated_as_absent(self):
        storage = MemoryStorage({ACCESS_TOKEN_KEY: "a", REFRESH_TOKEN_KEY: "r", USER_KEY: "{not json"})
        assert CredentialStore(storage).load() is None

    def test_non_numeric_expiry_is_dropped(self):
        storage = MemoryStorage({
            ACCESS_TOKEN_KEY: "a",
            REFRESH_TOKEN_KEY: "r",
            USER_KEY: json.dumps({"id": 1}),
            TOKEN_EXPIRY_KEY: "soon",
        })
        assert CredentialStore(storage).load().token_expiry is None

    def test_slots_use_string_values(self, credentials):
        storage = MemoryStorage()
        CredentialStore(storage).save(credentials)
        assert storage.get(USER_KEY) == json.dumps(credentials.user)
        assert storage.get(TOKEN_EXPIRY_KEY) == str(credentials.token_expiry)


class TestJsonFileStorage:

    def test_persists_across_instances(self, tmp_path, credentials):
        path = tmp_path / "credentials.json"
        CredentialStore(JsonFileStorage(path)).save(credentials)
        assert CredentialStore(JsonFileStorage(path)).load() == credentials

    def test_leaves_unrelated_keys_alone(self, tmp_path, credentials):
        path = tmp_path / "credentials.json"
        path.write_text(json.dumps({"theme": "dark"}))
        store = CredentialStore(JsonFileStorage(path))
        store.save(credentials)
        store.clear()
        assert json.loads(path.read_text()) == {"theme": "dark"}

    def test_invalid_file_reads_as_empty(self, tmp_path):
        path = tmp_path / "credentials.json"
        path.write_text("garbage")
        assert JsonFileStorage(path).get(ACCESS_TOKEN_KEY) is None


def test_expiry_from_now():
    assert expiry_from_now(3600, NOW) == NOW + 3_600_000
    assert expiry_from_now(None, NOW) is None


def test_credentials_from_auth_response():
    creds = Credentials.from_auth_response(
        {"accessToken": "t1", "refreshToken": "r1", "user": {"id": 1}, "expiresIn": 3600}, NOW
    )
    assert creds.access_token == "t1"
    assert creds.refresh_token == "r1"
    assert creds.user == {"id": 1}
    assert creds.token_expiry == NOW + 3_600_000
