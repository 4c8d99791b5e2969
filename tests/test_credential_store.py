"""
Tests for the encrypted credential store
"""
import json
import time
from pathlib import Path

import pytest

from src.scheduler.errors import ConfigurationError, NotConnectedError
from src.storage.credential_store import CredentialStore


def _records(config):
    with open(config.USERS_FILE, encoding="utf-8") as f:
        return json.load(f)


class TestLookup:

    def test_unknown_user_is_not_connected(self, credential_store):
        assert credential_store.get("u1") is None
        assert credential_store.is_connected("u1") is False

    def test_require_raises_for_unknown_user(self, credential_store):
        with pytest.raises(NotConnectedError):
            credential_store.require("u1")

    def test_saved_tokens_round_trip(self, credential_store):
        credential_store.save("u1", {"access_token": "A", "refresh_token": "R", "expiry_date": 1000})

        credential = credential_store.get("u1")
        assert credential.to_dict() == {"access_token": "A", "refresh_token": "R", "expiry_date": 1000}
        assert credential_store.require("u1").user_id == "u1"

    def test_empty_access_token_is_not_connected(self, credential_store):
        credential_store.save("u1", {"access_token": "", "refresh_token": "R"})
        assert credential_store.get("u1") is None

    def test_undecryptable_access_token_is_not_connected(self, config, credential_store):
        credential_store.save("u1", {"access_token": "A", "refresh_token": "R"})
        records = _records(config)
        records[0]["accessToken"] = "garbage"
        with open(config.USERS_FILE, "w", encoding="utf-8") as f:
            json.dump(records, f)

        assert credential_store.get("u1") is None

    def test_missing_refresh_token_reads_as_empty(self, credential_store):
        credential_store.save("u1", {"access_token": "A"})
        assert credential_store.get("u1").refresh_token == ""

    def test_every_read_goes_back_to_disk(self, config, credential_store):
        credential_store.save("u1", {"access_token": "A", "refresh_token": "R"})
        other_process = CredentialStore(config)
        other_process.save("u1", {"access_token": "B", "refresh_token": "R"})

        assert credential_store.get("u1").access_token == "B"


class TestPersistence:

    def test_file_created_on_start(self, config, credential_store):
        assert _records(config) == []

    def test_secrets_are_encrypted_at_rest(self, config, credential_store):
        credential_store.save("u1", {"access_token": "plain-access", "refresh_token": "plain-refresh"})
        raw = Path(config.USERS_FILE).read_text(encoding="utf-8")

        assert "plain-access" not in raw
        assert "plain-refresh" not in raw
        record = _records(config)[0]
        assert set(record) == {"userId", "accessToken", "refreshToken", "expiryDate", "createdAt", "lastUpdated"}
        assert ":" in record["accessToken"]

    def test_missing_expiry_defaults_to_one_hour(self, config, credential_store):
        before = int(time.time() * 1000)
        credential_store.save("u1", {"access_token": "A"})
        expiry = _records(config)[0]["expiryDate"]

        assert before + 3600 * 1000 <= expiry <= int(time.time() * 1000) + 3600 * 1000

    def test_save_merges_into_existing_record(self, config, credential_store):
        credential_store.save("u1", {"access_token": "A", "refresh_token": "R", "expiry_date": 1})
        records = _records(config)
        records[0]["timezone"] = "Asia/Kolkata"
        created_at = records[0]["createdAt"]
        with open(config.USERS_FILE, "w", encoding="utf-8") as f:
            json.dump(records, f)

        credential_store.save("u1", {"access_token": "A2", "refresh_token": "R2", "expiry_date": 2})

        records = _records(config)
        assert len(records) == 1
        assert records[0]["timezone"] == "Asia/Kolkata"
        assert records[0]["createdAt"] == created_at
        assert credential_store.get("u1").to_dict() == {"access_token": "A2", "refresh_token": "R2", "expiry_date": 2}

    def test_users_are_isolated(self, credential_store):
        credential_store.save("u1", {"access_token": "A1"})
        credential_store.save("u2", {"access_token": "A2"})

        assert credential_store.get("u1").access_token == "A1"
        assert credential_store.get("u2").access_token == "A2"


class TestAccessTokenRefresh:

    def test_update_replaces_access_token_only(self, credential_store):
        credential_store.save("u1", {"access_token": "old", "refresh_token": "R", "expiry_date": 1})

        assert credential_store.update_access_token("u1", "new", 5000) is True
        assert credential_store.get("u1").to_dict() == {"access_token": "new", "refresh_token": "R", "expiry_date": 5000}

    def test_update_for_unknown_user_reports_not_found(self, config, credential_store):
        assert credential_store.update_access_token("ghost", "new", 5000) is False
        assert _records(config) == []


class TestMisconfiguration:

    def test_store_refuses_to_start_without_key(self, config):
        config.ENCRYPTION_KEY = ""
        with pytest.raises(ConfigurationError):
            CredentialStore(config)
