"""
Encrypted per-user OAuth credential storage

Records live in a JSON array file, one object per chat user. Secrets are
encrypted field by field; every read goes back to the file and decrypts, so
plaintext only exists for the duration of a request.
"""
import json
import logging
import os
import tempfile
import threading
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from config.settings import Config
from src.scheduler.errors import NotConnectedError
from src.scheduler.models import UserCredential
from utils.encryption import TokenCipher

logger = logging.getLogger(__name__)


class CredentialStore:
    """Reads and writes encrypted Google tokens keyed by chat user id"""

    def __init__(self, config: Config = None, cipher: TokenCipher = None):
        self.config = config or Config()
        self.cipher = cipher if cipher is not None else TokenCipher(self.config.ENCRYPTION_KEY)
        self.path = Path(self.config.USERS_FILE)
        self._lock = threading.Lock()

        self.path.parent.mkdir(parents=True, exist_ok=True)
        if not self.path.exists():
            self._write_records([])

    # ------------------------------------------------------------------ io

    def _read_records(self) -> List[Dict[str, Any]]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                records = json.load(f)
        except FileNotFoundError:
            return []
        except json.JSONDecodeError as e:
            logger.error(f"Credential file {self.path} is not valid JSON: {e}")
            raise
        return records if isinstance(records, list) else []

    def _write_records(self, records: List[Dict[str, Any]]):
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".users-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(records, f, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    @staticmethod
    def _find(records: List[Dict[str, Any]], user_id: str) -> Optional[Dict[str, Any]]:
        return next((r for r in records if r.get("userId") == user_id), None)

    # ----------------------------------------------------------- operations

    def get(self, user_id: str) -> Optional[UserCredential]:
        """Decrypted credential, or None when the user is not connected"""
        with self._lock:
            record = self._find(self._read_records(), user_id)

        if not record or not record.get("accessToken"):
            logger.info(f"No tokens found for user: {user_id}")
            return None

        access_token = self.cipher.decrypt(record.get("accessToken", ""))
        if not access_token:
            logger.warning(f"Stored access token for {user_id} could not be decrypted")
            return None

        return UserCredential(
            user_id=user_id,
            access_token=access_token,
            refresh_token=self.cipher.decrypt(record.get("refreshToken", "")),
            expiry_date=record.get("expiryDate"),
        )

    def require(self, user_id: str) -> UserCredential:
        credential = self.get(user_id)
        if credential is None:
            raise NotConnectedError(f"User {user_id} has not connected Google Calendar")
        return credential

    def is_connected(self, user_id: str) -> bool:
        return self.get(user_id) is not None

    def save(self, user_id: str, tokens: Dict[str, Any]):
        """Upsert tokens from an OAuth exchange, keeping unrelated fields"""
        logger.info(
            f"💾 Saving tokens for user {user_id} "
            f"(access: {bool(tokens.get('access_token'))}, refresh: {bool(tokens.get('refresh_token'))})"
        )
        now_iso = datetime.now(timezone.utc).isoformat()
        expiry = tokens.get("expiry_date") or int(time.time() * 1000) + self.config.DEFAULT_TOKEN_LIFETIME_MS

        with self._lock:
            records = self._read_records()
            record = self._find(records, user_id)
            if record is None:
                record = {"userId": user_id, "createdAt": now_iso}
                records.append(record)
                logger.info("   Creating new user entry")
            else:
                logger.info("   Updating existing user")

            record["accessToken"] = self.cipher.encrypt(tokens.get("access_token") or "")
            record["refreshToken"] = self.cipher.encrypt(tokens.get("refresh_token") or "")
            record["expiryDate"] = expiry
            record["lastUpdated"] = now_iso

            self._write_records(records)

        logger.info(f"✅ Tokens saved for user: {user_id}")

    def update_access_token(self, user_id: str, access_token: str, expiry_date: Optional[int]) -> bool:
        """Replace the access token after a refresh; False if the user is unknown"""
        with self._lock:
            records = self._read_records()
            record = self._find(records, user_id)
            if record is None:
                logger.error(f"User not found: {user_id}")
                return False

            record["accessToken"] = self.cipher.encrypt(access_token)
            record["expiryDate"] = expiry_date
            record["lastUpdated"] = datetime.now(timezone.utc).isoformat()
            self._write_records(records)

        logger.info(f"🔄 Access token refreshed for user: {user_id}")
        return True
