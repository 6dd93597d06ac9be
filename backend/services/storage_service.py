"""
Key-value storage for wizard state.

Values are stored as JSON text, optionally wrapped as base64 of the URL-encoded
JSON, and optionally enveloped as {"value": ..., "timestamp": ms} so they can
expire after max_age_seconds.
"""
import base64
import binascii
import hashlib
import json
import logging
import os
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import quote, unquote

from utils.environment import get_settings
from utils.logging_config import ErrorLogger

logger = logging.getLogger(__name__)
error_logger = ErrorLogger.get_instance()

MAX_KEY_LENGTH = 100
MAX_VALUE_BYTES = 5 * 1024 * 1024


class StorageError(Exception):
    pass


class MemoryStore:
    def __init__(self):
        self._items: Dict[str, str] = {}

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._items.keys())


class FileStore:
    """One file per key. File names are hashed; the key is kept inside the file."""

    def __init__(self, directory: str):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self.directory / f"{digest}.json"

    def get_item(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)["data"]

    def set_item(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp_path = path.with_suffix(".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump({"key": key, "data": value}, f)
        os.replace(tmp_path, path)

    def remove_item(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def keys(self) -> List[str]:
        keys = []
        for path in self.directory.glob("*.json"):
            try:
                with open(path, "r", encoding="utf-8") as f:
                    keys.append(json.load(f)["key"])
            except (OSError, ValueError, KeyError):
                logger.warning(f"⚠️ Skipping unreadable storage file {path.name}")
        return keys


def obfuscate_text(data: str) -> str:
    return base64.b64encode(quote(data, safe="").encode("ascii")).decode("ascii")


def deobfuscate_text(data: str) -> str:
    try:
        return unquote(base64.b64decode(data.encode("ascii"), validate=True).decode("ascii"))
    except (binascii.Error, UnicodeError, ValueError):
        return ""


class SecureStorage:
    def __init__(
        self,
        store,
        obfuscate: bool = False,
        max_age_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.obfuscate = obfuscate
        self.max_age_seconds = max_age_seconds
        self.clock = clock

    @staticmethod
    def _check_key(key: str) -> None:
        if not key or not isinstance(key, str) or len(key) > MAX_KEY_LENGTH:
            raise StorageError("Invalid storage key")

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    def _decode(self, raw: str) -> Any:
        text = deobfuscate_text(raw) if self.obfuscate else raw
        return json.loads(text)

    def _is_expired(self, data: Any) -> bool:
        if not self.max_age_seconds or not isinstance(data, dict):
            return False
        timestamp = data.get("timestamp")
        if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
            return False
        return self._now_ms() - timestamp > self.max_age_seconds * 1000

    def set_value(self, key: str, value: Any) -> None:
        self._check_key(key)

        data = {"value": value, "timestamp": self._now_ms()} if self.max_age_seconds else value
        serialized = json.dumps(data)
        if len(serialized) > MAX_VALUE_BYTES:
            raise StorageError("Data too large for storage")

        self.store.set_item(key, obfuscate_text(serialized) if self.obfuscate else serialized)

    def get_value(self, key: str, default: Any = None) -> Any:
        try:
            self._check_key(key)
        except StorageError as e:
            error_logger.log_error(e, {"key": str(key)[:20]})
            return default

        raw = self.store.get_item(key)
        if raw is None:
            return default

        try:
            data = self._decode(raw)
        except (ValueError, TypeError) as e:
            error_logger.log_error(e, {"key": key[:20], "function": "get_value"})
            return default

        if self._is_expired(data):
            logger.info(f"🗑️ Storage entry {key[:20]} expired")
            self.store.remove_item(key)
            return default

        if isinstance(data, dict) and set(data.keys()) == {"value", "timestamp"}:
            return data["value"]
        return data

    def remove_value(self, key: str) -> None:
        self._check_key(key)
        self.store.remove_item(key)

    def clear_expired(self) -> int:
        if not self.max_age_seconds:
            return 0

        removed = 0
        for key in self.store.keys():
            raw = self.store.get_item(key)
            if raw is None:
                continue
            try:
                data = self._decode(raw)
            except (ValueError, TypeError):
                continue
            if self._is_expired(data):
                self.store.remove_item(key)
                removed += 1
        if removed:
            logger.info(f"🗑️ Cleared {removed} expired storage entries")
        return removed


def create_storage() -> SecureStorage:
    settings = get_settings()
    if settings.storage_backend == "file":
        store = FileStore(settings.storage_dir)
    else:
        store = MemoryStore()
    return SecureStorage(
        store,
        obfuscate=settings.storage_obfuscate,
        max_age_seconds=settings.storage_max_age_seconds,
    )
