import fcntl
import json
import logging
import os
import re
import tempfile
import threading
import time
from pathlib import Path
from typing import Any, Dict, Mapping, Protocol
from pydantic import ValidationError
from .errors import StorageError, ValidationFailure
from .models import ACTION_IDS, ActionTriggerMapping, UserMediaSettings

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME = re.compile(r"[^A-Za-z0-9._@-]")


def default_action_mappings() -> Dict[str, ActionTriggerMapping]:
    return {action: ActionTriggerMapping() for action in ACTION_IDS}


class MappingStore(Protocol):
    def get(self, user_id: str) -> UserMediaSettings: ...

    def update(self, user_id: str, partial: Mapping[str, Any]) -> UserMediaSettings: ...


class UserSettingsStore:
    """
    Per-user button mappings, one JSON file per user.

    Reads never fail: a missing or unreadable file yields the all-"none"
    defaults. Writes do fail loudly, a dropped settings change must reach
    the caller.
    """

    def __init__(self, path: str):
        self.path = Path(path)
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _file(self, user_id: str) -> Path:
        return self.path / f"{_UNSAFE_FILENAME.sub('_', user_id)}.json"

    def _lock(self, user_id: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(_UNSAFE_FILENAME.sub("_", user_id), threading.Lock())

    def get(self, user_id: str) -> UserMediaSettings:
        stored = self._load(user_id)
        merged = default_action_mappings()
        if stored is None:
            return UserMediaSettings(user_id=user_id, action_mappings=merged, updated_at=time.time())

        # Stored keys outside the known action set are ignored
        for action, mapping in stored.action_mappings.items():
            if action in merged:
                merged[action] = mapping
        return stored.model_copy(update={"user_id": stored.user_id or user_id, "action_mappings": merged})

    def _load(self, user_id: str):
        file = self._file(user_id)
        if not file.exists():
            return None
        try:
            with open(file, "r", encoding="utf-8") as f:
                data = json.load(f)
            data.setdefault("userId", user_id)
            return UserMediaSettings.model_validate(data)
        except (OSError, ValueError, ValidationError) as e:
            logger.error(f"Failed to load settings for {user_id}: {e}. Using defaults.", exc_info=True)
            return None

    def update(self, user_id: str, partial: Mapping[str, Any]) -> UserMediaSettings:
        unknown = [key for key in partial if key not in ACTION_IDS]
        if unknown:
            raise ValidationFailure(f"Unknown action id: {unknown[0]}")

        try:
            replacements = {
                action: ActionTriggerMapping.model_validate(value)
                for action, value in partial.items()
            }
        except ValidationError as e:
            raise ValidationFailure(f"Invalid action mapping: {e.errors()[0]['msg']}") from e

        # Read, merge and write as one step per user
        with self._lock(user_id):
            current = self.get(user_id)
            action_mappings = dict(current.action_mappings)
            action_mappings.update(replacements)
            updated = current.model_copy(update={"action_mappings": action_mappings, "updated_at": time.time()})
            self.save(updated)
        logger.info(f"Updated {len(replacements)} action mapping(s) for {user_id}")
        return updated

    def save(self, user_settings: UserMediaSettings):
        file = self._file(user_settings.user_id)
        tmp_path = None
        try:
            self.path.mkdir(parents=True, exist_ok=True)
            # Unique temp file per write, so concurrent saves never share one
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", dir=self.path, prefix=f".{file.stem}.", suffix=".tmp", delete=False
            ) as f:
                tmp_path = f.name
                fcntl.flock(f, fcntl.LOCK_EX)
                try:
                    json.dump(user_settings.model_dump(by_alias=True, exclude_none=True), f, indent=2, ensure_ascii=False)
                    f.flush()
                    os.fsync(f.fileno())
                finally:
                    fcntl.flock(f, fcntl.LOCK_UN)

            # Atomic rename
            os.replace(tmp_path, file)
        except OSError as e:
            logger.error(f"Failed to save settings to {file}: {e}")
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise StorageError(f"Could not save settings: {e}") from e
