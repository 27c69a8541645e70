"""
Key-value state for usage statistics and user settings.

The grading and palette code never touch this module; callers pass plain
data into those operations. Stores are injected so the CLI can persist to a
JSON file while tests use an in-memory dict.
"""

import copy
import json
import logging
import os
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Literal, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from constants import (
    AI_INSIGHTS_LIMIT,
    DEFAULT_EXPORT_FORMAT,
    DEFAULT_IMAGE_QUALITY,
    DEFAULT_STATE_DIR,
    DEFAULT_STATE_FILE,
    MAX_UPLOAD_HISTORY,
    MONTHLY_WINDOW,
    RECENT_UPLOADS,
    STATE_ENV_VAR,
    STORAGE_LIMIT_GB,
    UPLOADS_LIMIT,
)

logger = logging.getLogger(__name__)


def default_state_path() -> Path:
    """State file from $FRAMESWITHIN_STATE, else ~/.frameswithin/state.json."""
    override = os.environ.get(STATE_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path(DEFAULT_STATE_DIR).expanduser() / DEFAULT_STATE_FILE


class StateStore(ABC):
    """Minimal key-value store with JSON-compatible values."""

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        """Return a copy of the value stored under `key`."""

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store a copy of `value` under `key`."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove `key` if present."""

    @abstractmethod
    def keys(self) -> Iterable[str]:
        """All stored keys."""

    @abstractmethod
    def reset(self) -> None:
        """Remove everything."""

    def increment(self, key: str, amount: int = 1) -> int:
        """Add `amount` to an integer counter (missing counts as 0)."""
        stored = self.get(key, 0)
        try:
            value = int(stored) + amount
        except (TypeError, ValueError):
            logger.warning(f"Counter {key!r} holds {stored!r}, restarting from 0")
            value = amount
        self.set(key, value)
        return value


class MemoryStateStore(StateStore):
    """Process-local store backed by a dict."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = copy.deepcopy(initial) if initial else {}

    def get(self, key: str, default: Any = None) -> Any:
        return copy.deepcopy(self._data.get(key, default))

    def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> Iterable[str]:
        return list(self._data.keys())

    def reset(self) -> None:
        self._data.clear()


class JsonStateStore(MemoryStateStore):
    """
    Store persisted to a JSON file, rewritten after every change.

    Writes go to a temporary sibling file which then replaces the original,
    so a crash mid-write never leaves a truncated state file.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path).expanduser()
        super().__init__(self._load())

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning(f"State file {self.path} is corrupt ({e}), starting fresh")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"State file {self.path} does not hold an object, starting fresh")
            return {}
        return data

    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + '.tmp')
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(self._data, f, indent=2)
        os.replace(tmp_path, self.path)

    def set(self, key: str, value: Any) -> None:
        super().set(key, value)
        self._flush()

    def delete(self, key: str) -> None:
        super().delete(key)
        self._flush()

    def reset(self) -> None:
        super().reset()
        self._flush()


# =============================================================================
# Usage statistics
# =============================================================================

class UploadRecord(BaseModel):
    """One uploaded asset in the usage history."""
    id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])
    name: str
    kind: Literal["image", "video"]
    size_mb: float = Field(ge=0.0)
    uploaded_at: datetime
    status: Literal["processing", "processed", "failed"] = "processing"
    palette: Optional[List[str]] = None
    has_ai_insight: bool = False
    exported: bool = False


def _month_key(moment: datetime) -> str:
    return f"{moment.year:04d}-{moment.month:02d}"


def _previous_months(moment: datetime, count: int) -> List[str]:
    """`count` month keys ending with the month of `moment`, oldest first."""
    year, month = moment.year, moment.month
    keys = []
    for _ in range(count):
        keys.append(f"{year:04d}-{month:02d}")
        month -= 1
        if month == 0:
            month = 12
            year -= 1
    return list(reversed(keys))


class UsageStats:
    """
    Usage counters with monthly buckets and a capped upload history.

    Usage:
        stats = UsageStats(JsonStateStore(default_state_path()))
        stats.increment_palettes()
        print(stats.totals())
    """

    COUNTERS = ("uploads", "palettes", "insights", "exports")

    def __init__(self, store: StateStore, clock: Optional[Callable[[], datetime]] = None):
        self.store = store
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    limits = {
        "insights": AI_INSIGHTS_LIMIT,
        "storage_gb": STORAGE_LIMIT_GB,
        "uploads": UPLOADS_LIMIT,
    }

    def _bump(self, counter: str) -> int:
        self.store.increment(f"monthly.{_month_key(self._clock())}.{counter}")
        return self.store.increment(f"totals.{counter}")

    def increment_uploads(self) -> int:
        return self._bump("uploads")

    def increment_palettes(self) -> int:
        return self._bump("palettes")

    def increment_insights(self) -> int:
        return self._bump("insights")

    def increment_exports(self) -> int:
        return self._bump("exports")

    def totals(self) -> Dict[str, int]:
        return {name: int(self.store.get(f"totals.{name}", 0)) for name in self.COUNTERS}

    def monthly(self, months: int = MONTHLY_WINDOW) -> List[Dict[str, Any]]:
        """Per-month counters for the last `months` months, oldest first."""
        rows = []
        for key in _previous_months(self._clock(), months):
            row: Dict[str, Any] = {"month": key}
            for name in self.COUNTERS:
                row[name] = int(self.store.get(f"monthly.{key}.{name}", 0))
            rows.append(row)
        return rows

    def reset_monthly(self) -> None:
        """Clear monthly buckets; totals are kept."""
        for key in [k for k in self.store.keys() if k.startswith("monthly.")]:
            self.store.delete(key)

    # Upload history

    def _uploads(self) -> List[UploadRecord]:
        return [UploadRecord.model_validate(item) for item in self.store.get("uploads", [])]

    def _save_uploads(self, uploads: List[UploadRecord]) -> None:
        self.store.set("uploads", [u.model_dump(mode="json") for u in uploads[:MAX_UPLOAD_HISTORY]])

    def add_upload(self, name: str, kind: str, size_mb: float, palette: Optional[List[str]] = None) -> UploadRecord:
        """Record an upload; only the newest 50 are kept."""
        record = UploadRecord(
            name=name,
            kind=kind,
            size_mb=size_mb,
            uploaded_at=self._clock(),
            palette=palette,
        )
        self._save_uploads([record] + self._uploads())
        return record

    def uploads(self) -> List[UploadRecord]:
        return self._uploads()

    def recent_uploads(self) -> List[UploadRecord]:
        return self._uploads()[:RECENT_UPLOADS]

    def _update_upload(self, upload_id: str, **changes: Any) -> bool:
        uploads = self._uploads()
        found = False
        for i, upload in enumerate(uploads):
            if upload.id == upload_id:
                uploads[i] = upload.model_copy(update=changes)
                found = True
        if found:
            self._save_uploads(uploads)
        else:
            logger.debug(f"No upload with id {upload_id}")
        return found

    def update_upload_status(self, upload_id: str, status: str) -> bool:
        if status not in ("processing", "processed", "failed"):
            raise ValueError(f"Invalid upload status: {status}")
        return self._update_upload(upload_id, status=status)

    def mark_upload_exported(self, upload_id: str) -> bool:
        return self._update_upload(upload_id, exported=True)

    def mark_upload_insight(self, upload_id: str) -> bool:
        return self._update_upload(upload_id, has_ai_insight=True)

    @property
    def storage_used(self) -> float:
        """Storage used in GB."""
        return float(self.store.get("storage_used_gb", 0.0))

    def add_storage_used(self, size_mb: float) -> float:
        """Add an upload's size; the total is capped at the plan's storage limit."""
        used = min(self.storage_used + size_mb / 1024.0, STORAGE_LIMIT_GB)
        self.store.set("storage_used_gb", used)
        return used


# =============================================================================
# User settings
# =============================================================================

SETTINGS_KEY = "settings"


class UserSettings(BaseModel):
    """Preferences persisted between runs."""
    openai_api_key: Optional[str] = None
    api_key_skipped: bool = False
    auto_save: bool = True
    preferred_export_format: Literal["png", "jpg", "webp"] = DEFAULT_EXPORT_FORMAT
    image_quality: int = Field(default=DEFAULT_IMAGE_QUALITY, ge=1, le=100)
    enable_advanced_controls: bool = True

    @property
    def has_api_key(self) -> bool:
        return bool(self.openai_api_key)

    def with_api_key(self, api_key: str) -> "UserSettings":
        return self.model_copy(update={"openai_api_key": api_key, "api_key_skipped": False})

    def without_api_key(self) -> "UserSettings":
        return self.model_copy(update={"openai_api_key": None})


def load_settings(store: StateStore) -> UserSettings:
    """Read settings, falling back to defaults when absent or invalid."""
    data = store.get(SETTINGS_KEY)
    if data is None:
        return UserSettings()
    try:
        return UserSettings.model_validate(data)
    except ValidationError as e:
        logger.warning(f"Stored settings are invalid, using defaults: {e}")
        return UserSettings()


def save_settings(store: StateStore, settings: UserSettings) -> None:
    store.set(SETTINGS_KEY, settings.model_dump(mode="json"))


def reset_settings(store: StateStore) -> UserSettings:
    store.delete(SETTINGS_KEY)
    return UserSettings()
