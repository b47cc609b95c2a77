from __future__ import annotations
"""Application settings persistence helpers."""

from dataclasses import asdict, dataclass
import json
from pathlib import Path

from .listing import MAX_KEYS


@dataclass
class AppSettings:
    """Simple container for persistent app settings."""

    download_dir: str = ""
    browse_page_size: int = MAX_KEYS
    remember_last_bucket: bool = False
    last_bucket: str = ""
    last_connection: str = ""


def _clamp_page_size(value: object) -> int:
    try:
        size = int(value)
    except (TypeError, ValueError):
        return AppSettings.browse_page_size
    if size <= 0:
        return AppSettings.browse_page_size
    return min(size, MAX_KEYS)


def _as_text(value: object) -> str:
    return value if isinstance(value, str) else ""


class SettingsStorage:
    """JSON-backed persistence for :class:`AppSettings`."""

    def __init__(self, storage_path: str | Path | None = None):
        if storage_path is None:
            storage_path = Path.home() / ".bucketsync_settings.json"
        self._path = Path(storage_path)

    def load(self) -> AppSettings:
        if not self._path.exists():
            return AppSettings()
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            return AppSettings()
        if not isinstance(data, dict):
            return AppSettings()
        remember = data.get("remember_last_bucket", AppSettings.remember_last_bucket)
        return AppSettings(
            download_dir=_as_text(data.get("download_dir")),
            browse_page_size=_clamp_page_size(data.get("browse_page_size", AppSettings.browse_page_size)),
            remember_last_bucket=remember if isinstance(remember, bool) else AppSettings.remember_last_bucket,
            last_bucket=_as_text(data.get("last_bucket")),
            last_connection=_as_text(data.get("last_connection")),
        )

    def save(self, settings: AppSettings) -> None:
        payload = asdict(settings)
        payload["browse_page_size"] = max(1, min(int(settings.browse_page_size), MAX_KEYS))
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        except OSError:
            # Persist best-effort; ignore filesystem issues.
            return
