from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from pathlib import Path

from .utils import atomic_write


@dataclass(slots=True)
class Preferences:
    default_folder: str | None = None
    output_folder: str | None = None


class PreferenceStore:
    """JSON file holding the remembered source and output folders."""

    def __init__(self, path: Path) -> None:
        self._path = path.expanduser()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Preferences:
        if not self._path.exists():
            return Preferences()
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            return Preferences()
        if not isinstance(data, dict):
            return Preferences()
        return Preferences(
            default_folder=str(data["default_folder"]) if data.get("default_folder") else None,
            output_folder=str(data["output_folder"]) if data.get("output_folder") else None,
        )

    def save(self, preferences: Preferences) -> None:
        atomic_write(self._path, json.dumps(asdict(preferences), indent=2))

    def update(self, **changes: str | None) -> Preferences:
        preferences = self.load()
        for key, value in changes.items():
            if not hasattr(preferences, key):
                raise AttributeError(f"Unknown preference: {key}")
            setattr(preferences, key, value)
        self.save(preferences)
        return preferences


__all__ = ["PreferenceStore", "Preferences"]
