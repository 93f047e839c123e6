"""JSON-based repository for Eraforge save slots."""

from __future__ import annotations

import re
from pathlib import Path

SLOT_PATTERN = re.compile(r"[A-Za-z0-9_-]{1,64}")


class JsonSaveRepository:
    """Persist save documents as JSON files on disk, one per named slot."""

    def __init__(self, base_path: Path) -> None:
        self.base_path = base_path
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _path_for(self, slot: str) -> Path:
        if not SLOT_PATTERN.fullmatch(slot):
            raise ValueError(f"invalid save slot name: {slot!r}")
        return self.base_path / f"save_{slot}.json"

    def save(self, slot: str, document: str) -> Path:
        """Write a save document to ``slot`` and return the file path."""

        path = self._path_for(slot)
        tmp_path = path.with_name(path.name + ".tmp")
        tmp_path.write_text(document, encoding="utf-8")
        tmp_path.replace(path)
        return path

    def load(self, slot: str) -> str:
        """Read a previously saved document.

        Raises:
            FileNotFoundError: If nothing has been saved to ``slot``
        """

        return self._path_for(slot).read_text(encoding="utf-8")

    def exists(self, slot: str) -> bool:
        return self._path_for(slot).exists()

    def list_slots(self) -> list[str]:
        """Return all slot names currently persisted in the repository."""

        slots: list[str] = []
        prefix = "save_"
        suffix = ".json"
        for path in self.base_path.glob("save_*.json"):
            name = path.name
            raw = name[len(prefix) : -len(suffix)]
            if SLOT_PATTERN.fullmatch(raw):
                slots.append(raw)
        return sorted(slots)

    def delete(self, slot: str) -> None:
        """Remove a save slot if it exists."""

        path = self._path_for(slot)
        if path.exists():
            path.unlink()
