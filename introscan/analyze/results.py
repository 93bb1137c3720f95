"""Analysis result cache: detected intros by episode id, persisted as JSON."""

from __future__ import annotations

import json
import logging
import os
import threading
from collections.abc import Iterable
from pathlib import Path

from introscan.model import Intro

log = logging.getLogger(__name__)


class IntroStore:
    """Thread-safe mapping of episode id to :class:`Intro`.

    An entry exists once an episode has been analyzed, even if no intro was
    found (``Intro.valid`` is then false).
    """

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path) if path is not None else None
        self._lock = threading.Lock()
        self._intros: dict[str, Intro] = {}
        if self.path is not None and self.path.is_file():
            self._intros = self._read(self.path)

    @staticmethod
    def _read(path: Path) -> dict[str, Intro]:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            log.warning("Ignoring unreadable intro cache %s", path, exc_info=True)
            return {}
        if not isinstance(data, dict):
            log.warning("Ignoring intro cache %s: not a JSON object", path)
            return {}
        intros: dict[str, Intro] = {}
        for entry in data.get("intros", []):
            try:
                intro = Intro(
                    episode_id=str(entry["episode_id"]),
                    intro_start=float(entry["intro_start"]),
                    intro_end=float(entry["intro_end"]),
                )
            except (KeyError, TypeError, ValueError):
                log.debug("Skipping malformed intro entry %r", entry)
                continue
            intros[intro.episode_id] = intro
        log.debug("Loaded %d intros from %s", len(intros), path)
        return intros

    def contains(self, episode_id: str) -> bool:
        with self._lock:
            return episode_id in self._intros

    __contains__ = contains

    def get(self, episode_id: str) -> Intro | None:
        with self._lock:
            return self._intros.get(episode_id)

    def all(self) -> list[Intro]:
        with self._lock:
            return list(self._intros.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._intros)

    def update(self, intros: Iterable[Intro]) -> None:
        """Merge *intros* into the cache and persist it."""
        with self._lock:
            for intro in intros:
                self._intros[intro.episode_id] = intro
            self._save_locked()

    def _save_locked(self) -> None:
        if self.path is None:
            return
        payload = {
            "intros": [
                {
                    "episode_id": i.episode_id,
                    "intro_start": i.intro_start,
                    "intro_end": i.intro_end,
                }
                for i in self._intros.values()
            ]
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        os.replace(tmp, self.path)
