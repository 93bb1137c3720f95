"""Filesystem media library: enumerate episodes and resolve their paths.

Expected layout::

    <library root>/<Series Name>/<Season 01 | Specials>/<episode>.mkv
"""

from __future__ import annotations

import logging
import re
import uuid
from collections.abc import Iterable, Iterator
from pathlib import Path

from introscan.errors import ItemNotFoundError
from introscan.model import QueuedEpisode

log = logging.getLogger(__name__)

VIDEO_EXTENSIONS = frozenset(
    {".mkv", ".mp4", ".m4v", ".avi", ".mov", ".ts", ".m2ts", ".wmv", ".webm", ".mpg"}
)

_SEASON_RE = re.compile(r"^(?:season|series|s)[\s._-]*(\d{1,4})$", re.IGNORECASE)
_SPECIALS_NAMES = {"specials", "special", "extras"}


def parse_season_number(dirname: str) -> int | None:
    """Return the season number encoded in a directory name, or None."""
    name = dirname.strip()
    if name.lower() in _SPECIALS_NAMES:
        return 0
    m = _SEASON_RE.match(name)
    if m:
        return int(m.group(1))
    return None


def item_id(path: Path) -> str:
    """Stable identifier derived from the resolved path."""
    return uuid.uuid5(uuid.NAMESPACE_URL, path.resolve().as_uri()).hex


def _sorted_dirs(p: Path) -> list[Path]:
    return sorted((c for c in p.iterdir() if c.is_dir()), key=lambda c: c.name.lower())


def iter_library(root: Path) -> Iterator[QueuedEpisode]:
    """Yield every episode under one library root, in stable order."""
    for series_dir in _sorted_dirs(root):
        series_id = item_id(series_dir)
        for season_dir in _sorted_dirs(series_dir):
            season = parse_season_number(season_dir.name)
            if season is None:
                log.debug("Skipping %s: not a season directory", season_dir)
                continue
            for f in sorted(season_dir.iterdir(), key=lambda c: c.name.lower()):
                if not f.is_file() or f.suffix.lower() not in VIDEO_EXTENSIONS:
                    continue
                yield QueuedEpisode(
                    episode_id=item_id(f),
                    series_id=series_id,
                    series_name=series_dir.name,
                    season_number=season,
                    name=f.stem,
                    path=str(f),
                )


class LibraryIndex:
    """Known library items by id, refreshed from the configured roots."""

    def __init__(self, roots: Iterable[str | Path] = ()) -> None:
        self.roots = [Path(r) for r in roots]
        self._items: dict[str, QueuedEpisode] = {}

    def refresh(self) -> list[QueuedEpisode]:
        """Rescan all roots and return the episodes found."""
        found: list[QueuedEpisode] = []
        for root in self.roots:
            if not root.is_dir():
                log.warning("Library root %s does not exist, skipping", root)
                continue
            try:
                found.extend(iter_library(root))
            except OSError:
                log.warning("Failed to scan library root %s", root, exc_info=True)
        self._items = {ep.episode_id: ep for ep in found}
        log.debug("Library index holds %d episodes", len(self._items))
        return found

    def resolve(self, episode_id: str) -> str:
        """Return the storage path for *episode_id*."""
        try:
            return self._items[episode_id].path
        except KeyError:
            raise ItemNotFoundError(f"Unable to find item {episode_id}") from None

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, episode_id: object) -> bool:
        return episode_id in self._items
