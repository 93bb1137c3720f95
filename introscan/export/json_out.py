"""JSON export for detected intros."""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from pathlib import Path

from introscan.model import Intro, QueuedEpisode


def intros_to_dict(
    intros: Sequence[Intro],
    episodes: Mapping[str, QueuedEpisode] | None = None,
) -> dict:
    """Convert intros to a JSON-serializable dict.

    *episodes* (episode id → queued episode) adds series/season/path details
    for episodes that are still in the library.
    """
    episodes = episodes or {}
    entries = []
    for intro in intros:
        entry: dict = {
            "episode_id": intro.episode_id,
            "valid": intro.valid,
            "intro_start": intro.intro_start,
            "intro_end": intro.intro_end,
        }
        ep = episodes.get(intro.episode_id)
        if ep is not None:
            entry["series"] = ep.series_name
            entry["season"] = ep.season_number
            entry["name"] = ep.name
            entry["path"] = ep.path
        entries.append(entry)

    entries.sort(key=lambda e: (e.get("series", ""), e.get("season", -1), e.get("name", "")))
    return {
        "schema_version": "introscan.intros.v1",
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "intros": entries,
    }


def export_json(
    intros: Sequence[Intro],
    episodes: Mapping[str, QueuedEpisode] | None = None,
    path: str | Path | None = None,
    pretty: bool = True,
) -> str:
    """Export intros to JSON. If path given, write to file. Always returns JSON string."""
    data = intros_to_dict(intros, episodes)
    indent = 2 if pretty else None
    text = json.dumps(data, indent=indent, default=str)
    if path is not None:
        p = Path(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(text, encoding="utf-8")
    return text
