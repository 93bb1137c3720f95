from __future__ import annotations

import logging
import os
from typing import Protocol

from introscan.model import Season, VerifiedSeason

log = logging.getLogger(__name__)


class PathResolver(Protocol):
    def resolve(self, episode_id: str) -> str: ...


class ResultCache(Protocol):
    def contains(self, episode_id: str) -> bool: ...


def verify_episodes(season: Season, resolver: PathResolver, results: ResultCache) -> VerifiedSeason:
    """Keep the episodes that still exist in the library and on disk.

    Also reports whether any episode of the season (including ones that could
    not be resolved) is missing from the result cache. Never raises for a
    single bad episode.
    """
    unanalyzed = False
    verified = []

    for candidate in season:
        if not results.contains(candidate.episode_id):
            unanalyzed = True

        try:
            path = resolver.resolve(candidate.episode_id)
            if os.path.isfile(path):
                verified.append(candidate)
        except Exception as e:
            log.debug(
                "Skipping analysis of %s (%s): %s",
                candidate.name,
                candidate.episode_id,
                e,
                exc_info=True,
            )

    return VerifiedSeason(episodes=tuple(verified), any_unanalyzed=unanalyzed)
