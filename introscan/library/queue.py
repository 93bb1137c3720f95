"""The analysis queue: episodes grouped by series and season."""

from __future__ import annotations

import logging
from collections import defaultdict

from introscan.library.index import LibraryIndex
from introscan.model import QueuedEpisode, Season, SeasonKey

log = logging.getLogger(__name__)


class QueueManager:
    """Synchronize the analysis queue with the library.

    :attr:`queue` is rebuilt by :meth:`enqueue_all`. A run must not iterate it
    directly while another thread could call :meth:`enqueue_all`; take a
    :meth:`snapshot` instead.
    """

    def __init__(self, library: LibraryIndex) -> None:
        self.library = library
        self.queue: dict[SeasonKey, list[QueuedEpisode]] = {}
        self.total_queued = 0

    def enqueue_all(self) -> int:
        """Rebuild the queue from the library. Returns the number queued."""
        queue: dict[SeasonKey, list[QueuedEpisode]] = defaultdict(list)
        for episode in self.library.refresh():
            queue[episode.season_key].append(episode)

        self.queue = dict(queue)
        self.total_queued = sum(len(eps) for eps in self.queue.values())
        log.info(
            "Queued %d episodes in %d seasons from %d libraries",
            self.total_queued,
            len(self.queue),
            len(self.library.roots),
        )
        return self.total_queued

    def snapshot(self) -> tuple[Season, ...]:
        """Immutable copy of the current queue, one tuple per season."""
        return tuple(tuple(eps) for eps in self.queue.values() if eps)
