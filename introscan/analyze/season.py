from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from typing import Protocol

from introscan.config import PluginConfiguration
from introscan.errors import CacheMissError, FingerprintError
from introscan.model import (
    AnalysisMode,
    OutcomeStatus,
    QueuedEpisode,
    SeasonOutcome,
)

log = logging.getLogger(__name__)


class Fingerprinter(Protocol):
    """Detects intros for a season.

    Implementations report failures as :class:`FingerprintError`, or as
    :class:`CacheMissError` when they keep fingerprints in a cache that can
    lose entries between extraction and comparison.
    """

    def analyze_media_files(
        self,
        episodes: Sequence[QueuedEpisode],
        mode: AnalysisMode,
        cancel: threading.Event | None = None,
    ) -> object: ...


class SeasonAnalyzer:
    """Apply season eligibility rules and run the fingerprinter on a season."""

    def __init__(self, config: PluginConfiguration, fingerprinter: Fingerprinter) -> None:
        self.config = config
        self.fingerprinter = fingerprinter

    def analyze(
        self,
        episodes: Sequence[QueuedEpisode],
        cancel: threading.Event | None = None,
    ) -> SeasonOutcome:
        """Fingerprint all episodes of one verified season.

        Returns a tagged outcome; fingerprint and cache-miss failures are
        reported as ``FAILED`` instead of being raised.
        """
        # Nothing to compare against.
        if len(episodes) <= 1:
            return SeasonOutcome(OutcomeStatus.TRIVIAL, analyzed=len(episodes))

        first = episodes[0]
        if first.season_number == 0 and not self.config.analyze_season_zero:
            return SeasonOutcome(OutcomeStatus.EXCLUDED)

        log.info(
            "Analyzing %d episodes from %s season %d",
            len(episodes),
            first.series_name,
            first.season_number,
        )

        try:
            self.fingerprinter.analyze_media_files(episodes, AnalysisMode.INTRODUCTION, cancel)
        except (FingerprintError, CacheMissError) as e:
            return SeasonOutcome(OutcomeStatus.FAILED, error=e)

        return SeasonOutcome(OutcomeStatus.ANALYZED, analyzed=len(episodes))
