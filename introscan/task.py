"""Detect introductions in every queued season.

This is the batch job behind ``introscan run`` and the daily trigger. Seasons
are processed on a bounded thread pool; each season is verified, skipped when
it has nothing new, analyzed, and then has its EDL files refreshed.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from introscan.analyze.chromaprint import ChromaprintAnalyzer
from introscan.analyze.results import IntroStore
from introscan.analyze.season import Fingerprinter, SeasonAnalyzer
from introscan.analyze.verify import PathResolver, verify_episodes
from introscan.config import ConfigStore, PluginConfiguration
from introscan.errors import ConfigurationError, EmptyQueueError
from introscan.export.edl import EdlManager
from introscan.library.index import LibraryIndex
from introscan.library.queue import QueueManager
from introscan.model import (
    OutcomeStatus,
    OutputMode,
    RunSummary,
    Season,
    SeasonReport,
)

log = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]


@dataclass(slots=True)
class PluginContext:
    """Long-lived state shared by every run: configuration, queue and results."""

    config_store: ConfigStore
    queue: QueueManager | None
    results: IntroStore
    fingerprinter: Fingerprinter | None = None
    resolver: PathResolver | None = None

    @property
    def config(self) -> PluginConfiguration:
        return self.config_store.configuration

    @classmethod
    def from_config(cls, store: ConfigStore, fpcalc_path: str | None = None) -> PluginContext:
        cfg = store.configuration
        results = IntroStore(store.intros_path)
        return cls(
            config_store=store,
            queue=QueueManager(LibraryIndex(cfg.libraries)),
            results=results,
            fingerprinter=ChromaprintAnalyzer(cfg, results, fpcalc_path=fpcalc_path),
        )


class AtomicCounter:
    """Integer counter safe to update from several worker threads."""

    __slots__ = ("_value", "_lock")

    def __init__(self, value: int = 0) -> None:
        self._value = value
        self._lock = threading.Lock()

    def add(self, n: int) -> int:
        """Add *n* and return the new value."""
        with self._lock:
            self._value += n
            return self._value

    @property
    def value(self) -> int:
        with self._lock:
            return self._value


@dataclass(slots=True)
class _RunState:
    total_queued: int
    regenerate: bool
    processed: AtomicCounter
    cancel: threading.Event
    progress: ProgressCallback | None


class DetectIntroductionsTask:
    """Analyze all television episodes for introduction sequences.

    Only one instance of this task should run at a time; see
    :class:`introscan.schedule.TaskHost`.
    """

    name = "Detect Introductions"
    category = "Intro Skipper"
    description = "Analyzes the audio of all television episodes to find introduction sequences."
    key = "CPBIntroSkipperDetectIntroductions"

    def __init__(self, context: PluginContext) -> None:
        self.context = context

    def execute(
        self,
        progress: ProgressCallback | None = None,
        cancel: threading.Event | None = None,
    ) -> RunSummary:
        """Analyze every queued season and return a summary of the run.

        Raises :class:`ConfigurationError` when there is no queue and
        :class:`EmptyQueueError` when the library yields no episodes. Failures
        of individual episodes or seasons are logged and do not stop the run.
        """
        ctx = self.context
        if ctx.queue is None:
            raise ConfigurationError("Library queue must not be None")

        # Make sure the analysis queue matches what's currently in the library.
        ctx.queue.enqueue_all()
        seasons = ctx.queue.snapshot()
        total_queued = sum(len(s) for s in seasons)
        if total_queued == 0:
            raise EmptyQueueError(
                "No episodes to analyze. If you are limiting the list of libraries to "
                "analyze, check that all library paths exist and contain "
                "<Series>/<Season NN>/ directories."
            )

        cfg = ctx.config
        edl = EdlManager(cfg, ctx.results)
        edl.log_configuration()

        fingerprinter = ctx.fingerprinter or ChromaprintAnalyzer(cfg, ctx.results)
        analyzer = SeasonAnalyzer(cfg, fingerprinter)
        resolver = ctx.resolver or ctx.queue.library

        run = _RunState(
            total_queued=total_queued,
            regenerate=cfg.regenerate_edl_files,
            processed=AtomicCounter(),
            cancel=cancel or threading.Event(),
            progress=progress,
        )
        summary = RunSummary(total_queued=total_queued, regenerated=run.regenerate)

        try:
            with ThreadPoolExecutor(
                max_workers=cfg.max_parallelism, thread_name_prefix="introscan"
            ) as pool:
                futures = [
                    pool.submit(self._process_season, season, run, analyzer, edl, resolver)
                    for season in seasons
                ]

            errors: list[BaseException] = []
            for future in futures:
                exc = future.exception()
                if exc is None:
                    summary.seasons.append(future.result())
                else:
                    log.error("Season worker crashed", exc_info=exc)
                    errors.append(exc)
            if errors:
                raise errors[0]
        finally:
            summary.total_processed = run.processed.value
            # Turn the regenerate EDL flag off after the scan completes.
            if run.regenerate:
                log.info("Turning EDL file regeneration flag off")
                cfg.regenerate_edl_files = False
                ctx.config_store.save()

        log.info(
            "Processed %d of %d queued episodes in %d seasons",
            summary.total_processed,
            total_queued,
            len(seasons),
        )
        return summary

    def _process_season(
        self,
        season: Season,
        run: _RunState,
        analyzer: SeasonAnalyzer,
        edl: EdlManager,
        resolver: PathResolver,
    ) -> SeasonReport:
        first = season[0]
        report = SeasonReport(
            series_name=first.series_name,
            season_number=first.season_number,
            status=OutcomeStatus.EMPTY,
        )

        verified = verify_episodes(season, resolver, self.context.results)
        episodes = verified.episodes
        report.episodes = len(episodes)
        if not episodes:
            return report

        if not verified.any_unanalyzed:
            log.debug(
                "All episodes in %s season %d have already been analyzed",
                first.series_name,
                first.season_number,
            )
            report.status = OutcomeStatus.ALREADY_ANALYZED
            return report

        if run.cancel.is_set():
            report.status = OutcomeStatus.CANCELLED
            return report

        outcome = analyzer.analyze(episodes, run.cancel)
        report.status = outcome.status
        report.analyzed = outcome.analyzed

        if outcome.status is OutcomeStatus.FAILED:
            log.warning(
                "Unable to analyze %s season %d: %s",
                first.series_name,
                first.season_number,
                outcome.error,
            )
            report.error = str(outcome.error)

        # Count the episodes actually analyzed, not the size of the season.
        processed = run.processed.add(outcome.analyzed)

        write_edl = outcome.status is not OutcomeStatus.FAILED and (
            outcome.analyzed > 0 or run.regenerate
        )
        if write_edl and edl.config.output_mode is not OutputMode.NONE:
            edl.update_edl_files(episodes)
            report.wrote_markers = True

        if run.progress is not None:
            run.progress(processed * 100 // run.total_queued)
        return report
