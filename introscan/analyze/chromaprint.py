"""Chromaprint-based introduction detection.

Fingerprints the first minutes of every episode in a season with ``fpcalc``
and compares consecutive episodes: the longest run of near-identical
fingerprint points shared by two episodes is taken as their introduction.

Requires ``fpcalc`` (Chromaprint) on PATH or specified explicitly.
"""

from __future__ import annotations

import json
import logging
import shutil
import subprocess
import threading
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from introscan.analyze.results import IntroStore
from introscan.config import PluginConfiguration
from introscan.errors import FingerprintError
from introscan.model import AnalysisMode, Intro, QueuedEpisode

log = logging.getLogger(__name__)

# Duration of one Chromaprint fingerprint point, in seconds.
POINT_DURATION = 0.1238

# Intros starting this close to the beginning are snapped to 0.
_SNAP_TO_START = 5.0

_MAX_POINT_REPEATS = 8

# Only the shifts with the most exact point matches are compared in full.
_MAX_CANDIDATE_SHIFTS = 16


@dataclass(slots=True)
class TimeRange:
    start: float
    end: float

    @property
    def duration(self) -> float:
        return self.end - self.start


def find_fpcalc() -> str | None:
    """Return path to fpcalc if found, else None."""
    found = shutil.which("fpcalc")
    if found:
        return found
    for candidate in (
        Path(r"C:\Program Files\Chromaprint\fpcalc.exe"),
        Path("/usr/lib/jellyfin-ffmpeg/fpcalc"),
    ):
        if candidate.is_file():
            return str(candidate)
    return None


def parse_fpcalc_output(text: str) -> list[int]:
    """Parse ``fpcalc -raw -json`` output into a list of fingerprint points."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise FingerprintError(f"unparseable fpcalc output: {e}") from e
    raw = data.get("fingerprint") if isinstance(data, dict) else None
    if isinstance(raw, str):
        points = [int(x) for x in raw.split(",") if x.strip()]
    elif isinstance(raw, list):
        points = [int(x) for x in raw]
    else:
        points = []
    if not points:
        raise FingerprintError("fpcalc returned an empty fingerprint")
    return points


def longest_contiguous_range(times: Sequence[float], max_gap: float) -> TimeRange | None:
    """Longest run in sorted *times* whose consecutive gaps are <= *max_gap*."""
    if not times:
        return None
    best = TimeRange(times[0], times[0])
    current = TimeRange(times[0], times[0])
    for t in times[1:]:
        if t - current.end <= max_gap:
            current.end = t
        else:
            current = TimeRange(t, t)
        if current.duration > best.duration:
            best = TimeRange(current.start, current.end)
    return best


class ChromaprintAnalyzer:
    """Fingerprint and compare the episodes of one season."""

    def __init__(
        self,
        config: PluginConfiguration,
        results: IntroStore,
        fpcalc_path: str | None = None,
    ) -> None:
        self.config = config
        self.results = results
        self.fpcalc_path = fpcalc_path

    # ── fingerprinting ──────────────────────────────────────────────

    def _build_fpcalc_cmd(self, fpcalc: str, path: str) -> list[str]:
        length = self.config.analysis_length_limit * 60
        return [fpcalc, "-raw", "-json", "-length", str(length), path]

    def fingerprint(self, episode: QueuedEpisode) -> list[int]:
        fpcalc = self.fpcalc_path or find_fpcalc()
        if fpcalc is None:
            raise FingerprintError("fpcalc not found. Install Chromaprint or pass --fpcalc-path.")

        cmd = self._build_fpcalc_cmd(fpcalc, episode.path)
        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except OSError as e:
            raise FingerprintError(f"{episode.name}: {e}") from e
        if result.returncode != 0:
            raise FingerprintError(f"{episode.name}: fpcalc failed: {result.stderr.strip()}")

        points = parse_fpcalc_output(result.stdout)
        log.debug("Fingerprinted %s: %d points", episode.name, len(points))
        return points

    # ── comparison ──────────────────────────────────────────────────

    def _candidate_shifts(self, lhs: list[int], rhs: list[int]) -> list[int]:
        """Offsets (rhs index - lhs index) with the most exactly matching points."""
        rhs_index: dict[int, list[int]] = {}
        for j, point in enumerate(rhs):
            rhs_index.setdefault(point, []).append(j)
        votes: Counter[int] = Counter()
        for i, point in enumerate(lhs):
            matches = rhs_index.get(point, ())
            # Skip points repeated throughout rhs (silence, static tones).
            if len(matches) > _MAX_POINT_REPEATS:
                continue
            for j in matches:
                votes[j - i] += 1
        return [shift for shift, _ in votes.most_common(_MAX_CANDIDATE_SHIFTS)]

    def _compare_shifted(
        self, lhs: list[int], rhs: list[int], shift: int
    ) -> tuple[TimeRange, TimeRange] | None:
        max_diff = self.config.max_fingerprint_point_differences
        lhs_times: list[float] = []
        rhs_times: list[float] = []
        start = max(0, -shift)
        stop = min(len(lhs), len(rhs) - shift)
        for i in range(start, stop):
            j = i + shift
            if (lhs[i] ^ rhs[j]).bit_count() <= max_diff:
                lhs_times.append(i * POINT_DURATION)
                rhs_times.append(j * POINT_DURATION)

        lhs_range = longest_contiguous_range(lhs_times, self.config.max_time_skip)
        if lhs_range is None:
            return None
        offset = shift * POINT_DURATION
        rhs_range = TimeRange(lhs_range.start + offset, lhs_range.end + offset)
        return lhs_range, rhs_range

    def compare_fingerprints(
        self, lhs: list[int], rhs: list[int]
    ) -> tuple[TimeRange, TimeRange] | None:
        """Return the shared intro of two fingerprints, or None."""
        best: tuple[TimeRange, TimeRange] | None = None
        for shift in self._candidate_shifts(lhs, rhs):
            found = self._compare_shifted(lhs, rhs, shift)
            if found is None:
                continue
            if best is None or found[0].duration > best[0].duration:
                best = found

        if best is None or best[0].duration < self.config.min_intro_duration:
            return None
        return self._clamp(best[0]), self._clamp(best[1])

    def _clamp(self, r: TimeRange) -> TimeRange:
        start = 0.0 if r.start < _SNAP_TO_START else r.start
        end = min(r.end, start + self.config.max_intro_duration)
        return TimeRange(start, end)

    # ── season ──────────────────────────────────────────────────────

    def analyze_media_files(
        self,
        episodes: Sequence[QueuedEpisode],
        mode: AnalysisMode,
        cancel: threading.Event | None = None,
    ) -> list[Intro]:
        """Detect intros for all *episodes* and store them in the result cache.

        *cancel* is not checked: a season runs to completion once started.
        """
        if mode is not AnalysisMode.INTRODUCTION:
            raise ValueError(f"Unsupported analysis mode: {mode}")

        fingerprints: dict[str, list[int]] = {}
        for episode in episodes:
            fingerprints[episode.episode_id] = self.fingerprint(episode)

        intros: dict[str, Intro] = {}
        for lhs, rhs in zip(episodes, episodes[1:]):
            match = self.compare_fingerprints(
                fingerprints[lhs.episode_id], fingerprints[rhs.episode_id]
            )
            if match is None:
                log.debug("No shared intro between %s and %s", lhs.name, rhs.name)
                continue
            for episode, r in ((lhs, match[0]), (rhs, match[1])):
                prev = intros.get(episode.episode_id)
                if prev is None or r.duration > prev.duration:
                    intros[episode.episode_id] = Intro(episode.episode_id, r.start, r.end)

        found = [intros.get(ep.episode_id, Intro(ep.episode_id)) for ep in episodes]
        log.debug(
            "Found %d intros in %d episodes of %s season %d",
            sum(1 for i in found if i.valid),
            len(found),
            episodes[0].series_name if episodes else "?",
            episodes[0].season_number if episodes else -1,
        )
        self.results.update(found)
        return found

