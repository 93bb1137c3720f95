from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import NamedTuple


class AnalysisMode(str, Enum):
    INTRODUCTION = "introduction"


class OutputMode(str, Enum):
    """When EDL marker files are written for a season."""

    NONE = "none"
    ON_CHANGE = "on_change"
    ALWAYS = "always"


class EdlAction(str, Enum):
    """MPlayer EDL action written after each marker."""

    CUT = "cut"
    MUTE = "mute"
    SCENE_MARKER = "scene_marker"
    COMMERCIAL_BREAK = "commercial_break"

    @property
    def code(self) -> int:
        return _EDL_CODES[self]


_EDL_CODES = {
    EdlAction.CUT: 0,
    EdlAction.MUTE: 1,
    EdlAction.SCENE_MARKER: 2,
    EdlAction.COMMERCIAL_BREAK: 3,
}


class SeasonKey(NamedTuple):
    series_id: str
    season_number: int


@dataclass(frozen=True, slots=True)
class QueuedEpisode:
    """One episode waiting for analysis."""

    episode_id: str
    series_id: str
    series_name: str
    season_number: int
    name: str
    path: str

    @property
    def season_key(self) -> SeasonKey:
        return SeasonKey(self.series_id, self.season_number)


Season = tuple[QueuedEpisode, ...]


@dataclass(slots=True)
class Intro:
    episode_id: str
    intro_start: float = 0.0
    intro_end: float = 0.0

    @property
    def valid(self) -> bool:
        return self.intro_end > 0

    @property
    def duration(self) -> float:
        return self.intro_end - self.intro_start

    def edl_line(self, action: EdlAction) -> str:
        return f"{self.intro_start:.3f} {self.intro_end:.3f} {action.code}"


class OutcomeStatus(str, Enum):
    """What happened to one season during a run."""

    EMPTY = "empty"  # no episode resolved to an existing file
    ALREADY_ANALYZED = "already_analyzed"
    CANCELLED = "cancelled"
    TRIVIAL = "trivial"  # 0 or 1 episodes, nothing to compare
    EXCLUDED = "excluded"  # season 0 without opt-in
    ANALYZED = "analyzed"
    FAILED = "failed"


@dataclass(slots=True)
class VerifiedSeason:
    episodes: Season
    any_unanalyzed: bool


@dataclass(slots=True)
class SeasonOutcome:
    status: OutcomeStatus
    analyzed: int = 0
    error: Exception | None = None


@dataclass(slots=True)
class SeasonReport:
    series_name: str
    season_number: int
    status: OutcomeStatus
    episodes: int = 0
    analyzed: int = 0
    wrote_markers: bool = False
    error: str = ""


@dataclass(slots=True)
class RunSummary:
    total_queued: int
    total_processed: int = 0
    regenerated: bool = False
    seasons: list[SeasonReport] = field(default_factory=list)

    @property
    def progress(self) -> int:
        if not self.total_queued:
            return 0
        return self.total_processed * 100 // self.total_queued

    def count(self, status: OutcomeStatus) -> int:
        return sum(1 for s in self.seasons if s.status is status)
