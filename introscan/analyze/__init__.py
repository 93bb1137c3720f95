"""Season verification, eligibility and intro fingerprinting."""

from __future__ import annotations

from introscan.analyze.chromaprint import ChromaprintAnalyzer, TimeRange, find_fpcalc
from introscan.analyze.results import IntroStore
from introscan.analyze.season import SeasonAnalyzer
from introscan.analyze.verify import verify_episodes

__all__ = [
    "ChromaprintAnalyzer",
    "IntroStore",
    "SeasonAnalyzer",
    "TimeRange",
    "find_fpcalc",
    "verify_episodes",
]
