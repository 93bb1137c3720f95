"""Tests for season eligibility rules."""

from __future__ import annotations

from introscan.analyze.results import IntroStore
from introscan.analyze.season import SeasonAnalyzer
from introscan.config import PluginConfiguration
from introscan.errors import CacheMissError
from introscan.model import OutcomeStatus

from builders import FakeFingerprinter, build_episode


def _analyzer(**config) -> tuple[SeasonAnalyzer, FakeFingerprinter]:
    fingerprinter = FakeFingerprinter(IntroStore(), **config.pop("fake", {}))
    return SeasonAnalyzer(PluginConfiguration(**config), fingerprinter), fingerprinter


def test_empty_and_single_episode_seasons_are_trivial() -> None:
    analyzer, fp = _analyzer()

    empty = analyzer.analyze(())
    single = analyzer.analyze((build_episode("e1"),))

    assert (empty.status, empty.analyzed) == (OutcomeStatus.TRIVIAL, 0)
    assert (single.status, single.analyzed) == (OutcomeStatus.TRIVIAL, 1)
    assert fp.calls == []


def test_specials_excluded_regardless_of_size() -> None:
    analyzer, fp = _analyzer(analyze_season_zero=False)
    episodes = tuple(build_episode(f"s{i}", season=0) for i in range(5))

    outcome = analyzer.analyze(episodes)

    assert outcome.status is OutcomeStatus.EXCLUDED
    assert outcome.analyzed == 0
    assert fp.calls == []


def test_single_special_is_still_trivial() -> None:
    """The size rule is checked before the specials rule."""
    analyzer, _ = _analyzer(analyze_season_zero=False)

    outcome = analyzer.analyze((build_episode("s1", season=0),))

    assert outcome.analyzed == 1


def test_regular_season_is_fingerprinted() -> None:
    analyzer, fp = _analyzer()
    episodes = (build_episode("e1"), build_episode("e2"), build_episode("e3"))

    outcome = analyzer.analyze(episodes)

    assert outcome.status is OutcomeStatus.ANALYZED
    assert outcome.analyzed == 3
    assert fp.calls == [episodes]
    assert all(fp.results.contains(ep.episode_id) for ep in episodes)


def test_fingerprint_failure_is_tagged() -> None:
    analyzer, _ = _analyzer(fake={"fail_series": ["Series A"]})

    outcome = analyzer.analyze((build_episode("e1"), build_episode("e2")))

    assert outcome.status is OutcomeStatus.FAILED
    assert outcome.analyzed == 0
    assert outcome.error is not None


def test_cache_miss_is_tagged() -> None:
    analyzer, _ = _analyzer(fake={"fail_series": ["Series A"], "error": CacheMissError("x")})

    outcome = analyzer.analyze((build_episode("e1"), build_episode("e2")))

    assert outcome.status is OutcomeStatus.FAILED
    assert isinstance(outcome.error, CacheMissError)
