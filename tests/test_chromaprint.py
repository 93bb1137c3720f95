"""Tests for Chromaprint fingerprint parsing and intro comparison."""

from __future__ import annotations

import json
import random
from types import SimpleNamespace

import pytest

from introscan.analyze.chromaprint import (
    POINT_DURATION,
    ChromaprintAnalyzer,
    longest_contiguous_range,
    parse_fpcalc_output,
)
from introscan.analyze.results import IntroStore
from introscan.config import PluginConfiguration
from introscan.errors import FingerprintError
from introscan.model import AnalysisMode

from builders import build_episode


def _points(rng: random.Random, n: int, high_byte: int) -> list[int]:
    """Random 32-bit points sharing one high byte.

    Points with different high bytes (0x00, 0x5A, 0xFF) always differ in at
    least four bits there, so only deliberately shared points can match.
    """
    return [(high_byte << 24) | rng.getrandbits(24) for _ in range(n)]


def _pair_with_shared_intro(seed: int = 7) -> tuple[list[int], list[int]]:
    """lhs: 100 filler + 200 intro + 200 filler; rhs: 300 filler + intro + 200 filler."""
    rng = random.Random(seed)
    intro = _points(rng, 200, 0x5A)
    # Slightly noisy copy: flip one bit of every third point.
    noisy = [p ^ 1 if i % 3 == 0 else p for i, p in enumerate(intro)]
    lhs = _points(rng, 100, 0x00) + intro + _points(rng, 200, 0x00)
    rhs = _points(rng, 300, 0xFF) + noisy + _points(rng, 200, 0xFF)
    return lhs, rhs


def _analyzer(**config) -> ChromaprintAnalyzer:
    return ChromaprintAnalyzer(PluginConfiguration(**config), IntroStore(), fpcalc_path="fpcalc")


def test_parse_fpcalc_list_and_string_output() -> None:
    assert parse_fpcalc_output(json.dumps({"fingerprint": [1, 2, 3]})) == [1, 2, 3]
    assert parse_fpcalc_output(json.dumps({"fingerprint": "4,5, 6"})) == [4, 5, 6]


@pytest.mark.parametrize("text", ["not json", "{}", '{"fingerprint": []}', "[1, 2]"])
def test_parse_fpcalc_rejects_empty_or_garbage(text: str) -> None:
    with pytest.raises(FingerprintError):
        parse_fpcalc_output(text)


def test_longest_contiguous_range_tolerates_small_gaps() -> None:
    times = [0.0, 1.0, 2.0, 10.0, 11.0, 12.0, 14.0, 16.0]

    r = longest_contiguous_range(times, max_gap=2.0)

    assert (r.start, r.end) == (10.0, 16.0)
    assert longest_contiguous_range([], max_gap=2.0) is None


def test_compare_finds_shared_intro_at_different_offsets() -> None:
    lhs, rhs = _pair_with_shared_intro()

    match = _analyzer().compare_fingerprints(lhs, rhs)

    assert match is not None
    lhs_range, rhs_range = match
    assert lhs_range.start == pytest.approx(100 * POINT_DURATION)
    assert lhs_range.end == pytest.approx(299 * POINT_DURATION)
    assert rhs_range.start == pytest.approx(300 * POINT_DURATION)
    assert rhs_range.end == pytest.approx(499 * POINT_DURATION)


def test_compare_rejects_intros_shorter_than_minimum() -> None:
    lhs, rhs = _pair_with_shared_intro()

    # The shared run is ~24.6 s long.
    assert _analyzer(min_intro_duration=30, max_intro_duration=120).compare_fingerprints(
        lhs, rhs
    ) is None


def test_compare_truncates_to_maximum_duration() -> None:
    lhs, rhs = _pair_with_shared_intro()

    match = _analyzer(min_intro_duration=10, max_intro_duration=20).compare_fingerprints(lhs, rhs)

    assert match is not None
    assert match[0].duration == pytest.approx(20.0)


def test_compare_unrelated_fingerprints() -> None:
    rng = random.Random(3)
    lhs, rhs = _points(rng, 400, 0x00), _points(rng, 400, 0xFF)
    assert _analyzer().compare_fingerprints(lhs, rhs) is None


def test_compare_only_checks_best_supported_shifts(monkeypatch) -> None:
    lhs, rhs = _pair_with_shared_intro()
    # Forty stray exact matches between the fillers, each at its own shift.
    for k in range(40):
        lhs[310 + k * 4] = rhs[k * 7]
    original = ChromaprintAnalyzer._compare_shifted
    compared: list[int] = []

    def _spy(self, lhs, rhs, shift):
        compared.append(shift)
        return original(self, lhs, rhs, shift)

    monkeypatch.setattr(ChromaprintAnalyzer, "_compare_shifted", _spy)

    match = _analyzer().compare_fingerprints(lhs, rhs)

    assert len(compared) <= 16
    assert 200 in compared
    assert match is not None
    assert match[0].start == pytest.approx(100 * POINT_DURATION)


def test_analyze_media_files_stores_every_episode(monkeypatch) -> None:
    """Episodes sharing an intro get it; the odd one out is stored as 'no intro'."""
    lhs, rhs = _pair_with_shared_intro()
    other = _points(random.Random(11), 500, 0xC3)
    e1, e2, e3 = build_episode("e1"), build_episode("e2"), build_episode("e3")
    by_path = {e1.path: lhs, e2.path: rhs, e3.path: other}
    commands: list[list[str]] = []

    def _fake_run(cmd, capture_output, text):
        commands.append(cmd)
        return SimpleNamespace(
            returncode=0, stdout=json.dumps({"fingerprint": by_path[cmd[-1]]}), stderr=""
        )

    monkeypatch.setattr("introscan.analyze.chromaprint.subprocess.run", _fake_run)
    analyzer = _analyzer(analysis_length_limit=5)

    intros = analyzer.analyze_media_files((e1, e2, e3), AnalysisMode.INTRODUCTION)

    assert [i.valid for i in intros] == [True, True, False]
    assert commands[0][:5] == ["fpcalc", "-raw", "-json", "-length", "300"]
    assert all(analyzer.results.contains(ep.episode_id) for ep in (e1, e2, e3))
    assert analyzer.results.get(e2.episode_id).intro_start == pytest.approx(300 * POINT_DURATION)


def test_fpcalc_failure_raises_fingerprint_error(monkeypatch) -> None:
    monkeypatch.setattr(
        "introscan.analyze.chromaprint.subprocess.run",
        lambda cmd, capture_output, text: SimpleNamespace(returncode=1, stdout="", stderr="boom"),
    )
    analyzer = _analyzer()

    with pytest.raises(FingerprintError, match="boom"):
        analyzer.analyze_media_files(
            (build_episode("e1"), build_episode("e2")), AnalysisMode.INTRODUCTION
        )
    assert len(analyzer.results) == 0


def test_missing_fpcalc(monkeypatch) -> None:
    monkeypatch.setattr("introscan.analyze.chromaprint.find_fpcalc", lambda: None)
    analyzer = ChromaprintAnalyzer(PluginConfiguration(), IntroStore())

    with pytest.raises(FingerprintError, match="fpcalc not found"):
        analyzer.fingerprint(build_episode("e1"))
