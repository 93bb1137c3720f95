"""Tests for the persisted intro cache."""

from __future__ import annotations

import json

from introscan.analyze.results import IntroStore
from introscan.model import Intro


def test_update_persists_and_reloads(tmp_path) -> None:
    path = tmp_path / "data" / "intros.json"
    store = IntroStore(path)
    store.update([Intro("a", 1.5, 40.0), Intro("b")])

    reloaded = IntroStore(path)

    assert reloaded.contains("a") and "b" in reloaded
    assert reloaded.get("a") == Intro("a", 1.5, 40.0)
    assert reloaded.get("b").valid is False
    assert len(reloaded) == 2


def test_newer_result_replaces_older(tmp_path) -> None:
    store = IntroStore(tmp_path / "intros.json")
    store.update([Intro("a")])
    store.update([Intro("a", 0.0, 25.0)])

    assert store.get("a").valid


def test_malformed_entries_are_skipped(tmp_path) -> None:
    path = tmp_path / "intros.json"
    path.write_text(
        json.dumps({"intros": [{"episode_id": "a", "intro_start": 0, "intro_end": 9}, {"x": 1}]}),
        encoding="utf-8",
    )

    store = IntroStore(path)

    assert [i.episode_id for i in store.all()] == ["a"]


def test_unreadable_cache_starts_empty(tmp_path) -> None:
    path = tmp_path / "intros.json"
    path.write_text("garbage", encoding="utf-8")

    assert len(IntroStore(path)) == 0


def test_in_memory_store_never_touches_disk(tmp_path) -> None:
    store = IntroStore()
    store.update([Intro("a")])

    assert store.contains("a")
    assert list(tmp_path.iterdir()) == []
