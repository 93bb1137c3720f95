"""EDL (MPlayer edit decision list) files next to each analyzed episode."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from introscan.analyze.results import IntroStore
from introscan.config import PluginConfiguration
from introscan.model import OutputMode, QueuedEpisode

log = logging.getLogger(__name__)


def edl_path(media_path: str | Path) -> Path:
    """Return the EDL path for a media file (same stem, ``.edl`` suffix)."""
    return Path(media_path).with_suffix(".edl")


class EdlManager:
    """Write detected intros as EDL markers according to the output mode."""

    def __init__(self, config: PluginConfiguration, results: IntroStore) -> None:
        self.config = config
        self.results = results

    def log_configuration(self) -> None:
        cfg = self.config
        if cfg.output_mode is OutputMode.NONE:
            log.debug("EDL action: none - EDL files will not be written")
            return
        log.info(
            "EDL action: %s (%d), mode: %s",
            cfg.edl_action.value,
            cfg.edl_action.code,
            cfg.output_mode.value,
        )
        log.info("Regenerate EDL files: %s", cfg.regenerate_edl_files)

    def update_edl_files(self, episodes: Iterable[QueuedEpisode]) -> list[Path]:
        """Write or refresh the EDL file of each episode. Returns written paths."""
        cfg = self.config
        if cfg.output_mode is OutputMode.NONE:
            log.debug("EDL output disabled, not updating files")
            return []

        overwrite = cfg.output_mode is OutputMode.ALWAYS or cfg.regenerate_edl_files
        written: list[Path] = []
        for episode in episodes:
            intro = self.results.get(episode.episode_id)
            if intro is None or not intro.valid:
                log.debug("Episode %s has no valid intro, skipping EDL", episode.name)
                continue

            path = edl_path(episode.path)
            if path.exists() and not overwrite:
                log.debug("EDL file %s already exists, skipping", path)
                continue

            log.debug("Writing EDL file %s", path)
            try:
                path.write_text(intro.edl_line(cfg.edl_action) + "\n", encoding="utf-8")
            except OSError:
                log.warning("Unable to write EDL file %s", path, exc_info=True)
                continue
            written.append(path)
        return written
