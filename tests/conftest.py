from pathlib import Path

import pytest

from introscan.analyze.results import IntroStore
from introscan.config import ConfigStore
from introscan.library.index import LibraryIndex
from introscan.library.queue import QueueManager
from introscan.model import OutputMode
from introscan.task import PluginContext

from builders import FakeFingerprinter


@pytest.fixture
def library_root(tmp_path: Path) -> Path:
    """Empty library root; populate it with ``builders.make_library``."""
    root = tmp_path / "library"
    root.mkdir()
    return root


@pytest.fixture
def config_store(tmp_path: Path, library_root: Path) -> ConfigStore:
    """Configuration pointing at *library_root*, with EDL output enabled."""
    store = ConfigStore(tmp_path / "config" / "config.json")
    store.configuration.libraries = [str(library_root)]
    store.configuration.output_mode = OutputMode.ON_CHANGE
    store.save()
    return store


@pytest.fixture
def context(config_store: ConfigStore) -> PluginContext:
    """Plugin context with a real library queue and a fake fingerprinter."""
    results = IntroStore(config_store.intros_path)
    return PluginContext(
        config_store=config_store,
        queue=QueueManager(LibraryIndex(config_store.configuration.libraries)),
        results=results,
        fingerprinter=FakeFingerprinter(results),
    )
