"""Persistent configuration stored as a JSON file."""

from __future__ import annotations

import json
import logging
import os
import threading
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path

from introscan.errors import ConfigurationError
from introscan.model import EdlAction, OutputMode

log = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "introscan" / "config.json"
INTROS_FILENAME = "intros.json"


@dataclass(slots=True)
class PluginConfiguration:
    libraries: list[str] = field(default_factory=list)
    max_parallelism: int = 2
    analyze_season_zero: bool = False
    regenerate_edl_files: bool = False
    output_mode: OutputMode = OutputMode.NONE
    edl_action: EdlAction = EdlAction.COMMERCIAL_BREAK
    # Fingerprint tuning
    analysis_length_limit: int = 10  # minutes
    min_intro_duration: int = 15  # seconds
    max_intro_duration: int = 120  # seconds
    max_fingerprint_point_differences: int = 6
    max_time_skip: float = 3.5
    data_dir: str = ""

    def validate(self) -> None:
        if self.max_parallelism < 1:
            raise ConfigurationError(
                f"max_parallelism must be at least 1 (got {self.max_parallelism})"
            )
        if self.min_intro_duration >= self.max_intro_duration:
            raise ConfigurationError("min_intro_duration must be below max_intro_duration")
        if self.analysis_length_limit < 1:
            raise ConfigurationError("analysis_length_limit must be at least 1 minute")


_BOOL_FIELDS = ("analyze_season_zero", "regenerate_edl_files")
_INT_FIELDS = (
    "max_parallelism",
    "analysis_length_limit",
    "min_intro_duration",
    "max_intro_duration",
    "max_fingerprint_point_differences",
)
_FLOAT_FIELDS = ("max_time_skip",)
_STR_FIELDS = ("data_dir",)


def _check_types(values: dict) -> None:
    """Reject JSON values of the wrong type, such as the string "false" for a bool."""
    for key, value in values.items():
        if key in _BOOL_FIELDS:
            ok = isinstance(value, bool)
            expected = "true or false"
        elif key in _INT_FIELDS:
            ok = isinstance(value, int) and not isinstance(value, bool)
            expected = "an integer"
        elif key in _FLOAT_FIELDS:
            ok = isinstance(value, (int, float)) and not isinstance(value, bool)
            expected = "a number"
        elif key in _STR_FIELDS:
            ok = isinstance(value, str)
            expected = "a string"
        elif key == "libraries":
            ok = isinstance(value, list) and all(isinstance(p, str) for p in value)
            expected = "a list of paths"
        else:
            continue
        if not ok:
            raise ConfigurationError(f"{key} must be {expected} (got {value!r})")


def config_from_dict(data: dict) -> PluginConfiguration:
    """Build a configuration from parsed JSON, ignoring unknown keys."""
    known = {f.name for f in fields(PluginConfiguration)}
    kwargs = {k: v for k, v in data.items() if k in known}
    unknown = sorted(set(data) - known)
    if unknown:
        log.warning("Ignoring unknown configuration keys: %s", ", ".join(unknown))
    _check_types(kwargs)
    if "max_time_skip" in kwargs:
        kwargs["max_time_skip"] = float(kwargs["max_time_skip"])
    try:
        if "output_mode" in kwargs:
            kwargs["output_mode"] = OutputMode(kwargs["output_mode"])
        if "edl_action" in kwargs:
            kwargs["edl_action"] = EdlAction(kwargs["edl_action"])
        cfg = PluginConfiguration(**kwargs)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
    cfg.validate()
    return cfg


def config_to_dict(cfg: PluginConfiguration) -> dict:
    data = asdict(cfg)
    data["output_mode"] = cfg.output_mode.value
    data["edl_action"] = cfg.edl_action.value
    return data


class ConfigStore:
    """Owns the configuration object and its file.

    The loaded configuration is shared by every component of a run; call
    :meth:`save` to persist changes made to :attr:`configuration`.
    """

    def __init__(self, path: str | Path = DEFAULT_CONFIG_PATH) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        self.configuration = self.load()

    def load(self) -> PluginConfiguration:
        if not self.path.is_file():
            log.debug("No configuration at %s, using defaults", self.path)
            return PluginConfiguration()
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Cannot read configuration {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration {self.path} must be a JSON object")
        return config_from_dict(data)

    def save(self) -> None:
        self.configuration.validate()
        text = json.dumps(config_to_dict(self.configuration), indent=2)
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp.write_text(text + "\n", encoding="utf-8")
            os.replace(tmp, self.path)
        log.debug("Saved configuration to %s", self.path)

    @property
    def data_dir(self) -> Path:
        if self.configuration.data_dir:
            return Path(self.configuration.data_dir)
        return self.path.parent

    @property
    def intros_path(self) -> Path:
        return self.data_dir / INTROS_FILENAME
