"""Configuration loading for diffdash (.diffdash.yml)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import yaml

from .signals.filters import INCLUDE, INTERPOLATED_LOG_MODES

CONFIG_FILENAME = ".diffdash.yml"
INTERPOLATED_LOGS_ENV = "DIFFDASH_INTERPOLATED_LOGS"

DEFAULT_EXCLUDED_SUFFIXES: Sequence[str] = ("_spec.rb", "_test.rb")
DEFAULT_EXCLUDED_DIRECTORIES: Sequence[str] = ("spec", "test", "config")


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class SignalsConfig:
    """How detected signals are post-processed."""

    interpolated_logs: str = INCLUDE


@dataclass
class MetricsConfig:
    """Extra files scanned for metric constant registrations."""

    definition_paths: List[str] = field(default_factory=list)


@dataclass
class FilesConfig:
    """Changed-file filtering rules."""

    excluded_suffixes: List[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDED_SUFFIXES))
    excluded_directories: List[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDED_DIRECTORIES))
    ignore_paths: List[str] = field(default_factory=list)
    include_paths: List[str] = field(default_factory=list)


@dataclass
class DiffdashConfig:
    """Represents the settings defined in .diffdash.yml."""

    root: Path
    signals: SignalsConfig = field(default_factory=SignalsConfig)
    metrics: MetricsConfig = field(default_factory=MetricsConfig)
    files: FilesConfig = field(default_factory=FilesConfig)


def load_config(config_path: Path, env: Optional[Mapping[str, str]] = None) -> DiffdashConfig:
    """Load configuration from disk, applying environment overrides."""
    env = os.environ if env is None else env
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    data: Dict[str, Any] = {}
    if config_file.exists():
        data = _read_config(config_file)
        if not isinstance(data, dict):
            raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    signals = SignalsConfig()
    signals_data = _as_dict(data.get("signals"))
    mode = _as_str(signals_data.get("interpolated_logs"))
    if mode is not None:
        signals.interpolated_logs = _validate_mode(mode)
    env_mode = _as_str(env.get(INTERPOLATED_LOGS_ENV))
    if env_mode is not None and env_mode.strip().lower() in INTERPOLATED_LOG_MODES:
        signals.interpolated_logs = env_mode.strip().lower()

    metrics = MetricsConfig()
    metrics_data = _as_dict(data.get("metrics"))
    if metrics_data:
        metrics.definition_paths = _as_str_list(metrics_data.get("definition_paths"))

    files = FilesConfig()
    files_data = _as_dict(data.get("files"))
    if files_data:
        if "excluded_suffixes" in files_data:
            files.excluded_suffixes = _as_str_list(files_data.get("excluded_suffixes"))
        if "excluded_directories" in files_data:
            files.excluded_directories = _as_str_list(files_data.get("excluded_directories"))
        files.ignore_paths = _as_str_list(files_data.get("ignore_paths"))
        files.include_paths = _as_str_list(files_data.get("include_paths"))

    return DiffdashConfig(root=root, signals=signals, metrics=metrics, files=files)


def _validate_mode(value: str) -> str:
    mode = value.strip().lower()
    if mode not in INTERPOLATED_LOG_MODES:
        raise ValueError(
            f"Invalid signals.interpolated_logs '{value}'; expected one of {', '.join(INTERPOLATED_LOG_MODES)}"
        )
    return mode


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return {} if loaded is None else loaded


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []


__all__ = [
    "CONFIG_FILENAME",
    "ConfigError",
    "DiffdashConfig",
    "FilesConfig",
    "INTERPOLATED_LOGS_ENV",
    "MetricsConfig",
    "SignalsConfig",
    "load_config",
]
