"""SongbookConfig: the explicit configuration value passed to every component."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import yaml

from songbook_updater.errors import ConfigError

DEFAULT_CONFIG_FILE = Path("~/.songbook.yml")
ENV_BASE_PATH = "SONGBOOK_PATH"

_PATH_KEYS = {"base_path", "projector_path", "piano_path"}


def _default_workers() -> int:
    return os.cpu_count() or 1


@dataclass(frozen=True)
class SongbookConfig:
    """
    Settings of one updater run.

    The value is built once (see :func:`load_config`) and handed to the
    library, the pipeline and the layout engine. Nothing in the package keeps
    a module-level copy of it.

    ``projector_path`` and ``piano_path`` default to ``base_path`` when left
    unset; use :attr:`json_path` and :attr:`tex_path` to get the resolved
    output locations.
    """

    base_path: Path
    projector_path: Path | None = None
    piano_path: Path | None = None

    cache_file: str = "filehashes.db"
    tex_file: str = "songs.tex"
    json_file: str = "songs.json"
    metadata_file: str = "info.yml"

    projector_source: str = "projector.mscx"
    piano_sources: tuple[str, ...] = ("piano.mscx", "lead.mscx")
    projector_pdf: str = "projector.pdf"
    slides_folder: str = "slides"
    piano_folder: str = "piano"
    image_extension: str = "svg"

    first_page_capacity: int = 2
    page_capacity: int = 4
    max_piano_pages: int = 4
    restart_first_page_per_chapter: bool = True

    workers: int = field(default_factory=_default_workers)
    converter_timeout: float | None = 300.0
    mscore: str = "mscore"
    pdf2svg: str = "pdf2svg"

    def __post_init__(self) -> None:
        if self.first_page_capacity < 1 or self.page_capacity < 1:
            raise ConfigError("Page capacities must be positive.")
        if self.max_piano_pages > self.page_capacity:
            raise ConfigError(
                f"max_piano_pages ({self.max_piano_pages}) cannot exceed "
                f"page_capacity ({self.page_capacity})."
            )
        if self.workers < 1:
            raise ConfigError("workers must be at least 1.")

    @property
    def cache_path(self) -> Path:
        return self.base_path / self.cache_file

    @property
    def json_path(self) -> Path:
        return (self.projector_path or self.base_path) / self.json_file

    @property
    def tex_path(self) -> Path:
        return (self.piano_path or self.base_path) / self.tex_file

    @property
    def executables(self) -> list[str]:
        """External tools every conversion chain depends on."""
        return [self.mscore, self.pdf2svg]

    def with_overrides(self, **overrides: Any) -> SongbookConfig:
        return replace(self, **_coerce(overrides))


def _coerce(values: dict[str, Any]) -> dict[str, Any]:
    known = {f.name for f in fields(SongbookConfig)}
    coerced: dict[str, Any] = {}
    for key, value in values.items():
        if value is None:
            continue
        if key not in known:
            raise ConfigError(f"Unknown configuration key: {key}")
        if key in _PATH_KEYS:
            value = Path(value).expanduser()
        elif key == "piano_sources":
            value = tuple(value)
        coerced[key] = value
    return coerced


def read_config_file(path: Path) -> dict[str, Any]:
    """
    Return the ``songbook`` section of a YAML configuration file.

    A missing file yields an empty mapping.

    Raises:
        ConfigError: If the file cannot be parsed or is not a mapping.
    """
    try:
        with path.expanduser().open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except FileNotFoundError:
        return {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Failed to read config {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration at {path} must be a mapping, got {type(data).__name__}")
    section = data.get("songbook", {}) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"The “songbook” section in {path} must be a mapping.")
    return section


def load_config(config_file: Path | None = None, **overrides: Any) -> SongbookConfig:
    """
    Build the run configuration.

    Priority, lowest first: built-in defaults, the config file, the
    ``SONGBOOK_PATH`` environment variable, ``overrides`` (``None`` values
    are ignored so unset CLI options do not shadow the file).

    Raises:
        ConfigError: If no base path can be determined.
    """
    values: dict[str, Any] = dict(read_config_file(config_file or DEFAULT_CONFIG_FILE))
    env_path = (os.getenv(ENV_BASE_PATH) or "").strip()
    if env_path:
        values["base_path"] = env_path
    values.update({key: value for key, value in overrides.items() if value is not None})

    if not values.get("base_path"):
        raise ConfigError(
            "No base path of the song collection configured. "
            f"Use --base-path, set {ENV_BASE_PATH} or add “songbook: base_path:” "
            f"to {DEFAULT_CONFIG_FILE}."
        )
    coerced = _coerce(values)
    base_path = coerced.pop("base_path")
    return SongbookConfig(base_path=base_path, **coerced)
