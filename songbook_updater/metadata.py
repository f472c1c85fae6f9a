"""SongMetaData: reads the info.yml sidecar and formats display strings."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Final

import yaml

from songbook_updater.errors import MetadataError

#: Keys allowed in the metadata sidecar, mapped to the attribute they fill.
ALLOWED_KEYS: Final[dict[str, str]] = {
    "alias": "alias",
    "arranger": "arranger",
    "artist": "artist",
    "composer": "composer",
    "country": "country",
    "genre": "genre",
    "lyricist": "lyricist",
    "musescore": "musescore",
    "musescore-id": "musescore",
    "source": "source",
    "subtitle": "subtitle",
    "title": "title",
    "year": "year",
}


@dataclass(frozen=True)
class SongMetaData:
    """
    Hand-authored metadata of one song.

    Example ``info.yml``::

        ---
        alias: I’m sitting here
        arranger: Josef Friedrich
        artist: Fools Garden
        composer: Heinz Müller / Manfred Meier
        country: Deutschland
        genre: Spiritual
        lyricist: Goethe
        musescore: 4801717
        source: http://wikifonia.org/node/9928/revisions/13488/view
        subtitle: A very good song
        title: Lemon tree
        year: 1965

    Every value is kept as a string; an absent key is an empty string.
    """

    alias: str = ""
    arranger: str = ""
    artist: str = ""
    composer: str = ""
    country: str = ""
    genre: str = ""
    lyricist: str = ""
    musescore: str = ""
    source: str = ""
    subtitle: str = ""
    title: str = ""
    year: str = ""

    @classmethod
    def from_mapping(cls, raw: dict[str, Any], origin: str = "metadata") -> SongMetaData:
        """
        Raises:
            MetadataError: If ``raw`` contains a key outside :data:`ALLOWED_KEYS`.
        """
        values: dict[str, str] = {}
        for key, value in raw.items():
            attribute = ALLOWED_KEYS.get(str(key))
            if attribute is None:
                raise MetadataError(f"Unsupported key “{key}” in {origin}")
            values[attribute] = "" if value is None else str(value).strip()
        return cls(**values)

    @classmethod
    def from_file(cls, path: Path) -> SongMetaData:
        """
        Load the metadata sidecar at ``path``.

        Raises:
            MetadataError: If the file is missing, is not valid YAML, is not a
                mapping or uses an unsupported key.
        """
        try:
            with path.open("r", encoding="utf-8") as handle:
                raw = yaml.safe_load(handle)
        except FileNotFoundError as exc:
            raise MetadataError(f"YAML file could not be found: {path}") from exc
        except (OSError, yaml.YAMLError) as exc:
            raise MetadataError(f"YAML file could not be parsed: {path}: {exc}") from exc
        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise MetadataError(f"YAML file must contain a mapping: {path}")
        return cls.from_mapping(raw, origin=str(path))

    def to_dict(self) -> dict[str, str]:
        """Non-empty fields only, in key order."""
        return {key: value for key, value in asdict(self).items() if value}


def _join(values: list[str], separator: str) -> str:
    return separator.join(value for value in values if value)


class SongMetaDataCombined:
    """
    Combined display strings built from a :class:`SongMetaData`.

    Mapping
    -------
    - title:    ``title (year)``
    - subtitle: ``subtitle - alias - country``
    - composer: ``composer, artist, genre`` (artist dropped if equal to composer)
    - lyricist: ``lyricist`` (only if it differs from artist and composer)
    """

    def __init__(self, meta_data: SongMetaData) -> None:
        self.meta_data = meta_data

    @property
    def title(self) -> str:
        if self.meta_data.year:
            return f"{self.meta_data.title} ({self.meta_data.year})"
        return self.meta_data.title

    @property
    def subtitle(self) -> str:
        m = self.meta_data
        return _join([m.subtitle, m.alias, m.country], " - ")

    @property
    def composer(self) -> str:
        m = self.meta_data
        if m.composer and m.composer == m.artist:
            return _join([m.composer, m.genre], ", ")
        return _join([m.composer, m.artist, m.genre], ", ")

    @property
    def lyricist(self) -> str:
        m = self.meta_data
        if m.lyricist and m.lyricist not in (m.artist, m.composer):
            return m.lyricist
        return ""

    @property
    def musescore_url(self) -> str:
        if self.meta_data.musescore:
            return f"https://musescore.com/score/{self.meta_data.musescore}"
        return ""

    def to_dict(self) -> dict[str, str]:
        return {
            "title": self.title,
            "subtitle": self.subtitle,
            "composer": self.composer,
            "lyricist": self.lyricist,
        }
