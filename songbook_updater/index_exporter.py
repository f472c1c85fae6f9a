"""IndexExporter: writes the JSON index of all songs for the slide viewer."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from songbook_updater.song_models import Song

logger = logging.getLogger(__name__)


class IndexExporter:
    """
    Build ``songs.json``: songs nested by alphabetical bucket, then song ID.

    ::

        {
          "a": {
            "Auf-der-Mauer": {
              "country": "Deutschland",
              "title": "Auf der Mauer, auf der Lauer",
              "year": "1890",
              "folder": "a/Auf-der-Mauer",
              "slides": ["01.svg", "02.svg"]
            }
          }
        }

    Only non-empty metadata fields are written. ``folder`` is relative to the
    collection base path.
    """

    def __init__(self, base_path: Path) -> None:
        self.base_path = Path(base_path).resolve()

    def _relative_folder(self, song: Song) -> str:
        try:
            return song.folder.relative_to(self.base_path).as_posix()
        except ValueError:
            return song.folder.as_posix()

    def song_entry(self, song: Song) -> dict[str, Any]:
        entry: dict[str, Any] = dict(song.meta_data.to_dict())
        entry["folder"] = self._relative_folder(song)
        entry["slides"] = list(song.slide_images)
        return entry

    def build(self, songs: Iterable[Song]) -> dict[str, dict[str, dict[str, Any]]]:
        index: dict[str, dict[str, dict[str, Any]]] = {}
        for song in sorted(songs, key=lambda s: (s.abc, s.song_id)):
            index.setdefault(song.abc, {})[song.song_id] = self.song_entry(song)
        return index

    def export(self, songs: Iterable[Song], output_path: Path) -> Path:
        """
        Raises:
            OSError: If the output file cannot be written.
        """
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", encoding="utf-8", newline="\n") as fh:
            json.dump(self.build(songs), fh, ensure_ascii=False, indent=2)
            fh.write("\n")
        logger.info("Wrote JSON index %s", output_path)
        return output_path
