"""Shared fixtures: song folders on disk and a converter that needs no binaries."""

from __future__ import annotations

import threading
from pathlib import Path

import pytest
import yaml

from songbook_updater.config import SongbookConfig
from songbook_updater.converters import Converter
from songbook_updater.errors import ConversionError


class FakeConverter(Converter):
    """
    Writes ``01.svg`` .. ``NN.svg`` where NN is the first integer found in the
    source file, so tests control the page count through the source content.
    """

    def __init__(self, fail_for: set[str] | None = None) -> None:
        self.calls: list[Path] = []
        self.fail_for = fail_for or set()
        self._lock = threading.Lock()

    @property
    def image_extension(self) -> str:
        return "svg"

    def convert(self, source: Path, output_dir: Path) -> list[str]:
        with self._lock:
            self.calls.append(source)
        if source.parent.name in self.fail_for:
            raise ConversionError(f"fake failure for {source.parent.name}")
        pages = int(source.read_text(encoding="utf-8").split()[0])
        names = [f"{number:02d}.svg" for number in range(1, pages + 1)]
        for name in names:
            (output_dir / name).write_text(f"<svg>{source.name} {name}</svg>", encoding="utf-8")
        return names

    def called_songs(self) -> list[str]:
        return sorted(source.parent.name for source in self.calls)


def make_song(
    base: Path,
    abc: str,
    song_id: str,
    meta: dict | None = None,
    projector_pages: int | None = 2,
    piano_pages: int | None = 2,
    piano_name: str = "piano.mscx",
) -> Path:
    """Create a song folder with an info.yml and MuseScore stand-ins."""
    folder = base / abc / song_id
    folder.mkdir(parents=True)
    meta = meta if meta is not None else {"title": song_id.replace("-", " ")}
    (folder / "info.yml").write_text(yaml.safe_dump(meta, allow_unicode=True), encoding="utf-8")
    if projector_pages is not None:
        (folder / "projector.mscx").write_text(f"{projector_pages}\n", encoding="utf-8")
    if piano_pages is not None:
        (folder / piano_name).write_text(f"{piano_pages}\n", encoding="utf-8")
    return folder


@pytest.fixture
def song_base(tmp_path: Path) -> Path:
    """
    The four-song collection used throughout the tests::

        a/Auf-der-Mauer  piano 2
        s/Stille-Nacht   piano 1
        s/Swing-low      piano 3
        z/Zum-Tanze      piano 2
    """
    base = tmp_path / "songs"
    make_song(
        base,
        "a",
        "Auf-der-Mauer",
        {"title": "Auf der Mauer, auf der Lauer", "year": 1890, "country": "Deutschland",
         "composer": "Georg Lehmann", "lyricist": "unbekannt"},
        piano_pages=2,
    )
    make_song(base, "s", "Stille-Nacht", {"title": "Stille Nacht"}, piano_pages=1)
    make_song(base, "s", "Swing-low", {"title": "Swing low"}, piano_pages=3)
    make_song(base, "z", "Zum-Tanze", {"title": "Zum Tanze, da geht ein Mädel"}, piano_pages=2)
    return base


@pytest.fixture
def config(song_base: Path) -> SongbookConfig:
    return SongbookConfig(base_path=song_base, workers=2)


@pytest.fixture
def slides_converter() -> FakeConverter:
    return FakeConverter()


@pytest.fixture
def piano_converter() -> FakeConverter:
    return FakeConverter()


@pytest.fixture
def song_factory():
    return make_song
