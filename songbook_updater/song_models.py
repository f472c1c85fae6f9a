"""Data models shared by the library, the pipeline and the piano score layout."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from songbook_updater.metadata import SongMetaData, SongMetaDataCombined


@dataclass
class Song:
    """
    One song folder of the collection.

    Attributes:
        song_id:      Name of the song folder, unique in the whole collection.
        abc:          Name of the alphabetical parent folder, e.g. ``"s"``.
        folder:       Absolute path of the song folder.
        meta_data:    Metadata loaded from the sidecar; never changed afterwards.
        slide_images: Sorted file names inside ``slides/``.
        piano_images: Sorted file names inside ``piano/``.
    """

    song_id: str
    abc: str
    folder: Path
    meta_data: SongMetaData = field(default_factory=SongMetaData)
    slide_images: list[str] = field(default_factory=list)
    piano_images: list[str] = field(default_factory=list)

    @property
    def meta_data_combined(self) -> SongMetaDataCombined:
        return SongMetaDataCombined(self.meta_data)

    @property
    def piano_count(self) -> int:
        return len(self.piano_images)


@dataclass
class SongStatus:
    """What happened to one song during a conversion pass."""

    song_id: str
    title: str = ""
    forced: bool = False
    changed_slides: bool = False
    changed_piano: bool = False
    generated_slides: list[str] | None = None
    generated_piano: list[str] | None = None
    errors: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.changed_slides or self.changed_piano

    @property
    def generated(self) -> bool:
        return self.generated_slides is not None or self.generated_piano is not None

    @property
    def failed(self) -> bool:
        return bool(self.errors)


@dataclass
class PageGroup:
    """
    Songs printed on one physical page (or page spread) of the piano score.

    ``capacity`` is the number of image slots of the page; slots not taken by
    the songs are filled with blank-page placeholders.
    """

    capacity: int
    songs: list[Song] = field(default_factory=list)

    @property
    def used(self) -> int:
        return sum(song.piano_count for song in self.songs)

    @property
    def remaining(self) -> int:
        return self.capacity - self.used

    @property
    def placeholders(self) -> int:
        return self.remaining

    def add(self, song: Song) -> None:
        if song.piano_count > self.remaining:
            raise ValueError(
                f"Song “{song.song_id}” ({song.piano_count} pages) does not fit "
                f"into the remaining {self.remaining} slots."
            )
        self.songs.append(song)


@dataclass
class Chapter:
    """An alphabetical section of the piano score; ``abc`` is None when ungrouped."""

    abc: str | None
    groups: list[PageGroup] = field(default_factory=list)

    @property
    def songs(self) -> list[Song]:
        return [song for group in self.groups for song in group.songs]
