"""SongLibrary: discovers the song folders of a collection."""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path

from songbook_updater.change_cache import ChangeCache
from songbook_updater.config import SongbookConfig
from songbook_updater.converters import list_images
from songbook_updater.errors import DuplicateSongIdError, MetadataError, SongFailure, UnknownSongError
from songbook_updater.metadata import SongMetaData
from songbook_updater.song_models import Song

logger = logging.getLogger(__name__)


def parse_song_id_list(path: Path) -> list[str]:
    """Song IDs of a restriction file, separated by any whitespace."""
    return path.read_text(encoding="utf-8").split()


class SongLibrary:
    """
    The song collection below ``config.base_path``.

    Layout on disk::

        <base>/a/Auf-der-Mauer/info.yml
        <base>/a/Auf-der-Mauer/projector.mscx
        <base>/a/Auf-der-Mauer/piano.mscx
        <base>/s/Swing-low/...

    Every folder holding the metadata sidecar is a song; its name is the song
    ID and its parent folder name is the alphabetical bucket. Songs whose
    metadata cannot be loaded, and later folders repeating an existing song
    ID, are left out and recorded in :attr:`failures`.
    """

    def __init__(self, config: SongbookConfig) -> None:
        self.config = config
        self.base_path = config.base_path
        self.failures: list[SongFailure] = []
        self.songs: dict[str, Song] = self._collect_songs()

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _detect_song_folders(self) -> list[Path]:
        folders = []
        for sidecar in self.base_path.rglob(self.config.metadata_file):
            relative = sidecar.relative_to(self.base_path)
            if any(part.startswith(".") for part in relative.parts):
                continue
            if len(relative.parts) < 2:
                continue
            folders.append(sidecar.parent)
        return sorted(folders)

    def _load_song(self, folder: Path) -> Song:
        folder = folder.resolve()
        return Song(
            song_id=folder.name,
            abc=folder.parent.name,
            folder=folder,
            meta_data=SongMetaData.from_file(folder / self.config.metadata_file),
            slide_images=list_images(folder / self.config.slides_folder, self.config.image_extension),
            piano_images=list_images(folder / self.config.piano_folder, self.config.image_extension),
        )

    def _collect_songs(self) -> dict[str, Song]:
        songs: dict[str, Song] = {}
        if not self.base_path.is_dir():
            logger.warning("Base path %s does not exist.", self.base_path)
            return songs
        for folder in self._detect_song_folders():
            try:
                song = self._load_song(folder)
                if song.song_id in songs:
                    raise DuplicateSongIdError(
                        f"A song with the same song ID already exists: {songs[song.song_id].folder}"
                    )
            except (MetadataError, DuplicateSongIdError) as exc:
                logger.error("Skipping %s: %s", folder, exc)
                self.failures.append(SongFailure(folder.name, str(exc)))
                continue
            songs[song.song_id] = song
        return dict(sorted(songs.items()))

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def all(self) -> list[Song]:
        """Active songs ordered by song ID."""
        return list(self.songs.values())

    def count(self) -> int:
        return len(self.songs)

    def by_id(self, song_id: str) -> Song:
        """
        Raises:
            UnknownSongError: If there is no active song with this ID.
        """
        try:
            return self.songs[song_id]
        except KeyError:
            raise UnknownSongError(f"There is no song with the song ID “{song_id}”") from None

    def song_from_path(self, path: Path) -> Song:
        """
        Return the song of a folder, or of a file directly inside a song folder.

        Raises:
            MetadataError: If the folder is not a loadable song folder.
        """
        path = Path(path).resolve()
        folder = path if path.is_dir() else path.parent
        song = self.songs.get(folder.name)
        if song is not None and song.folder == folder:
            return song
        return self._load_song(folder)

    def load_restriction_list(self, path: Path) -> list[Song]:
        """
        Narrow the active songs to the IDs listed in ``path``.

        Raises:
            UnknownSongError: If a listed ID is not part of the collection.
        """
        selected: dict[str, Song] = {}
        for song_id in parse_song_id_list(Path(path)):
            selected[song_id] = self.by_id(song_id)
        self.songs = dict(sorted(selected.items()))
        return self.all()

    def alphabetical_index(self) -> dict[str, list[Song]]:
        """Songs grouped by alphabetical bucket; buckets and songs sorted."""
        index: dict[str, list[Song]] = {}
        for song in self.songs.values():
            index.setdefault(song.abc, []).append(song)
        return {abc: sorted(index[abc], key=lambda s: s.song_id) for abc in sorted(index)}

    def clean_song(self, song: Song) -> None:
        for name in (self.config.slides_folder, self.config.piano_folder):
            shutil.rmtree(song.folder / name, ignore_errors=True)
        (song.folder / self.config.projector_pdf).unlink(missing_ok=True)
        song.slide_images = []
        song.piano_images = []

    def clean_all(self, cache: ChangeCache | None = None) -> None:
        """Delete every derived artifact, the piano score and the change cache."""
        for song in self.songs.values():
            self.clean_song(song)
        self.config.tex_path.unlink(missing_ok=True)
        if cache is not None:
            cache.purge()
        else:
            self.config.cache_path.unlink(missing_ok=True)

    def git_pull(self) -> bool:
        """Run ``git pull`` if the base path is a git checkout."""
        if not (self.base_path / ".git").exists():
            return False
        try:
            proc = subprocess.run(
                ["git", "pull"],
                cwd=self.base_path,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                check=False,
            )
        except OSError as exc:
            logger.warning("git pull could not be started: %s", exc)
            return False
        if proc.returncode != 0:
            logger.warning("git pull failed: %s", proc.stderr.strip())
        return proc.returncode == 0
