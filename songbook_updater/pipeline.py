"""ConversionPipeline: keeps the slides and piano images of each song current."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Final

from songbook_updater.change_cache import ChangeCache
from songbook_updater.config import SongbookConfig
from songbook_updater.converters import Converter, PianoConverter, SlidesConverter, list_images, reset_folder
from songbook_updater.errors import SongbookError, SongFailure, SourceFileMissingError
from songbook_updater.song_models import Song, SongStatus

logger = logging.getLogger(__name__)

MODES: Final[tuple[str, ...]] = ("all", "slides", "piano")


def check_mode(mode: str) -> str:
    if mode not in MODES:
        raise ValueError(f"Unsupported mode '{mode}'. Use one of: {', '.join(MODES)}.")
    return mode


class ConversionPipeline:
    """
    Run the two conversion chains of a song when they are out of date.

    Slides chain
        ``projector.mscx`` -> ``projector.pdf`` -> ``slides/01.svg`` ...
    Piano chain
        ``piano.mscx`` (or ``lead.mscx``) -> ``piano/piano.pdf`` -> ``piano/01.svg`` ...

    A chain runs when its mode is requested and the source changed according
    to the :class:`ChangeCache`, when no images exist yet, or when forced.
    Its output folder is emptied first so no page of an older, longer
    rendering survives. The cache is consulted only for requested chains.

    Errors are caught per song and chain and recorded on the returned
    :class:`SongStatus`; they never stop the other songs.
    """

    def __init__(
        self,
        config: SongbookConfig,
        cache: ChangeCache,
        slides_converter: Converter | None = None,
        piano_converter: Converter | None = None,
    ) -> None:
        self.config = config
        self.cache = cache
        self.slides_converter = slides_converter or SlidesConverter(
            config.mscore, config.pdf2svg, config.converter_timeout, pdf_name=config.projector_pdf
        )
        self.piano_converter = piano_converter or PianoConverter(
            config.mscore, config.pdf2svg, config.converter_timeout
        )

    # ------------------------------------------------------------------
    # Source detection
    # ------------------------------------------------------------------

    def projector_source(self, song: Song) -> Path:
        source = song.folder / self.config.projector_source
        if not source.is_file():
            raise SourceFileMissingError(f"File doesn’t exist: {source}")
        return source

    def piano_source(self, song: Song) -> Path:
        for name in self.config.piano_sources:
            source = song.folder / name
            if source.is_file():
                return source
        names = ", ".join(self.config.piano_sources)
        raise SourceFileMissingError(f"None of the piano sources exists in {song.folder}: {names}")

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _run_chain(
        self,
        converter: Converter,
        source: Path,
        output_dir: Path,
        outdated: bool,
    ) -> list[str] | None:
        if not outdated:
            return None
        reset_folder(output_dir)
        return converter.convert(source, output_dir)

    def _update_slides(self, song: Song, status: SongStatus, force: bool) -> None:
        folder = song.folder / self.config.slides_folder
        try:
            source = self.projector_source(song)
            status.changed_slides = self.cache.is_modified(source)
            outdated = force or status.changed_slides or not song.slide_images
            status.generated_slides = self._run_chain(self.slides_converter, source, folder, outdated)
        except (SongbookError, OSError) as exc:
            logger.error("Slides of %s failed: %s", song.song_id, exc)
            status.errors.append(f"slides: {exc}")
        except Exception as exc:
            logger.exception("Unexpected error in the slides of %s", song.song_id)
            status.errors.append(f"slides: unexpected error: {exc!r}")
        song.slide_images = list_images(folder, self.slides_converter.image_extension)

    def _update_piano(self, song: Song, status: SongStatus, force: bool) -> None:
        folder = song.folder / self.config.piano_folder
        try:
            source = self.piano_source(song)
            status.changed_piano = self.cache.is_modified(source)
            outdated = force or status.changed_piano or not song.piano_images
            status.generated_piano = self._run_chain(self.piano_converter, source, folder, outdated)
        except (SongbookError, OSError) as exc:
            logger.error("Piano score of %s failed: %s", song.song_id, exc)
            status.errors.append(f"piano: {exc}")
        except Exception as exc:
            logger.exception("Unexpected error in the piano score of %s", song.song_id)
            status.errors.append(f"piano: unexpected error: {exc!r}")
        song.piano_images = list_images(folder, self.piano_converter.image_extension)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def update_song(self, song: Song, mode: str = "all", force: bool = False) -> SongStatus:
        """Bring the derived images of one song up to date."""
        check_mode(mode)
        status = SongStatus(song_id=song.song_id, title=song.meta_data.title, forced=force)
        if mode in ("all", "slides"):
            self._update_slides(song, status, force)
        if mode in ("all", "piano"):
            self._update_piano(song, status, force)
        return status

    def update_songs(
        self,
        songs: Iterable[Song],
        mode: str = "all",
        force: bool = False,
        on_status: Callable[[Song, SongStatus], None] | None = None,
    ) -> list[SongStatus]:
        """
        Update many songs on a bounded thread pool.

        Statuses come back in the order of ``songs``; ``on_status`` is called
        in that same order from the calling thread.
        """
        check_mode(mode)
        song_list = list(songs)
        statuses: list[SongStatus] = []
        with ThreadPoolExecutor(max_workers=self.config.workers) as pool:
            results = pool.map(lambda song: self.update_song(song, mode, force), song_list)
            for song, status in zip(song_list, results):
                if on_status is not None:
                    on_status(song, status)
                statuses.append(status)
        return statuses


def collect_failures(statuses: Iterable[SongStatus]) -> list[SongFailure]:
    return [
        SongFailure(status.song_id, message)
        for status in statuses
        for message in status.errors
    ]
