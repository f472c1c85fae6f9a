"""TexComposer: serializes a piano score layout into TeX markup."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from pathlib import Path, PurePosixPath

from songbook_updater.config import SongbookConfig
from songbook_updater.page_layout import PageLayoutEngine
from songbook_updater.song_models import Chapter, PageGroup, Song

logger = logging.getLogger(__name__)

_TEX_REPLACEMENTS: dict[str, str] = {
    "\\": r"\textbackslash{}",
    "{": r"\{",
    "}": r"\}",
    "&": r"\&",
    "%": r"\%",
    "$": r"\$",
    "#": r"\#",
    "_": r"\_",
    "~": r"\textasciitilde{}",
    "^": r"\textasciicircum{}",
}
_TEX_SPECIAL = re.compile("|".join(re.escape(char) for char in _TEX_REPLACEMENTS))


def escape_tex(text: str) -> str:
    """Escape the characters with a special meaning inside TeX arguments."""
    return _TEX_SPECIAL.sub(lambda match: _TEX_REPLACEMENTS[match.group(0)], text)


def tex_cmd(command: str, value: str = "") -> str:
    r"""Return ``\tmp<command>{value}`` plus a newline; no braces if ``value`` is empty."""
    argument = f"{{{value}}}" if value else ""
    return f"\\tmp{command}{argument}\n"


class TexComposer:
    r"""
    Render the chapters of a piano score layout into the markup consumed by
    the songbook TeX template.

    Output for one song::

        \tmpmetadata
        {Swing low (1909)} % title
        {} % subtitle
        {Wallace Willis} % composer
        {} % lyricist
        \tmpimage{s/Swing-low/piano/01.svg}
        \tmpimage{s/Swing-low/piano/02.svg}

    Chapters start with ``\tmpchapter{S}``; unused page slots become
    ``\tmpplaceholder`` lines. The output depends only on the layout, so
    identical input yields identical bytes.
    """

    def __init__(self, piano_folder: str = "piano") -> None:
        self.piano_folder = piano_folder

    def image_path(self, song: Song, image: str) -> str:
        return str(PurePosixPath(song.abc, song.song_id, self.piano_folder, image))

    def format_song(self, song: Song) -> str:
        combined = song.meta_data_combined
        lines = ["", "\\tmpmetadata"]
        for field in ("title", "subtitle", "composer", "lyricist"):
            lines.append(f"{{{escape_tex(getattr(combined, field))}}} % {field}")
        out = "\n".join(lines) + "\n"
        for image in song.piano_images:
            out += tex_cmd("image", self.image_path(song, image))
        return out

    def format_group(self, group: PageGroup) -> str:
        out = "".join(self.format_song(song) for song in group.songs)
        return out + tex_cmd("placeholder") * group.placeholders

    def format_chapter(self, chapter: Chapter) -> str:
        out = ""
        if chapter.abc is not None:
            out += "\n\n" + tex_cmd("chapter", chapter.abc.upper())
        return out + "".join(self.format_group(group) for group in chapter.groups)

    def render(self, chapters: Iterable[Chapter]) -> str:
        return "".join(self.format_chapter(chapter) for chapter in chapters)


def write_piano_score(
    songs: Iterable[Song],
    config: SongbookConfig,
    group_alphabetically: bool = False,
    page_turn_optimized: bool = False,
) -> Path:
    """
    Lay out ``songs`` and write the TeX file to ``config.tex_path``.

    Raises:
        LayoutError: If a song cannot be paginated; nothing is written then.
        OSError: If the TeX file cannot be written.
    """
    chapters = PageLayoutEngine.from_config(config).layout(songs, group_alphabetically, page_turn_optimized)
    content = TexComposer(config.piano_folder).render(chapters)
    path = config.tex_path
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8", newline="\n") as fh:
        fh.write(content)
    logger.info("Wrote piano score %s", path)
    return path
