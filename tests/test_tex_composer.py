"""Unit tests for TexComposer and write_piano_score."""

from pathlib import Path

import pytest

from songbook_updater.config import SongbookConfig
from songbook_updater.errors import LayoutError
from songbook_updater.metadata import SongMetaData
from songbook_updater.page_layout import PageLayoutEngine
from songbook_updater.song_models import Chapter, PageGroup, Song
from songbook_updater.tex_composer import TexComposer, escape_tex, tex_cmd, write_piano_score


def _song(song_id: str, abc: str, pages: int, **meta: str) -> Song:
    return Song(
        song_id=song_id,
        abc=abc,
        folder=Path("/songs") / abc / song_id,
        meta_data=SongMetaData(**meta),
        piano_images=[f"{number:02d}.svg" for number in range(1, pages + 1)],
    )


def _sample_songs() -> list[Song]:
    return [
        _song("Auf-der-Mauer", "a", 2, title="Auf der Mauer, auf der Lauer", year="1890",
              country="Deutschland", composer="Georg Lehmann", lyricist="unbekannt"),
        _song("Stille-Nacht", "s", 1, title="Stille Nacht"),
        _song("Swing-low", "s", 3, title="Swing low"),
        _song("Zum-Tanze", "z", 2, title="Zum Tanze, da geht ein Mädel"),
    ]


EXPECTED_GROUPED_OPTIMIZED = """

\\tmpchapter{A}

\\tmpmetadata
{Auf der Mauer, auf der Lauer (1890)} % title
{Deutschland} % subtitle
{Georg Lehmann} % composer
{unbekannt} % lyricist
\\tmpimage{a/Auf-der-Mauer/piano/01.svg}
\\tmpimage{a/Auf-der-Mauer/piano/02.svg}


\\tmpchapter{S}

\\tmpmetadata
{Stille Nacht} % title
{} % subtitle
{} % composer
{} % lyricist
\\tmpimage{s/Stille-Nacht/piano/01.svg}
\\tmpplaceholder

\\tmpmetadata
{Swing low} % title
{} % subtitle
{} % composer
{} % lyricist
\\tmpimage{s/Swing-low/piano/01.svg}
\\tmpimage{s/Swing-low/piano/02.svg}
\\tmpimage{s/Swing-low/piano/03.svg}
\\tmpplaceholder


\\tmpchapter{Z}

\\tmpmetadata
{Zum Tanze, da geht ein Mädel} % title
{} % subtitle
{} % composer
{} % lyricist
\\tmpimage{z/Zum-Tanze/piano/01.svg}
\\tmpimage{z/Zum-Tanze/piano/02.svg}
"""


def test_tex_cmd_with_value() -> None:
    assert tex_cmd("lorem", "ipsum") == "\\tmplorem{ipsum}\n"


def test_tex_cmd_without_value() -> None:
    assert tex_cmd("placeholder") == "\\tmpplaceholder\n"


def test_escape_tex_special_characters() -> None:
    assert escape_tex("Rock & Roll 100% #1 $_") == "Rock \\& Roll 100\\% \\#1 \\$\\_"


def test_render_grouped_optimized_layout() -> None:
    chapters = PageLayoutEngine().layout(_sample_songs(), group_alphabetically=True, page_turn_optimized=True)
    assert TexComposer().render(chapters) == EXPECTED_GROUPED_OPTIMIZED


def test_render_ungrouped_has_no_chapter() -> None:
    chapters = PageLayoutEngine().layout(_sample_songs())
    content = TexComposer().render(chapters)
    assert "\\tmpchapter" not in content
    assert "\\tmpplaceholder" not in content
    assert content.count("\\tmpmetadata") == 4
    assert content.count("\\tmpimage") == 8


def test_format_group_appends_placeholders() -> None:
    group = PageGroup(capacity=4, songs=[_song("Stille-Nacht", "s", 1, title="Stille Nacht")])
    assert TexComposer().format_group(group).endswith("\\tmpplaceholder\n" * 3)


def test_format_chapter_uppercases_letter() -> None:
    assert TexComposer().format_chapter(Chapter(abc="q")) == "\n\n\\tmpchapter{Q}\n"


def test_render_is_byte_stable() -> None:
    first = TexComposer().render(PageLayoutEngine().layout(_sample_songs(), True, True))
    second = TexComposer().render(PageLayoutEngine().layout(_sample_songs(), True, True))
    assert first == second


def test_write_piano_score_writes_tex_file(tmp_path: Path) -> None:
    config = SongbookConfig(base_path=tmp_path, piano_path=tmp_path / "out")
    path = write_piano_score(_sample_songs(), config, group_alphabetically=True, page_turn_optimized=True)
    assert path == tmp_path / "out" / "songs.tex"
    assert path.read_text(encoding="utf-8") == EXPECTED_GROUPED_OPTIMIZED


def test_write_piano_score_writes_nothing_on_layout_error(tmp_path: Path) -> None:
    config = SongbookConfig(base_path=tmp_path)
    songs = _sample_songs() + [_song("Empty", "e", 0, title="Empty")]
    with pytest.raises(LayoutError):
        write_piano_score(songs, config)
    assert not config.tex_path.exists()


EXPECTED_TWO_PAGE_SONGS = """

\\tmpchapter{A}

\\tmpmetadata
{Auf der Mauer} % title
{} % subtitle
{} % composer
{} % lyricist
\\tmpimage{a/Auf-der-Mauer/piano/01.svg}
\\tmpimage{a/Auf-der-Mauer/piano/02.svg}


\\tmpchapter{S}

\\tmpmetadata
{Stille Nacht} % title
{} % subtitle
{} % composer
{} % lyricist
\\tmpimage{s/Stille-Nacht/piano/01.svg}
\\tmpimage{s/Stille-Nacht/piano/02.svg}

\\tmpmetadata
{Swing low} % title
{} % subtitle
{} % composer
{} % lyricist
\\tmpimage{s/Swing-low/piano/01.svg}
\\tmpimage{s/Swing-low/piano/02.svg}
\\tmpplaceholder
\\tmpplaceholder


\\tmpchapter{Z}

\\tmpmetadata
{Zum Tanze} % title
{} % subtitle
{} % composer
{} % lyricist
\\tmpimage{z/Zum-Tanze/piano/01.svg}
\\tmpimage{z/Zum-Tanze/piano/02.svg}
"""


def test_render_two_page_songs_with_configured_layout(tmp_path: Path) -> None:
    songs = [
        _song("Auf-der-Mauer", "a", 2, title="Auf der Mauer"),
        _song("Stille-Nacht", "s", 2, title="Stille Nacht"),
        _song("Swing-low", "s", 2, title="Swing low"),
        _song("Zum-Tanze", "z", 2, title="Zum Tanze"),
    ]
    engine = PageLayoutEngine.from_config(SongbookConfig(base_path=tmp_path))
    chapters = engine.layout(songs, group_alphabetically=True, page_turn_optimized=True)
    assert TexComposer().render(chapters) == EXPECTED_TWO_PAGE_SONGS


def test_escape_tex_braces_and_backslash() -> None:
    assert escape_tex("{a} \\b ~c ^d") == "\\{a\\} \\textbackslash{}b \\textasciitilde{}c \\textasciicircum{}d"


def test_format_song_keeps_arguments_balanced() -> None:
    block = TexComposer().format_song(_song("Braces", "b", 1, title="Set {x}"))
    assert "{Set \\{x\\}} % title" in block
