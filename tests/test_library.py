"""Unit tests for SongLibrary."""

from pathlib import Path

import pytest

from songbook_updater.change_cache import ChangeCache
from songbook_updater.config import SongbookConfig
from songbook_updater.errors import MetadataError, UnknownSongError
from songbook_updater.library import SongLibrary, parse_song_id_list


def test_discovers_all_songs_sorted(config: SongbookConfig) -> None:
    library = SongLibrary(config)
    assert library.count() == 4
    assert [s.song_id for s in library.all()] == ["Auf-der-Mauer", "Stille-Nacht", "Swing-low", "Zum-Tanze"]
    assert library.failures == []


def test_song_identity_and_metadata(config: SongbookConfig) -> None:
    song = SongLibrary(config).by_id("Auf-der-Mauer")
    assert song.abc == "a"
    assert song.folder == (config.base_path / "a" / "Auf-der-Mauer").resolve()
    assert song.meta_data.title == "Auf der Mauer, auf der Lauer"
    assert song.meta_data.year == "1890"
    assert song.slide_images == []
    assert song.piano_images == []


def test_existing_images_are_listed(config: SongbookConfig) -> None:
    slides = config.base_path / "s" / "Swing-low" / "slides"
    slides.mkdir()
    for name in ("02.svg", "01.svg", "notes.txt"):
        (slides / name).write_text("x", encoding="utf-8")
    assert SongLibrary(config).by_id("Swing-low").slide_images == ["01.svg", "02.svg"]


def test_unknown_song_id(config: SongbookConfig) -> None:
    with pytest.raises(UnknownSongError, match="Nope"):
        SongLibrary(config).by_id("Nope")


def test_duplicate_song_id_is_reported_and_skipped(config: SongbookConfig, song_factory) -> None:
    song_factory(config.base_path, "b", "Swing-low", {"title": "Another Swing low"})
    library = SongLibrary(config)
    assert library.count() == 4
    assert library.by_id("Swing-low").abc == "b"
    assert [f.song_id for f in library.failures] == ["Swing-low"]
    assert "same song ID" in library.failures[0].message


def test_invalid_metadata_is_reported_and_skipped(config: SongbookConfig, song_factory) -> None:
    song_factory(config.base_path, "b", "Broken", {"title": "Broken", "tempo": 100})
    library = SongLibrary(config)
    assert "Broken" not in library.songs
    assert library.failures[0].song_id == "Broken"
    assert "tempo" in library.failures[0].message


def test_hidden_folders_are_ignored(config: SongbookConfig, song_factory) -> None:
    song_factory(config.base_path / ".git", "x", "Ghost")
    assert "Ghost" not in SongLibrary(config).songs


def test_restriction_list(config: SongbookConfig, tmp_path: Path) -> None:
    list_file = tmp_path / "list.txt"
    list_file.write_text("Swing-low\nAuf-der-Mauer  \n\n", encoding="utf-8")
    library = SongLibrary(config)
    songs = library.load_restriction_list(list_file)
    assert [s.song_id for s in songs] == ["Auf-der-Mauer", "Swing-low"]
    assert "Stille-Nacht" not in library.songs


def test_restriction_list_with_unknown_id(config: SongbookConfig, tmp_path: Path) -> None:
    list_file = tmp_path / "list.txt"
    list_file.write_text("Swing-low Unknown-Song", encoding="utf-8")
    with pytest.raises(UnknownSongError, match="Unknown-Song"):
        SongLibrary(config).load_restriction_list(list_file)


def test_parse_song_id_list_splits_on_whitespace(tmp_path: Path) -> None:
    list_file = tmp_path / "list.txt"
    list_file.write_text(" a\tb\n\nc ", encoding="utf-8")
    assert parse_song_id_list(list_file) == ["a", "b", "c"]


def test_alphabetical_index(config: SongbookConfig) -> None:
    index = SongLibrary(config).alphabetical_index()
    assert list(index) == ["a", "s", "z"]
    assert [s.song_id for s in index["s"]] == ["Stille-Nacht", "Swing-low"]


def test_song_from_path_accepts_file_inside_folder(config: SongbookConfig) -> None:
    library = SongLibrary(config)
    song = library.song_from_path(config.base_path / "s" / "Swing-low" / "projector.mscx")
    assert song is library.by_id("Swing-low")


def test_song_from_path_rejects_non_song_folder(config: SongbookConfig) -> None:
    with pytest.raises(MetadataError):
        SongLibrary(config).song_from_path(config.base_path / "s")


def test_clean_all_removes_generated_files(config: SongbookConfig) -> None:
    folder = config.base_path / "a" / "Auf-der-Mauer"
    for sub in ("slides", "piano"):
        (folder / sub).mkdir()
        (folder / sub / "01.svg").write_text("x", encoding="utf-8")
    (folder / "projector.pdf").write_bytes(b"%PDF")
    config.tex_path.write_text("tex", encoding="utf-8")
    cache = ChangeCache(config.cache_path)
    cache.is_modified(folder / "projector.mscx")

    library = SongLibrary(config)
    library.clean_all(cache)

    assert not (folder / "slides").exists()
    assert not (folder / "piano").exists()
    assert not (folder / "projector.pdf").exists()
    assert (folder / "projector.mscx").exists()
    assert not config.tex_path.exists()
    assert not config.cache_path.exists()
    assert library.by_id("Auf-der-Mauer").slide_images == []


def test_git_pull_without_repository(config: SongbookConfig) -> None:
    assert SongLibrary(config).git_pull() is False


def test_missing_base_path_yields_empty_library(tmp_path: Path) -> None:
    library = SongLibrary(SongbookConfig(base_path=tmp_path / "nowhere"))
    assert library.count() == 0
