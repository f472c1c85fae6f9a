"""Songbook updater CLI entry point."""

import logging
import sys
from pathlib import Path

import click

from songbook_updater import __version__
from songbook_updater.change_cache import ChangeCache
from songbook_updater.config import SongbookConfig, load_config
from songbook_updater.converters import check_executables, require_executables
from songbook_updater.errors import (
    ConfigError,
    LayoutError,
    MetadataError,
    SongFailure,
    UnavailableCommandsError,
    UnknownSongError,
)
from songbook_updater.index_exporter import IndexExporter
from songbook_updater.library import SongLibrary
from songbook_updater.pipeline import ConversionPipeline, collect_failures
from songbook_updater.song_models import Song, SongStatus
from songbook_updater.tex_composer import write_piano_score

SYMBOL_ERROR = click.style("☒", fg="red")
SYMBOL_FINISHED = click.style("☑", fg="green")
SYMBOL_PROGRESS = click.style("☐", fg="yellow")


def _configure_logging(verbose: int) -> None:
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(format="%(levelname)s: %(name)s: %(message)s", level=level)


def _fail(message: str) -> None:
    click.echo(f"  ERROR: {message}", err=True)
    sys.exit(1)


def _format_status(song: Song, status: SongStatus) -> str:
    """One status block per song, e.g. ``☐  Swing-low: Swing low (forced)``."""
    title = song.meta_data.title
    if status.failed or not title:
        symbol, colour = SYMBOL_ERROR, "red"
    elif not status.generated:
        symbol, colour = SYMBOL_FINISHED, "green"
    else:
        symbol, colour = SYMBOL_PROGRESS, "yellow"

    line = f"{symbol}  {click.style(song.song_id, fg=colour)}"
    if title:
        line += f": {title}"
    if status.forced:
        line += " " + click.style("(forced)", fg="red")
    if status.generated_slides is not None:
        line += f"\n\t{click.style('slides', fg='yellow')}: {', '.join(status.generated_slides)}"
    if status.generated_piano is not None:
        line += f"\n\t{click.style('piano', fg='yellow')}: {', '.join(status.generated_piano)}"
    for error in status.errors:
        line += f"\n\t{click.style('error', fg='red')}: {error}"
    return line


def _print_status(song: Song, status: SongStatus) -> None:
    click.echo(_format_status(song, status))


def _report_failures(failures: list[SongFailure]) -> None:
    if not failures:
        return
    click.echo()
    click.echo(click.style(f"{len(failures)} song error(s):", fg="red"), err=True)
    for failure in failures:
        click.echo(f"  {failure.song_id}: {failure.message}", err=True)


def _resolve_mode(slides: bool, piano: bool) -> str:
    if slides and piano:
        raise click.UsageError("--slides and --piano are mutually exclusive; omit both for all.")
    if slides:
        return "slides"
    if piano:
        return "piano"
    return "all"


# ── CLI group ──────────────────────────────────────────────────────────────────

@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="songbook")
def main() -> None:
    """Songbook updater: slides, piano scores and the printed songbook from MuseScore files."""


# ── check subcommand ───────────────────────────────────────────────────────────

@main.command()
@click.option("--config", "config_file", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="YAML configuration file (default: ~/.songbook.yml).")
def check(config_file: Path | None) -> None:
    """Check that all external converters are installed."""
    try:
        config = load_config(config_file, base_path=".")
    except ConfigError as exc:
        _fail(str(exc))
    unavailable = check_executables(config.executables)
    for name in config.executables:
        mark = SYMBOL_ERROR if name in unavailable else SYMBOL_FINISHED
        click.echo(f"{mark}  {name}")
    if unavailable:
        _fail(str(UnavailableCommandsError(unavailable)))


# ── update subcommand ──────────────────────────────────────────────────────────

@main.command()
@click.option("-b", "--base-path", type=click.Path(file_okay=False, path_type=Path), default=None,
              help="Base path of the song collection.")
@click.option("--config", "config_file", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="YAML configuration file (default: ~/.songbook.yml).")
@click.option("--projector-path", type=click.Path(file_okay=False, path_type=Path), default=None,
              help="Folder for the JSON index. Defaults to the base path.")
@click.option("--piano-path", type=click.Path(file_okay=False, path_type=Path), default=None,
              help="Folder for the TeX piano score. Defaults to the base path.")
@click.option("-s", "--slides", is_flag=True, help="Generate the slides only.")
@click.option("-p", "--piano", is_flag=True, help="Generate the piano files only.")
@click.option("-f", "--force", is_flag=True, help="Rebuild all images.")
@click.option("-F", "--folder", type=click.Path(exists=True, path_type=Path), default=None,
              help="Process only the given song folder (implies --force).")
@click.option("-i", "--song-id", default=None, metavar="SONG_ID",
              help="Process only the song with the given song ID (implies --force).")
@click.option("-l", "--list", "list_file", type=click.Path(exists=True, dir_okay=False, path_type=Path),
              default=None, help="Text file of song IDs; only these songs are processed.")
@click.option("-c", "--clean", is_flag=True, help="Delete all generated files and the change cache.")
@click.option("-a", "--group-alphabetically", is_flag=True, help="Put the piano score into alphabetical chapters.")
@click.option("-t", "--page-turn-optimized", is_flag=True, help="Group songs to avoid page turns within a song.")
@click.option("-w", "--workers", type=click.IntRange(1, 64), default=None,
              help="Parallel conversions. Defaults to the CPU count.")
@click.option("--git-pull", is_flag=True, help="Run “git pull” in the base path before updating.")
@click.option("-v", "--verbose", count=True, help="Log more (-v info, -vv debug).")
def update(
    base_path: Path | None,
    config_file: Path | None,
    projector_path: Path | None,
    piano_path: Path | None,
    slides: bool,
    piano: bool,
    force: bool,
    folder: Path | None,
    song_id: str | None,
    list_file: Path | None,
    clean: bool,
    group_alphabetically: bool,
    page_turn_optimized: bool,
    workers: int | None,
    git_pull: bool,
    verbose: int,
) -> None:
    """
    Regenerate out-of-date slides and piano scores, then write the JSON index
    and the TeX piano score.

    \b
    Examples:
      songbook update --base-path ~/songs
      songbook update -b ~/songs --piano --group-alphabetically --page-turn-optimized
      songbook update -b ~/songs --song-id Swing-low --slides
      songbook update -b ~/songs --clean
    """
    _configure_logging(verbose)
    mode = _resolve_mode(slides, piano)

    try:
        config = load_config(
            config_file,
            base_path=base_path,
            projector_path=projector_path,
            piano_path=piano_path,
            workers=workers,
        )
    except ConfigError as exc:
        _fail(str(exc))

    if not clean:
        try:
            require_executables(config.executables)
        except UnavailableCommandsError as exc:
            _fail(str(exc))

    click.echo(f"songbook v{__version__}")
    click.echo(f"The base path of the song collection is located at:\n    {click.style(str(config.base_path), fg='cyan')}\n")

    library = SongLibrary(config)
    click.echo(f"Found {library.count()} songs.")
    if list_file is not None:
        try:
            library.load_restriction_list(list_file)
        except UnknownSongError as exc:
            _fail(str(exc))

    if clean:
        library.clean_all()
        click.echo("Deleted all generated files.")
        _report_failures(library.failures)
        sys.exit(1 if library.failures else 0)

    failures = list(library.failures)
    with ChangeCache(config.cache_path) as cache:
        pipeline = ConversionPipeline(config, cache)
        if folder is not None or song_id is not None:
            try:
                song = library.song_from_path(folder) if folder is not None else library.by_id(song_id or "")
            except (MetadataError, UnknownSongError) as exc:
                _fail(str(exc))
            status = pipeline.update_song(song, mode, force=True)
            _print_status(song, status)
            failures.extend(collect_failures([status]))
        else:
            failures.extend(_update_library(config, library, pipeline, mode, force, git_pull,
                                            group_alphabetically, page_turn_optimized))

    _report_failures(failures)
    sys.exit(1 if failures else 0)


def _update_library(
    config: SongbookConfig,
    library: SongLibrary,
    pipeline: ConversionPipeline,
    mode: str,
    force: bool,
    git_pull: bool,
    group_alphabetically: bool,
    page_turn_optimized: bool,
) -> list[SongFailure]:
    if git_pull:
        library.git_pull()

    statuses = pipeline.update_songs(library.all(), mode, force, on_status=_print_status)
    failures = collect_failures(statuses)

    json_path = IndexExporter(config.base_path).export(library.all(), config.json_path)
    click.echo(f"Create JSON file: {click.style(str(json_path), fg='yellow')}")

    if mode in ("all", "piano"):
        try:
            tex_path = write_piano_score(library.all(), config, group_alphabetically, page_turn_optimized)
        except LayoutError as exc:
            failures.append(SongFailure("piano score", str(exc)))
        else:
            click.echo(f"Create TeX file: {click.style(str(tex_path), fg='yellow')}")
    return failures
