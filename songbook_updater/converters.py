"""Converter implementations turning MuseScore sources into page images."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path

from pypdf import PdfReader
from pypdf.errors import PyPdfError

from songbook_updater.errors import ConversionError, UnavailableCommandsError

logger = logging.getLogger(__name__)


def list_images(folder: Path, extension: str) -> list[str]:
    """Sorted names of the ``*.extension`` files in ``folder`` (empty if absent)."""
    if not folder.is_dir():
        return []
    suffix = "." + extension.lstrip(".").lower()
    return sorted(p.name for p in folder.iterdir() if p.is_file() and p.suffix.lower() == suffix)


def reset_folder(folder: Path) -> None:
    """Delete ``folder`` with all its content and create it again empty."""
    shutil.rmtree(folder, ignore_errors=True)
    folder.mkdir(parents=True, exist_ok=True)


def check_executables(executables: list[str]) -> list[str]:
    """Return the executables that cannot be found on ``PATH``."""
    return [name for name in executables if shutil.which(name) is None]


def require_executables(executables: list[str]) -> None:
    """
    Raises:
        UnavailableCommandsError: Listing every missing executable.
    """
    unavailable = check_executables(executables)
    if unavailable:
        raise UnavailableCommandsError(unavailable)


def run_tool(command: list[str], timeout: float | None = None) -> subprocess.CompletedProcess[str]:
    """
    Run an external converter and wait for it to exit.

    A non-zero exit status is only logged: some converters report failures
    while still writing usable output, so callers check for the expected
    files instead.

    Raises:
        ConversionError: If the executable cannot be started or times out.
    """
    logger.debug("Running %s", " ".join(command))
    env = dict(os.environ)
    env.setdefault("QT_QPA_PLATFORM", "offscreen")
    try:
        proc = subprocess.run(
            command,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            timeout=timeout,
            env=env,
            check=False,
        )
    except subprocess.TimeoutExpired as exc:
        raise ConversionError(f"{command[0]} timed out after {timeout} s", command) from exc
    except OSError as exc:
        raise ConversionError(f"{command[0]} could not be started: {exc}", command) from exc
    if proc.returncode != 0:
        logger.warning("%s exited with status %s: %s", command[0], proc.returncode, proc.stderr.strip())
    return proc


def count_pdf_pages(pdf: Path) -> int:
    """
    Raises:
        ConversionError: If the PDF cannot be read.
    """
    try:
        return len(PdfReader(str(pdf)).pages)
    except (OSError, PyPdfError) as exc:
        raise ConversionError(f"Unreadable PDF {pdf}: {exc}") from exc


class Converter(ABC):
    """Abstract conversion chain from a notation source to numbered page images."""

    @property
    @abstractmethod
    def image_extension(self) -> str:
        """Extension of the generated images, without the dot."""

    @abstractmethod
    def convert(self, source: Path, output_dir: Path) -> list[str]:
        """
        Render ``source`` into ``output_dir`` as ``01.<ext>``, ``02.<ext>`` ...

        ``output_dir`` exists and is empty when this is called.

        Returns:
            The sorted image file names.

        Raises:
            ConversionError: If no images could be produced.
        """


class MuseScoreConverter(Converter):
    """
    MuseScore file -> PDF (``mscore --export-to``) -> one SVG per page (``pdf2svg``).

    Subclasses decide where the intermediate PDF lives and which file is
    handed to MuseScore.
    """

    def __init__(self, mscore: str = "mscore", pdf2svg: str = "pdf2svg", timeout: float | None = 300.0) -> None:
        self.mscore = mscore
        self.pdf2svg = pdf2svg
        self.timeout = timeout

    @property
    def image_extension(self) -> str:
        return "svg"

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    def _prepare_source(self, source: Path, output_dir: Path) -> Path:
        return source

    @abstractmethod
    def _pdf_path(self, source: Path, output_dir: Path) -> Path:
        """Location of the intermediate PDF."""

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def export_pdf(self, source: Path, pdf: Path) -> Path:
        pdf.unlink(missing_ok=True)
        proc = run_tool([self.mscore, "--export-to", str(pdf), str(source)], self.timeout)
        if not pdf.is_file():
            raise ConversionError(
                f"The PDF file {pdf.name} couldn’t be generated from {source.name}.",
                [self.mscore, "--export-to", str(pdf), str(source)],
                proc.stderr,
            )
        return pdf

    def convert(self, source: Path, output_dir: Path) -> list[str]:
        prepared = self._prepare_source(source, output_dir)
        pdf = self.export_pdf(prepared, self._pdf_path(prepared, output_dir))
        page_count = count_pdf_pages(pdf)

        command = [self.pdf2svg, str(pdf), str(output_dir / f"%02d.{self.image_extension}"), "all"]
        proc = run_tool(command, self.timeout)
        images = list_images(output_dir, self.image_extension)
        if not images:
            raise ConversionError(
                f"The {self.image_extension.upper()} files couldn’t be generated from {pdf.name}.",
                command,
                proc.stderr,
            )
        if len(images) != page_count:
            raise ConversionError(
                f"{pdf.name} has {page_count} pages but {len(images)} images were generated.",
                command,
                proc.stderr,
            )
        return images


class SlidesConverter(MuseScoreConverter):
    """Projector chain: ``projector.pdf`` next to the source, SVGs in ``slides/``."""

    def __init__(self, *args, pdf_name: str = "projector.pdf", **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.pdf_name = pdf_name

    def _pdf_path(self, source: Path, output_dir: Path) -> Path:
        return source.parent / self.pdf_name


class PianoConverter(MuseScoreConverter):
    """
    Piano chain: the source is copied into ``piano/`` and rendered there, so
    the working folder holds everything belonging to the piano score.
    """

    def _prepare_source(self, source: Path, output_dir: Path) -> Path:
        target = output_dir / f"piano{source.suffix}"
        shutil.copyfile(source, target)
        return target

    def _pdf_path(self, source: Path, output_dir: Path) -> Path:
        return output_dir / "piano.pdf"
