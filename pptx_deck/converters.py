"""External converters used by the export pipeline.

The pipeline only depends on the :class:`Converter` interface, so tests can
swap in a fake while production uses LibreOffice (``soffice``) to produce a
PDF and poppler's ``pdftoppm`` to rasterize its pages.
"""

from __future__ import annotations

import logging
import re
import shutil
import subprocess
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Sequence

from .exceptions import ConversionFailedError, ConversionTimeoutError

LOGGER = logging.getLogger(__name__)

SOFFICE_CANDIDATES = (
    "soffice",
    "libreoffice",
    "/usr/bin/soffice",
    "/usr/lib/libreoffice/program/soffice",
    "/Applications/LibreOffice.app/Contents/MacOS/soffice",
)


class Converter(ABC):
    """Turns an office document into a PDF and a PDF into raster images."""

    @abstractmethod
    def to_pdf(self, source: Path, out_dir: Path) -> Path:
        """Convert ``source`` and return the path of the produced PDF."""

    @abstractmethod
    def rasterize(
        self,
        pdf: Path,
        out_dir: Path,
        stem: str,
        page_index: Optional[int] = None,
    ) -> List[Path]:
        """Render ``pdf`` to PNG files named after ``stem``.

        With ``page_index`` only that (zero-based) page is rendered, to
        ``<stem>.png``. Without it every page is rendered and the files are
        returned in page order.
        """


def discover_outputs(directory: Path, stem: str, suffix: str = ".png") -> List[Path]:
    """Return ``<stem>-<page><suffix>`` files in ``directory`` in page order.

    The page number is whatever the rasterizer wrote (pdftoppm starts at 1 and
    zero-pads to the width of the page count); only the relative order is used.
    """

    pattern = re.compile(rf"^{re.escape(stem)}-(\d+){re.escape(suffix)}$")
    matches = []
    for path in Path(directory).iterdir():
        match = pattern.match(path.name)
        if match:
            matches.append((int(match.group(1)), path))
    return [path for _, path in sorted(matches)]


def locate_soffice(explicit: Optional[str] = None) -> Optional[str]:
    """Return the first LibreOffice executable that answers ``--version``."""

    candidates: Sequence[str] = (explicit,) if explicit else SOFFICE_CANDIDATES
    for candidate in candidates:
        resolved = shutil.which(candidate)
        if resolved is None:
            continue
        try:
            subprocess.run(
                [resolved, "--version"],
                check=True,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                timeout=30,
            )
            return resolved
        except (OSError, subprocess.SubprocessError):
            continue
    return None


class SubprocessConverter(Converter):
    """:class:`Converter` backed by the ``soffice`` and ``pdftoppm`` binaries."""

    def __init__(
        self,
        soffice_path: Optional[str] = None,
        pdftoppm_path: str = "pdftoppm",
        *,
        timeout: float = 120.0,
        dpi: int = 150,
    ) -> None:
        self.soffice_path = soffice_path
        self.pdftoppm_path = pdftoppm_path
        self.timeout = timeout
        self.dpi = dpi
        self._resolved_soffice: Optional[str] = None

    # ------------------------------------------------------------------
    # Converter API
    # ------------------------------------------------------------------
    def to_pdf(self, source: Path, out_dir: Path) -> Path:
        source = Path(source)
        out_dir = Path(out_dir)
        pdf_path = out_dir / f"{source.stem}.pdf"
        soffice = self._soffice()

        # A private profile lets several conversions run side by side.
        with tempfile.TemporaryDirectory(prefix="pptx-deck-lo-") as profile_dir:
            cmd = [
                soffice,
                "--headless",
                f"-env:UserInstallation={Path(profile_dir).as_uri()}",
                "--convert-to",
                "pdf",
                "--outdir",
                str(out_dir),
                str(source),
            ]
            self._run(cmd, "soffice", cleanup=[pdf_path])

        if not pdf_path.is_file():
            raise ConversionFailedError(
                f"soffice finished but did not produce {pdf_path.name}"
            )
        return pdf_path

    def rasterize(
        self,
        pdf: Path,
        out_dir: Path,
        stem: str,
        page_index: Optional[int] = None,
    ) -> List[Path]:
        pdf = Path(pdf)
        out_dir = Path(out_dir)
        prefix = out_dir / stem
        cmd = [self.pdftoppm_path, "-png", "-r", str(self.dpi)]

        if page_index is not None:
            # pdftoppm numbers pages from 1
            page = str(page_index + 1)
            expected = out_dir / f"{stem}.png"
            cmd += ["-f", page, "-l", page, "-singlefile", str(pdf), str(prefix)]
            self._run(cmd, "pdftoppm", cleanup=[expected])
            if not expected.is_file():
                raise ConversionFailedError(
                    f"pdftoppm finished but did not produce {expected.name}"
                )
            return [expected]

        cmd += [str(pdf), str(prefix)]
        try:
            self._run(cmd, "pdftoppm")
        except (ConversionFailedError, ConversionTimeoutError):
            _remove_quietly(discover_outputs(out_dir, stem))
            raise
        outputs = discover_outputs(out_dir, stem)
        if not outputs:
            raise ConversionFailedError("pdftoppm finished but produced no images")
        return outputs

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _soffice(self) -> str:
        if self._resolved_soffice is None:
            self._resolved_soffice = locate_soffice(self.soffice_path)
        if self._resolved_soffice is None:
            raise ConversionFailedError(
                "LibreOffice 'soffice' executable not found; set SOFFICE_PATH "
                "or install LibreOffice"
            )
        return self._resolved_soffice

    def _run(
        self, cmd: List[str], label: str, cleanup: Sequence[Path] = ()
    ) -> subprocess.CompletedProcess:
        LOGGER.debug("Running %s", " ".join(cmd))
        try:
            result = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as exc:
            _remove_quietly(cleanup)
            raise ConversionTimeoutError(label, self.timeout) from exc
        except OSError as exc:
            raise ConversionFailedError(
                f"could not start {label}: {exc.strerror or exc}", original_error=exc
            ) from exc

        if result.returncode != 0:
            _remove_quietly(cleanup)
            raise ConversionFailedError(
                f"{label} exited with status {result.returncode}",
                returncode=result.returncode,
                stderr=result.stderr.decode("utf-8", errors="replace"),
            )
        return result


def _remove_quietly(paths: Sequence[Path]) -> None:
    for path in paths:
        try:
            Path(path).unlink()
        except FileNotFoundError:
            continue
        except OSError as exc:
            LOGGER.warning("Could not remove %s: %s", path, exc)
