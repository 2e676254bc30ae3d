"""Environment-driven settings for the presentation server."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

from .exceptions import ConfigurationError

STATE_DIR_NAME = ".state"


@dataclass(frozen=True)
class DeckSettings:
    """Resolved configuration, read once at startup."""

    storage_dir: Path
    soffice_path: Optional[str] = None
    pdftoppm_path: str = "pdftoppm"
    conversion_timeout: float = 120.0
    raster_dpi: int = 150
    log_level: str = "INFO"

    @property
    def state_dir(self) -> Path:
        return self.storage_dir / STATE_DIR_NAME

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "DeckSettings":
        """Build settings from ``environ`` (``os.environ`` after ``.env`` is loaded)."""

        if environ is None:
            load_dotenv()
            environ = os.environ

        storage_dir = (environ.get("STORAGE_DIR") or "").strip()
        if not storage_dir:
            raise ConfigurationError(
                "STORAGE_DIR is required. Please set STORAGE_DIR in your environment "
                "or .env file."
            )

        return cls(
            storage_dir=Path(storage_dir).expanduser().resolve(),
            soffice_path=(environ.get("SOFFICE_PATH") or "").strip() or None,
            pdftoppm_path=(environ.get("PDFTOPPM_PATH") or "").strip() or "pdftoppm",
            conversion_timeout=_positive(environ, "CONVERSION_TIMEOUT", 120.0, float),
            raster_dpi=_positive(environ, "RASTER_DPI", 150, int),
            log_level=(environ.get("LOG_LEVEL") or "INFO").strip().upper(),
        )

    def ensure_directories(self) -> None:
        try:
            self.state_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ConfigurationError(
                f"Cannot create state directory under STORAGE_DIR: {exc.strerror or exc}",
                original_error=exc,
            ) from exc


def _positive(environ: Mapping[str, str], key: str, default, cast):
    raw = (environ.get(key) or "").strip()
    if not raw:
        return default
    try:
        value = cast(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{key} must be a number, got '{raw}'") from exc
    if value <= 0:
        raise ConfigurationError(f"{key} must be positive, got '{raw}'")
    return value
