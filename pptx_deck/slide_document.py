"""Utilities for reading and writing presentation state documents."""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
import weakref
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional

from .exceptions import (
    AlreadyExistsError,
    CorruptDocumentError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from .slide_models import (
    PresentationDocument,
    document_to_dict,
    new_document,
    validate_document,
    validate_presentation_name,
)

LOGGER = logging.getLogger(__name__)

# entries disappear once no caller holds the lock
_LOCKS: weakref.WeakValueDictionary[str, threading.Lock] = weakref.WeakValueDictionary()
_LOCKS_GUARD = threading.Lock()


def _lock_for(path: Path) -> threading.Lock:
    key = str(path.resolve())
    with _LOCKS_GUARD:
        lock = _LOCKS.get(key)
        if lock is None:
            lock = _LOCKS[key] = threading.Lock()
        return lock


def _describe(exc: OSError) -> str:
    return exc.strerror or exc.__class__.__name__


class PresentationStore:
    """Persist :class:`PresentationDocument` instances as ``<name>.json``."""

    def __init__(self, state_dir: Path) -> None:
        self.state_dir = Path(state_dir)

    # ------------------------------------------------------------------
    # Paths and locking
    # ------------------------------------------------------------------
    def path_for(self, name: str) -> Path:
        validate_presentation_name(name)
        return self.state_dir / f"{name}.json"

    def exists(self, name: str) -> bool:
        return self.path_for(name).is_file()

    def list_names(self) -> List[str]:
        if not self.state_dir.is_dir():
            return []
        return sorted(path.stem for path in self.state_dir.glob("*.json"))

    @contextmanager
    def locked(self, name: str) -> Iterator[None]:
        """Serialize load-mutate-save sequences on ``name`` within the process."""

        lock = _lock_for(self.path_for(name))
        with lock:
            yield

    # ------------------------------------------------------------------
    # I/O helpers
    # ------------------------------------------------------------------
    def load(self, name: str) -> PresentationDocument:
        path = self.path_for(name)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise NotFoundError(f"Presentation '{name}' does not exist") from exc
        except OSError as exc:
            raise StorageError(
                f"Could not read presentation '{name}': {_describe(exc)}",
                original_error=exc,
            ) from exc

        try:
            document = validate_document(json.loads(raw))
        except json.JSONDecodeError as exc:
            raise CorruptDocumentError(
                f"Presentation '{name}' is not valid JSON: {exc.msg}",
                original_error=exc,
            ) from exc
        except ValidationError as exc:
            raise CorruptDocumentError(
                f"Presentation '{name}' failed validation: {'; '.join(exc.errors)}",
                original_error=exc,
            ) from exc

        if document.name != name:
            raise CorruptDocumentError(
                f"Presentation '{name}' is stored under the name '{document.name}'"
            )
        return document

    def save(self, document: PresentationDocument) -> Path:
        """Write ``document`` atomically and return its location."""

        path = self.path_for(document.name)
        payload = json.dumps(document_to_dict(document), ensure_ascii=False, indent=2)
        tmp_name: Optional[str] = None
        try:
            self.state_dir.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.state_dir,
                prefix=f".{document.name}.",
                suffix=".tmp",
                delete=False,
            ) as handle:
                tmp_name = handle.name
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, path)
            tmp_name = None
        except OSError as exc:
            raise StorageError(
                f"Could not save presentation '{document.name}': {_describe(exc)}",
                original_error=exc,
            ) from exc
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    LOGGER.warning("Could not remove temporary state file %s", tmp_name)
        LOGGER.debug("Saved presentation '%s' to %s", document.name, path)
        return path

    # ------------------------------------------------------------------
    # Factory helpers
    # ------------------------------------------------------------------
    def create(
        self,
        name: str,
        title: Optional[str] = None,
        subject: Optional[str] = None,
        *,
        force: bool = False,
    ) -> PresentationDocument:
        """Create an empty presentation and persist it.

        Raises :class:`AlreadyExistsError` when ``name`` is taken, unless
        ``force`` is set, in which case the stored document is replaced.
        """

        document = new_document(name, title=title, subject=subject)
        with self.locked(name):
            if not force and self.exists(name):
                raise AlreadyExistsError(f"Presentation '{name}' already exists")
            self.save(document)
        LOGGER.info("Created presentation '%s'", name)
        return document
