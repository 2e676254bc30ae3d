"""Error hierarchy shared by the store, the renderer and the export pipeline."""

from datetime import datetime
from typing import List, Optional


class DeckError(Exception):
    """Base exception for all presentation-related errors"""

    error_type = "general"

    def __init__(
        self,
        message: str,
        stage: str = "",
        original_error: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.stage = stage
        self.original_error = original_error
        self.timestamp = datetime.now()

    def __str__(self):
        return self.message


class ConfigurationError(DeckError):
    """Environment configuration is missing or invalid"""
    error_type = "configuration"


class ValidationError(DeckError):
    """Input failed schema validation; ``errors`` lists every violation"""
    error_type = "validation"

    def __init__(self, errors: List[str], stage: str = ""):
        self.errors = list(errors)
        summary = "; ".join(self.errors) or "invalid input"
        super().__init__(f"Invalid input: {summary}", stage=stage)


class AlreadyExistsError(DeckError):
    """A presentation with the same name is already stored"""
    error_type = "already_exists"


class NotFoundError(DeckError):
    """Referenced presentation does not exist"""
    error_type = "not_found"


class CorruptDocumentError(DeckError):
    """Stored document could not be parsed or failed validation"""
    error_type = "corrupt"


class SlideIndexError(DeckError):
    """Slide index outside ``[0, length)``"""
    error_type = "index_out_of_range"

    def __init__(self, index: int, length: int, stage: str = ""):
        self.index = index
        self.length = length
        if length:
            detail = f"valid indices are 0..{length - 1}"
        else:
            detail = "the presentation has no slides"
        super().__init__(
            f"Slide index {index} is out of range ({detail})", stage=stage
        )


class ConversionFailedError(DeckError):
    """External converter exited with an error or produced no output"""
    error_type = "conversion_failed"

    def __init__(
        self,
        message: str,
        returncode: Optional[int] = None,
        stderr: str = "",
        stage: str = "",
        original_error: Optional[Exception] = None
    ):
        self.returncode = returncode
        self.stderr = stderr
        if stderr:
            message = f"{message}: {stderr.strip()}"
        super().__init__(message, stage=stage, original_error=original_error)


class ConversionTimeoutError(DeckError):
    """External converter did not finish in time"""
    error_type = "conversion_timeout"

    def __init__(self, command: str, timeout: float, stage: str = ""):
        self.command = command
        self.timeout = timeout
        super().__init__(
            f"{command} did not finish within {timeout:g} seconds", stage=stage
        )


class StorageError(DeckError):
    """Filesystem failure unrelated to the other error types"""
    error_type = "storage"
