"""
Unified hierarchy of error types. These inherit from standard errors like
ValueError but are more fine-grained.
"""

from typing import Tuple, Type


class BloomError(ValueError):
    """Base class for bloom runtime errors."""

    pass


class SelfExplanatoryError(BloomError):
    """Common errors that arise from 'normal' problems that are largely self-explanatory,
    i.e., no stack trace should be necessary when reporting to the user."""

    pass


class InvalidInput(SelfExplanatoryError):
    """Raised when the wrong kind of input is given to an operation."""

    pass


class InvalidDocumentId(InvalidInput):
    """Raised when a document id can't be used as a storage key."""

    def __init__(self, doc_id: str):
        super().__init__(f"Invalid document id: {repr(doc_id)}")


class UnknownExportFormat(InvalidInput):
    """Raised when no export format matches a requested name or extension."""

    pass


class InvalidState(SelfExplanatoryError):
    """Raised when the manager or store is not in a valid state for an operation."""

    pass


class ContentError(SelfExplanatoryError):
    """Raised when content is not appropriate for an operation."""

    pass


class FileFormatError(ContentError):
    """Raised when a file's content format is invalid."""

    pass


NONFATAL_EXCEPTIONS: Tuple[Type[Exception], ...] = (
    SelfExplanatoryError,
    FileNotFoundError,
    IOError,
)
"""Exceptions that are not fatal and usually don't merit a full stack trace."""


def is_fatal(exception: Exception) -> bool:
    for e in NONFATAL_EXCEPTIONS:
        if isinstance(exception, e):
            return False
    return True
