"""Exception taxonomy shared by every stage of the pipeline."""

from __future__ import annotations


class MosaicError(Exception):
    """Base class for all cap-mosaic errors."""


class InvalidInput(MosaicError, ValueError):
    """Bad caller input: image size, inventory entry, or cost matrix."""


class Cancelled(MosaicError):
    """A solve was aborted through its cancellation signal."""


class InternalInvariantViolation(MosaicError, RuntimeError):
    """The solver produced an inconsistent result. Never retried."""
