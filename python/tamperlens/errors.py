"""Exceptions raised by Tamperlens."""


class TamperlensError(Exception):
    """Base class for all Tamperlens errors."""


class InvalidImageError(TamperlensError):
    """Pixel data does not describe a usable RGBA image."""


class ImageDecodeError(InvalidImageError):
    """Image bytes could not be decoded."""


class InvalidOptionsError(TamperlensError, ValueError):
    """Analysis options are out of range."""


class AnalysisError(TamperlensError):
    """A detector failed part-way through a run."""


class BackendUnavailableError(TamperlensError):
    """The imaging back-end never became ready."""
