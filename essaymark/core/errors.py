"""
Exception types raised by the core.
"""


class EssayMarkError(Exception):
    """Base class for application errors."""


class ImageDecodeError(EssayMarkError):
    """A page image could not be read or decoded."""


class BinarizationError(EssayMarkError):
    """Sauvola enhancement failed for a page image."""
