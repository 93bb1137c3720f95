"""Exceptions raised by introscan."""

from __future__ import annotations


class IntroScanError(Exception):
    """Base class for all introscan errors."""


class ConfigurationError(IntroScanError):
    pass


class EmptyQueueError(IntroScanError):
    pass


class TaskAlreadyRunningError(IntroScanError):
    pass


class ItemNotFoundError(IntroScanError, LookupError):
    """An episode id no longer maps to a library item."""


class FingerprintError(IntroScanError):
    """Audio could not be fingerprinted (fpcalc missing, failed or empty output)."""


class CacheMissError(IntroScanError, LookupError):
    """A fingerprint expected in the per-run cache was not there."""
