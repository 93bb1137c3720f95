"""introscan: detect recurring TV introductions with audio fingerprints."""

__version__ = "0.1.0"
