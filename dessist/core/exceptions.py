"""
exceptions.py
=============
Error and warning taxonomy shared by the ingestor and the emission engine.

Fatal conditions are exceptions; degraded-but-recoverable conditions are
warnings so callers can filter, escalate or record them with the standard
`warnings` machinery.
"""

from __future__ import annotations


class DessistError(Exception):
    """Base class for every fatal conversion error."""


class MalformedInputError(DessistError, ValueError):
    """The package document could not be parsed at all. No tree is produced."""


class EmptyExecutableSetError(DessistError):
    """The package holds no top-level executables, so there is nothing to emit."""


class UnrecognizedNodeWarning(UserWarning):
    """An XML child construct was skipped during ingestion (comment, PI, ...)."""


class UntranslatedConstructWarning(UserWarning):
    """A task kind or expression had no Python equivalent; a placeholder was emitted."""
