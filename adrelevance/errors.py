from __future__ import annotations


class AdRelevanceError(Exception):
    """Base class for errors raised by the relevance engine."""


class InvalidInputError(AdRelevanceError, ValueError):
    """Raised when a caller passes empty ids, empty text, or malformed catalog data."""


class UpstreamError(AdRelevanceError, RuntimeError):
    """Raised when the language-model boundary fails, times out, or returns garbage."""
