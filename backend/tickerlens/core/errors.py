# backend/tickerlens/core/errors.py
from __future__ import annotations


class TickerLensError(Exception):
    """Base class for errors surfaced by the resolution service."""


class CatalogUnavailable(TickerLensError):
    """The stock catalog is missing, empty or malformed.

    Fatal to resolution: callers must never treat this like "no matches".
    """


class CatalogFetchError(CatalogUnavailable):
    """Transient failure while fetching a catalog snapshot from a provider."""


class TranslationError(TickerLensError):
    """The translation provider could not translate or detect the text."""
