"""Error taxonomy for the sync service.

Every error carries an HTTP-equivalent ``status_code`` so the API layer can
translate it without knowing which component raised it.
"""

from __future__ import annotations

from typing import Optional


class FigSyncError(Exception):
    """Base exception for the sync service."""

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


# ---------------------------------------------------------------------------
# Registry client
# ---------------------------------------------------------------------------

class UpstreamError(FigSyncError):
    """Base class for failures talking to the FIG registry."""

    status_code = 502


class UpstreamFormatError(UpstreamError):
    """The registry answered, but not with the expected payload shape."""

    status_code = 502


class RateLimited(UpstreamError):
    """The registry reported HTTP 429."""

    status_code = 429


class UpstreamTimeout(UpstreamError):
    """The call timed out or the connection was aborted."""

    status_code = 504


class UpstreamUnavailable(UpstreamError):
    """Any other upstream failure."""

    status_code = 502


class ImageNotFound(UpstreamError):
    """The image host has no picture for this person."""

    status_code = 404


class ImageTooLarge(UpstreamError):
    """The image body exceeds the configured size limit."""

    status_code = 413


# ---------------------------------------------------------------------------
# Input validation / eligibility
# ---------------------------------------------------------------------------

class ValidationError(FigSyncError):
    """User-input class error (HTTP 400)."""

    status_code = 400


class InvalidGroupSize(ValidationError):
    """Group size does not map to any choreography type."""


class QuotaExceeded(ValidationError):
    """Country already holds the maximum registrations for the slot."""


class CountryNotEligible(ValidationError):
    """Country is not in the tournament's allow-list."""


class EmptyGroup(ValidationError):
    """A registration with fewer members than the rule-set minimum."""


class UnknownTournamentType(FigSyncError):
    """No rule-set registered for a tournament type (configuration error)."""

    status_code = 500


# ---------------------------------------------------------------------------
# Lookup / local store
# ---------------------------------------------------------------------------

class PersonNotFound(FigSyncError):
    """Neither the registry nor the local store knows the person."""

    status_code = 404


class DuplicatePerson(FigSyncError):
    """A local person would shadow an existing external identifier."""

    status_code = 409
