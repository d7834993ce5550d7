# -*- coding: utf-8 -*-
"""Exceptions raised by the contact tracing engine."""


class ValidationError(ValueError):
    """Raised when movement records or query parameters are malformed.

    Covers missing columns, null or unparseable values, negative counts,
    unsupported input types and batch vectors of inconsistent length.
    Always raised before any traversal starts.
    """


class InvalidWindowError(ValidationError):
    """Raised when a date window starts after it ends, or lookback days are negative."""


class DirectionMismatchError(ValueError):
    """Raised when a direction-specific metric is requested from a contact set
    built for the other direction (e.g. out-degree of ingoing contacts)."""
