# hedrap/errors.py
"""
Error taxonomy shared by the chain client, the cache store and the routes.

Every error renders as ``{"error": message}`` with the class status code.
"""
from __future__ import annotations


class HedRapError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(HedRapError):
    """Missing or malformed input. Raised before any external call."""

    status_code = 400


class ChainError(HedRapError):
    """Contract submission, receipt or decoding failure."""

    status_code = 500


class NotFound(HedRapError):
    status_code = 404


class NotConfigured(HedRapError):
    status_code = 503
