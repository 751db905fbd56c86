"""
CRM - Service errors

Each error carries the HTTP status the API boundary answers with.
server.py turns them into {"success": false, "error": message}.
"""

from typing import Any, Dict, Optional


class CRMError(Exception):
    """Base class for service errors."""

    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(CRMError):
    """Missing or malformed required input."""
    status_code = 400


class NotFoundError(CRMError):
    """Referenced entity does not exist."""
    status_code = 404


class InvalidTransitionError(CRMError):
    """Status change refused by the strict receipt guard."""
    status_code = 409


class GenerationError(CRMError):
    """Text-generation service failed or returned unusable content."""
    status_code = 500


class TranslationError(GenerationError):
    """Segment rules could not be turned into a customer query."""
    status_code = 400


class PersistenceError(CRMError):
    """Store unreachable or write refused."""
    status_code = 500


class VendorError(CRMError):
    """Delivery vendor unreachable."""
    status_code = 502
