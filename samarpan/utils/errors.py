"""
Exception taxonomy for the commission / target bookkeeping services.
"""


class SamarpanError(Exception):
    """Base class for service-level failures."""


class NotFoundError(SamarpanError):
    """A referenced user, donation, target or ledger entry does not exist."""


class ValidationError(SamarpanError):
    """Malformed hierarchy or an illegal state transition."""


class StorageError(SamarpanError):
    """A persistence write failed for a single node or entry."""
